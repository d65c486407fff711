# src/hookwatch/hooks/__init__.py
"""Assistant hook commands that produce the events hookwatch consumes."""

from .capture import main

__all__ = ["main"]
