# src/hookwatch/server/__init__.py
"""HTTP/WebSocket server exposing the event pipeline to dashboard clients."""

from .app import create_app
from .broadcaster import Broadcaster

__all__ = ["Broadcaster", "create_app"]
