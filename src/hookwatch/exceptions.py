# src/hookwatch/exceptions.py
"""
Custom exceptions for the hookwatch package.

Data problems (malformed lines, missing timestamps, unreadable files) are
logged and absorbed inside the pipeline. The classes below cover the few
conditions that are surfaced to callers.
"""

class HookWatchError(Exception):
    """Base class for all hookwatch specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in hookwatch."):
        super().__init__(message)

class ConfigError(HookWatchError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class UnknownTimeRangeError(ConfigError):
    """Raised when a chart time range name is not one of the configured ranges."""
    def __init__(self, range_name: str = "", available: list[str] | None = None):
        self.range_name = range_name
        self.available = list(available or [])
        choices = ", ".join(self.available) or "none configured"
        super().__init__(f"Unknown time range '{range_name}'. Available: {choices}")

class IngestionError(HookWatchError):
    """Raised when the ingestion layer cannot be started (e.g. no event loop to attach to)."""
    def __init__(self, message: str = "Ingestion error."):
        super().__init__(message)
