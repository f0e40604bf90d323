"""
Custom exception classes for the health checker.

Per-endpoint failures never surface as exceptions; they are folded into a
ProbeResult. The classes below cover setup and programming errors that
abort a run before probing starts.
"""

from typing import Optional, Dict, Any


class CheckerError(Exception):
    """Base exception for all health checker errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CheckerError):
    """Exception raised for configuration-related issues."""
    pass


class ValidationError(CheckerError):
    """Exception raised when a computed or supplied value is out of range."""
    pass


class InputError(CheckerError):
    """Exception raised when the endpoint list cannot be read."""
    pass


class ExportError(CheckerError):
    """Exception raised when the result export sink cannot be written."""
    pass


class PoolError(CheckerError):
    """Exception raised when the worker pool is misused."""
    pass
