"""
Base exception types for SafeLine.

Service-specific errors (unknown session, ended session, dispatch
failures) subclass :class:`SafeLineError` in the modules that raise them.
"""

from __future__ import annotations


class SafeLineError(Exception):
    """Root of every SafeLine-specific exception."""


class ConfigurationError(SafeLineError):
    """Raised at startup when required configuration is missing or invalid."""
