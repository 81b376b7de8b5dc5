"""
sl-common: Shared library for SafeLine.

Provides configuration management, structured logging, the clock/scheduler
abstraction and the common data models (lexicon, subject, session, alert
events) used by the SafeLine monitor and alerts services.
"""

from sl_common.config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
