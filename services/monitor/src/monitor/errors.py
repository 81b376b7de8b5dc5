"""
Session errors raised by the SafeLine monitor.

All are caller-visible and non-fatal: they concern one session id and
never affect other sessions.
"""

from __future__ import annotations

from sl_common.errors import SafeLineError


class SessionError(SafeLineError):
    """Base for errors tied to one session id."""

    def __init__(self, session_id: str, message: str) -> None:
        super().__init__(message)
        self.session_id = session_id


class NotFoundError(SessionError):
    """The session id is unknown or has already been purged."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session {session_id} not found")


class DuplicateSessionError(SessionError):
    """A caller-supplied session id has been used before."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session id {session_id} already used")


class SessionEndedError(SessionError):
    """Input arrived for a session that has already ended."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session {session_id} has ended")
