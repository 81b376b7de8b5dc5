"""
Monitored-session data model for SafeLine.

A session is the monitored state of one safety call from start to end:
who is protected, what has been said so far, how many escalations have
been sent and where the session sits in the monitoring state machine.
Sessions are owned by the monitor's session registry; everything outside
the registry only ever sees deep-copied snapshots.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from sl_common.models.alert import DeliveryResult
from sl_common.models.lexicon import Lexicon
from sl_common.models.subject import Location, Subject

DEFAULT_EXCERPT_CHARS = 500


def _utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


class SessionStatus(str, enum.Enum):
    """Whether a session still accepts transcript."""

    ACTIVE = "active"
    ENDED = "ended"


class MonitorState(str, enum.Enum):
    """Position in the alert decision state machine."""

    MONITORING = "monitoring"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    ENDED = "ended"


class Session(BaseModel):
    """One monitored safety call.

    Attributes:
        session_id: Unique, never-reused identifier.
        subject: The protected person.
        location: Last-known location (refreshable).
        call_ref: External conversation reference (e.g. voice-agent id).
        lexicon: Lexicon snapshot taken when the session started.
        transcript: Append-only list of received chunks.
        alert_count: Escalations sent so far (never decremented).
        last_alert_at: Monotonic clock reading of the last escalation.
        alert_sequence: Alert events emitted so far (all kinds).
        status: ``active`` or ``ended``.
        state: Decision state machine position.
        started_at: Session start (UTC).
        ended_at: Session end (UTC), ``None`` while active.
        deliveries: Audit trail of dispatch outcomes.
    """

    session_id: str = Field(..., min_length=1, description="Unique session identifier.")
    subject: Subject = Field(..., description="The protected person.")
    location: Location | None = Field(default=None, description="Last-known location.")
    call_ref: str | None = Field(default=None, description="External conversation reference.")
    lexicon: Lexicon = Field(default_factory=Lexicon, description="Lexicon snapshot.")
    transcript: list[str] = Field(default_factory=list, description="Received chunks.")
    alert_count: int = Field(default=0, ge=0, description="Escalations sent.")
    last_alert_at: float | None = Field(default=None, description="Last escalation (monotonic).")
    alert_sequence: int = Field(default=0, ge=0, description="Alert events emitted.")
    status: SessionStatus = Field(default=SessionStatus.ACTIVE)
    state: MonitorState = Field(default=MonitorState.MONITORING)
    started_at: datetime = Field(default_factory=_utc_now)
    ended_at: datetime | None = Field(default=None)
    deliveries: list[DeliveryResult] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def transcript_text(self) -> str:
        """All received chunks joined with single spaces."""
        return " ".join(self.transcript)

    def append_chunk(self, text: str) -> None:
        """Append one transcript chunk (ordering is arrival order)."""
        self.transcript.append(text)

    def mark_ended(self, at: datetime) -> None:
        """Move to the terminal state; no transitions out."""
        self.status = SessionStatus.ENDED
        self.state = MonitorState.ENDED
        self.ended_at = at

    def excerpt(self, max_chars: int = DEFAULT_EXCERPT_CHARS) -> str:
        """Return the last *max_chars* characters of the transcript."""
        text = self.transcript_text
        if len(text) <= max_chars:
            return text
        return text[-max_chars:]

    def snapshot(self) -> Session:
        """Deep copy safe to hand outside the registry."""
        return self.model_copy(deep=True)
