"""
Alert event and delivery result models for SafeLine.

An :class:`AlertEvent` is emitted by the decision policy when a session
escalates or closes out with a safe arrival; a :class:`DeliveryResult` is
what the notification dispatcher reports back once delivery has succeeded,
failed permanently or been skipped.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, computed_field

from sl_common.models.subject import Location, Subject


def _utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


class AlertKind(str, enum.Enum):
    """What an alert event announces."""

    EMERGENCY = "emergency"
    SAFE_ARRIVAL = "safe_arrival"
    CALL_STARTED = "call_started"


class DeliveryStatus(str, enum.Enum):
    """Final outcome of dispatching one alert event."""

    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


class AlertEvent(BaseModel):
    """A structured alert handed to the notification dispatcher.

    Attributes:
        session_id: Session the event belongs to.
        sequence: Per-session emission number (1-based for emergency and
                  safe-arrival events, ``0`` for the call-started notice).
        kind: Event kind, selects the notification channel.
        subject: Snapshot of the protected person.
        location: Last-known location at decision time.
        matched_phrase: Trigger or safe phrase that caused the event.
        transcript_excerpt: Tail of the accumulated transcript.
        call_ref: External conversation reference, if any.
        created_at: Decision timestamp (UTC).
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., description="Owning session identifier.")
    sequence: int = Field(..., ge=0, description="Per-session emission number.")
    kind: AlertKind = Field(..., description="Event kind.")
    subject: Subject = Field(..., description="Protected person snapshot.")
    location: Location | None = Field(default=None, description="Last-known location.")
    matched_phrase: str | None = Field(default=None, description="Phrase that fired.")
    transcript_excerpt: str = Field(default="", description="Transcript tail.")
    call_ref: str | None = Field(default=None, description="External conversation id.")
    created_at: datetime = Field(default_factory=_utc_now, description="Decision time (UTC).")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def event_id(self) -> str:
        """Stable idempotency key: ``{session_id}:{sequence}``."""
        return f"{self.session_id}:{self.sequence}"


class DeliveryResult(BaseModel):
    """Outcome of dispatching one :class:`AlertEvent`.

    Attributes:
        event_id: Idempotency key of the dispatched event.
        session_id: Owning session.
        kind: Event kind.
        status: Delivered, failed (retries exhausted) or skipped.
        channel: Name of the channel used (``None`` when skipped).
        attempts: Number of delivery attempts made.
        error: Last error message for failed deliveries.
        completed_at: When the dispatcher finished with the event (UTC).
    """

    event_id: str
    session_id: str
    kind: AlertKind
    status: DeliveryStatus
    channel: str | None = None
    attempts: int = Field(default=0, ge=0)
    error: str | None = None
    completed_at: datetime = Field(default_factory=_utc_now)

    @property
    def ok(self) -> bool:
        """``True`` when the event reached its channel."""
        return self.status == DeliveryStatus.DELIVERED
