"""
HTTP ingress schemas for the SafeLine monitor.

Pydantic request/response models for starting sessions, posting
transcript chunks, refreshing locations and reading session state.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from sl_common.models.alert import DeliveryResult
from sl_common.models.session import Session
from sl_common.models.subject import EmergencyContact, Location


class SessionStartRequest(BaseModel):
    session_id: str | None = Field(default=None, min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=32)
    emergency_contacts: list[EmergencyContact] = Field(default_factory=list)
    location: Location | None = None
    call_ref: str | None = Field(default=None, max_length=128)


class SessionStartResponse(BaseModel):
    session_id: str
    status: str
    started_at: datetime


class TranscriptRequest(BaseModel):
    text: str = Field(..., max_length=10_000)


class ManualAlertRequest(BaseModel):
    phrase: str = Field(default="help", min_length=1, max_length=100)


class ProcessResponse(BaseModel):
    session_id: str
    outcome: str
    classification: str
    matched_phrase: str | None = None
    event_id: str | None = None


class SessionSummary(BaseModel):
    session_id: str
    name: str
    status: str
    state: str
    alert_count: int
    started_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> SessionSummary:
        return cls(
            session_id=session.session_id,
            name=session.subject.name,
            status=session.status.value,
            state=session.state.value,
            alert_count=session.alert_count,
            started_at=session.started_at,
        )


class SessionListResponse(BaseModel):
    sessions: list[SessionSummary]
    total: int


class SessionDetailResponse(BaseModel):
    session_id: str
    name: str
    phone: str
    emergency_contacts: list[EmergencyContact]
    location: Location | None = None
    call_ref: str | None = None
    status: str
    state: str
    alert_count: int
    max_alerts_per_session: int
    transcript: list[str]
    started_at: datetime
    ended_at: datetime | None = None
    deliveries: list[DeliveryResult]

    @classmethod
    def from_session(cls, session: Session) -> SessionDetailResponse:
        return cls(
            session_id=session.session_id,
            name=session.subject.name,
            phone=session.subject.phone,
            emergency_contacts=list(session.subject.emergency_contacts),
            location=session.location,
            call_ref=session.call_ref,
            status=session.status.value,
            state=session.state.value,
            alert_count=session.alert_count,
            max_alerts_per_session=session.lexicon.max_alerts_per_session,
            transcript=session.transcript,
            started_at=session.started_at,
            ended_at=session.ended_at,
            deliveries=session.deliveries,
        )
