"""Shared fixtures for alerts service tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sl_common.clock import ManualClock
from sl_common.models.alert import AlertEvent, AlertKind
from sl_common.models.subject import EmergencyContact, Location, Subject

# ─── Fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def session_id() -> str:
    return "87654321-4321-8765-4321-876543218765"


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def subject() -> Subject:
    return Subject(
        name="Asha Rao",
        phone="+15550001111",
        emergency_contacts=(
            EmergencyContact(name="Ravi Rao", phone="+15550002222", relation="brother"),
        ),
    )


@pytest.fixture()
def sample_event(session_id: str, subject: Subject) -> AlertEvent:
    """A fully-populated emergency event."""
    return AlertEvent(
        session_id=session_id,
        sequence=1,
        kind=AlertKind.EMERGENCY,
        subject=subject,
        location=Location(latitude=12.9716, longitude=77.5946),
        matched_phrase="help",
        transcript_excerpt="someone is following me please help",
        call_ref="conv-42",
        created_at=datetime(2024, 1, 1, 22, 30, tzinfo=timezone.utc),
    )


@pytest.fixture()
def safe_event(session_id: str, subject: Subject) -> AlertEvent:
    return AlertEvent(
        session_id=session_id,
        sequence=2,
        kind=AlertKind.SAFE_ARRIVAL,
        subject=subject,
        matched_phrase="reached home",
        transcript_excerpt="ok I reached home",
        created_at=datetime(2024, 1, 1, 22, 45, tzinfo=timezone.utc),
    )

