"""Shared fixtures for monitor service tests."""

from __future__ import annotations

import asyncio

import pytest

from sl_common.clock import ManualClock
from sl_common.models.alert import AlertEvent, AlertKind
from sl_common.models.lexicon import Lexicon
from sl_common.models.subject import EmergencyContact, Location, Subject
from alerts.channels.base import AlertChannel
from alerts.dispatcher import NotificationDispatcher
from monitor.engine import MonitoringEngine
from monitor.registry import SessionRegistry


class RecordingChannel(AlertChannel):
    """In-memory channel that records every event it is asked to send.

    ``outcomes`` is consumed one entry per attempt; once exhausted every
    attempt uses ``default``.  When ``gate`` is set, sends block until the
    event is set.
    """

    def __init__(self, name: str, *, outcomes: list[bool] | None = None, default: bool = True) -> None:
        self.name = name
        self.outcomes = list(outcomes or [])
        self.default = default
        self.sent: list[AlertEvent] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    async def send(self, event: AlertEvent) -> bool:
        if self.gate is not None:
            await self.gate.wait()
        self.sent.append(event)
        return self.outcomes.pop(0) if self.outcomes else self.default

    async def close(self) -> None:
        self.closed = True


# ─── Fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def lexicon() -> Lexicon:
    return Lexicon()


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
def location() -> Location:
    return Location(latitude=12.9716, longitude=77.5946)


@pytest.fixture()
def registry(clock: ManualClock) -> SessionRegistry:
    return SessionRegistry(clock=clock, retention_s=3600.0)


@pytest.fixture()
def emergency_channel() -> RecordingChannel:
    return RecordingChannel("emergency_webhook")


@pytest.fixture()
def safe_channel() -> RecordingChannel:
    return RecordingChannel("safe_arrival_webhook")


@pytest.fixture()
def dispatcher(
    clock: ManualClock,
    emergency_channel: RecordingChannel,
    safe_channel: RecordingChannel,
) -> NotificationDispatcher:
    return NotificationDispatcher(
        {AlertKind.EMERGENCY: emergency_channel, AlertKind.SAFE_ARRIVAL: safe_channel},
        clock=clock,
    )


@pytest.fixture()
def engine(
    registry: SessionRegistry,
    dispatcher: NotificationDispatcher,
    lexicon: Lexicon,
    clock: ManualClock,
) -> MonitoringEngine:
    return MonitoringEngine(registry, dispatcher, lexicon, clock=clock)
