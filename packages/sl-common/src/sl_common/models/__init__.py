"""
Shared Pydantic data models for SafeLine.

This package contains the cross-service data models: lexicon snapshots,
protected subjects, monitored sessions, alert events and delivery results.
"""

from sl_common.models.alert import AlertEvent, AlertKind, DeliveryResult, DeliveryStatus
from sl_common.models.lexicon import Lexicon
from sl_common.models.session import MonitorState, Session, SessionStatus
from sl_common.models.subject import (
    EmergencyContact,
    Location,
    Subject,
    describe_location,
)

__all__ = [
    "AlertEvent",
    "AlertKind",
    "DeliveryResult",
    "DeliveryStatus",
    "EmergencyContact",
    "Lexicon",
    "Location",
    "MonitorState",
    "Session",
    "SessionStatus",
    "Subject",
    "describe_location",
]
