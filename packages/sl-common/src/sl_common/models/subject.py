"""
Protected-person data models for SafeLine.

The subject is the person a safety call protects: their name, phone
number and emergency contacts.  The subject is immutable for the life of a
session; only the last-known location (held on the session) changes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

LOCATION_UNAVAILABLE = "Location unavailable"


class EmergencyContact(BaseModel):
    """Someone to notify when the subject may be in danger."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=32)
    relation: str = Field(default="", max_length=64)


class Location(BaseModel):
    """A latitude/longitude fix in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    def maps_link(self) -> str:
        """Return a Google Maps link pointing at this location."""
        return f"https://maps.google.com/?q={self.latitude},{self.longitude}"


def describe_location(location: Location | None) -> str:
    """Human-readable location for alert payloads."""
    return location.maps_link() if location is not None else LOCATION_UNAVAILABLE


class Subject(BaseModel):
    """The person being protected by a monitored call.

    Attributes:
        name: Display name used in alert messages.
        phone: The subject's own phone number.
        emergency_contacts: Contacts the notification channel should reach.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=32)
    emergency_contacts: tuple[EmergencyContact, ...] = Field(default=())
