"""
Lexicon model for SafeLine.

A lexicon is the immutable snapshot of trigger phrases, safe phrases and
escalation timing that a monitored session is evaluated against.  The
process-wide lexicon may be swapped wholesale at runtime; each session
keeps the snapshot that was current when it started.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_TRIGGER_PHRASES: tuple[str, ...] = (
    "help",
    "scared",
    "danger",
    "emergency",
    "unsafe",
    "trouble",
    "stop",
    "police",
)
DEFAULT_SAFE_PHRASES: tuple[str, ...] = (
    "reached home",
    "home safe",
    "arrived safely",
    "reached destination",
    "all good",
    "safe now",
    "made it home",
    "arrived safe",
)
DEFAULT_COOLDOWN_S: float = 300.0
DEFAULT_MAX_ALERTS_PER_SESSION: int = 3


def normalise_phrases(phrases: Any) -> tuple[str, ...]:
    """Lower-case, collapse whitespace and de-duplicate, keeping first-seen order."""
    if isinstance(phrases, str):
        phrases = [phrases]
    seen: list[str] = []
    for raw in phrases:
        phrase = " ".join(str(raw).lower().split())
        if phrase and phrase not in seen:
            seen.append(phrase)
    return tuple(seen)


class Lexicon(BaseModel):
    """Trigger/safe vocabularies plus cooldown and cap.

    Phrase order is preserved: when several phrases of one class occur in
    a transcript, the first one in this order is reported.

    Attributes:
        trigger_phrases: Phrases indicating possible danger (lower case).
        safe_phrases: Phrases indicating safe arrival (lower case).
        cooldown_s: Minimum seconds between two escalations of a session.
        max_alerts_per_session: Maximum escalations per session.
    """

    model_config = ConfigDict(frozen=True)

    trigger_phrases: tuple[str, ...] = Field(
        default=DEFAULT_TRIGGER_PHRASES,
        min_length=1,
        description="Phrases indicating possible danger.",
    )
    safe_phrases: tuple[str, ...] = Field(
        default=DEFAULT_SAFE_PHRASES,
        description="Phrases indicating safe arrival.",
    )
    cooldown_s: float = Field(
        default=DEFAULT_COOLDOWN_S,
        ge=0.0,
        description="Minimum seconds between escalations.",
    )
    max_alerts_per_session: int = Field(
        default=DEFAULT_MAX_ALERTS_PER_SESSION,
        ge=1,
        description="Maximum escalations per session.",
    )

    @field_validator("trigger_phrases", "safe_phrases", mode="before")
    @classmethod
    def _normalise(cls, value: Any) -> tuple[str, ...]:
        return normalise_phrases(value)

    @model_validator(mode="after")
    def _check_disjoint(self) -> Lexicon:
        """A phrase cannot be both a trigger and a safe phrase."""
        overlap = set(self.trigger_phrases) & set(self.safe_phrases)
        if overlap:
            raise ValueError(
                f"phrases configured as both trigger and safe: {sorted(overlap)}"
            )
        return self
