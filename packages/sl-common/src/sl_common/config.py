"""
Environment-based configuration management for SafeLine.

Uses pydantic-settings to load configuration values from environment
variables and .env files. Both services import their settings from this
module to ensure consistent configuration handling.

All environment variables are prefixed with ``SL_`` to avoid collisions.
Phrase lists accept either a JSON array or a comma-separated string, e.g.
``SL_TRIGGER_PHRASES="help,danger,police"``.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from sl_common.models.lexicon import (
    DEFAULT_COOLDOWN_S,
    DEFAULT_MAX_ALERTS_PER_SESSION,
    DEFAULT_SAFE_PHRASES,
    DEFAULT_TRIGGER_PHRASES,
    Lexicon,
)


class Settings(BaseSettings):
    """Central configuration loaded from ``SL_``-prefixed environment variables.

    Attributes:
        trigger_phrases: Phrases indicating possible danger.
        safe_phrases: Phrases indicating safe arrival.
        cooldown_s: Minimum seconds between two escalations of one session.
        max_alerts_per_session: Escalation cap per session.
        emergency_webhook_url: Notification endpoint for emergency alerts.
        safe_arrival_webhook_url: Notification endpoint for safe-arrival notices.
        call_started_webhook_url: Optional endpoint logging call starts.
        webhook_timeout_s: Per-request timeout for webhook deliveries.
        slack_webhook_url: Optional Slack webhook for operator notices.
        dispatch_max_attempts: Delivery attempts before a permanent failure.
        dispatch_backoff_initial_s: First retry delay (doubles each retry).
        dispatch_backoff_max_s: Upper bound on a single retry delay.
        session_retention_s: Seconds an ended session stays readable.
        api_host: Bind address for the monitor HTTP ingress.
        api_port: Bind port for the monitor HTTP ingress.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Render log lines as JSON (``False`` = console renderer).
    """

    model_config = SettingsConfigDict(
        env_prefix="SL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Lexicon ──
    trigger_phrases: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_TRIGGER_PHRASES),
        description="Phrases indicating possible danger.",
    )
    safe_phrases: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_SAFE_PHRASES),
        description="Phrases indicating safe arrival.",
    )
    cooldown_s: float = Field(
        default=DEFAULT_COOLDOWN_S,
        ge=0.0,
        description="Minimum seconds between escalations of one session.",
    )
    max_alerts_per_session: int = Field(
        default=DEFAULT_MAX_ALERTS_PER_SESSION,
        ge=1,
        description="Escalation cap per session.",
    )

    # ── Notification channels ──
    emergency_webhook_url: str = Field(default="", description="Emergency alert endpoint.")
    safe_arrival_webhook_url: str = Field(default="", description="Safe-arrival endpoint.")
    call_started_webhook_url: str = Field(
        default="",
        description="Optional call-initiation logging endpoint.",
    )
    webhook_timeout_s: float = Field(default=10.0, gt=0.0, description="Webhook request timeout.")
    slack_webhook_url: str = Field(default="", description="Operator Slack incoming-webhook URL.")

    # ── Dispatch retry ──
    dispatch_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Delivery attempts before a permanent failure.",
    )
    dispatch_backoff_initial_s: float = Field(
        default=1.0,
        ge=0.0,
        description="First retry delay in seconds.",
    )
    dispatch_backoff_max_s: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum retry delay in seconds.",
    )

    # ── Sessions ──
    session_retention_s: float = Field(
        default=3600.0,
        gt=0.0,
        description="Seconds an ended session remains readable before purge.",
    )

    # ── API ──
    api_host: str = Field(default="0.0.0.0", description="Monitor ingress bind address.")
    api_port: int = Field(default=8010, ge=1, le=65535, description="Monitor ingress bind port.")

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Logging level.")
    log_json: bool = Field(default=True, description="Emit JSON log lines.")

    @field_validator("trigger_phrases", "safe_phrases", mode="before")
    @classmethod
    def _split_phrases(cls, value: Any) -> Any:
        """Accept a JSON array or a comma-separated string."""
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                return json.loads(stripped)
            return [part for part in stripped.split(",") if part.strip()]
        return value

    def lexicon(self) -> Lexicon:
        """Build the :class:`Lexicon` described by these settings."""
        return Lexicon(
            trigger_phrases=tuple(self.trigger_phrases),
            safe_phrases=tuple(self.safe_phrases),
            cooldown_s=self.cooldown_s,
            max_alerts_per_session=self.max_alerts_per_session,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    Returns:
        The global ``Settings`` instance.
    """
    return Settings()
