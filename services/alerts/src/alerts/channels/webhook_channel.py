"""
Webhook notification channel for SafeLine.

Sends one HTTP POST with a JSON alert payload to the webhook URL
configured for an event kind (emergency alert, safe arrival, call
initiated).  The downstream automation fans the payload out to the
subject's emergency contacts.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from sl_common.models.alert import AlertEvent, AlertKind
from sl_common.models.subject import describe_location

from .base import AlertChannel

logger = structlog.get_logger()

_DEFAULT_TIMEOUT_S = 10.0

_ACTIONS: dict[AlertKind, str] = {
    AlertKind.EMERGENCY: "emergency_alert",
    AlertKind.SAFE_ARRIVAL: "safe_arrival",
    AlertKind.CALL_STARTED: "call_initiated",
}


def format_message(event: AlertEvent) -> str:
    """Human-readable summary sent alongside the structured fields."""
    name = event.subject.name
    if event.kind == AlertKind.EMERGENCY:
        return (
            f"EMERGENCY ALERT: {name} may be in danger. They said "
            f'"{event.matched_phrase}" during their safety call. '
            f"Location: {describe_location(event.location)}. "
            "Please check on them immediately."
        )
    if event.kind == AlertKind.SAFE_ARRIVAL:
        return (
            f"SAFE ARRIVAL: {name} has safely reached their destination. They said "
            f'"{event.matched_phrase}" during their safety call. No further action needed.'
        )
    return f"{name} started a monitored safety call."


def build_payload(event: AlertEvent) -> dict[str, Any]:
    """Serialise *event* into the webhook JSON body."""
    return {
        "action": _ACTIONS[event.kind],
        "event_id": event.event_id,
        "session_id": event.session_id,
        "sequence": event.sequence,
        "user_name": event.subject.name,
        "user_phone": event.subject.phone,
        "emergency_contacts": [
            contact.model_dump(mode="json") for contact in event.subject.emergency_contacts
        ],
        "location": describe_location(event.location),
        "coordinates": event.location.model_dump(mode="json") if event.location else None,
        "matched_phrase": event.matched_phrase,
        "transcript_excerpt": event.transcript_excerpt,
        "call_ref": event.call_ref,
        "timestamp": event.created_at.isoformat(),
        "message": format_message(event),
    }


class WebhookChannel(AlertChannel):
    """Deliver alert events as HTTP POST JSON payloads to a webhook URL.

    Every request carries an ``Idempotency-Key`` header equal to the
    event id so the receiver can drop deliveries repeated by retries.

    Args:
        url: Destination webhook URL.
        name: Channel name for logs and delivery records.
        timeout: Per-request timeout in seconds (default 10).
        headers: Optional extra headers to include on every request.
        transport: Optional ``httpx`` transport (tests use ``MockTransport``).
    """

    name: str = "webhook"

    def __init__(
        self,
        url: str,
        *,
        name: str | None = None,
        timeout: float = _DEFAULT_TIMEOUT_S,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        if name is not None:
            self.name = name
        self.timeout = timeout
        self.headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Return (and lazily create) the shared ``httpx.AsyncClient``."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def send(self, event: AlertEvent) -> bool:
        """POST *event* once.

        Returns:
            ``True`` on a 2xx response, ``False`` on a non-2xx status or
            a transport error.
        """
        payload = build_payload(event)
        log = logger.bind(channel=self.name, event_id=event.event_id)
        try:
            client = await self._get_client()
            resp = await client.post(
                self.url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Idempotency-Key": event.event_id,
                    **self.headers,
                },
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.warning(
                "webhook_non_2xx",
                status=exc.response.status_code,
                body=exc.response.text[:200],
            )
            return False
        except httpx.TransportError as exc:
            log.warning("webhook_transport_error", error=str(exc))
            return False
        log.info("webhook_delivered", status=resp.status_code)
        return True

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
