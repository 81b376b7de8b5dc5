"""
Slack operator channel for SafeLine.

Posts a formatted notice to an operations Slack channel (incoming
webhook) when an alert could not be delivered after all retries, so a
human can contact the subject's emergency contacts by other means.
"""

from __future__ import annotations

from datetime import timezone

import structlog
from slack_sdk.webhook.async_client import AsyncWebhookClient

from sl_common.models.alert import AlertEvent, DeliveryResult
from sl_common.models.subject import describe_location

logger = structlog.get_logger()


def _format_slack_blocks(event: AlertEvent, result: DeliveryResult) -> list[dict]:
    """Build Slack Block Kit blocks for an undeliverable *event*.

    Format:
        *kind* undelivered  |  subject  |  phone  |  timestamp
        > transcript excerpt …
    """
    ts = event.created_at
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts_str = ts.strftime("%Y-%m-%d %H:%M:%S UTC")

    header = (
        f"*{event.kind.value} undelivered*  |  "
        f"{event.subject.name}  |  "
        f"`{event.subject.phone}`  |  "
        f"`{ts_str}`"
    )
    excerpt = event.transcript_excerpt[:300] if event.transcript_excerpt else "(no transcript)"
    contacts = ", ".join(
        f"{c.name} {c.phone}" for c in event.subject.emergency_contacts
    ) or "(no contacts)"
    return [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": header},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"> {excerpt}"},
        },
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": (
                        f"phrase: *{event.matched_phrase or '-'}*  |  "
                        f"location: {describe_location(event.location)}  |  "
                        f"contacts: {contacts}  |  "
                        f"attempts: {result.attempts}  |  "
                        f"event_id: `{event.event_id}`  |  "
                        f"error: {result.error or 'unknown'}"
                    ),
                },
            ],
        },
    ]


class SlackOperatorNotifier:
    """Report permanently failed deliveries to Slack via incoming webhook.

    Args:
        webhook_url: Slack incoming-webhook URL.
    """

    name: str = "slack"

    def __init__(self, webhook_url: str) -> None:
        self.webhook_url = webhook_url
        self._client = AsyncWebhookClient(url=webhook_url)

    async def notify_failure(self, event: AlertEvent, result: DeliveryResult) -> bool:
        """Post an undeliverable-alert notice.

        Returns:
            ``True`` on success (HTTP 200), ``False`` otherwise.
        """
        blocks = _format_slack_blocks(event, result)
        fallback_text = (
            f"Undelivered {event.kind.value} alert for {event.subject.name} "
            f"(session {event.session_id})"
        )
        log = logger.bind(event_id=event.event_id, channel="slack")
        try:
            response = await self._client.send(text=fallback_text, blocks=blocks)
        except Exception as exc:  # noqa: BLE001
            log.error("slack_delivery_failed", error=str(exc))
            return False
        if response.status_code == 200:
            log.info("slack_operator_notified")
            return True
        log.warning("slack_non_200", status=response.status_code, body=response.body)
        return False

    async def close(self) -> None:
        """No persistent resources to clean up."""
