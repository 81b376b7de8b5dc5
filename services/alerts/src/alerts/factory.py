"""
Channel and dispatcher construction from SafeLine settings.

Emergency and safe-arrival endpoints are mandatory: without them the
system could detect danger and have nowhere to send it, so startup
fails.  The call-initiated endpoint and the operator Slack webhook are
optional.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import structlog

from sl_common.clock import Clock
from sl_common.config import Settings
from sl_common.errors import ConfigurationError
from sl_common.models.alert import AlertKind, DeliveryResult

from .channels.base import AlertChannel
from .channels.slack_channel import SlackOperatorNotifier
from .channels.webhook_channel import WebhookChannel
from .dispatcher import NotificationDispatcher

logger = structlog.get_logger()


def build_channels(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[AlertKind, AlertChannel]:
    """Create one :class:`WebhookChannel` per configured event kind.

    Raises:
        ConfigurationError: If the emergency or safe-arrival URL is unset.
    """
    required = {
        "SL_EMERGENCY_WEBHOOK_URL": settings.emergency_webhook_url,
        "SL_SAFE_ARRIVAL_WEBHOOK_URL": settings.safe_arrival_webhook_url,
    }
    missing = [env for env, url in required.items() if not url]
    if missing:
        raise ConfigurationError(f"Missing notification endpoints: {', '.join(missing)}")

    channels: dict[AlertKind, AlertChannel] = {
        AlertKind.EMERGENCY: WebhookChannel(
            settings.emergency_webhook_url,
            name="emergency_webhook",
            timeout=settings.webhook_timeout_s,
            transport=transport,
        ),
        AlertKind.SAFE_ARRIVAL: WebhookChannel(
            settings.safe_arrival_webhook_url,
            name="safe_arrival_webhook",
            timeout=settings.webhook_timeout_s,
            transport=transport,
        ),
    }
    if settings.call_started_webhook_url:
        channels[AlertKind.CALL_STARTED] = WebhookChannel(
            settings.call_started_webhook_url,
            name="call_started_webhook",
            timeout=settings.webhook_timeout_s,
            transport=transport,
        )
    else:
        logger.warning("call_started_webhook_not_configured")
    return channels


def build_dispatcher(
    settings: Settings,
    *,
    clock: Clock | None = None,
    on_result: Callable[[DeliveryResult], None] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> NotificationDispatcher:
    """Build a :class:`NotificationDispatcher` wired from *settings*."""
    notifier = (
        SlackOperatorNotifier(settings.slack_webhook_url) if settings.slack_webhook_url else None
    )
    return NotificationDispatcher(
        build_channels(settings, transport=transport),
        clock=clock,
        max_attempts=settings.dispatch_max_attempts,
        initial_delay_s=settings.dispatch_backoff_initial_s,
        max_delay_s=settings.dispatch_backoff_max_s,
        on_result=on_result,
        operator_notifier=notifier,
    )
