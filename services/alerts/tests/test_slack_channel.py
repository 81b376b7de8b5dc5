"""
Tests for the Slack operator notifier.

Validates Block Kit formatting of undeliverable-alert notices and the
notifier's handling of Slack webhook responses.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from sl_common.models.alert import DeliveryResult, DeliveryStatus
from alerts.channels.slack_channel import SlackOperatorNotifier, _format_slack_blocks


_TEST_WEBHOOK_URL = "https://hooks.slack.com/services/T00/B00/xxx"


@pytest.fixture()
def failed_result(sample_event) -> DeliveryResult:
    return DeliveryResult(
        event_id=sample_event.event_id,
        session_id=sample_event.session_id,
        kind=sample_event.kind,
        status=DeliveryStatus.FAILED,
        channel="emergency_webhook",
        attempts=3,
        error="emergency_webhook rejected delivery",
    )


# ── formatting ──


class TestSlackFormatting:
    """Tests for Slack Block Kit message formatting."""

    def test_header_names_kind_in_bold(self, sample_event, failed_result) -> None:
        header = _format_slack_blocks(sample_event, failed_result)[0]["text"]["text"]
        assert "*emergency undelivered*" in header

    def test_header_includes_subject(self, sample_event, failed_result) -> None:
        header = _format_slack_blocks(sample_event, failed_result)[0]["text"]["text"]
        assert "Asha Rao" in header
        assert "+15550001111" in header
        assert "UTC" in header

    def test_excerpt_block(self, sample_event, failed_result) -> None:
        block = _format_slack_blocks(sample_event, failed_result)[1]["text"]["text"]
        assert block.startswith("> ")
        assert "please help" in block

    def test_excerpt_truncated(self, sample_event, failed_result) -> None:
        event = sample_event.model_copy(update={"transcript_excerpt": "x" * 500})
        block = _format_slack_blocks(event, failed_result)[1]["text"]["text"]
        assert len(block) <= 310

    def test_missing_excerpt(self, sample_event, failed_result) -> None:
        event = sample_event.model_copy(update={"transcript_excerpt": ""})
        block = _format_slack_blocks(event, failed_result)[1]["text"]["text"]
        assert "(no transcript)" in block

    def test_context_element(self, sample_event, failed_result) -> None:
        ctx = _format_slack_blocks(sample_event, failed_result)[2]["elements"][0]["text"]
        assert "attempts: 3" in ctx
        assert sample_event.event_id in ctx
        assert "Ravi Rao" in ctx
        assert "rejected delivery" in ctx


# ── notifier ──


class TestSlackOperatorNotifier:
    async def test_notify_returns_true_on_200(self, sample_event, failed_result) -> None:
        notifier = SlackOperatorNotifier(_TEST_WEBHOOK_URL)
        notifier._client = AsyncMock()
        notifier._client.send = AsyncMock(return_value=SimpleNamespace(status_code=200, body="ok"))

        assert await notifier.notify_failure(sample_event, failed_result) is True

        kwargs = notifier._client.send.call_args.kwargs
        assert "Undelivered emergency alert for Asha Rao" in kwargs["text"]
        assert len(kwargs["blocks"]) == 3

    async def test_notify_returns_false_on_error_status(self, sample_event, failed_result) -> None:
        notifier = SlackOperatorNotifier(_TEST_WEBHOOK_URL)
        notifier._client = AsyncMock()
        notifier._client.send = AsyncMock(
            return_value=SimpleNamespace(status_code=403, body="invalid_token")
        )
        assert await notifier.notify_failure(sample_event, failed_result) is False

    async def test_notify_returns_false_on_exception(self, sample_event, failed_result) -> None:
        notifier = SlackOperatorNotifier(_TEST_WEBHOOK_URL)
        notifier._client = AsyncMock()
        notifier._client.send = AsyncMock(side_effect=OSError("network down"))
        assert await notifier.notify_failure(sample_event, failed_result) is False
