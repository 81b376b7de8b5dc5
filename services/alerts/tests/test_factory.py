"""Tests for building channels and the dispatcher from settings."""

from __future__ import annotations

import pytest

from sl_common.config import Settings
from sl_common.errors import ConfigurationError
from sl_common.models.alert import AlertKind
from alerts.channels.slack_channel import SlackOperatorNotifier
from alerts.channels.webhook_channel import WebhookChannel
from alerts.factory import build_channels, build_dispatcher


def _settings(**overrides) -> Settings:
    values = {
        "emergency_webhook_url": "https://hooks.example.com/emergency",
        "safe_arrival_webhook_url": "https://hooks.example.com/safe",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestBuildChannels:
    def test_mandatory_channels(self) -> None:
        channels = build_channels(_settings())
        assert set(channels) == {AlertKind.EMERGENCY, AlertKind.SAFE_ARRIVAL}
        assert isinstance(channels[AlertKind.EMERGENCY], WebhookChannel)
        assert channels[AlertKind.EMERGENCY].name == "emergency_webhook"
        assert channels[AlertKind.SAFE_ARRIVAL].url == "https://hooks.example.com/safe"

    def test_optional_call_started_channel(self) -> None:
        channels = build_channels(_settings(call_started_webhook_url="https://hooks.example.com/start"))
        assert channels[AlertKind.CALL_STARTED].name == "call_started_webhook"

    def test_timeout_from_settings(self) -> None:
        channels = build_channels(_settings(webhook_timeout_s=3.0))
        assert channels[AlertKind.EMERGENCY].timeout == 3.0

    def test_missing_emergency_url(self) -> None:
        with pytest.raises(ConfigurationError, match="SL_EMERGENCY_WEBHOOK_URL"):
            build_channels(_settings(emergency_webhook_url=""))

    def test_missing_both_urls_listed(self) -> None:
        with pytest.raises(ConfigurationError) as info:
            build_channels(_settings(emergency_webhook_url="", safe_arrival_webhook_url=""))
        assert "SL_EMERGENCY_WEBHOOK_URL" in str(info.value)
        assert "SL_SAFE_ARRIVAL_WEBHOOK_URL" in str(info.value)


class TestBuildDispatcher:
    def test_retry_settings_applied(self) -> None:
        d = build_dispatcher(_settings(dispatch_max_attempts=5, dispatch_backoff_max_s=4.0))
        assert d.max_attempts == 5
        assert d.max_delay_s == 4.0

    def test_operator_notifier_when_slack_configured(self) -> None:
        d = build_dispatcher(_settings(slack_webhook_url="https://hooks.slack.com/services/T/B/x"))
        assert isinstance(d._operator_notifier, SlackOperatorNotifier)

    def test_no_operator_notifier_by_default(self) -> None:
        assert build_dispatcher(_settings())._operator_notifier is None
