"""
Notification channel implementations package for SafeLine.

Contains the abstract AlertChannel base class, the webhook channel used
for every alert kind and the Slack notifier used for operator notices.
"""

from .base import AlertChannel
from .slack_channel import SlackOperatorNotifier
from .webhook_channel import WebhookChannel

__all__ = [
    "AlertChannel",
    "SlackOperatorNotifier",
    "WebhookChannel",
]
