"""
Abstract base class for notification channels in SafeLine.

Defines the AlertChannel interface that all channel implementations
must follow, ensuring consistent delivery semantics and error handling.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from sl_common.models.alert import AlertEvent


class AlertChannel(ABC):
    """Base class every notification channel must implement.

    Subclasses override :meth:`send` to deliver one alert event to their
    specific transport.  A channel makes exactly one attempt per call;
    retrying is the dispatcher's job.

    Attributes:
        name: Human-readable channel name used in logs and delivery tracking.
        enabled: Runtime flag. ``False`` makes the dispatcher skip the
                 channel without removing it.
    """

    name: str = "base"
    enabled: bool = True

    @abstractmethod
    async def send(self, event: AlertEvent) -> bool:
        """Deliver *event* to the channel's backend.

        Args:
            event: Fully-populated alert event.

        Returns:
            ``True`` if delivery succeeded, ``False`` otherwise (the
            dispatcher will retry with backoff).
        """

    async def close(self) -> None:
        """Release any resources held by the channel (override if needed)."""
