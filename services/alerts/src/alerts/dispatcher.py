"""
Notification dispatcher for SafeLine.

Receives alert events from the monitor's decision policy and delivers
each one through the channel configured for its kind.

Flow
----
1. ``submit(event)`` schedules ``dispatch(event)`` as a background task
   so the caller (which has already updated session state) never waits
   for the network.
2. ``dispatch`` looks up the channel for ``event.kind``; no channel means
   the event is recorded as ``skipped``.
3. Each failed attempt (``send()`` returning ``False`` or raising) becomes
   a :class:`~alerts.retry.DispatchFailure` and is retried with bounded
   exponential backoff.
4. Exhausted retries become :class:`~alerts.retry.DispatchFailurePermanent`:
   logged at error level, counted, and reported to the operator notifier.
5. Every outcome is handed to the ``on_result`` callback (the monitor
   appends it to the session's audit trail).
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Protocol

import structlog
from prometheus_client import Counter

from sl_common.clock import Clock, SystemClock
from sl_common.models.alert import AlertEvent, AlertKind, DeliveryResult, DeliveryStatus

from .channels.base import AlertChannel
from .retry import (
    INITIAL_DELAY_S,
    MAX_ATTEMPTS,
    MAX_DELAY_S,
    DispatchFailure,
    DispatchFailurePermanent,
    build_retrying,
)

logger = structlog.get_logger()

# ── Prometheus metrics ──
alerts_dispatched_total = Counter(
    "alerts_dispatched_total",
    "Alert events dispatched, by kind and final status",
    ["kind", "status"],
)
alerts_delivery_attempts_total = Counter(
    "alerts_delivery_attempts_total",
    "Individual delivery attempts, by channel and outcome",
    ["channel", "outcome"],
)
alerts_permanent_failures_total = Counter(
    "alerts_permanent_failures_total",
    "Alert events whose delivery failed after all retries",
    ["kind"],
)


class OperatorNotifier(Protocol):
    """Operator-facing sink for permanently failed deliveries."""

    async def notify_failure(self, event: AlertEvent, result: DeliveryResult) -> bool: ...

    async def close(self) -> None: ...


class NotificationDispatcher:
    """Deliver alert events with retry, failure isolation and reporting.

    Args:
        channels: One channel per event kind.
        clock: Time source used for backoff sleeps and timestamps.
        max_attempts: Delivery attempts per event before giving up.
        initial_delay_s: First retry delay (doubles each retry).
        max_delay_s: Maximum single retry delay.
        on_result: Optional sync callback receiving every
                   :class:`DeliveryResult`.
        operator_notifier: Optional sink told about permanent failures.
    """

    def __init__(
        self,
        channels: Mapping[AlertKind, AlertChannel],
        *,
        clock: Clock | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        initial_delay_s: float = INITIAL_DELAY_S,
        max_delay_s: float = MAX_DELAY_S,
        on_result: Callable[[DeliveryResult], None] | None = None,
        operator_notifier: OperatorNotifier | None = None,
    ) -> None:
        self.channels = dict(channels)
        self._clock: Clock = clock or SystemClock()
        self.max_attempts = max_attempts
        self.initial_delay_s = initial_delay_s
        self.max_delay_s = max_delay_s
        self._on_result = on_result
        self._operator_notifier = operator_notifier
        self._pending: set[asyncio.Task[DeliveryResult]] = set()

    def set_result_callback(self, on_result: Callable[[DeliveryResult], None] | None) -> None:
        """Replace the delivery-result callback."""
        self._on_result = on_result

    def channel_status(self) -> dict[str, bool]:
        """Whether each alert kind has an enabled channel."""
        return {
            kind.value: kind in self.channels and self.channels[kind].enabled for kind in AlertKind
        }

    # ── background submission ──

    def submit(self, event: AlertEvent) -> asyncio.Task[DeliveryResult]:
        """Dispatch *event* on a background task and return the task.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(self.dispatch(event), name=f"dispatch-{event.event_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        """Number of dispatches still in flight."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every submitted dispatch has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ── dispatch pipeline ──

    async def dispatch(self, event: AlertEvent) -> DeliveryResult:
        """Deliver *event*, retrying transient failures.

        Never raises for channel errors; the outcome is returned and
        reported through ``on_result``.
        """
        log = logger.bind(
            event_id=event.event_id,
            session_id=event.session_id,
            kind=event.kind.value,
        )
        channel = self.channels.get(event.kind)
        if channel is None or not channel.enabled:
            log.info("alert_dispatch_skipped", reason="no_channel")
            result = DeliveryResult(
                event_id=event.event_id,
                session_id=event.session_id,
                kind=event.kind,
                status=DeliveryStatus.SKIPPED,
                completed_at=self._clock.now(),
            )
            self._finish(result)
            return result

        attempts = 0
        try:
            attempts = await self._deliver(channel, event)
        except DispatchFailurePermanent as exc:
            attempts = exc.attempts
            result = DeliveryResult(
                event_id=event.event_id,
                session_id=event.session_id,
                kind=event.kind,
                status=DeliveryStatus.FAILED,
                channel=channel.name,
                attempts=exc.attempts,
                error=exc.last_error,
                completed_at=self._clock.now(),
            )
            log.error(
                "alert_dispatch_failed_permanently",
                channel=channel.name,
                attempts=exc.attempts,
                error=exc.last_error,
            )
            alerts_permanent_failures_total.labels(kind=event.kind.value).inc()
            await self._notify_operator(event, result)
        else:
            result = DeliveryResult(
                event_id=event.event_id,
                session_id=event.session_id,
                kind=event.kind,
                status=DeliveryStatus.DELIVERED,
                channel=channel.name,
                attempts=attempts,
                completed_at=self._clock.now(),
            )
            log.info("alert_dispatched", channel=channel.name, attempts=attempts)

        self._finish(result)
        return result

    async def _deliver(self, channel: AlertChannel, event: AlertEvent) -> int:
        """Attempt delivery until success or exhaustion.

        Returns:
            The number of attempts it took.

        Raises:
            DispatchFailurePermanent: If every attempt failed.
        """
        retrying = build_retrying(
            sleep=self._clock.sleep,
            max_attempts=self.max_attempts,
            initial_delay_s=self.initial_delay_s,
            max_delay_s=self.max_delay_s,
        )
        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    await self._attempt(channel, event, attempts)
        except DispatchFailure as exc:
            raise DispatchFailurePermanent(event.event_id, attempts, str(exc)) from exc
        return attempts

    async def _attempt(self, channel: AlertChannel, event: AlertEvent, attempt: int) -> None:
        """Make one delivery attempt, raising :class:`DispatchFailure` on failure."""
        try:
            ok = await channel.send(event)
        except Exception as exc:  # noqa: BLE001
            error = f"{channel.name} raised {type(exc).__name__}: {exc}"
        else:
            if ok:
                alerts_delivery_attempts_total.labels(channel=channel.name, outcome="ok").inc()
                return
            error = f"{channel.name} rejected delivery"

        alerts_delivery_attempts_total.labels(channel=channel.name, outcome="failed").inc()
        logger.warning(
            "alert_delivery_attempt_failed",
            event_id=event.event_id,
            channel=channel.name,
            attempt=attempt,
            max_attempts=self.max_attempts,
            error=error,
        )
        raise DispatchFailure(error)

    async def _notify_operator(self, event: AlertEvent, result: DeliveryResult) -> None:
        if self._operator_notifier is None:
            return
        try:
            await self._operator_notifier.notify_failure(event, result)
        except Exception as exc:  # noqa: BLE001
            logger.error("operator_notify_failed", event_id=event.event_id, error=str(exc))

    def _finish(self, result: DeliveryResult) -> None:
        alerts_dispatched_total.labels(kind=result.kind.value, status=result.status.value).inc()
        if self._on_result is None:
            return
        try:
            self._on_result(result)
        except Exception as exc:  # noqa: BLE001
            logger.error("delivery_result_callback_failed", event_id=result.event_id, error=str(exc))

    # ── lifecycle ──

    async def close(self) -> None:
        """Finish in-flight dispatches, then release channel resources."""
        await self.drain()
        for channel in self.channels.values():
            await channel.close()
        if self._operator_notifier is not None:
            await self._operator_notifier.close()
