"""
Delivery retry policy for SafeLine alert dispatch.

Failed deliveries are retried with exponential backoff (1 s, 2 s, 4 s …
capped at ``max_delay_s``) up to a small fixed number of attempts, after
which the failure is permanent.  Sleeping goes through the injected clock
so tests run the whole backoff schedule in virtual time.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sl_common.errors import SafeLineError

MAX_ATTEMPTS: int = 3
INITIAL_DELAY_S: float = 1.0
MAX_DELAY_S: float = 10.0


class DispatchFailure(SafeLineError):
    """A single delivery attempt failed (network error or non-2xx status)."""


class DispatchFailurePermanent(SafeLineError):
    """All delivery attempts for an event were exhausted."""

    def __init__(self, event_id: str, attempts: int, last_error: str) -> None:
        super().__init__(
            f"Alert {event_id}: delivery failed after {attempts} attempts ({last_error})"
        )
        self.event_id = event_id
        self.attempts = attempts
        self.last_error = last_error


def build_retrying(
    *,
    sleep: Callable[[float], Awaitable[None]],
    max_attempts: int = MAX_ATTEMPTS,
    initial_delay_s: float = INITIAL_DELAY_S,
    max_delay_s: float = MAX_DELAY_S,
) -> AsyncRetrying:
    """Return a tenacity controller retrying only :class:`DispatchFailure`.

    Args:
        sleep: Coroutine used between attempts (usually ``clock.sleep``).
        max_attempts: Total attempts including the first one.
        initial_delay_s: Delay before the first retry; doubles each retry.
        max_delay_s: Upper bound on a single delay.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay_s, min=0, max=max_delay_s),
        retry=retry_if_exception_type(DispatchFailure),
        sleep=sleep,
        reraise=True,
    )
