"""Tests for the manual (virtual-time) clock."""

from __future__ import annotations

from datetime import timedelta

from sl_common.clock import ManualClock, SystemClock


class TestManualClock:
    def test_starts_at_zero(self) -> None:
        clock = ManualClock()
        assert clock.monotonic() == 0.0

    def test_advance_moves_wall_clock(self) -> None:
        clock = ManualClock()
        start = clock.now()
        clock.advance(90)
        assert clock.monotonic() == 90.0
        assert clock.now() - start == timedelta(seconds=90)

    def test_timers_fire_in_due_order(self) -> None:
        clock = ManualClock()
        fired: list[str] = []
        clock.call_later(20, fired.append, "late")
        clock.call_later(10, fired.append, "early")
        clock.advance(15)
        assert fired == ["early"]
        clock.advance(5)
        assert fired == ["early", "late"]

    def test_timer_sees_its_due_time(self) -> None:
        clock = ManualClock()
        seen: list[float] = []
        clock.call_later(5, lambda: seen.append(clock.monotonic()))
        clock.advance(100)
        assert seen == [5.0]
        assert clock.monotonic() == 100.0

    def test_cancelled_timer_does_not_fire(self) -> None:
        clock = ManualClock()
        fired: list[int] = []
        handle = clock.call_later(1, fired.append, 1)
        assert clock.pending_timers == 1
        handle.cancel()
        assert clock.pending_timers == 0
        clock.advance(2)
        assert fired == []

    async def test_sleep_records_and_advances(self) -> None:
        clock = ManualClock()
        await clock.sleep(2.5)
        assert clock.sleeps == [2.5]
        assert clock.monotonic() == 2.5


class TestSystemClock:
    async def test_call_later_returns_cancellable_handle(self) -> None:
        clock = SystemClock()
        handle = clock.call_later(60, lambda: None)
        handle.cancel()

    def test_now_is_utc(self) -> None:
        assert SystemClock().now().utcoffset() == timedelta(0)
