"""Tests for the injectable clock."""

from datetime import UTC, datetime, timedelta

from ledger_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_default_time(self):
        assert DeterministicClock().now() == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def test_now_is_stable_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_advance_and_tick(self):
        start = datetime(2024, 3, 15, 9, 0, tzinfo=UTC)
        clock = DeterministicClock(start)
        clock.advance(60)
        assert clock.now() == start + timedelta(seconds=60)
        assert clock.tick() == start + timedelta(seconds=61)

    def test_set_time_resets_offset(self):
        clock = DeterministicClock()
        clock.advance(10)
        target = datetime(2025, 1, 1, tzinfo=UTC)
        clock.set_time(target)
        assert clock.now() == target


class TestSystemClock:
    def test_returns_aware_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)
