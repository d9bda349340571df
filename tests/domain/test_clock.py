"""Tests for the clock abstraction."""

from datetime import datetime, timezone

from settlement_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_fixed_until_advanced(self, clock):
        first = clock.now()

        assert clock.now() == first
        clock.advance(30)
        assert (clock.now() - first).total_seconds() == 30

    def test_month_rolls_over(self):
        clock = DeterministicClock(datetime(2024, 1, 31, 23, 0, tzinfo=timezone.utc))
        assert clock.current_month() == "2024-01"

        clock.advance_days(1)

        assert clock.current_month() == "2024-02"
        assert clock.today().isoformat() == "2024-02-01"

    def test_set_time_resets_offset(self, clock):
        clock.advance_days(3)
        target = datetime(2023, 11, 20, 9, 0, tzinfo=timezone.utc)

        clock.set_time(target)

        assert clock.now() == target


def test_system_clock_is_timezone_aware():
    assert SystemClock().now().tzinfo is not None
