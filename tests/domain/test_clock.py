"""
Tests for the injected clocks.
"""

from datetime import datetime, timedelta, timezone

import pytest

from crm_kernel.domain.clock import DEFAULT_START, DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_stands_still_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now_utc() == DEFAULT_START
        assert clock.now_utc() == clock.now_utc()

    def test_advance_returns_new_time(self):
        clock = DeterministicClock()
        moved = clock.advance(90)
        assert moved == DEFAULT_START + timedelta(seconds=90)
        assert clock.now_utc() == moved

    def test_start_normalized_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        clock = DeterministicClock(datetime(2025, 6, 1, 14, 0, tzinfo=plus_two))
        assert clock.now_utc() == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert clock.now_utc().utcoffset() == timedelta(0)

    def test_naive_start_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            DeterministicClock(datetime(2025, 6, 1, 12, 0))

    def test_cannot_move_backwards(self):
        with pytest.raises(ValueError, match="backwards"):
            DeterministicClock().advance(-1)


def test_system_clock_is_utc():
    assert SystemClock().now_utc().utcoffset() == timedelta(0)
