"""Unit tests for time-of-day arithmetic.

Run with: pytest tests/test_time_utils.py -v
"""

import pytest

from scheduling.errors import InvalidTimeFormat
from scheduling.time_utils import (
    add_minutes,
    contains,
    duration,
    from_minutes,
    minutes_to_hours,
    overlaps,
    to_minutes,
)


class TestToMinutes:
    """Tests for HH:MM parsing."""

    def test_parses_valid_times(self):
        """Hours and minutes convert to minutes since midnight."""
        assert to_minutes("00:00") == 0
        assert to_minutes("09:30") == 570
        assert to_minutes("23:59") == 1439

    @pytest.mark.parametrize(
        "value",
        ["9:30", "24:00", "12:60", "ab:cd", "", "09:30:00", "09:30\n", " 09:30", "0930", None, 930],
    )
    def test_rejects_malformed_times(self, value):
        """Anything but zero-padded HH:MM in range raises InvalidTimeFormat."""
        with pytest.raises(InvalidTimeFormat):
            to_minutes(value)

    def test_error_names_field(self):
        """The offending field is carried on the error."""
        with pytest.raises(InvalidTimeFormat) as exc_info:
            to_minutes("7pm", field="start_time")
        assert exc_info.value.field == "start_time"
        assert exc_info.value.value == "7pm"


class TestDuration:
    """Tests for duration and add_minutes."""

    def test_duration_is_raw_subtraction(self):
        """Duration may be zero or negative; callers validate."""
        assert duration("14:00", "18:00") == 240
        assert duration("10:00", "10:00") == 0
        assert duration("10:00", "09:00") == -60

    def test_add_minutes_wraps_within_day(self):
        """add_minutes uses 24-hour modular arithmetic."""
        assert add_minutes("14:00", 45) == "14:45"
        assert add_minutes("23:30", 45) == "00:15"
        assert add_minutes("00:10", -20) == "23:50"

    def test_from_minutes_pads(self):
        """from_minutes zero-pads hour and minute."""
        assert from_minutes(65) == "01:05"

    def test_add_minutes_reconstructs_end(self):
        """add_minutes(start, duration(start, end)) lands on end for all pairs."""
        for start_minutes in range(0, 24 * 60, 37):
            for end_minutes in range(0, 24 * 60, 53):
                start = from_minutes(start_minutes)
                end = from_minutes(end_minutes)
                rebuilt = add_minutes(start, duration(start, end))
                assert rebuilt == end
                assert duration(start, rebuilt) == duration(start, end)


class TestOverlaps:
    """Tests for the half-open overlap test."""

    def test_touching_intervals_do_not_overlap(self):
        """An interval ending where another starts is not a conflict."""
        assert overlaps(9 * 60, 10 * 60, 10 * 60, 11 * 60) is False
        assert overlaps("09:00", "10:00", "10:00", "11:00") is False

    def test_partial_and_nested_overlap(self):
        """Partial and nested intervals overlap."""
        assert overlaps("14:00", "14:45", "14:30", "15:00")
        assert overlaps("14:00", "18:00", "15:00", "15:30")

    def test_overlap_is_symmetric(self):
        """overlaps(a, b, c, d) == overlaps(c, d, a, b)."""
        points = range(0, 180, 15)
        for a in points:
            for b in points:
                for c in points:
                    for d in points:
                        assert overlaps(a, b, c, d) == overlaps(c, d, a, b)

    def test_contains(self):
        """contains accepts an inner interval sharing both endpoints."""
        assert contains("14:00", "18:00", "14:00", "18:00")
        assert not contains("14:00", "18:00", "13:45", "14:30")
        assert not contains("14:00", "18:00", "17:30", "18:15")


class TestMinutesToHours:
    """Tests for half-up rounding to one decimal."""

    def test_whole_hours(self):
        assert minutes_to_hours(240) == 4.0

    def test_rounds_half_up(self):
        """1.45 and 0.05 round up, not to even."""
        assert minutes_to_hours(87) == 1.5
        assert minutes_to_hours(3) == 0.1
        assert minutes_to_hours(93) == 1.6
