"""Time-of-day arithmetic on zero-padded "HH:MM" strings.

All interval math in the engine goes through these helpers. Times carry no
date component and never roll over midnight.
"""

import re
from decimal import ROUND_HALF_UP, Decimal

from scheduling.errors import InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"([01][0-9]|2[0-3]):([0-5][0-9])")


def to_minutes(time: str, field: str | None = None) -> int:
    """Convert "HH:MM" to minutes since midnight.

    Raises:
        InvalidTimeFormat: If the value is not HH:MM with hour 00-23 and minute 00-59.
    """
    if not isinstance(time, str):
        raise InvalidTimeFormat(time, field=field)
    match = _TIME_RE.fullmatch(time)
    if match is None:
        raise InvalidTimeFormat(time, field=field)
    return int(match.group(1)) * 60 + int(match.group(2))


def from_minutes(minutes: int) -> str:
    """Format minutes since midnight as "HH:MM", wrapping within one day."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def duration(start: str, end: str) -> int:
    """Minutes from start to end. Zero or negative when end is not after start."""
    return to_minutes(end) - to_minutes(start)


def add_minutes(time: str, minutes: int) -> str:
    """Add minutes to a HH:MM time, wrapping on the 24-hour clock."""
    return from_minutes(to_minutes(time) + minutes)


def _as_minutes(value: int | str) -> int:
    if isinstance(value, str):
        return to_minutes(value)
    return value


def overlaps(
    a_start: int | str,
    a_end: int | str,
    b_start: int | str,
    b_end: int | str,
) -> bool:
    """Half-open interval overlap test.

    Accepts minute offsets or HH:MM strings. Intervals that only touch at an
    endpoint do not overlap.
    """
    return _as_minutes(a_start) < _as_minutes(b_end) and _as_minutes(b_start) < _as_minutes(a_end)


def contains(
    outer_start: int | str,
    outer_end: int | str,
    inner_start: int | str,
    inner_end: int | str,
) -> bool:
    """True if [inner_start, inner_end) lies within [outer_start, outer_end)."""
    return (
        _as_minutes(outer_start) <= _as_minutes(inner_start)
        and _as_minutes(inner_end) <= _as_minutes(outer_end)
    )


def minutes_to_hours(minutes: int) -> float:
    """Minutes as hours rounded half-up to one decimal place (90 -> 1.5, 87 -> 1.5)."""
    hours = Decimal(minutes) / Decimal(60)
    return float(hours.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
