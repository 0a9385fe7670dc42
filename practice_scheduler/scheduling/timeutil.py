"""Time-of-day arithmetic on a linear minute scale."""

from collections.abc import Iterable
from datetime import time

MINUTES_PER_DAY = 24 * 60
LAST_MINUTE_OF_DAY = MINUTES_PER_DAY - 1


def parse_hhmm(value: str) -> time:
    """
    Parse an ``HH:MM`` string into a time of day.

    Args:
        value: Time string such as ``"08:30"``

    Returns:
        Parsed time with zero seconds

    Raises:
        ValueError: If the string is not a valid ``HH:MM`` time
    """
    hours, sep, minutes = value.strip().partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit() or len(minutes) != 2:
        raise ValueError(f"Invalid time of day: {value!r}")
    return time(int(hours), int(minutes))


def format_hhmm(value: time) -> str:
    """Render a time of day as ``HH:MM``."""
    return f"{value.hour:02d}:{value.minute:02d}"


def to_minutes(value: time | str) -> int:
    """Convert a time of day to minutes since midnight (0-1439)."""
    if isinstance(value, str):
        value = parse_hhmm(value)
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """
    Convert minutes since midnight back to a time of day.

    Raises:
        ValueError: If ``minutes`` is outside 0-1439
    """
    if not 0 <= minutes <= LAST_MINUTE_OF_DAY:
        raise ValueError(f"Minute offset {minutes} is outside a single day")
    return time(minutes // 60, minutes % 60)


def add_minutes(value: time | str, minutes: int) -> time:
    """
    Add minutes to a time of day without rolling over into the next day.

    Args:
        value: Start time
        minutes: Minutes to add (may be negative)

    Returns:
        Resulting time of day

    Raises:
        ValueError: If the result falls before 00:00 or after 23:59
    """
    start = to_minutes(value)
    total = start + minutes
    if not 0 <= total <= LAST_MINUTE_OF_DAY:
        raise ValueError(
            f"Adding {minutes} minutes to {format_hhmm(from_minutes(start))} "
            "leaves the calendar day"
        )
    return from_minutes(total)


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap test: ``[start_a, end_a)`` and ``[start_b, end_b)`` share a minute."""
    return start_a < end_b and start_b < end_a


def overlaps_any(intervals: Iterable[tuple[int, int]], start: int, end: int) -> bool:
    """Return True if ``[start, end)`` overlaps any of the given busy intervals."""
    return any(overlaps(busy_start, busy_end, start, end) for busy_start, busy_end in intervals)
