"""
Time grid helpers
All scheduling boundaries are expressed as HH:MM strings or minutes since midnight
"""

import re

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60


def to_minutes(time: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight"""
    if not isinstance(time, str):
        raise ValueError(f"Invalid time value: {time!r}")
    match = _TIME_RE.match(time.strip())
    if not match:
        raise ValueError(f"Invalid time format (expected HH:MM): {time!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def from_minutes(minutes: int) -> str:
    """Format minutes since midnight as ``HH:MM``; values past midnight keep counting hours"""
    if minutes < 0:
        raise ValueError(f"Negative minute offset: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def slots(open_time: str, close_time: str, interval: int = 30) -> list[str]:
    """Every interval-aligned tick in ``[open_time, close_time)``"""
    if interval <= 0:
        raise ValueError("Slot interval must be positive")
    current = to_minutes(open_time)
    end = to_minutes(close_time)

    ticks = []
    while current < end:
        ticks.append(from_minutes(current))
        current += interval
    return ticks


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval intersection: [a) and [b) share at least one minute"""
    return start_a < end_b and end_a > start_b


def within(start: int, end: int, open_minutes: int, close_minutes: int) -> bool:
    """True when [start, end) lies fully inside [open, close)"""
    return open_minutes <= start and end <= close_minutes
