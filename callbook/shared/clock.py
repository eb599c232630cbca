"""Wall-clock helpers - naive UTC, matching the DateTime columns"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_clock() -> Clock:
    """FastAPI dependency; tests override it to control expiry windows"""
    return utcnow
