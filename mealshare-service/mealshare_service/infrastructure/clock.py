"""
Clock helpers
"""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what MongoDB returns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
