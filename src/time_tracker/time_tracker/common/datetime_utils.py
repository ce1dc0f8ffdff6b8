from __future__ import annotations

from datetime import datetime
from typing import Optional


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def as_local(value: datetime) -> datetime:
    """Naive local time, the one convention used for every stored and compared timestamp.

    Aware datetimes are converted to local time and stripped of their tzinfo.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def resolve_now(now: Optional[datetime]) -> datetime:
    return now_local() if now is None else as_local(now)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed from ``start`` to ``end`` (floored, never negative)."""
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 60)
