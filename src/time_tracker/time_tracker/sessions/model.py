from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import SessionState


@dataclass(frozen=True)
class WorkSession:
    """Domain entity: one check-in to check-out interval.

    ``idle_since`` marks the open idle period, ``last_event_at`` the latest applied
    transition and ``version`` guards conditional writes.
    """

    session_id: int
    user_id: int
    check_in_time: datetime
    work_date: date
    last_event_at: datetime
    check_out_time: Optional[datetime] = None
    total_active_time_minutes: int = 0
    idle_time_minutes: int = 0
    activity_count: int = 0
    idle_since: Optional[datetime] = None
    version: int = 0

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    @property
    def is_idle(self) -> bool:
        return self.is_open and self.idle_since is not None

    @property
    def state(self) -> SessionState:
        if not self.is_open:
            return SessionState.CHECKED_OUT
        if self.idle_since is not None:
            return SessionState.IDLE
        return SessionState.CHECKED_IN
