from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: Plain data object (no DB access code). ``is_checked_in`` is a cached
    flag maintained together with the user's open work session.
    """

    user_id: int
    username: str
    name: str
    password_hash: str
    role: Role
    created_at: datetime
    is_checked_in: bool = False
    last_activity_at: Optional[datetime] = None
    total_working_time_minutes: int = 0

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
