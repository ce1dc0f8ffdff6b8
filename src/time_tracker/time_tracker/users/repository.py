from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User (the credential store).

    Note (DIP): the service layer depends on this interface, never on a concrete DB.
    Session-driven changes to ``is_checked_in`` and the aggregate total are written
    by ``WorkSessionRepository`` in the same transaction as the session row.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        username: str,
        name: str,
        password_hash: str,
        role: Role,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def touch_last_activity(self, user_id: int, *, at: datetime) -> bool:
        raise NotImplementedError

    def set_total_working_time(self, user_id: int, *, minutes: int) -> bool:
        """Administrative correction of the aggregate total."""

        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_all(self) -> Sequence[User]:
        raise NotImplementedError
