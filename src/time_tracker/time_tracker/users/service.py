from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from werkzeug.security import generate_password_hash

from ..common.datetime_utils import now_local
from ..common.validators import require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Salted, slow, one-way hash (werkzeug picks scrypt/pbkdf2)."""
    return generate_password_hash(password)


class UserService:
    """Use case: manage user accounts (admin) and read profiles."""

    def __init__(self, users: UserRepository):
        self._users = users

    def create_account(
        self,
        *,
        username: str,
        name: str,
        password: str,
        role: Role = Role.USER,
        now: datetime | None = None,
    ) -> User:
        username = require_non_empty(username, "Username")
        name = require_non_empty(name, "Name")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        if self._users.get_by_username(username):
            raise ValidationError("Username already exists")

        user_id = self._users.create_user(
            username=username,
            name=name,
            password_hash=hash_password(password),
            role=Role(role),
            created_at=now or now_local(),
        )
        logger.info("user_created", extra={"user_id": user_id, "username": username})
        return self.get_user(user_id)

    def register_account(
        self,
        *,
        current_role: Role,
        username: str,
        name: str,
        password: str,
        role: Role = Role.USER,
    ) -> User:
        self._require_admin(current_role)
        return self.create_account(username=username, name=name, password=password, role=role)

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise ValidationError("User does not exist")
        return user

    def list_users(self, *, current_role: Role) -> Sequence[User]:
        self._require_admin(current_role)
        return self._users.list_all()

    def correct_working_time(self, *, current_role: Role, user_id: int, minutes: int) -> User:
        self._require_admin(current_role)
        if int(minutes) < 0:
            raise ValidationError("Working time cannot be negative")

        user = self.get_user(user_id)
        self._users.set_total_working_time(user.user_id, minutes=int(minutes))
        logger.info(
            "working_time_corrected",
            extra={"user_id": user.user_id, "minutes": int(minutes)},
        )
        return self.get_user(user.user_id)

    def delete_user(self, *, current_role: Role, user_id: int) -> None:
        self._require_admin(current_role)

        user = self.get_user(user_id)
        if user.role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be deleted")

        if not self._users.delete_by_id(user_id):
            raise ValidationError("Failed to delete user")
        logger.info("user_deleted", extra={"user_id": user_id})

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Admin role required")
