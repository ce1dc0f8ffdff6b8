from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from mysql.connector import errorcode

from ..core.enums import Role
from ..core.exceptions import ConstraintViolation, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_USER_COLUMNS = """
    id, username, name, password_hash, role, created_at,
    is_checked_in, last_activity, total_working_time
"""


def _row_to_user(row: Dict[str, Any]) -> User:
    return User(
        user_id=int(row["id"]),
        username=row["username"],
        name=row["name"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        created_at=row["created_at"],
        is_checked_in=bool(row.get("is_checked_in")),
        last_activity_at=row.get("last_activity"),
        total_working_time_minutes=int(row.get("total_working_time") or 0),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id=%s", (user_id,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        # username uses a binary collation, so this comparison is exact and case-sensitive.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def create_user(
        self,
        *,
        username: str,
        name: str,
        password_hash: str,
        role: Role,
        created_at: datetime,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users(username, name, password_hash, role, created_at,
                                      is_checked_in, last_activity, total_working_time)
                    VALUES(%s,%s,%s,%s,%s,0,%s,0)
                    """,
                    (username, name, password_hash, role.value, created_at, created_at),
                )
                return int(cur.lastrowid)
        except ConstraintViolation as exc:
            if exc.errno == errorcode.ER_DUP_ENTRY:
                raise ValidationError("Username already exists") from exc
            raise

    def touch_last_activity(self, user_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET last_activity=%s WHERE id=%s", (at, user_id))
            return cur.rowcount > 0

    def set_total_working_time(self, user_id: int, *, minutes: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET total_working_time=%s WHERE id=%s", (int(minutes), user_id))
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE id=%s", (user_id,))
            return cur.rowcount > 0

    def list_all(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY created_at DESC, id DESC")
            return [_row_to_user(r) for r in fetchall(cur)]
