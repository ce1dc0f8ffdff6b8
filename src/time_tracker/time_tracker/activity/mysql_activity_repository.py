from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..core.enums import ActivityType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, load_json
from .model import ActivityEvent, ActivityLog
from .repository import ActivityLogRepository


def insert_activity_log(
    cur,
    *,
    user_id: int,
    activity_type: ActivityType,
    timestamp: datetime,
    metadata: Optional[Mapping[str, Any]] = None,
) -> int:
    """Insert one ledger row on an open cursor; the caller owns the transaction."""
    cur.execute(
        """
        INSERT INTO activity_logs(user_id, type, timestamp, metadata)
        VALUES(%s,%s,%s,%s)
        """,
        (user_id, ActivityType(activity_type).value, timestamp, dump_json(metadata)),
    )
    return int(cur.lastrowid)


def insert_session_events(cur, *, user_id: int, session_id: int, events: Iterable[ActivityEvent]) -> None:
    for event in events:
        insert_activity_log(
            cur,
            user_id=user_id,
            activity_type=event.activity_type,
            timestamp=event.timestamp,
            metadata=event.metadata_for_session(session_id),
        )


class MySQLActivityLogRepository(ActivityLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(
        self,
        *,
        user_id: int,
        activity_type: ActivityType,
        timestamp: datetime,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return insert_activity_log(
                cur,
                user_id=user_id,
                activity_type=activity_type,
                timestamp=timestamp,
                metadata=metadata,
            )

    def list_recent_for_user(self, user_id: int, limit: int) -> Sequence[ActivityLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, user_id, type, timestamp, metadata
                FROM activity_logs
                WHERE user_id=%s
                ORDER BY timestamp DESC, id DESC
                LIMIT %s
                """,
                (user_id, int(limit)),
            )
            rows = fetchall(cur)
            return [
                ActivityLog(
                    log_id=int(r["id"]),
                    user_id=int(r["user_id"]),
                    activity_type=ActivityType(r["type"]),
                    timestamp=r["timestamp"],
                    metadata=load_json(r.get("metadata")),
                )
                for r in rows
            ]
