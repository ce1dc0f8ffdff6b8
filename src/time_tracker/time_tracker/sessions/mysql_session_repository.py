from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from mysql.connector import errorcode

from ..activity.model import ActivityEvent
from ..activity.mysql_activity_repository import insert_session_events
from ..core.exceptions import AlreadyCheckedIn, ConcurrentUpdateError, ConstraintViolation
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import WorkSession
from .repository import WorkSessionRepository

_SESSION_COLUMNS = """
    id, user_id, check_in_time, check_out_time, total_active_time, idle_time,
    activity_count, date, idle_since, last_event_at, version
"""


def _row_to_session(row: Dict[str, Any]) -> WorkSession:
    return WorkSession(
        session_id=int(row["id"]),
        user_id=int(row["user_id"]),
        check_in_time=row["check_in_time"],
        check_out_time=row.get("check_out_time"),
        total_active_time_minutes=int(row.get("total_active_time") or 0),
        idle_time_minutes=int(row.get("idle_time") or 0),
        activity_count=int(row.get("activity_count") or 0),
        work_date=row["date"],
        idle_since=row.get("idle_since"),
        last_event_at=row["last_event_at"],
        version=int(row.get("version") or 0),
    )


class MySQLWorkSessionRepository(WorkSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_open_for_user(self, user_id: int) -> Optional[WorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM work_sessions
                WHERE user_id=%s AND check_out_time IS NULL
                ORDER BY check_in_time DESC
                LIMIT 1
                """,
                (user_id,),
            )
            row = fetchone(cur)
            return _row_to_session(row) if row else None

    def list_recent_for_user(self, user_id: int, limit: int) -> Sequence[WorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM work_sessions
                WHERE user_id=%s
                ORDER BY check_in_time DESC, id DESC
                LIMIT %s
                """,
                (user_id, int(limit)),
            )
            return [_row_to_session(r) for r in fetchall(cur)]

    def open_session(
        self,
        *,
        user_id: int,
        check_in_time: datetime,
        work_date: date,
        events: Sequence[ActivityEvent] = (),
    ) -> WorkSession:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO work_sessions(user_id, check_in_time, check_out_time, total_active_time,
                                              idle_time, activity_count, date, idle_since, last_event_at,
                                              version, open_marker)
                    VALUES(%s,%s,NULL,0,0,0,%s,NULL,%s,0,1)
                    """,
                    (user_id, check_in_time, work_date, check_in_time),
                )
                session_id = int(cur.lastrowid)
                cur.execute(
                    "UPDATE users SET is_checked_in=1, last_activity=%s WHERE id=%s",
                    (check_in_time, user_id),
                )
                insert_session_events(cur, user_id=user_id, session_id=session_id, events=events)
        except ConstraintViolation as exc:
            if exc.errno == errorcode.ER_DUP_ENTRY:
                raise AlreadyCheckedIn("Already checked in") from exc
            raise

        return WorkSession(
            session_id=session_id,
            user_id=int(user_id),
            check_in_time=check_in_time,
            work_date=work_date,
            last_event_at=check_in_time,
        )

    def save_progress(
        self,
        session: WorkSession,
        *,
        expected_version: int,
        user_last_activity: Optional[datetime] = None,
        events: Sequence[ActivityEvent] = (),
    ) -> WorkSession:
        new_version = int(expected_version) + 1
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_sessions
                SET idle_time=%s, activity_count=%s, idle_since=%s, last_event_at=%s, version=%s
                WHERE id=%s AND version=%s AND check_out_time IS NULL
                """,
                (
                    session.idle_time_minutes,
                    session.activity_count,
                    session.idle_since,
                    session.last_event_at,
                    new_version,
                    session.session_id,
                    int(expected_version),
                ),
            )
            if cur.rowcount != 1:
                raise ConcurrentUpdateError(f"Work session {session.session_id} changed concurrently")
            if user_last_activity is not None:
                cur.execute(
                    "UPDATE users SET last_activity=%s WHERE id=%s",
                    (user_last_activity, session.user_id),
                )
            insert_session_events(cur, user_id=session.user_id, session_id=session.session_id, events=events)
        return replace(session, version=new_version)

    def close_session(
        self,
        session: WorkSession,
        *,
        expected_version: int,
        events: Sequence[ActivityEvent] = (),
    ) -> WorkSession:
        new_version = int(expected_version) + 1
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_sessions
                SET check_out_time=%s, total_active_time=%s, idle_time=%s, activity_count=%s,
                    idle_since=NULL, last_event_at=%s, version=%s, open_marker=NULL
                WHERE id=%s AND version=%s AND check_out_time IS NULL
                """,
                (
                    session.check_out_time,
                    session.total_active_time_minutes,
                    session.idle_time_minutes,
                    session.activity_count,
                    session.last_event_at,
                    new_version,
                    session.session_id,
                    int(expected_version),
                ),
            )
            if cur.rowcount != 1:
                raise ConcurrentUpdateError(f"Work session {session.session_id} changed concurrently")
            cur.execute(
                """
                UPDATE users
                SET is_checked_in=0, last_activity=%s, total_working_time=total_working_time + %s
                WHERE id=%s
                """,
                (session.check_out_time, session.total_active_time_minutes, session.user_id),
            )
            insert_session_events(cur, user_id=session.user_id, session_id=session.session_id, events=events)
        return replace(session, idle_since=None, version=new_version)
