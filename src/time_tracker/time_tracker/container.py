from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .activity.mysql_activity_repository import MySQLActivityLogRepository
from .activity.service import ActivityLogger
from .auth.service import AuthManager
from .auth.tokens import TokenCodec
from .common.locks import KeyedLock
from .core.constants import TOKEN_TTL_HOURS
from .database.connection import DBConfig, DatabaseConnection
from .operations import TrackerOperations
from .sessions.mysql_session_repository import MySQLWorkSessionRepository
from .sessions.service import SessionTracker
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import UserService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    sessions_repo: MySQLWorkSessionRepository
    activity_repo: MySQLActivityLogRepository

    auth_manager: AuthManager
    user_service: UserService
    activity_logger: ActivityLogger
    session_tracker: SessionTracker
    operations: TrackerOperations

    def close(self) -> None:
        self.conn.close()


def build_container(
    *,
    db_config: Mapping[str, Any],
    secret_key: str,
    token_ttl_hours: int = TOKEN_TTL_HOURS,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_mapping(db_config))

    users_repo = MySQLUserRepository(conn)
    sessions_repo = MySQLWorkSessionRepository(conn)
    activity_repo = MySQLActivityLogRepository(conn)

    auth_manager = AuthManager(users_repo, TokenCodec(secret_key), token_ttl_hours=token_ttl_hours)
    user_service = UserService(users_repo)
    activity_logger = ActivityLogger(activity_repo)
    session_tracker = SessionTracker(sessions_repo, users_repo, locks=KeyedLock())
    operations = TrackerOperations(auth_manager, session_tracker, activity_logger, user_service)

    return Container(
        conn=conn,
        users_repo=users_repo,
        sessions_repo=sessions_repo,
        activity_repo=activity_repo,
        auth_manager=auth_manager,
        user_service=user_service,
        activity_logger=activity_logger,
        session_tracker=session_tracker,
        operations=operations,
    )
