from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Optional, Sequence

import pytest
from werkzeug.security import generate_password_hash

from src.time_tracker.time_tracker.activity.model import ActivityEvent, ActivityLog
from src.time_tracker.time_tracker.activity.service import ActivityLogger
from src.time_tracker.time_tracker.auth.service import AuthManager
from src.time_tracker.time_tracker.auth.tokens import TokenCodec
from src.time_tracker.time_tracker.core.enums import ActivityType, Role
from src.time_tracker.time_tracker.core.exceptions import (
    AlreadyCheckedIn,
    ConcurrentUpdateError,
    PersistenceError,
)
from src.time_tracker.time_tracker.operations import TrackerOperations
from src.time_tracker.time_tracker.sessions.model import WorkSession
from src.time_tracker.time_tracker.sessions.service import SessionTracker
from src.time_tracker.time_tracker.users.model import User
from src.time_tracker.time_tracker.users.service import UserService


class InMemoryStore:
    """Shared tables for the fake repositories; one lock plays the DB transaction."""

    def __init__(self):
        self.lock = threading.RLock()
        self.users: dict[int, User] = {}
        self.sessions: dict[int, WorkSession] = {}
        self.logs: list[ActivityLog] = []
        self.user_ids = itertools.count(1)
        self.session_ids = itertools.count(1)
        self.log_ids = itertools.count(1)


class InMemoryUsers:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._store.users.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        for user in self._store.users.values():
            if user.username == username:
                return user
        return None

    def create_user(self, *, username, name, password_hash, role, created_at) -> int:
        with self._store.lock:
            user_id = next(self._store.user_ids)
            self._store.users[user_id] = User(
                user_id=user_id,
                username=username,
                name=name,
                password_hash=password_hash,
                role=role,
                created_at=created_at,
                last_activity_at=created_at,
            )
            return user_id

    def touch_last_activity(self, user_id: int, *, at: datetime) -> bool:
        with self._store.lock:
            user = self._store.users.get(user_id)
            if not user:
                return False
            self._store.users[user_id] = replace(user, last_activity_at=at)
            return True

    def set_total_working_time(self, user_id: int, *, minutes: int) -> bool:
        with self._store.lock:
            user = self._store.users.get(user_id)
            if not user:
                return False
            self._store.users[user_id] = replace(user, total_working_time_minutes=minutes)
            return True

    def delete_by_id(self, user_id: int) -> bool:
        with self._store.lock:
            if self._store.users.pop(user_id, None) is None:
                return False
            self._store.sessions = {k: s for k, s in self._store.sessions.items() if s.user_id != user_id}
            self._store.logs = [log for log in self._store.logs if log.user_id != user_id]
            return True

    def list_all(self):
        return sorted(self._store.users.values(), key=lambda u: (u.created_at, u.user_id), reverse=True)


class InMemorySessions:
    """Each write runs under the store lock and applies every change or none.

    ``fail_on_close`` and ``failing_events`` make a write fail before anything is stored.
    """

    def __init__(self, store: InMemoryStore):
        self._store = store
        self.fail_on_close = False
        self.failing_events: set[ActivityType] = set()

    def get_open_for_user(self, user_id: int) -> Optional[WorkSession]:
        with self._store.lock:
            for s in self._store.sessions.values():
                if s.user_id == user_id and s.check_out_time is None:
                    return s
            return None

    def list_recent_for_user(self, user_id: int, limit: int):
        with self._store.lock:
            items = [s for s in self._store.sessions.values() if s.user_id == user_id]
        items.sort(key=lambda s: (s.check_in_time, s.session_id), reverse=True)
        return items[:limit]

    def open_session(
        self,
        *,
        user_id: int,
        check_in_time: datetime,
        work_date: date,
        events: Sequence[ActivityEvent] = (),
    ) -> WorkSession:
        with self._store.lock:
            if self.get_open_for_user(user_id) is not None:
                raise AlreadyCheckedIn("Already checked in")
            self._check_events(events)
            session = WorkSession(
                session_id=next(self._store.session_ids),
                user_id=user_id,
                check_in_time=check_in_time,
                work_date=work_date,
                last_event_at=check_in_time,
            )
            self._store.sessions[session.session_id] = session
            user = self._store.users[user_id]
            self._store.users[user_id] = replace(user, is_checked_in=True, last_activity_at=check_in_time)
            self._store_events(session, events)
            return session

    def _require_current(self, session: WorkSession, expected_version: int) -> None:
        stored = self._store.sessions.get(session.session_id)
        if stored is None or stored.version != expected_version or stored.check_out_time is not None:
            raise ConcurrentUpdateError(f"Work session {session.session_id} changed concurrently")

    def _check_events(self, events: Sequence[ActivityEvent]) -> None:
        for event in events:
            if event.activity_type in self.failing_events:
                raise PersistenceError(f"cannot write {event.activity_type.value} log")

    def _store_events(self, session: WorkSession, events: Sequence[ActivityEvent]) -> None:
        for event in events:
            self._store.logs.append(
                ActivityLog(
                    log_id=next(self._store.log_ids),
                    user_id=session.user_id,
                    activity_type=event.activity_type,
                    timestamp=event.timestamp,
                    metadata=event.metadata_for_session(session.session_id),
                )
            )

    def save_progress(self, session, *, expected_version, user_last_activity=None, events=()) -> WorkSession:
        with self._store.lock:
            self._require_current(session, expected_version)
            self._check_events(events)
            saved = replace(session, version=expected_version + 1)
            self._store.sessions[saved.session_id] = saved
            if user_last_activity is not None:
                user = self._store.users[session.user_id]
                self._store.users[session.user_id] = replace(user, last_activity_at=user_last_activity)
            self._store_events(saved, events)
            return saved

    def close_session(self, session, *, expected_version, events=()) -> WorkSession:
        with self._store.lock:
            if self.fail_on_close:
                raise PersistenceError("database unavailable")
            self._require_current(session, expected_version)
            self._check_events(events)
            saved = replace(session, idle_since=None, version=expected_version + 1)
            self._store.sessions[saved.session_id] = saved
            user = self._store.users[session.user_id]
            self._store.users[session.user_id] = replace(
                user,
                is_checked_in=False,
                last_activity_at=session.check_out_time,
                total_working_time_minutes=user.total_working_time_minutes + session.total_active_time_minutes,
            )
            self._store_events(saved, events)
            return saved



class InMemoryActivityLogs:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def append(self, *, user_id, activity_type: ActivityType, timestamp, metadata=None) -> int:
        with self._store.lock:
            log_id = next(self._store.log_ids)
            self._store.logs.append(
                ActivityLog(
                    log_id=log_id,
                    user_id=user_id,
                    activity_type=activity_type,
                    timestamp=timestamp,
                    metadata=metadata,
                )
            )
            return log_id

    def list_recent_for_user(self, user_id: int, limit: int):
        with self._store.lock:
            items = [log for log in self._store.logs if log.user_id == user_id]
        items.sort(key=lambda log: (log.timestamp, log.log_id), reverse=True)
        return items[:limit]


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 2, 2, 9, 0, 0)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def users_repo(store) -> InMemoryUsers:
    return InMemoryUsers(store)


@pytest.fixture
def sessions_repo(store) -> InMemorySessions:
    return InMemorySessions(store)


@pytest.fixture
def activity_repo(store) -> InMemoryActivityLogs:
    return InMemoryActivityLogs(store)


@pytest.fixture
def activity_logger(activity_repo) -> ActivityLogger:
    return ActivityLogger(activity_repo)


@pytest.fixture
def tracker(sessions_repo, users_repo) -> SessionTracker:
    return SessionTracker(sessions_repo, users_repo)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec("test-secret")


@pytest.fixture
def auth(users_repo, codec) -> AuthManager:
    return AuthManager(users_repo, codec, token_ttl_hours=24)


@pytest.fixture
def user_service(users_repo) -> UserService:
    return UserService(users_repo)


@pytest.fixture
def operations(auth, tracker, activity_logger, user_service) -> TrackerOperations:
    return TrackerOperations(auth, tracker, activity_logger, user_service)


@pytest.fixture
def make_user(users_repo):
    def _make(username: str, password: str = "user123", *, role: Role = Role.USER, name: str | None = None) -> User:
        user_id = users_repo.create_user(
            username=username,
            name=name or username.title(),
            password_hash=generate_password_hash(password),
            role=role,
            created_at=datetime(2026, 1, 1, 8, 0, 0),
        )
        return users_repo.get_by_id(user_id)

    return _make


@pytest.fixture
def john(make_user) -> User:
    return make_user("john", "user123", name="John Doe")
