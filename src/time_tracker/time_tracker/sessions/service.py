from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..activity.model import ActivityEvent
from ..common.datetime_utils import minutes_between, resolve_now
from ..common.locks import KeyedLock
from ..common.validators import require_limit
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import ActivityType, SessionEvent, SessionState
from ..core.exceptions import InvalidTimestamp, PersistenceError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .model import WorkSession
from .repository import WorkSessionRepository
from .state_machine import Transition, transition

logger = logging.getLogger(__name__)


class SessionTracker:
    """Owns the work-session state machine of every user.

    All mutating calls for one user run under that user's lock, so the
    read-check-write sequence is atomic within the process. The repository's
    uniqueness and version checks cover concurrent writers in other processes.
    Each transition hands its ledger events to the same repository write, so the
    session change and its events commit or fail together.
    """

    def __init__(
        self,
        sessions: WorkSessionRepository,
        users: UserRepository,
        *,
        locks: Optional[KeyedLock] = None,
    ):
        self._sessions = sessions
        self._users = users
        self._locks = locks or KeyedLock()

    def check_in(self, user_id: int, *, now: Optional[datetime] = None) -> WorkSession:
        now = resolve_now(now)
        with self._locks.hold(user_id):
            self._require_user(user_id)
            current = self._sessions.get_open_for_user(user_id)
            transition(self._state_of(current), SessionEvent.CHECK_IN)

            previous = self._sessions.list_recent_for_user(user_id, 1)
            if previous and previous[0].check_out_time and now < previous[0].check_out_time:
                raise InvalidTimestamp("Check-in cannot precede the previous check-out")

            with self._write_logged(user_id, SessionEvent.CHECK_IN):
                session = self._sessions.open_session(
                    user_id=user_id,
                    check_in_time=now,
                    work_date=now.date(),
                    events=[ActivityEvent(ActivityType.CHECK_IN, now)],
                )

        logger.info("check_in", extra={"user_id": user_id, "session_id": session.session_id})
        return session

    def record_activity(
        self,
        user_id: int,
        *,
        now: Optional[datetime] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> WorkSession:
        now = resolve_now(now)
        with self._locks.hold(user_id):
            session = self._sessions.get_open_for_user(user_id)
            step = transition(self._state_of(session), SessionEvent.ACTIVITY)
            self._require_monotonic(session, now)

            updated, idle_minutes = self._close_idle(session, step, now)
            updated = replace(updated, activity_count=session.activity_count + 1, last_event_at=now)
            events = self._implicit_idle_end(step, now, idle_minutes)
            events.append(ActivityEvent(ActivityType.ACTIVITY, now, metadata))

            with self._write_logged(user_id, SessionEvent.ACTIVITY):
                saved = self._sessions.save_progress(
                    updated,
                    expected_version=session.version,
                    user_last_activity=now,
                    events=events,
                )

        logger.debug("activity", extra={"user_id": user_id, "session_id": saved.session_id})
        return saved

    def idle_start(self, user_id: int, *, now: Optional[datetime] = None) -> WorkSession:
        now = resolve_now(now)
        with self._locks.hold(user_id):
            session = self._sessions.get_open_for_user(user_id)
            transition(self._state_of(session), SessionEvent.IDLE_START)
            self._require_monotonic(session, now)

            updated = replace(session, idle_since=now, last_event_at=now)
            with self._write_logged(user_id, SessionEvent.IDLE_START):
                saved = self._sessions.save_progress(
                    updated,
                    expected_version=session.version,
                    events=[ActivityEvent(ActivityType.IDLE_START, now)],
                )

        logger.info("idle_start", extra={"user_id": user_id, "session_id": saved.session_id})
        return saved

    def idle_end(self, user_id: int, *, now: Optional[datetime] = None) -> WorkSession:
        now = resolve_now(now)
        with self._locks.hold(user_id):
            session = self._sessions.get_open_for_user(user_id)
            step = transition(self._state_of(session), SessionEvent.IDLE_END)
            self._require_monotonic(session, now)

            updated, idle_minutes = self._close_idle(session, step, now)
            updated = replace(updated, last_event_at=now)
            with self._write_logged(user_id, SessionEvent.IDLE_END):
                saved = self._sessions.save_progress(
                    updated,
                    expected_version=session.version,
                    events=[ActivityEvent(ActivityType.IDLE_END, now, {"idle_minutes": idle_minutes})],
                )

        logger.info(
            "idle_end",
            extra={"user_id": user_id, "session_id": saved.session_id, "minutes": idle_minutes},
        )
        return saved

    def check_out(self, user_id: int, *, now: Optional[datetime] = None) -> WorkSession:
        now = resolve_now(now)
        with self._locks.hold(user_id):
            session = self._sessions.get_open_for_user(user_id)
            step = transition(self._state_of(session), SessionEvent.CHECK_OUT)
            self._require_monotonic(session, now)

            # An idle period still open at check-out counts as idle, never as work.
            updated, idle_minutes = self._close_idle(session, step, now)
            elapsed = minutes_between(session.check_in_time, now)
            active = max(0, elapsed - updated.idle_time_minutes)
            closed = replace(
                updated,
                check_out_time=now,
                total_active_time_minutes=active,
                last_event_at=now,
            )
            events = self._implicit_idle_end(step, now, idle_minutes)
            events.append(
                ActivityEvent(
                    ActivityType.CHECK_OUT,
                    now,
                    {"active_minutes": closed.total_active_time_minutes, "idle_minutes": closed.idle_time_minutes},
                )
            )

            with self._write_logged(user_id, SessionEvent.CHECK_OUT):
                saved = self._sessions.close_session(closed, expected_version=session.version, events=events)

        logger.info(
            "check_out",
            extra={"user_id": user_id, "session_id": saved.session_id, "minutes": saved.total_active_time_minutes},
        )
        return saved

    def current_session(self, user_id: int) -> Optional[WorkSession]:
        return self._sessions.get_open_for_user(user_id)

    def current_state(self, user_id: int) -> SessionState:
        return self._state_of(self._sessions.get_open_for_user(user_id))

    def history(self, user_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[WorkSession]:
        return list(self._sessions.list_recent_for_user(user_id, require_limit(limit)))

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise ValidationError("User does not exist")
        return user

    @staticmethod
    @contextmanager
    def _write_logged(user_id: int, event: SessionEvent):
        try:
            yield
        except PersistenceError:
            logger.exception("session_write_failed", extra={"user_id": user_id, "event": event.value})
            raise

    @staticmethod
    def _state_of(session: Optional[WorkSession]) -> SessionState:
        if session is None:
            return SessionState.CHECKED_OUT
        return session.state

    @staticmethod
    def _require_monotonic(session: WorkSession, now: datetime) -> None:
        if now < session.last_event_at:
            raise InvalidTimestamp(
                f"Timestamp {now.isoformat()} is earlier than the session's last event "
                f"{session.last_event_at.isoformat()}"
            )

    @staticmethod
    def _implicit_idle_end(step: Transition, now: datetime, idle_minutes: int) -> list[ActivityEvent]:
        if not step.closes_idle:
            return []
        return [ActivityEvent(ActivityType.IDLE_END, now, {"idle_minutes": idle_minutes, "implicit": True})]

    @staticmethod
    def _close_idle(session: WorkSession, step: Transition, now: datetime) -> tuple[WorkSession, int]:
        if not step.closes_idle or session.idle_since is None:
            return session, 0
        idle_minutes = minutes_between(session.idle_since, now)
        closed = replace(
            session,
            idle_since=None,
            idle_time_minutes=session.idle_time_minutes + idle_minutes,
        )
        return closed, idle_minutes
