from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..activity.model import ActivityEvent
from .model import WorkSession


class WorkSessionRepository(Protocol):
    """Persistence for work sessions.

    Each write method commits the session row, the owning user's cached fields
    (``is_checked_in``, ``last_activity``, aggregate total) and the given ledger
    ``events`` in one transaction. Every event is stored with the session's id
    under ``metadata["session_id"]``.
    """

    def get_open_for_user(self, user_id: int) -> Optional[WorkSession]:
        raise NotImplementedError

    def list_recent_for_user(self, user_id: int, limit: int) -> Sequence[WorkSession]:
        """Most recent check-in first."""

        raise NotImplementedError

    def open_session(
        self,
        *,
        user_id: int,
        check_in_time: datetime,
        work_date: date,
        events: Sequence[ActivityEvent] = (),
    ) -> WorkSession:
        """Insert an open session; raise ``AlreadyCheckedIn`` if one already exists."""

        raise NotImplementedError

    def save_progress(
        self,
        session: WorkSession,
        *,
        expected_version: int,
        user_last_activity: Optional[datetime] = None,
        events: Sequence[ActivityEvent] = (),
    ) -> WorkSession:
        """Persist counters/idle state of an open session.

        Raise ``ConcurrentUpdateError`` if the stored version differs or the session was closed.
        """

        raise NotImplementedError

    def close_session(
        self,
        session: WorkSession,
        *,
        expected_version: int,
        events: Sequence[ActivityEvent] = (),
    ) -> WorkSession:
        """Set check-out, clear ``is_checked_in`` and add the active minutes to the user's total."""

        raise NotImplementedError
