from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from .activity.model import ActivityLog
from .activity.service import ActivityLogger
from .auth.service import AuthManager, LoginResult
from .auth.tokens import TokenPayload
from .core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_RECENT_ACTIVITY_LIMIT
from .core.enums import Role, SessionState
from .sessions.model import WorkSession
from .sessions.service import SessionTracker
from .users.model import User
from .users.service import UserService

logger = logging.getLogger(__name__)


class TrackerOperations:
    """Token-authenticated entry points for transport/UI adapters.

    Note: This layer only resolves the token to an identity and delegates; all
    business rules live in the services. Errors propagate unchanged.
    """

    def __init__(
        self,
        auth: AuthManager,
        tracker: SessionTracker,
        activity: ActivityLogger,
        users: UserService,
    ):
        self._auth = auth
        self._tracker = tracker
        self._activity = activity
        self._users = users

    def login(self, username: str, password: str) -> LoginResult:
        return self._auth.authenticate(username, password)

    def logout(self, token: str) -> None:
        # Tokens are stateless: the client discards it, nothing is revoked server-side.
        identity = self._auth.verify_token(token)
        if identity:
            logger.info("logout", extra={"user_id": identity.user_id})

    def check_in(self, token: str, now: Optional[datetime] = None) -> WorkSession:
        return self._tracker.check_in(self._identity(token).user_id, now=now)

    def check_out(self, token: str, now: Optional[datetime] = None) -> WorkSession:
        return self._tracker.check_out(self._identity(token).user_id, now=now)

    def record_activity(
        self,
        token: str,
        now: Optional[datetime] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> WorkSession:
        return self._tracker.record_activity(self._identity(token).user_id, now=now, metadata=metadata)

    def idle_start(self, token: str, now: Optional[datetime] = None) -> WorkSession:
        return self._tracker.idle_start(self._identity(token).user_id, now=now)

    def idle_end(self, token: str, now: Optional[datetime] = None) -> WorkSession:
        return self._tracker.idle_end(self._identity(token).user_id, now=now)

    def current_session(self, token: str) -> Optional[WorkSession]:
        return self._tracker.current_session(self._identity(token).user_id)

    def current_state(self, token: str) -> SessionState:
        return self._tracker.current_state(self._identity(token).user_id)

    def user_history(self, token: str, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[WorkSession]:
        return self._tracker.history(self._identity(token).user_id, limit)

    def recent_activity(self, token: str, limit: int = DEFAULT_RECENT_ACTIVITY_LIMIT) -> Sequence[ActivityLog]:
        return self._activity.recent(self._identity(token).user_id, limit)

    def me(self, token: str) -> User:
        return self._users.get_user(self._identity(token).user_id)

    # Admin

    def list_users(self, token: str) -> Sequence[User]:
        return self._users.list_users(current_role=self._identity(token).role)

    def register_user(
        self,
        token: str,
        *,
        username: str,
        name: str,
        password: str,
        role: Role = Role.USER,
    ) -> User:
        return self._users.register_account(
            current_role=self._identity(token).role,
            username=username,
            name=name,
            password=password,
            role=role,
        )

    def _identity(self, token: str) -> TokenPayload:
        return self._auth.require_identity(token)
