from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import resolve_now
from ..core.constants import TOKEN_TTL_HOURS
from ..core.exceptions import InvalidCredentials, TokenExpired, TokenMalformed
from ..users.repository import UserRepository
from .tokens import TokenCodec, TokenPayload

logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = "Invalid username or password"


@dataclass(frozen=True)
class LoginResult:
    """What a transport layer hands back to the client after login."""

    token: str
    payload: TokenPayload


class AuthManager:
    """Use case: authenticate users and issue/validate session tokens."""

    def __init__(self, users: UserRepository, tokens: TokenCodec, *, token_ttl_hours: int = TOKEN_TTL_HOURS):
        self._users = users
        self._tokens = tokens
        self._ttl = timedelta(hours=int(token_ttl_hours))
        # Checked when the username is unknown so both failure paths cost one hash.
        self._dummy_hash = generate_password_hash("time-tracker-dummy-password")

    def authenticate(self, username: str, password: str, *, now: Optional[datetime] = None) -> LoginResult:
        now = resolve_now(now)
        user = self._users.get_by_username(username or "")

        if not user:
            check_password_hash(self._dummy_hash, password or "")
            logger.info("login_rejected", extra={"reason": "invalid_credentials"})
            raise InvalidCredentials(_INVALID_CREDENTIALS)

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except (TypeError, ValueError):
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            logger.info("login_rejected", extra={"reason": "invalid_credentials"})
            raise InvalidCredentials(_INVALID_CREDENTIALS)

        self._users.touch_last_activity(user.user_id, at=now)
        payload = TokenPayload.for_user(user, issued_at=now, ttl=self._ttl)
        logger.info("login", extra={"user_id": user.user_id, "username": user.username})
        return LoginResult(token=self.issue_token(payload), payload=payload)

    def issue_token(self, payload: TokenPayload) -> str:
        return self._tokens.encode(payload)

    def verify_token(self, token: str, *, now: Optional[datetime] = None) -> Optional[TokenPayload]:
        return self._tokens.verify(token, now=resolve_now(now))

    def require_identity(self, token: str, *, now: Optional[datetime] = None) -> TokenPayload:
        try:
            return self._tokens.decode(token, now=resolve_now(now))
        except (TokenMalformed, TokenExpired) as exc:
            logger.info("token_rejected", extra={"reason": type(exc).__name__})
            raise
