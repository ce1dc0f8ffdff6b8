from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from itsdangerous import BadData, URLSafeSerializer

from ..common.datetime_utils import as_local
from ..core.constants import TOKEN_SALT
from ..core.enums import Role
from ..core.exceptions import TokenExpired, TokenMalformed
from ..users.model import User


@dataclass(frozen=True)
class TokenPayload:
    """Identity carried by a session token.

    Every field, ``expires_at`` included, is covered by the signature.
    """

    user_id: int
    username: str
    name: str
    role: Role
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def for_user(cls, user: User, *, issued_at: datetime, ttl: timedelta) -> "TokenPayload":
        return cls(
            user_id=user.user_id,
            username=user.username,
            name=user.name,
            role=user.role,
            issued_at=as_local(issued_at),
            expires_at=as_local(issued_at) + ttl,
        )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_claims(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "name": self.name,
            "role": self.role.value,
            "iat": self.issued_at.isoformat(),
            "exp": self.expires_at.isoformat(),
        }

    @classmethod
    def from_claims(cls, claims: Any) -> "TokenPayload":
        if not isinstance(claims, Mapping):
            raise TokenMalformed("Token payload is not an object")
        try:
            user_id = claims["id"]
            username = claims["username"]
            name = claims["name"]
            if not isinstance(user_id, int) or isinstance(user_id, bool):
                raise TypeError("id must be an integer")
            if not isinstance(username, str) or not isinstance(name, str):
                raise TypeError("username and name must be strings")
            payload = cls(
                user_id=user_id,
                username=username,
                name=name,
                role=Role(claims["role"]),
                issued_at=as_local(datetime.fromisoformat(claims["iat"])),
                expires_at=as_local(datetime.fromisoformat(claims["exp"])),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenMalformed("Token payload is incomplete") from exc

        if payload.expires_at < payload.issued_at:
            raise TokenMalformed("Token expires before it was issued")
        return payload


class TokenCodec:
    """Encode/decode HMAC-signed session tokens."""

    def __init__(self, secret_key: str, *, salt: str = TOKEN_SALT):
        if not secret_key:
            raise ValueError("secret_key is required to sign tokens")
        self._serializer = URLSafeSerializer(secret_key, salt=salt)

    def encode(self, payload: TokenPayload) -> str:
        return self._serializer.dumps(payload.to_claims())

    def decode(self, token: Any, *, now: datetime) -> TokenPayload:
        if not isinstance(token, str) or not token.strip():
            raise TokenMalformed("Token is empty")
        try:
            claims = self._serializer.loads(token.strip())
        except BadData as exc:
            raise TokenMalformed("Token signature is invalid") from exc

        payload = TokenPayload.from_claims(claims)
        if payload.is_expired(as_local(now)):
            raise TokenExpired("Token has expired")
        return payload

    def verify(self, token: Any, *, now: datetime) -> Optional[TokenPayload]:
        try:
            return self.decode(token, now=now)
        except (TokenMalformed, TokenExpired):
            return None
