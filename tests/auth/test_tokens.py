from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from itsdangerous import URLSafeSerializer

from src.time_tracker.time_tracker.auth.tokens import TokenCodec, TokenPayload
from src.time_tracker.time_tracker.core.constants import TOKEN_SALT
from src.time_tracker.time_tracker.core.enums import Role
from src.time_tracker.time_tracker.core.exceptions import TokenExpired, TokenMalformed


def _payload(issued_at: datetime, *, hours: int = 24, role: Role = Role.USER) -> TokenPayload:
    return TokenPayload(
        user_id=7,
        username="john",
        name="John Doe",
        role=role,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(hours=hours),
    )


def test_round_trip_returns_identical_payload(codec, fixed_now):
    payload = _payload(fixed_now, role=Role.ADMIN)

    token = codec.encode(payload)

    assert isinstance(token, str)
    assert codec.verify(token, now=fixed_now + timedelta(hours=23, minutes=59)) == payload


def test_token_rejected_once_expires_at_is_reached(codec, fixed_now):
    token = codec.encode(_payload(fixed_now))

    assert codec.verify(token, now=fixed_now + timedelta(hours=24)) is None
    with pytest.raises(TokenExpired):
        codec.decode(token, now=fixed_now + timedelta(hours=25))


def test_token_issued_already_expired_is_rejected(codec, fixed_now):
    payload = TokenPayload(
        user_id=7,
        username="john",
        name="John Doe",
        role=Role.USER,
        issued_at=fixed_now - timedelta(hours=48),
        expires_at=fixed_now - timedelta(hours=24),
    )

    assert codec.verify(codec.encode(payload), now=fixed_now) is None


def test_altered_payload_keeps_old_signature_and_is_rejected(codec, fixed_now):
    token = codec.encode(_payload(fixed_now))
    _, signature = token.rsplit(".", 1)

    extended = _payload(fixed_now, hours=24 * 365, role=Role.ADMIN).to_claims()
    forged = URLSafeSerializer("attacker-secret", salt=TOKEN_SALT).dumps(extended)
    forged_body, _ = forged.rsplit(".", 1)

    assert codec.verify(f"{forged_body}.{signature}", now=fixed_now) is None


def test_altered_signature_is_rejected(codec, fixed_now):
    token = codec.encode(_payload(fixed_now))
    body, _ = token.rsplit(".", 1)
    other = TokenCodec("another-secret").encode(_payload(fixed_now))
    _, other_signature = other.rsplit(".", 1)

    assert codec.verify(f"{body}.{other_signature}", now=fixed_now) is None


def test_token_signed_with_other_key_is_rejected(fixed_now):
    token = TokenCodec("another-secret").encode(_payload(fixed_now))

    assert TokenCodec("test-secret").verify(token, now=fixed_now) is None


@pytest.mark.parametrize("garbage", ["", "   ", "not-a-token", "abc.def", "a.b.c.d", None, 12345])
def test_malformed_tokens_return_none(codec, fixed_now, garbage):
    assert codec.verify(garbage, now=fixed_now) is None


def test_signed_but_incomplete_claims_are_malformed(fixed_now):
    codec = TokenCodec("test-secret")
    token = URLSafeSerializer("test-secret", salt=TOKEN_SALT).dumps({"id": 1, "username": "john"})

    with pytest.raises(TokenMalformed):
        codec.decode(token, now=fixed_now)


def test_signed_claims_with_unknown_role_are_malformed(fixed_now):
    claims = _payload(fixed_now).to_claims()
    claims["role"] = "superuser"
    token = URLSafeSerializer("test-secret", salt=TOKEN_SALT).dumps(claims)

    assert TokenCodec("test-secret").verify(token, now=fixed_now) is None


def test_codec_requires_secret():
    with pytest.raises(ValueError):
        TokenCodec("")


def test_aware_and_naive_clocks_agree_on_expiry(codec, john, fixed_now):
    token = codec.encode(TokenPayload.for_user(john, issued_at=fixed_now.astimezone(), ttl=timedelta(hours=24)))

    assert codec.verify(token, now=fixed_now) is not None
    assert codec.verify(token, now=(fixed_now + timedelta(hours=23)).astimezone(timezone.utc)) is not None
    assert codec.verify(token, now=(fixed_now + timedelta(hours=24)).astimezone(timezone.utc)) is None


def test_signed_claims_with_offsets_are_normalised(fixed_now):
    claims = _payload(fixed_now).to_claims()
    claims["iat"] = fixed_now.astimezone(timezone.utc).isoformat()
    claims["exp"] = (fixed_now + timedelta(hours=1)).astimezone(timezone.utc).isoformat()
    token = URLSafeSerializer("test-secret", salt=TOKEN_SALT).dumps(claims)

    payload = TokenCodec("test-secret").decode(token, now=fixed_now)

    assert payload.issued_at == fixed_now
    assert payload.expires_at.tzinfo is None
