"""
Tests for session token helpers
"""

import time

import jwt
import pytest

from app.core.exceptions import AuthError
from app.modules.auth.tokens import (
    SESSION_AUDIENCE,
    decode_session_token,
    generate_refresh_token,
    hash_refresh_token,
    mint_session_token,
)
from tests.conftest import TEST_JWT_SECRET


def test_session_token_expires_seven_days_after_issue():
    issued_at = 1_700_000_000
    token, exp = mint_session_token("user-1", email="u@example.com", now=issued_at)

    payload = jwt.decode(token, options={"verify_signature": False})
    assert exp == issued_at + 7 * 24 * 3600
    assert payload["exp"] == exp
    assert payload["iat"] == issued_at


def test_session_token_carries_supabase_claims():
    token, _ = mint_session_token(
        "user-1",
        email="u@example.com",
        user_metadata={"line_user_id": "U123"},
        app_metadata={"provider": "email"},
    )

    payload = jwt.decode(token, TEST_JWT_SECRET, algorithms=["HS256"], audience=SESSION_AUDIENCE)
    assert payload["sub"] == "user-1"
    assert payload["role"] == "authenticated"
    assert payload["user_metadata"] == {"line_user_id": "U123"}
    assert payload["app_metadata"] == {"provider": "email"}


def test_decode_round_trips_claims():
    token, exp = mint_session_token("user-1", email="u@example.com", app_metadata={"type": "super_user"})

    claims = decode_session_token(token)
    assert claims.id == "user-1"
    assert claims.exp == exp
    assert claims.app_metadata["type"] == "super_user"


def test_decode_rejects_expired_token():
    token, _ = mint_session_token("user-1", now=int(time.time()) - 8 * 24 * 3600)

    with pytest.raises(jwt.ExpiredSignatureError):
        decode_session_token(token)


def test_decode_rejects_foreign_signature():
    token = jwt.encode(
        {"sub": "user-1", "aud": SESSION_AUDIENCE, "exp": int(time.time()) + 60},
        "some-other-secret-that-is-also-32-bytes-long",
        algorithm="HS256",
    )

    with pytest.raises(jwt.InvalidSignatureError):
        decode_session_token(token)


def test_missing_secret_is_a_configuration_error(test_settings, monkeypatch):
    monkeypatch.setattr(test_settings, "supabase_jwt_secret", None)

    with pytest.raises(AuthError):
        mint_session_token("user-1")


def test_refresh_tokens_are_random_and_hashed():
    first, second = generate_refresh_token(), generate_refresh_token()

    assert first != second
    assert len(first) >= 64
    assert hash_refresh_token(first) == hash_refresh_token(first)
    assert hash_refresh_token(first) != first
