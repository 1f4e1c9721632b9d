"""
Tests for the LINE Login client
"""

import json
import time

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.algorithms import ECAlgorithm

from app.core.exceptions import AuthError
from app.modules.auth.line_client import LineLoginClient
from tests.conftest import TEST_CHANNEL_ID


def test_exchange_code_posts_form_to_token_endpoint(line_provider, line_client):
    line_provider.add_code("abc123", "U123")

    token_response = line_client.exchange_code("abc123")

    assert token_response["id_token"]
    request = line_provider.requests[0]
    form = dict(httpx.QueryParams(request.content.decode()))
    assert form["grant_type"] == "authorization_code"
    assert form["client_id"] == TEST_CHANNEL_ID
    assert form["redirect_uri"] == "http://localhost:3000/"
    assert "code_verifier" not in form


def test_exchange_code_sends_pkce_verifier(line_provider, line_client):
    line_provider.add_code("abc123", "U123")

    line_client.exchange_code("abc123", code_verifier="verifier-xyz")

    form = dict(httpx.QueryParams(line_provider.requests[0].content.decode()))
    assert form["code_verifier"] == "verifier-xyz"


def test_reused_code_is_rejected(line_provider, line_client):
    line_provider.add_code("abc123", "U123")
    line_client.exchange_code("abc123")

    with pytest.raises(AuthError, match="Failed to exchange code for token"):
        line_client.exchange_code("abc123")


def test_token_endpoint_error_raises(line_provider, line_client):
    line_provider.token_status = 500

    with pytest.raises(AuthError):
        line_client.exchange_code("abc123")


def test_network_error_raises_auth_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = LineLoginClient(http_client=httpx.Client(transport=httpx.MockTransport(handler)))

    with pytest.raises(AuthError):
        client.exchange_code("abc123")


def test_missing_channel_credentials(test_settings, monkeypatch, line_client):
    monkeypatch.setattr(test_settings, "line_channel_secret", None)

    with pytest.raises(AuthError, match="not configured"):
        line_client.exchange_code("abc123")


def test_verify_valid_hs256_id_token(line_provider, line_client):
    claims = line_client.verify_id_token(line_provider.make_id_token("U123"))

    assert claims["sub"] == "U123"
    assert claims["aud"] == TEST_CHANNEL_ID


def test_verify_rejects_expired_id_token(line_provider, line_client):
    past = int(time.time()) - 7200
    token = line_provider.make_id_token("U123", iat=past, exp=past + 3600)

    assert line_client.verify_id_token(token) is None


def test_verify_rejects_wrong_issuer(line_provider, line_client):
    token = line_provider.make_id_token("U123", iss="https://access.line.biz")

    assert line_client.verify_id_token(token) is None


def test_verify_rejects_other_channel(line_provider, line_client):
    token = line_provider.make_id_token("U123", aud="9999999999")

    assert line_client.verify_id_token(token) is None


def test_verify_rejects_forged_signature(line_client):
    token = jwt.encode(
        {"iss": "https://access.line.me", "sub": "U123", "aud": TEST_CHANNEL_ID, "exp": int(time.time()) + 60},
        "attacker-chosen-secret-of-sufficient-length",
        algorithm="HS256",
    )

    assert line_client.verify_id_token(token) is None


def test_verify_rejects_unsigned_token(line_client):
    token = jwt.encode(
        {"iss": "https://access.line.me", "sub": "U123", "aud": TEST_CHANNEL_ID, "exp": int(time.time()) + 60},
        None,
        algorithm="none",
    )

    assert line_client.verify_id_token(token) is None


class StaticJWKClient:
    """Serves one key the way PyJWKClient.get_signing_key_from_jwt does"""

    def __init__(self, public_key):
        self.public_key = public_key

    def get_signing_key_from_jwt(self, token):
        return jwt.PyJWK.from_json(json.dumps({
            **json.loads(ECAlgorithm.to_jwk(self.public_key)),
            "alg": "ES256",
            "kid": "line-key-1",
        }))


def test_verify_es256_id_token_with_jwks():
    private_key = ec.generate_private_key(ec.SECP256R1())
    token = jwt.encode(
        {"iss": "https://access.line.me", "sub": "U123", "aud": TEST_CHANNEL_ID, "exp": int(time.time()) + 60},
        private_key,
        algorithm="ES256",
        headers={"kid": "line-key-1"},
    )
    client = LineLoginClient(
        http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(404))),
        jwks_client=StaticJWKClient(private_key.public_key()),
    )

    assert client.verify_id_token(token)["sub"] == "U123"

    other_key = ec.generate_private_key(ec.SECP256R1())
    client._jwks = StaticJWKClient(other_key.public_key())
    assert client.verify_id_token(token) is None


def test_get_profile_parses_line_fields(line_provider, line_client):
    line_provider.add_code("abc123", "U123", display_name="Somchai")
    token_response = line_client.exchange_code("abc123")

    profile = line_client.get_profile(token_response["access_token"])

    assert profile.user_id == "U123"
    assert profile.display_name == "Somchai"
    assert profile.picture_url == "https://profile.line-scdn.net/avatar"


def test_get_profile_rejected(line_client):
    with pytest.raises(AuthError, match="Failed to get LINE profile"):
        line_client.get_profile("unknown-token")
