"""
Pytest fixtures for ShareTrust backend tests
"""

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.database.supabase_client import get_service_supabase
from app.modules.auth.line_client import LineLoginClient
from app.modules.auth.routes import get_auth_service
from app.modules.auth.service import AuthService
from tests.fakes import FakeLineProvider, FakeSupabase

TEST_JWT_SECRET = "test-supabase-jwt-secret-with-at-least-32-bytes"
TEST_CHANNEL_ID = "1650000000"
TEST_CHANNEL_SECRET = "test-line-channel-secret-0123456789abcdef"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Deterministic settings; no real Supabase or LINE credentials are read."""
    monkeypatch.setattr(settings, "supabase_url", "http://supabase.test")
    monkeypatch.setattr(settings, "supabase_service_role_key", "test-service-role-key")
    monkeypatch.setattr(settings, "supabase_jwt_secret", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "line_channel_id", TEST_CHANNEL_ID)
    monkeypatch.setattr(settings, "line_channel_secret", TEST_CHANNEL_SECRET)
    monkeypatch.setattr(settings, "line_redirect_uri", "http://localhost:3000/")
    monkeypatch.setattr(settings, "line_code_verifier", None)
    monkeypatch.setattr(settings, "session_ttl_days", 7)
    monkeypatch.setattr(settings, "group_expiry_sweep_enabled", False)
    return settings


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def line_provider():
    return FakeLineProvider(TEST_CHANNEL_ID, TEST_CHANNEL_SECRET)


@pytest.fixture
def line_client(line_provider):
    http_client = line_provider.client()
    yield LineLoginClient(http_client=http_client)
    http_client.close()


@pytest.fixture
def auth_service(supabase, line_client):
    return AuthService(supabase, line_client=line_client)


@pytest.fixture
def app(supabase, line_client):
    from app.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_service_supabase] = lambda: supabase
    fastapi_app.dependency_overrides[get_auth_service] = lambda: AuthService(supabase, line_client=line_client)
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def member(supabase):
    return supabase.seed_user(display_name="Member")


@pytest.fixture
def creator(supabase):
    return supabase.seed_user(display_name="Creator")


@pytest.fixture
def admin(supabase):
    return supabase.seed_user(app_metadata={"type": "super_user"}, display_name="Admin")
