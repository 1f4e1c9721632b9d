"""
Client-side session holder for the ShareTrust auth API.

Keeps the current access/refresh tokens, the signed-in user and their
profile, and talks to the ``/auth`` endpoints through an ``httpx.Client``.
Any ``httpx.Client`` works, including FastAPI's ``TestClient``.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.core.exceptions import AuthError

logger = logging.getLogger(__name__)


class AuthSession:
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        api_prefix: str = "/api/v1",
    ):
        if client is None and not base_url:
            raise ValueError("Either base_url or client is required")
        self._client = client or httpx.Client(base_url=base_url, timeout=self.DEFAULT_TIMEOUT)
        self._owns_client = client is None
        self._prefix = api_prefix.rstrip("/")

        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.expires_at: Optional[int] = None
        self.user: Optional[Dict[str, Any]] = None
        self.profile: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def _headers(self) -> Dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def _call(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request and unwrap the response envelope, raising AuthError on failure."""
        try:
            response = self._client.request(
                method, f"{self._prefix}{path}", json=json, headers=self._headers()
            )
        except httpx.HTTPError as e:
            logger.error(f"Auth request {method} {path} failed: {e}")
            raise AuthError(f"Request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise AuthError(f"Unexpected response ({response.status_code})") from e

        # The guard answers 401 with FastAPI's {"detail": ...} body, not the envelope
        if "status" not in body:
            raise AuthError(str(body.get("detail") or f"Request failed ({response.status_code})"))
        if body["status"] != "success":
            raise AuthError(body.get("message") or "Request failed")
        return body.get("data")

    def _store_tokens(self, data: Dict[str, Any]) -> None:
        self.access_token = data["access_token"]
        self.expires_at = data.get("expires_at")
        if data.get("refresh_token"):
            self.refresh_token = data["refresh_token"]

    def _clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None
        self.user = None
        self.profile = None

    def sign_in_with_line(self, code: str, state: str, code_verifier: Optional[str] = None) -> Dict[str, Any]:
        """Complete a LINE login redirect; stores the session, user and profile."""
        payload = {"code": code, "state": state}
        if code_verifier:
            payload["code_verifier"] = code_verifier
        data = self._call("POST", "/auth/line", json=payload)
        self._store_tokens(data)
        self.user = data.get("user")
        self.profile = data.get("profile")
        return data

    def refresh(self) -> Dict[str, Any]:
        """Rotate the refresh token if one is held, otherwise renew the current Bearer session."""
        if not self.is_authenticated and not self.refresh_token:
            raise AuthError("Not signed in")
        payload = {"refresh_token": self.refresh_token} if self.refresh_token else None
        data = self._call("POST", "/auth/refresh", json=payload)
        self._store_tokens(data)
        return data

    def load_profile(self) -> Dict[str, Any]:
        self.profile = self._call("GET", "/auth/profile")
        return self.profile

    def update_profile(self, **fields: Any) -> Dict[str, Any]:
        self.profile = self._call("PUT", "/auth/profile", json=fields)
        return self.profile

    def sign_out(self) -> None:
        """Sign out server-side when possible; local state is always cleared."""
        try:
            if self.is_authenticated:
                self._call("POST", "/auth/signout")
        except AuthError as e:
            logger.warning(f"Server sign out failed: {e.message}")
        finally:
            self._clear()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
