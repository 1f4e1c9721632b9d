"""
Session token helpers.

Access tokens are HS256 JWTs signed with the Supabase JWT secret, so the same
token is accepted by PostgREST (RLS sees ``auth.uid()``) and by this service's
guard. Refresh tokens are opaque random strings; only their SHA-256 digest is
persisted.
"""

import hashlib
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import jwt

from app.config import settings
from app.core.exceptions import AuthError

SESSION_AUDIENCE = "authenticated"
SESSION_ROLE = "authenticated"
SESSION_ALGORITHM = "HS256"
REFRESH_TOKEN_BYTES = 48


@dataclass(frozen=True)
class SessionClaims:
    """Verified claims of a session access token."""
    sub: str
    exp: int
    email: Optional[str] = None
    role: str = SESSION_ROLE
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    app_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.sub


def _jwt_secret() -> str:
    if not settings.supabase_jwt_secret:
        raise AuthError("Supabase JWT secret not configured")
    return settings.supabase_jwt_secret


def mint_session_token(
    user_id: str,
    email: Optional[str] = None,
    user_metadata: Optional[Dict[str, Any]] = None,
    app_metadata: Optional[Dict[str, Any]] = None,
    now: Optional[int] = None,
) -> Tuple[str, int]:
    """Sign a Supabase-compatible access token. Returns (token, exp)."""
    issued_at = int(now if now is not None else time.time())
    exp = issued_at + settings.session_ttl_seconds
    payload = {
        "aud": SESSION_AUDIENCE,
        "iat": issued_at,
        "exp": exp,
        "sub": user_id,
        "email": email,
        "role": SESSION_ROLE,
        "user_metadata": user_metadata or {},
        "app_metadata": app_metadata or {},
    }
    token = jwt.encode(payload, _jwt_secret(), algorithm=SESSION_ALGORITHM)
    return token, exp


def decode_session_token(token: str) -> SessionClaims:
    """Verify signature, audience and expiry. Raises jwt.PyJWTError subclasses on failure."""
    payload = jwt.decode(
        token,
        _jwt_secret(),
        algorithms=[SESSION_ALGORITHM],
        audience=SESSION_AUDIENCE,
        options={"require": ["exp", "sub"]},
    )
    return SessionClaims(
        sub=payload["sub"],
        exp=payload["exp"],
        email=payload.get("email"),
        role=payload.get("role", SESSION_ROLE),
        user_metadata=payload.get("user_metadata") or {},
        app_metadata=payload.get("app_metadata") or {},
    )


def generate_refresh_token() -> str:
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()
