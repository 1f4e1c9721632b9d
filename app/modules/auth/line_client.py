"""
LINE Login v2.1 client: authorization code exchange, ID token verification
and profile lookup.

ID tokens issued to web logins are HS256-signed with the channel secret;
tokens from native/LIFF flows are ES256-signed with keys published at
LINE's JWKS endpoint. Both are verified before any claim is trusted.
"""

import logging
from typing import Any, Dict, Optional

import httpx
import jwt
from jwt import PyJWKClient

from app.config import settings
from app.core.exceptions import AuthError
from app.modules.auth.schemas import LineProfile

logger = logging.getLogger(__name__)

REQUIRED_ID_TOKEN_CLAIMS = ["sub", "iss", "aud", "exp"]
JWKS_ALGORITHMS = ("ES256", "RS256")

_jwks_client: Optional[PyJWKClient] = None


def _get_jwks_client() -> PyJWKClient:
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = PyJWKClient(settings.line_jwks_url, cache_jwk_set=True, lifespan=3600)
    return _jwks_client


class LineLoginClient:
    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        jwks_client: Optional[PyJWKClient] = None,
    ):
        self._http = http_client
        self._jwks = jwks_client

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._http is not None:
            return self._http.request(method, url, **kwargs)
        with httpx.Client(timeout=settings.line_http_timeout) as client:
            return client.request(method, url, **kwargs)

    def exchange_code(self, code: str, code_verifier: Optional[str] = None) -> Dict[str, Any]:
        """Exchange an authorization code for LINE access and ID tokens.

        Codes are single-use at LINE; a replayed code comes back as HTTP 400
        and surfaces here as AuthError.
        """
        if not settings.line_channel_id or not settings.line_channel_secret:
            raise AuthError("LINE channel credentials not configured")

        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": settings.line_redirect_uri,
            "client_id": settings.line_channel_id,
            "client_secret": settings.line_channel_secret,
        }
        verifier = code_verifier or settings.line_code_verifier
        if verifier:
            form["code_verifier"] = verifier

        try:
            response = self._request("POST", settings.line_token_url, data=form)
        except httpx.HTTPError as e:
            logger.error(f"Token exchange error: {e}")
            raise AuthError(f"Failed to exchange code for token: {e}") from e

        if not response.is_success:
            logger.error(f"Token exchange rejected by LINE: {response.status_code} {response.text}")
            raise AuthError(f"Failed to exchange code for token: {response.reason_phrase}")

        token_response = response.json()
        if not token_response.get("id_token"):
            raise AuthError("Failed to get ID token from LINE")
        return token_response

    def verify_id_token(self, id_token: str) -> Optional[Dict[str, Any]]:
        """Return the verified ID token payload, or None if any check fails."""
        try:
            header = jwt.get_unverified_header(id_token)
            algorithm = header.get("alg")
            if algorithm == "HS256":
                if not settings.line_channel_secret:
                    raise jwt.InvalidKeyError("LINE channel secret not configured")
                key = settings.line_channel_secret
            elif algorithm in JWKS_ALGORITHMS:
                jwks = self._jwks or _get_jwks_client()
                key = jwks.get_signing_key_from_jwt(id_token).key
            else:
                raise jwt.InvalidAlgorithmError(f"Unsupported ID token algorithm: {algorithm}")

            return jwt.decode(
                id_token,
                key,
                algorithms=[algorithm],
                audience=settings.line_channel_id,
                issuer=settings.line_issuer,
                options={"require": REQUIRED_ID_TOKEN_CLAIMS},
            )
        except jwt.PyJWTError as e:
            logger.warning(f"Failed to verify LINE ID token: {e}")
            return None

    def get_profile(self, access_token: str) -> LineProfile:
        try:
            response = self._request(
                "GET",
                settings.line_profile_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Get LINE profile error: {e}")
            raise AuthError(f"Failed to get LINE profile: {e}") from e

        if not response.is_success:
            logger.error(f"LINE profile request rejected: {response.status_code}")
            raise AuthError(f"Failed to get LINE profile: {response.reason_phrase}")

        return LineProfile.model_validate(response.json())
