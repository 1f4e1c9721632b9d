import logging
from datetime import datetime, timedelta, timezone
from supabase import Client
from app.config import settings
from app.core.exceptions import AuthError
from app.modules.auth.line_client import LineLoginClient
from app.modules.auth.schemas import LineLoginRequest, LineProfile, UpdateProfileRequest
from app.modules.auth.tokens import (
    generate_refresh_token, hash_refresh_token, mint_session_token
)
from app.modules.profiles.schemas import ProfileUpdate
from app.modules.profiles.service import ProfileService
from typing import Dict, Any, Optional, Tuple

logger = logging.getLogger(__name__)

LINE_PROVIDER = "line"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialize_user(user: Any) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": user.user_metadata or {},
        "app_metadata": user.app_metadata or {},
        "created_at": user.created_at,
    }


class AuthService:
    """LINE identity bridge: turns a LINE authorization code into a ShareTrust session."""

    def __init__(self, supabase: Client, line_client: Optional[LineLoginClient] = None):
        self.supabase = supabase
        self.line = line_client or LineLoginClient()
        self.profiles = ProfileService(supabase)

    def sign_in_with_line(self, login: LineLoginRequest) -> Dict[str, Any]:
        """Exchange the code, verify the LINE identity, upsert the profile and mint a session."""
        try:
            token_response = self.line.exchange_code(login.code, login.code_verifier)

            claims = self.line.verify_id_token(token_response["id_token"])
            if not claims:
                raise AuthError("Invalid LINE ID token")

            line_profile = self.line.get_profile(token_response.get("access_token", ""))
            if claims["sub"] != line_profile.user_id:
                raise AuthError("LINE ID token subject does not match LINE profile")

            user, is_new = self._resolve_user(line_profile)
            profile = self._upsert_profile(user, line_profile, is_new)

            user_metadata = self._line_metadata(line_profile)
            access_token, expires_at = mint_session_token(
                user.id,
                email=user.email or self._synthesized_email(line_profile.user_id),
                user_metadata=user_metadata,
                app_metadata=user.app_metadata,
            )
            refresh_token = self._issue_refresh_token(user.id)
            self._open_session(user.id)

            logger.info(f"LINE sign in for user {user.id} (new={is_new})")
            return {
                "access_token": access_token,
                "refresh_token": refresh_token,
                "token_type": "bearer",
                "expires_in": settings.session_ttl_seconds,
                "expires_at": expires_at,
                "user": _serialize_user(user),
                "profile": profile,
            }
        except AuthError as e:
            logger.error(f"LINE sign in error: {e.message}")
            raise
        except Exception as e:
            logger.error(f"LINE sign in error: {e}")
            raise AuthError(f"LINE sign in failed: {e}") from e

    def _synthesized_email(self, line_user_id: str) -> str:
        return f"{line_user_id}@{LINE_PROVIDER}.users.{settings.product_name}"

    def _line_metadata(self, line_profile: LineProfile) -> Dict[str, Any]:
        return {
            "line_user_id": line_profile.user_id,
            "display_name": line_profile.display_name,
            "avatar_url": line_profile.picture_url,
            "provider": LINE_PROVIDER,
        }

    def _resolve_user(self, line_profile: LineProfile) -> Tuple[Any, bool]:
        """Return (auth user, created) for a LINE user, creating the auth account on first login."""
        existing = self.profiles.find_by_line_user_id(line_profile.user_id)
        if existing:
            response = self.supabase.auth.admin.get_user_by_id(existing["id"])
            if not response or not response.user:
                raise AuthError("User not found in Supabase auth")
            return response.user, False

        response = self.supabase.auth.admin.create_user({
            "email": self._synthesized_email(line_profile.user_id),
            "email_confirm": True,
            "user_metadata": self._line_metadata(line_profile),
        })
        if not response or not response.user:
            raise AuthError("Failed to create user")
        return response.user, True

    def _upsert_profile(self, user: Any, line_profile: LineProfile, is_new: bool) -> Dict[str, Any]:
        now = _utcnow_iso()
        profile_data = {
            "id": user.id,
            "line_user_id": line_profile.user_id,
            "display_name": line_profile.display_name,
            "avatar_url": line_profile.picture_url,
            "updated_at": now,
        }
        if is_new:
            profile_data.update({
                "email": user.email or self._synthesized_email(line_profile.user_id),
                "trust_score": 0,
                "trust_level": 1,
                "is_verified": False,
                "created_at": now,
            })

        result = self.supabase.table("profiles")\
            .upsert(profile_data, on_conflict="id")\
            .execute()

        if not result.data:
            raise AuthError("Failed to save profile")
        return result.data[0]

    def _issue_refresh_token(self, user_id: str) -> str:
        token = generate_refresh_token()
        expires_at = datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_ttl_days)
        self.supabase.table("refresh_tokens").insert({
            "user_id": user_id,
            "token_hash": hash_refresh_token(token),
            "expires_at": expires_at.isoformat(),
        }).execute()
        return token

    def _consume_refresh_token(self, refresh_token: str) -> str:
        """Revoke a live refresh token and return its user id. Each token is usable once."""
        now = _utcnow_iso()
        result = self.supabase.table("refresh_tokens")\
            .select("id, user_id")\
            .eq("token_hash", hash_refresh_token(refresh_token))\
            .is_("revoked_at", "null")\
            .gt("expires_at", now)\
            .maybe_single()\
            .execute()
        row = result.data if result else None
        if not row:
            raise AuthError("Invalid or expired refresh token")

        revoked = self.supabase.table("refresh_tokens")\
            .update({"revoked_at": now})\
            .eq("id", row["id"])\
            .is_("revoked_at", "null")\
            .execute()
        if not revoked.data:
            raise AuthError("Invalid or expired refresh token")
        return row["user_id"]

    def _open_session(self, user_id: str) -> None:
        try:
            self.supabase.table("user_sessions").insert({
                "user_id": user_id,
                "provider": LINE_PROVIDER,
                "started_at": _utcnow_iso(),
            }).execute()
        except Exception as e:
            logger.warning(f"Could not record session for user {user_id}: {e}")

    def validate_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.profiles.find_profile(user_id)
        except Exception as e:
            logger.error(f"Validate user error: {e}")
            return None

    def refresh_session(
        self,
        user_id: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Reissue an access token.

        With a refresh token the token identifies the user and is rotated;
        otherwise ``user_id`` must come from an already verified session.
        """
        try:
            rotated_token = None
            if refresh_token:
                token_user_id = self._consume_refresh_token(refresh_token)
                if user_id and token_user_id != user_id:
                    raise AuthError("Refresh token does not belong to this session")
                user_id = token_user_id
            if not user_id:
                raise AuthError("No session to refresh")

            profile = self.validate_user(user_id)
            if not profile:
                raise AuthError("User not found")

            response = self.supabase.auth.admin.get_user_by_id(user_id)
            app_metadata = response.user.app_metadata if response and response.user else {}

            access_token, expires_at = mint_session_token(
                profile["id"],
                email=profile.get("email"),
                user_metadata={
                    "line_user_id": profile.get("line_user_id"),
                    "display_name": profile.get("display_name"),
                    "avatar_url": profile.get("avatar_url"),
                    "provider": LINE_PROVIDER,
                },
                app_metadata=app_metadata,
            )
            if refresh_token:
                rotated_token = self._issue_refresh_token(user_id)
            data = {
                "access_token": access_token,
                "token_type": "bearer",
                "expires_in": settings.session_ttl_seconds,
                "expires_at": expires_at,
            }
            if rotated_token:
                data["refresh_token"] = rotated_token
            return data
        except AuthError as e:
            logger.error(f"Refresh token error: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Refresh token error: {e}")
            raise AuthError(f"Token refresh failed: {e}") from e

    def get_user_profile(self, user_id: str) -> Dict[str, Any]:
        try:
            profile = self.profiles.get_profile_details(user_id)
        except Exception as e:
            logger.error(f"Get user profile error: {e}")
            raise AuthError(f"Failed to retrieve profile: {e}") from e
        if not profile:
            raise AuthError("Profile not found")
        return profile

    def update_user_profile(self, user_id: str, update: UpdateProfileRequest) -> Dict[str, Any]:
        try:
            profile = self.profiles.update_profile(
                user_id, ProfileUpdate(**update.model_dump(exclude_unset=True))
            )
        except Exception as e:
            logger.error(f"Update user profile error: {e}")
            raise AuthError(f"Failed to update profile: {e}") from e
        return profile.model_dump(mode="json")

    def sign_out(self, user_id: str) -> Dict[str, Any]:
        """End the latest open session and revoke refresh tokens. Access tokens live until expiry."""
        now = _utcnow_iso()
        try:
            latest = self.supabase.table("user_sessions")\
                .select("id")\
                .eq("user_id", user_id)\
                .is_("ended_at", "null")\
                .order("started_at", desc=True)\
                .limit(1)\
                .execute()
            if latest.data:
                self.supabase.table("user_sessions")\
                    .update({"ended_at": now})\
                    .eq("id", latest.data[0]["id"])\
                    .execute()
        except Exception as e:
            logger.error(f"Sign out error: {e}")

        try:
            self.supabase.table("refresh_tokens")\
                .update({"revoked_at": now})\
                .eq("user_id", user_id)\
                .is_("revoked_at", "null")\
                .execute()
        except Exception as e:
            logger.error(f"Sign out error revoking refresh tokens: {e}")

        return {"success": True}
