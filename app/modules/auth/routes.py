from fastapi import APIRouter, Depends, Security
from fastapi.security import HTTPAuthorizationCredentials
from app.database.supabase_client import get_service_supabase
from app.core.dependencies import get_current_user, security
from app.core.exceptions import AuthError
from app.modules.auth.schemas import (
    AuthEnvelope, LineLoginRequest, RefreshRequest, UpdateProfileRequest
)
from app.modules.auth.service import AuthService
from app.modules.auth.tokens import SessionClaims
from supabase import Client
from typing import Any, Dict, Optional

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(supabase: Client = Depends(get_service_supabase)) -> AuthService:
    return AuthService(supabase)


def _success(message: str, data: Any) -> Dict[str, Any]:
    return {"status": "success", "message": message, "data": data}


def _failure(default_message: str, exc: Exception) -> Dict[str, Any]:
    message = exc.message if isinstance(exc, AuthError) else str(exc)
    return {
        "status": "error",
        "message": message or default_message,
        "error": {"type": type(exc).__name__, "detail": message},
    }


@router.post("/line", response_model=AuthEnvelope)
async def sign_in_with_line(
    login_data: LineLoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Exchange a LINE authorization code for a ShareTrust session"""
    try:
        return _success("Sign in successful", service.sign_in_with_line(login_data))
    except Exception as e:
        return _failure("Sign in failed", e)


@router.post("/refresh", response_model=AuthEnvelope)
async def refresh_token(
    body: Optional[RefreshRequest] = None,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    service: AuthService = Depends(get_auth_service)
):
    """Reissue an access token from a refresh token, or from a still-valid Bearer session"""
    if body and body.refresh_token:
        user_id = None
    else:
        user_id = get_current_user(credentials).sub
    try:
        result = service.refresh_session(
            user_id=user_id,
            refresh_token=body.refresh_token if body else None,
        )
        return _success("Token refreshed successfully", result)
    except Exception as e:
        return _failure("Token refresh failed", e)


@router.get("/profile", response_model=AuthEnvelope)
async def get_profile(
    current_user: SessionClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    """Get the caller's profile with trust and group summary"""
    try:
        return _success("Profile retrieved successfully", service.get_user_profile(current_user.sub))
    except Exception as e:
        return _failure("Failed to retrieve profile", e)


@router.put("/profile", response_model=AuthEnvelope)
async def update_profile(
    update_data: UpdateProfileRequest,
    current_user: SessionClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    """Update the caller's contact fields"""
    try:
        profile = service.update_user_profile(current_user.sub, update_data)
        return _success("Profile updated successfully", profile)
    except Exception as e:
        return _failure("Failed to update profile", e)


@router.post("/signout", response_model=AuthEnvelope)
async def sign_out(
    current_user: SessionClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    """End the caller's session and revoke their refresh tokens"""
    try:
        return _success("Sign out successful", service.sign_out(current_user.sub))
    except Exception as e:
        return _failure("Sign out failed", e)


@router.get("/validate/{user_id}", response_model=AuthEnvelope)
async def validate_user(
    user_id: str,
    service: AuthService = Depends(get_auth_service)
):
    """Check whether a profile exists for user_id"""
    try:
        profile = service.validate_user(user_id)
        return _success("User validation completed", {"valid": profile is not None, "profile": profile})
    except Exception as e:
        return _failure("User validation failed", e)
