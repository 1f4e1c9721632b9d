"""
Core dependencies for route protection and membership checking
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.exceptions import AuthError
from app.modules.auth.tokens import SessionClaims, decode_session_token
from supabase import Client
from typing import Optional
import jwt
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def verify_session_token(token: str) -> SessionClaims:
    """Verify a Bearer session token and return its claims; 401 on any failure."""
    try:
        return decode_session_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.PyJWTError as e:
        logger.info(f"Rejected session token: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    except AuthError as e:
        logger.error(f"Session verification unavailable: {e.message}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> SessionClaims:
    """Require a valid Bearer session token"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return verify_session_token(credentials.credentials)


def is_super_user(user: SessionClaims) -> bool:
    """Check if user is a super user from app_metadata"""
    # app_metadata is set server-side and cannot be modified by users
    return (user.app_metadata or {}).get("type") == "super_user"


def require_super_user(user: SessionClaims = Depends(get_current_user)) -> SessionClaims:
    if not is_super_user(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super user privileges required"
        )
    return user


def check_group_creator(group_id: str, user: SessionClaims, supabase: Client) -> SessionClaims:
    """Allow the group's creator or a super user"""
    if is_super_user(user):
        return user

    group_result = supabase.table("sharing_groups")\
        .select("creator_id")\
        .eq("id", group_id)\
        .maybe_single()\
        .execute()
    group = group_result.data if group_result else None

    if not group:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    if group.get("creator_id") == user.sub:
        return user

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be the group creator to perform this action"
    )


def check_group_member(group_id: str, user: SessionClaims, supabase: Client) -> SessionClaims:
    """Allow approved members of the group or a super user"""
    if is_super_user(user):
        return user

    member_result = supabase.table("group_members")\
        .select("id")\
        .eq("group_id", group_id)\
        .eq("user_id", user.sub)\
        .eq("status", "approved")\
        .execute()

    if member_result.data:
        return user

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be an approved member of this group"
    )
