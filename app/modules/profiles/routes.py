from fastapi import APIRouter, Depends, HTTPException, status
from app.database.supabase_client import get_service_supabase
from app.core.dependencies import get_current_user, is_super_user
from app.modules.auth.tokens import SessionClaims
from app.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, PublicProfileResponse, ProfileGroupsResponse
)
from app.modules.profiles.service import ProfileService
from supabase import Client

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_service_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current_user: SessionClaims = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Full profile of the caller"""
    return service.get_profile(current_user.sub)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    current_user: SessionClaims = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    return service.update_profile(current_user.sub, profile_data)


@router.get("/{user_id}", response_model=PublicProfileResponse)
async def get_profile(
    user_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Public view of another user's profile (contact fields are omitted)"""
    return PublicProfileResponse(**service.get_profile(user_id).model_dump())


@router.get("/{user_id}/groups", response_model=ProfileGroupsResponse)
async def get_profile_groups(
    user_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Group memberships of a user (self or super user)"""
    if user_id != current_user.sub and not is_super_user(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not accessible")
    return ProfileGroupsResponse(user_id=user_id, groups=service.get_user_groups(user_id))
