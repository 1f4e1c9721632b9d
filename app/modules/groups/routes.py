from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.modules.groups.schemas import (
    CategoryResponse, GroupCreate, GroupResponse, GroupDetailResponse,
    GroupMemberResponse, GroupStatusUpdate
)
from app.modules.groups.service import GroupService
from app.modules.transactions.service import TransactionService
from app.core.dependencies import get_current_user, check_group_creator, check_group_member
from app.modules.auth.tokens import SessionClaims
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_service_supabase)) -> GroupService:
    return GroupService(supabase)


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(service: GroupService = Depends(get_group_service)):
    """Active subscription categories"""
    return service.list_categories()


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Create a sharing group; the caller becomes its first member"""
    return service.create_group(group_data, current_user.sub)


@router.get("", response_model=List[dict])
async def list_groups(
    category_id: Optional[str] = None,
    status: str = "active",
    limit: int = 20,
    offset: int = 0,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Browse groups with creator and category embedded"""
    return service.list_groups(category_id=category_id, status=status, limit=limit, offset=offset)


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    group_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    return service.get_group(group_id)


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def list_members(
    group_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_service_supabase)
):
    """List member rows (approved members and the creator only)"""
    check_group_member(group_id, current_user, supabase)
    return service.list_members(group_id)


@router.post("/{group_id}/join", response_model=GroupMemberResponse, status_code=201)
async def join_group(
    group_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Request a seat in the group"""
    return service.request_join(group_id, current_user.sub)


@router.post("/{group_id}/leave", response_model=GroupMemberResponse)
async def leave_group(
    group_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    return service.leave_group(group_id, current_user.sub)


@router.post("/{group_id}/members/{user_id}/approve", response_model=GroupMemberResponse)
async def approve_member(
    group_id: str,
    user_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_service_supabase)
):
    """Approve a join request (group creator)"""
    check_group_creator(group_id, current_user, supabase)
    return service.approve_member(group_id, user_id)


@router.post("/{group_id}/members/{user_id}/reject", response_model=GroupMemberResponse)
async def reject_member(
    group_id: str,
    user_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_service_supabase)
):
    """Reject a join request (group creator)"""
    check_group_creator(group_id, current_user, supabase)
    return service.reject_member(group_id, user_id)


@router.patch("/{group_id}/status", response_model=GroupResponse)
async def update_group_status(
    group_id: str,
    status_update: GroupStatusUpdate,
    current_user: SessionClaims = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_service_supabase)
):
    """Complete or cancel a group (group creator); cancelling refunds paid members"""
    check_group_creator(group_id, current_user, supabase)
    group = service.update_status(group_id, status_update.status)
    if status_update.status == "cancelled":
        TransactionService(supabase).refund_group(group_id)
    return group
