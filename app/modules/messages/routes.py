from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_service_supabase
from app.core.dependencies import get_current_user, check_group_member
from app.modules.auth.tokens import SessionClaims
from app.modules.messages.schemas import MessageCreate, MessageResponse
from app.modules.messages.service import MessageService
from supabase import Client
from typing import List

router = APIRouter(prefix="/groups/{group_id}/messages", tags=["messages"])


@router.get("", response_model=List[MessageResponse])
async def list_messages(
    group_id: str,
    limit: int = Query(50, ge=1, le=100),
    current_user: SessionClaims = Depends(get_current_user),
    supabase: Client = Depends(get_service_supabase)
):
    check_group_member(group_id, current_user, supabase)
    return MessageService(supabase).list_messages(group_id, limit=limit)


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    group_id: str,
    message: MessageCreate,
    current_user: SessionClaims = Depends(get_current_user),
    supabase: Client = Depends(get_service_supabase)
):
    check_group_member(group_id, current_user, supabase)
    return MessageService(supabase).send_message(group_id, current_user.sub, message)
