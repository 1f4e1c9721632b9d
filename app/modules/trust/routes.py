from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.core.dependencies import get_current_user, require_super_user
from app.modules.auth.tokens import SessionClaims
from app.modules.trust.schemas import TrustEventCreate, TrustEventResponse, TrustSummaryResponse
from app.modules.trust.service import TrustService
from supabase import Client
from typing import List

router = APIRouter(prefix="/trust", tags=["trust"])


def get_trust_service(supabase: Client = Depends(get_service_supabase)) -> TrustService:
    return TrustService(supabase)


@router.get("/{user_id}", response_model=TrustSummaryResponse)
async def get_trust_summary(
    user_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: TrustService = Depends(get_trust_service)
):
    """Score, level and distance to the next level"""
    return service.get_trust_summary(user_id)


@router.get("/{user_id}/events", response_model=List[TrustEventResponse])
async def list_trust_events(
    user_id: str,
    limit: int = 50,
    offset: int = 0,
    current_user: SessionClaims = Depends(get_current_user),
    service: TrustService = Depends(get_trust_service)
):
    return service.list_events(user_id, limit=limit, offset=offset)


@router.post("/{user_id}/events", response_model=TrustSummaryResponse, status_code=201)
async def record_trust_event(
    user_id: str,
    event: TrustEventCreate,
    admin: SessionClaims = Depends(require_super_user),
    service: TrustService = Depends(get_trust_service)
):
    """Manually apply a bonus or penalty (super user only)"""
    return service.record_event(
        user_id,
        event.reason,
        score_change=event.score_change,
        reference_type=event.reference_type,
        reference_id=event.reference_id,
    )


@router.post("/{user_id}/recompute", response_model=TrustSummaryResponse)
async def recompute_trust_score(
    user_id: str,
    admin: SessionClaims = Depends(require_super_user),
    service: TrustService = Depends(get_trust_service)
):
    """Rebuild trust_score from the trust_events ledger (super user only)"""
    return service.recompute_score(user_id)
