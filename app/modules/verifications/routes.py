from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.core.dependencies import get_current_user, require_super_user
from app.modules.auth.tokens import SessionClaims
from app.modules.verifications.schemas import (
    VerificationCreate, VerificationReview, VerificationResponse
)
from app.modules.verifications.service import VerificationService
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/verifications", tags=["verifications"])


def get_verification_service(supabase: Client = Depends(get_service_supabase)) -> VerificationService:
    return VerificationService(supabase)


@router.post("", response_model=VerificationResponse, status_code=201)
async def submit_verification(
    verification: VerificationCreate,
    current_user: SessionClaims = Depends(get_current_user),
    service: VerificationService = Depends(get_verification_service)
):
    return service.submit(current_user.sub, verification)


@router.get("/me", response_model=List[VerificationResponse])
async def list_my_verifications(
    current_user: SessionClaims = Depends(get_current_user),
    service: VerificationService = Depends(get_verification_service)
):
    return service.list_verifications(user_id=current_user.sub)


@router.get("", response_model=List[VerificationResponse])
async def list_verifications(
    status: Optional[str] = "pending",
    admin: SessionClaims = Depends(require_super_user),
    service: VerificationService = Depends(get_verification_service)
):
    """Review queue (super user)"""
    return service.list_verifications(status=status)


@router.post("/{verification_id}/review", response_model=VerificationResponse)
async def review_verification(
    verification_id: str,
    review: VerificationReview,
    admin: SessionClaims = Depends(require_super_user),
    service: VerificationService = Depends(get_verification_service)
):
    return service.review(verification_id, review.approve, admin.sub)
