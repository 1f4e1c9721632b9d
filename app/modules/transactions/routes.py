from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.core.dependencies import get_current_user, require_super_user
from app.modules.auth.tokens import SessionClaims
from app.modules.transactions.schemas import PaymentCreate, TransactionResponse
from app.modules.transactions.service import TransactionService
from supabase import Client
from typing import List

router = APIRouter(prefix="/transactions", tags=["transactions"])


def get_transaction_service(supabase: Client = Depends(get_service_supabase)) -> TransactionService:
    return TransactionService(supabase)


@router.post("/payments", response_model=TransactionResponse, status_code=201)
async def create_payment(
    payment: PaymentCreate,
    current_user: SessionClaims = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service)
):
    """Open a pending payment for the caller's seat in a group"""
    return service.create_payment(payment, current_user.sub)


@router.get("/me", response_model=List[dict])
async def list_my_transactions(
    limit: int = 50,
    offset: int = 0,
    current_user: SessionClaims = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service)
):
    return service.list_user_transactions(current_user.sub, limit=limit, offset=offset)


@router.post("/{transaction_id}/complete", response_model=TransactionResponse)
async def complete_payment(
    transaction_id: str,
    admin: SessionClaims = Depends(require_super_user),
    service: TransactionService = Depends(get_transaction_service)
):
    """Confirm that a payment was received (super user)"""
    return service.complete_payment(transaction_id)


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
async def cancel_payment(
    transaction_id: str,
    current_user: SessionClaims = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service)
):
    return service.cancel_payment(transaction_id, current_user.sub)


@router.post("/groups/{group_id}/refund", response_model=List[TransactionResponse])
async def refund_group(
    group_id: str,
    admin: SessionClaims = Depends(require_super_user),
    service: TransactionService = Depends(get_transaction_service)
):
    """Refund every paid member of a group (super user)"""
    return service.refund_group(group_id)
