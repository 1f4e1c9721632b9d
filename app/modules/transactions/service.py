import logging
import secrets
import string
import time
from supabase import Client
from app.modules.groups.service import GroupService
from app.modules.transactions.schemas import PaymentCreate, TransactionResponse
from app.modules.trust.service import TrustService
from datetime import datetime, timezone
from typing import List, Dict, Any
from fastapi import HTTPException

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _to_base36(number: int) -> str:
    digits = []
    while True:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
        if not number:
            return "".join(reversed(digits))


def generate_payment_reference() -> str:
    """ST + base-36 millisecond timestamp + 6 random base-36 characters"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ST{_to_base36(int(time.time() * 1000))}{suffix}"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TransactionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.groups = GroupService(supabase)
        self.trust = TrustService(supabase)

    def _fetch_transaction(self, transaction_id: str) -> Dict[str, Any]:
        result = self.supabase.table("transactions")\
            .select("*")\
            .eq("id", transaction_id)\
            .maybe_single()\
            .execute()
        transaction = result.data if result else None
        if not transaction:
            raise HTTPException(status_code=404, detail="Transaction not found")
        return transaction

    def create_payment(self, payment: PaymentCreate, user_id: str) -> TransactionResponse:
        """Open a pending payment of the group's per-person price for an approved member"""
        try:
            group = self.groups.fetch_group(payment.group_id)
            if group["status"] != "active":
                raise HTTPException(status_code=409, detail="Group is not active")

            member = self.groups.fetch_member(payment.group_id, user_id, ["approved"])
            if not member:
                raise HTTPException(status_code=403, detail="Only approved members can pay")
            if member["payment_status"] != "pending":
                raise HTTPException(status_code=400, detail="Membership is already paid")
            if self._open_payment(payment.group_id, user_id):
                raise HTTPException(status_code=400, detail="A payment for this group is already pending")

            result = self.supabase.table("transactions").insert({
                "group_id": payment.group_id,
                "user_id": user_id,
                "type": "payment",
                "amount": group["price_per_person"],
                "currency": group.get("currency") or "THB",
                "payment_method": payment.payment_method,
                "payment_reference": generate_payment_reference(),
                "status": "pending",
                "created_at": _utcnow_iso(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create payment")
            return TransactionResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def complete_payment(self, transaction_id: str) -> TransactionResponse:
        """Confirm a pending payment, mark the member paid and fund the escrow when enough have paid"""
        try:
            transaction = self._fetch_transaction(transaction_id)
            if transaction["type"] != "payment" or transaction["status"] != "pending":
                raise HTTPException(status_code=400, detail="Only pending payments can be completed")

            group_id = transaction["group_id"]
            user_id = transaction["user_id"]
            group = self.groups.fetch_group(group_id)
            if group["status"] != "active":
                raise HTTPException(status_code=409, detail="Group is not active")
            member = self.groups.fetch_member(group_id, user_id, ["approved"])
            if not member:
                raise HTTPException(status_code=409, detail="Payer is no longer an approved member")
            if member["payment_status"] != "pending":
                raise HTTPException(status_code=400, detail="Membership is already paid")

            result = self.supabase.table("transactions")\
                .update({"status": "completed", "completed_at": _utcnow_iso()})\
                .eq("id", transaction_id)\
                .eq("status", "pending")\
                .execute()
            if not result.data:
                raise HTTPException(status_code=409, detail="Transaction changed concurrently")

            self.supabase.table("group_members")\
                .update({"payment_status": "paid"})\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .eq("status", "approved")\
                .eq("payment_status", "pending")\
                .execute()

            self.trust.try_record_event(
                user_id, "payment_completed", reference_type="transaction", reference_id=transaction_id
            )
            self._fund_escrow_if_ready(group_id)
            return TransactionResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def cancel_payment(self, transaction_id: str, user_id: str) -> TransactionResponse:
        try:
            transaction = self._fetch_transaction(transaction_id)
            if transaction["user_id"] != user_id:
                raise HTTPException(status_code=403, detail="Not your transaction")

            result = self.supabase.table("transactions")\
                .update({"status": "cancelled"})\
                .eq("id", transaction_id)\
                .eq("status", "pending")\
                .execute()
            if not result.data:
                raise HTTPException(status_code=400, detail="Only pending transactions can be cancelled")
            return TransactionResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _open_payment(self, group_id: str, user_id: str) -> bool:
        result = self.supabase.table("transactions")\
            .select("id")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .eq("type", "payment")\
            .eq("status", "pending")\
            .execute()
        return bool(result.data)

    def _fund_escrow_if_ready(self, group_id: str) -> None:
        group = self.groups.fetch_group(group_id)
        if group["escrow_status"] != "pending":
            return
        paid = self.supabase.table("group_members")\
            .select("id")\
            .eq("group_id", group_id)\
            .eq("status", "approved")\
            .eq("payment_status", "paid")\
            .execute()
        if len(paid.data or []) >= group["min_members"]:
            self.groups.set_escrow_status(group_id, "funded")

    def refund_group(self, group_id: str) -> List[TransactionResponse]:
        """Cancel open payments, then write a completed refund for every paid member"""
        try:
            cancelled = self.supabase.table("transactions")\
                .update({"status": "cancelled"})\
                .eq("group_id", group_id)\
                .eq("type", "payment")\
                .eq("status", "pending")\
                .execute()
            if cancelled.data:
                logger.info(f"Cancelled {len(cancelled.data)} pending payment(s) of group {group_id}")

            paid_members = self.supabase.table("group_members")\
                .select("user_id")\
                .eq("group_id", group_id)\
                .eq("payment_status", "paid")\
                .execute()

            refunds = []
            for member in paid_members.data or []:
                user_id = member["user_id"]
                payments = self.supabase.table("transactions")\
                    .select("amount, currency")\
                    .eq("group_id", group_id)\
                    .eq("user_id", user_id)\
                    .eq("type", "payment")\
                    .eq("status", "completed")\
                    .execute()
                if not payments.data:
                    continue
                now = _utcnow_iso()
                result = self.supabase.table("transactions").insert({
                    "group_id": group_id,
                    "user_id": user_id,
                    "type": "refund",
                    "amount": sum(p["amount"] for p in payments.data),
                    "currency": payments.data[0].get("currency") or "THB",
                    "status": "completed",
                    "created_at": now,
                    "completed_at": now,
                }).execute()
                self.supabase.table("group_members")\
                    .update({"payment_status": "refunded"})\
                    .eq("group_id", group_id)\
                    .eq("user_id", user_id)\
                    .execute()
                if result.data:
                    refunds.append(TransactionResponse(**result.data[0]))

            logger.info(f"Refunded {len(refunds)} member(s) of group {group_id}")
            return refunds
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_user_transactions(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("transactions")\
                .select("*, sharing_groups(title)")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return result.data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
