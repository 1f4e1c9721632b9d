import logging
from supabase import Client
from app.modules.verifications.schemas import VerificationCreate, VerificationResponse
from app.modules.trust.service import TrustService
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

# Trust event recorded when a verification of each type is approved
VERIFICATION_TRUST_REASONS = {
    "phone": "phone_verified",
    "id_card": "id_verified",
    "promptpay": "promptpay_verified",
    "email": "email_verified",
}


class VerificationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.trust = TrustService(supabase)

    def submit(self, user_id: str, verification: VerificationCreate) -> VerificationResponse:
        """Submit a verification request; only one pending request per type"""
        try:
            pending = self.supabase.table("verifications")\
                .select("id")\
                .eq("user_id", user_id)\
                .eq("type", verification.type)\
                .eq("status", "pending")\
                .execute()
            if pending.data:
                raise HTTPException(status_code=400, detail="A verification of this type is already pending")

            result = self.supabase.table("verifications").insert({
                "user_id": user_id,
                "type": verification.type,
                "data": verification.data,
                "documents": verification.documents,
                "status": "pending",
                "created_at": datetime.now(timezone.utc).isoformat(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to submit verification")
            return VerificationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_verifications(self, user_id: Optional[str] = None, status: Optional[str] = None) -> List[VerificationResponse]:
        try:
            query = self.supabase.table("verifications").select("*")
            if user_id:
                query = query.eq("user_id", user_id)
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True).execute()
            return [VerificationResponse(**v) for v in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def review(self, verification_id: str, approve: bool, reviewer_id: str) -> VerificationResponse:
        """Approve or reject a pending verification; approval marks the profile verified"""
        try:
            now = datetime.now(timezone.utc).isoformat()
            result = self.supabase.table("verifications")\
                .update({
                    "status": "approved" if approve else "rejected",
                    "verified_by": reviewer_id,
                    "verified_at": now,
                })\
                .eq("id", verification_id)\
                .eq("status", "pending")\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="No pending verification with this id")
            verification = VerificationResponse(**result.data[0])

            if approve:
                self.supabase.table("profiles")\
                    .update({"is_verified": True, "updated_at": now})\
                    .eq("id", verification.user_id)\
                    .execute()
                self.trust.try_record_event(
                    verification.user_id,
                    VERIFICATION_TRUST_REASONS[verification.type],
                    reference_type="verification",
                    reference_id=verification.id,
                )
            logger.info(f"Verification {verification_id} {verification.status} by {reviewer_id}")
            return verification
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
