import logging
from supabase import Client
from app.modules.trust.schemas import TrustEventResponse, TrustSummaryResponse
from typing import Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

TRUST_LEVEL_STEP = 20
MAX_TRUST_LEVEL = 5
TRUST_LEVEL_NAMES = [
    "New User",
    "Basic Trust",
    "Established",
    "Trusted",
    "Highly Trusted",
]

# Default score change per reason; callers may pass an explicit delta instead.
TRUST_EVENT_DELTAS: Dict[str, int] = {
    "profile_created": 0,
    "phone_verified": 10,
    "id_verified": 20,
    "promptpay_verified": 10,
    "email_verified": 5,
    "payment_completed": 5,
    "group_created": 2,
    "group_joined": 2,
    "group_completed": 10,
    "violation_reported": -15,
    "penalty_applied": -25,
}


def trust_level_for_score(score: int) -> int:
    """Level 1 covers scores below 20, each further 20 points adds a level, capped at 5."""
    return min(max(score, 0) // TRUST_LEVEL_STEP + 1, MAX_TRUST_LEVEL)


def trust_level_name(level: int) -> str:
    return TRUST_LEVEL_NAMES[min(max(level, 1), MAX_TRUST_LEVEL) - 1]


def classify_score_change(score_change: int) -> str:
    if score_change > 0:
        return "positive"
    if score_change < 0:
        return "negative"
    return "neutral"


def build_summary(user_id: str, score: int) -> TrustSummaryResponse:
    level = trust_level_for_score(score)
    next_level_score = None
    points_to_next = None
    if level < MAX_TRUST_LEVEL:
        next_level_score = level * TRUST_LEVEL_STEP
        points_to_next = next_level_score - max(score, 0)
    return TrustSummaryResponse(
        user_id=user_id,
        trust_score=score,
        trust_level=level,
        level_name=trust_level_name(level),
        next_level_score=next_level_score,
        points_to_next_level=points_to_next,
    )


class TrustService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def record_event(
        self,
        user_id: str,
        reason: str,
        score_change: Optional[int] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> TrustSummaryResponse:
        """Append a ledger entry and move the profile score in the same database transaction."""
        if score_change is None:
            if reason not in TRUST_EVENT_DELTAS:
                raise HTTPException(status_code=400, detail=f"Unknown trust event reason: {reason}")
            score_change = TRUST_EVENT_DELTAS[reason]
        try:
            result = self.supabase.rpc("apply_trust_event", {
                "p_user_id": user_id,
                "p_event_type": classify_score_change(score_change),
                "p_reason": reason,
                "p_score_change": score_change,
                "p_reference_type": reference_type,
                "p_reference_id": reference_id,
            }).execute()
        except Exception as e:
            logger.error(f"Failed to apply trust event {reason} for {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        row = result.data[0] if isinstance(result.data, list) else result.data
        if not row:
            raise HTTPException(status_code=404, detail="Profile not found")
        logger.info(f"Trust event {reason} ({score_change:+d}) for {user_id}, score now {row['trust_score']}")
        return build_summary(user_id, row["trust_score"])

    def try_record_event(self, user_id: str, reason: str, **kwargs) -> Optional[TrustSummaryResponse]:
        """record_event for side effects of other actions; a failure is logged, not raised."""
        try:
            return self.record_event(user_id, reason, **kwargs)
        except HTTPException as e:
            logger.warning(f"Trust event {reason} for {user_id} not recorded: {e.detail}")
            return None

    def get_trust_summary(self, user_id: str) -> TrustSummaryResponse:
        try:
            result = self.supabase.table("profiles")\
                .select("id, trust_score")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
            profile = result.data if result else None
            if not profile:
                raise HTTPException(status_code=404, detail="Profile not found")
            return build_summary(user_id, profile.get("trust_score") or 0)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_events(self, user_id: str, limit: int = 50, offset: int = 0) -> List[TrustEventResponse]:
        try:
            result = self.supabase.table("trust_events")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [TrustEventResponse(**event) for event in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def recompute_score(self, user_id: str) -> TrustSummaryResponse:
        """Rebuild the profile's score from the ledger, discarding any drift"""
        try:
            result = self.supabase.rpc("recompute_trust_score", {"p_user_id": user_id}).execute()
            row = result.data[0] if isinstance(result.data, list) and result.data else result.data
            if not row:
                raise HTTPException(status_code=404, detail="Profile not found")

            logger.info(f"Recomputed trust score for {user_id}: {row['trust_score']}")
            return build_summary(user_id, row["trust_score"])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
