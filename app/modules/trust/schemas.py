from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class TrustEventCreate(BaseModel):
    reason: str = Field(min_length=1)
    score_change: Optional[int] = None  # defaults to TRUST_EVENT_DELTAS[reason]
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None


class TrustEventResponse(BaseModel):
    id: str
    user_id: str
    event_type: str
    reason: str
    score_change: int
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TrustSummaryResponse(BaseModel):
    user_id: str
    trust_score: int
    trust_level: int
    level_name: str
    next_level_score: Optional[int] = None
    points_to_next_level: Optional[int] = None
