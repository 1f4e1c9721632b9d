from pydantic import BaseModel
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime


class VerificationCreate(BaseModel):
    type: Literal["phone", "id_card", "promptpay", "email"]
    data: Dict[str, Any]
    documents: Optional[List[str]] = None


class VerificationReview(BaseModel):
    approve: bool


class VerificationResponse(BaseModel):
    id: str
    user_id: str
    type: str
    data: Dict[str, Any]
    status: str
    verified_by: Optional[str] = None
    documents: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None

    class Config:
        from_attributes = True
