from pydantic import BaseModel
from typing import Optional, Dict, Any, Literal
from datetime import datetime


class PaymentCreate(BaseModel):
    group_id: str
    payment_method: Literal["promptpay", "stripe", "bank_transfer"] = "promptpay"


class TransactionResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    type: str
    amount: float
    currency: str = "THB"
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    status: str
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
