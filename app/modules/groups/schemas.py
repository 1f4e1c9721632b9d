from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime, timezone


class CategoryResponse(BaseModel):
    id: str
    name: str
    icon: str
    description: Optional[str] = None
    is_active: bool = True

    class Config:
        from_attributes = True


class GroupCreate(BaseModel):
    title: str
    description: str
    category_id: str
    price_per_person: float
    currency: str = "THB"
    billing_cycle: str = "monthly"
    min_members: int = 2
    max_members: int = 2
    expires_at: datetime
    line_group_url: Optional[str] = None
    subscription_details: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_group_rules(self):
        if not self.title.strip():
            raise ValueError("Title is required")
        if not self.description.strip():
            raise ValueError("Description is required")
        if self.price_per_person <= 0:
            raise ValueError("Price must be greater than 0")
        if self.min_members < 2:
            raise ValueError("Minimum 2 members required")
        if self.max_members < self.min_members:
            raise ValueError("Maximum members must be greater than minimum")
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= datetime.now(timezone.utc):
            raise ValueError("Expiration date must be in the future")
        self.expires_at = expires_at
        return self


class GroupResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    category_id: str
    creator_id: str
    min_members: int = 2
    max_members: int
    current_members: int
    price_per_person: float
    currency: str = "THB"
    billing_cycle: str = "monthly"
    status: str
    escrow_status: str
    line_group_url: Optional[str] = None
    subscription_details: Optional[Dict[str, Any]] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    status: str
    payment_status: str
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupDetailResponse(GroupResponse):
    members: List[GroupMemberResponse] = Field(default_factory=list)


class GroupStatusUpdate(BaseModel):
    status: Literal["completed", "cancelled"]
