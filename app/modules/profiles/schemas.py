from pydantic import BaseModel, EmailStr
from typing import Optional, List, Dict, Any
from datetime import datetime


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    line_user_id: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    trust_level: int = 1
    trust_score: int = 0
    is_verified: bool = False
    verification_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicProfileResponse(BaseModel):
    """What other marketplace users may see of a profile."""
    id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    trust_level: int = 1
    trust_score: int = 0
    is_verified: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileGroupResponse(BaseModel):
    membership_id: str
    group_id: str
    title: Optional[str] = None
    status: str
    payment_status: str
    group_status: Optional[str] = None
    joined_at: Optional[datetime] = None


class ProfileGroupsResponse(BaseModel):
    user_id: str
    groups: List[ProfileGroupResponse]
