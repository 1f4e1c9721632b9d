from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Dict, Any


class LineLoginRequest(BaseModel):
    code: str = Field(min_length=1)
    state: str = Field(min_length=1)
    code_verifier: Optional[str] = None


class LineProfile(BaseModel):
    """Profile returned by LINE's /v2/profile endpoint."""
    user_id: str = Field(alias="userId", min_length=1)
    display_name: str = Field(alias="displayName")
    picture_url: Optional[str] = Field(default=None, alias="pictureUrl")
    status_message: Optional[str] = Field(default=None, alias="statusMessage")

    class Config:
        populate_by_name = True


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class AuthEnvelope(BaseModel):
    """Uniform body of every /auth response; failures are reported here, not via HTTP status."""
    status: str
    message: str
    data: Optional[Any] = None
    error: Optional[Dict[str, Any]] = None
