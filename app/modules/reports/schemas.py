from pydantic import BaseModel, Field, model_validator
from typing import Optional, Literal
from datetime import datetime


class ReportCreate(BaseModel):
    reported_user_id: Optional[str] = None
    reported_group_id: Optional[str] = None
    reason: str = Field(..., min_length=1)
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_single_target(self):
        if bool(self.reported_user_id) == bool(self.reported_group_id):
            raise ValueError("Report exactly one of reported_user_id or reported_group_id")
        return self


class ReportResolve(BaseModel):
    status: Literal["under_review", "resolved", "dismissed"]
    admin_notes: Optional[str] = None


class ReportResponse(BaseModel):
    id: str
    reporter_id: str
    reported_user_id: Optional[str] = None
    reported_group_id: Optional[str] = None
    reason: str
    description: Optional[str] = None
    status: str
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True
