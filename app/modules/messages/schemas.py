from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    message_type: Literal["text", "image", "file"] = "text"


class MessageResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    content: str
    message_type: str = "text"
    is_flagged: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
