import logging
from supabase import Client
from app.modules.messages.schemas import MessageCreate, MessageResponse
from datetime import datetime, timezone
from typing import List
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_messages(self, group_id: str, limit: int = 50) -> List[MessageResponse]:
        """Most recent messages first"""
        try:
            result = self.supabase.table("messages")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
            return [MessageResponse(**m) for m in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def send_message(self, group_id: str, user_id: str, message: MessageCreate) -> MessageResponse:
        try:
            result = self.supabase.table("messages").insert({
                "group_id": group_id,
                "user_id": user_id,
                "content": message.content,
                "message_type": message.message_type,
                "is_flagged": False,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send message")
            return MessageResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
