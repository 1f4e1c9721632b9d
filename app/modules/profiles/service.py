from supabase import Client
from app.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, ProfileGroupResponse
)
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from fastapi import HTTPException

PROFILE_DETAILS_SELECT = """
    *,
    trust_events(count),
    group_members(
        id,
        status,
        sharing_groups(
            id,
            title,
            category_id,
            categories(name, icon)
        )
    )
"""


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def find_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Return the raw profile row or None"""
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def find_by_line_user_id(self, line_user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("profiles")\
            .select("id")\
            .eq("line_user_id", line_user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def get_profile(self, user_id: str) -> ProfileResponse:
        """Get profile by ID"""
        try:
            profile = self.find_profile(user_id)
            if not profile:
                raise HTTPException(status_code=404, detail="Profile not found")
            return ProfileResponse(**profile)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_profile_details(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Profile with trust event count and group memberships embedded"""
        result = self.supabase.table("profiles")\
            .select(PROFILE_DETAILS_SELECT)\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update the editable contact fields of a profile"""
        try:
            update_data = profile_data.model_dump(exclude_none=True)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_user_groups(self, user_id: str) -> List[ProfileGroupResponse]:
        """Get all sharing groups a user has a membership row in"""
        try:
            result = self.supabase.table("group_members")\
                .select("id, group_id, status, payment_status, joined_at, sharing_groups(title, status)")\
                .eq("user_id", user_id)\
                .order("joined_at", desc=True)\
                .execute()

            groups = []
            for item in result.data or []:
                group = item.get("sharing_groups") or {}
                groups.append(ProfileGroupResponse(
                    membership_id=item["id"],
                    group_id=item["group_id"],
                    title=group.get("title"),
                    status=item["status"],
                    payment_status=item["payment_status"],
                    group_status=group.get("status"),
                    joined_at=item.get("joined_at"),
                ))
            return groups
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
