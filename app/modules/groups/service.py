import logging
from supabase import Client
from pydantic import TypeAdapter
from app.modules.groups.schemas import (
    CategoryResponse, GroupCreate, GroupResponse, GroupDetailResponse, GroupMemberResponse
)
from app.modules.trust.service import TrustService
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from fastapi import HTTPException

logger = logging.getLogger(__name__)

GROUP_STATUS_TRANSITIONS = {
    "active": {"completed", "cancelled", "expired"},
}
ESCROW_TRANSITIONS = {
    "pending": {"funded", "refunded"},
    "funded": {"released", "refunded"},
}
OPEN_MEMBER_STATUSES = ["pending", "approved"]
MEMBER_COUNT_CAS_RETRIES = 3

GROUP_LIST_SELECT = """
    *,
    creator:profiles(display_name, avatar_url, trust_score),
    category:categories(name, icon)
"""

_timestamp = TypeAdapter(datetime)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_past(value: Any) -> bool:
    """True if a timestamp column value lies in the past. Naive values are taken as UTC."""
    if not value:
        return False
    moment = _timestamp.validate_python(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment <= _utcnow()


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.trust = TrustService(supabase)

    def list_categories(self) -> List[CategoryResponse]:
        try:
            result = self.supabase.table("categories")\
                .select("*")\
                .eq("is_active", True)\
                .order("name")\
                .execute()
            return [CategoryResponse(**category) for category in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def fetch_group(self, group_id: str) -> Dict[str, Any]:
        result = self.supabase.table("sharing_groups")\
            .select("*")\
            .eq("id", group_id)\
            .maybe_single()\
            .execute()
        group = result.data if result else None
        if not group:
            raise HTTPException(status_code=404, detail="Group not found")
        return group

    def fetch_member(self, group_id: str, user_id: str, statuses: List[str]) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("group_members")\
            .select("*")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .in_("status", statuses)\
            .execute()
        return result.data[0] if result.data else None

    def create_group(self, group_data: GroupCreate, creator_id: str) -> GroupResponse:
        """Create a sharing group; the creator becomes its first approved member"""
        try:
            now = _utcnow().isoformat()
            row = group_data.model_dump(mode="json")
            row.update({
                "creator_id": creator_id,
                "current_members": 1,
                "status": "active",
                "escrow_status": "pending",
                "created_at": now,
                "updated_at": now,
            })
            result = self.supabase.table("sharing_groups").insert(row).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")
            group = result.data[0]

            # Add creator as first member
            self.supabase.table("group_members").insert({
                "group_id": group["id"],
                "user_id": creator_id,
                "status": "approved",
                "payment_status": "pending",
                "joined_at": now,
            }).execute()

            self.trust.try_record_event(
                creator_id, "group_created", reference_type="group", reference_id=group["id"]
            )
            logger.info(f"Group {group['id']} created by {creator_id}")
            return GroupResponse(**group)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_groups(
        self,
        category_id: Optional[str] = None,
        status: str = "active",
        limit: int = 20,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """Browse groups, newest first, with creator and category embedded"""
        try:
            query = self.supabase.table("sharing_groups")\
                .select(GROUP_LIST_SELECT)\
                .eq("status", status)
            if category_id:
                query = query.eq("category_id", category_id)
            result = query.order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return result.data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group(self, group_id: str) -> GroupDetailResponse:
        """Get group with its member rows"""
        try:
            group = self.fetch_group(group_id)
            members = self.list_members(group_id)
            return GroupDetailResponse(**group, members=members)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        try:
            result = self.supabase.table("group_members")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("joined_at")\
                .execute()
            return [GroupMemberResponse(**member) for member in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _ensure_open(self, group: Dict[str, Any]) -> None:
        if group["status"] != "active":
            raise HTTPException(status_code=409, detail="Group is not accepting members")
        if is_past(group.get("expires_at")):
            raise HTTPException(status_code=409, detail="Group has expired")
        if group["current_members"] >= group["max_members"]:
            raise HTTPException(status_code=409, detail="Group is full")

    def _change_member_count(self, group_id: str, delta: int) -> Dict[str, Any]:
        """Move current_members by delta with a compare-and-swap on the observed value.

        Increments also require the group to be open and below max_members at
        write time, so concurrent approvals can never overfill a group.
        """
        for _ in range(MEMBER_COUNT_CAS_RETRIES):
            group = self.fetch_group(group_id)
            current = group["current_members"]
            if delta > 0:
                self._ensure_open(group)
            new_count = current + delta
            if new_count < 0 or new_count > group["max_members"]:
                raise HTTPException(status_code=409, detail="Member count out of range")

            query = self.supabase.table("sharing_groups")\
                .update({"current_members": new_count, "updated_at": _utcnow().isoformat()})\
                .eq("id", group_id)\
                .eq("current_members", current)
            if delta > 0:
                query = query.eq("status", "active")
            result = query.execute()
            if result.data:
                return result.data[0]
            logger.info(f"Member count of group {group_id} changed concurrently, retrying")

        raise HTTPException(status_code=409, detail="Group membership changed concurrently, try again")

    def request_join(self, group_id: str, user_id: str) -> GroupMemberResponse:
        """Create a pending join request if the group is open and has room"""
        try:
            group = self.fetch_group(group_id)
            self._ensure_open(group)

            if self.fetch_member(group_id, user_id, OPEN_MEMBER_STATUSES):
                raise HTTPException(status_code=400, detail="Already a member or join request pending")

            result = self.supabase.table("group_members").insert({
                "group_id": group_id,
                "user_id": user_id,
                "status": "pending",
                "payment_status": "pending",
                "joined_at": _utcnow().isoformat(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create join request")
            return GroupMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def approve_member(self, group_id: str, user_id: str) -> GroupMemberResponse:
        """Approve a pending request, taking a seat only if one is free"""
        try:
            member = self.fetch_member(group_id, user_id, ["pending"])
            if not member:
                raise HTTPException(status_code=404, detail="No pending join request")

            self._change_member_count(group_id, 1)

            result = self.supabase.table("group_members")\
                .update({"status": "approved"})\
                .eq("id", member["id"])\
                .eq("status", "pending")\
                .execute()
            if not result.data:
                # Request was withdrawn or handled meanwhile; give the seat back
                self._change_member_count(group_id, -1)
                raise HTTPException(status_code=409, detail="Join request is no longer pending")

            self.trust.try_record_event(
                user_id, "group_joined", reference_type="group", reference_id=group_id
            )
            return GroupMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def reject_member(self, group_id: str, user_id: str) -> GroupMemberResponse:
        try:
            result = self.supabase.table("group_members")\
                .update({"status": "rejected"})\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .eq("status", "pending")\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="No pending join request")
            return GroupMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def leave_group(self, group_id: str, user_id: str) -> GroupMemberResponse:
        """Withdraw a pending request or leave as an approved member"""
        try:
            group = self.fetch_group(group_id)
            if group["creator_id"] == user_id:
                raise HTTPException(status_code=400, detail="The creator cannot leave; cancel the group instead")

            member = self.fetch_member(group_id, user_id, OPEN_MEMBER_STATUSES)
            if not member:
                raise HTTPException(status_code=404, detail="Not a member of this group")

            result = self.supabase.table("group_members")\
                .update({"status": "left"})\
                .eq("id", member["id"])\
                .eq("status", member["status"])\
                .execute()
            if not result.data:
                raise HTTPException(status_code=409, detail="Membership changed concurrently, try again")

            if member["status"] == "approved":
                self._change_member_count(group_id, -1)
            return GroupMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_escrow_status(self, group_id: str, new_status: str) -> GroupResponse:
        """Move escrow_status along ESCROW_TRANSITIONS, conditional on the current value"""
        try:
            group = self.fetch_group(group_id)
            current = group["escrow_status"]
            if new_status not in ESCROW_TRANSITIONS.get(current, set()):
                raise HTTPException(
                    status_code=400,
                    detail=f"Escrow cannot move from {current} to {new_status}"
                )
            result = self.supabase.table("sharing_groups")\
                .update({"escrow_status": new_status, "updated_at": _utcnow().isoformat()})\
                .eq("id", group_id)\
                .eq("escrow_status", current)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=409, detail="Escrow status changed concurrently")
            logger.info(f"Escrow of group {group_id}: {current} -> {new_status}")
            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_status(self, group_id: str, new_status: str) -> GroupResponse:
        """Complete or cancel an active group.

        Completing releases a funded escrow and rewards approved members;
        cancelling marks the escrow refunded (refund rows are written by
        TransactionService.refund_group).
        """
        try:
            group = self.fetch_group(group_id)
            current = group["status"]
            if new_status not in GROUP_STATUS_TRANSITIONS.get(current, set()):
                raise HTTPException(
                    status_code=400,
                    detail=f"Group cannot move from {current} to {new_status}"
                )
            result = self.supabase.table("sharing_groups")\
                .update({"status": new_status, "updated_at": _utcnow().isoformat()})\
                .eq("id", group_id)\
                .eq("status", current)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=409, detail="Group status changed concurrently")
            updated = GroupResponse(**result.data[0])

            if new_status == "completed":
                if group["escrow_status"] == "funded":
                    updated = self.set_escrow_status(group_id, "released")
                for member in self.list_members(group_id):
                    if member.status == "approved":
                        self.trust.try_record_event(
                            member.user_id, "group_completed", reference_type="group", reference_id=group_id
                        )
            elif group["escrow_status"] in ESCROW_TRANSITIONS:
                updated = self.set_escrow_status(group_id, "refunded")

            logger.info(f"Group {group_id}: {current} -> {new_status}")
            return updated
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def expire_overdue_groups(self) -> List[GroupResponse]:
        """Mark active groups whose expires_at has passed as expired"""
        try:
            now = _utcnow().isoformat()
            result = self.supabase.table("sharing_groups")\
                .update({"status": "expired", "updated_at": now})\
                .eq("status", "active")\
                .lt("expires_at", now)\
                .execute()
            return [GroupResponse(**group) for group in result.data or []]
        except Exception as e:
            logger.error(f"Error expiring overdue groups: {str(e)}")
            return []
