"""
Tests for sharing groups and membership
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from app.modules.groups.schemas import GroupCreate
from app.modules.groups.service import GroupService
from tests.fakes import auth_headers, future, seed_group


def group_form(**overrides):
    data = {
        "title": "Spotify Family",
        "description": "6 accounts",
        "category_id": "cat-1",
        "price_per_person": 40,
        "min_members": 2,
        "max_members": 6,
        "expires_at": future(),
    }
    data.update(overrides)
    return data


class TestGroupCreate:
    def test_valid_form(self):
        group = GroupCreate(**group_form())
        assert group.expires_at.tzinfo is not None

    @pytest.mark.parametrize("overrides", [
        {"title": "   "},
        {"description": ""},
        {"price_per_person": 0},
        {"min_members": 1},
        {"min_members": 4, "max_members": 3},
        {"expires_at": (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()},
    ])
    def test_invalid_form(self, overrides):
        with pytest.raises(ValidationError):
            GroupCreate(**group_form(**overrides))

    def test_create_group_adds_creator_as_member(self, supabase, creator):
        service = GroupService(supabase)

        group = service.create_group(GroupCreate(**group_form()), creator["id"])

        assert group.current_members == 1
        assert group.status == "active"
        assert group.escrow_status == "pending"
        members = supabase.rows("group_members")
        assert [(m["user_id"], m["status"]) for m in members] == [(creator["id"], "approved")]
        assert supabase.profile(creator["id"])["trust_score"] == 2


class TestMembership:
    def test_request_join_creates_pending_member(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])

        joined = GroupService(supabase).request_join(group["id"], member["id"])

        assert joined.status == "pending"

    def test_duplicate_join_request(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        service = GroupService(supabase)
        service.request_join(group["id"], member["id"])

        with pytest.raises(HTTPException) as exc:
            service.request_join(group["id"], member["id"])
        assert exc.value.status_code == 400

    def test_full_group_rejects_join(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"], current_members=3)

        with pytest.raises(HTTPException) as exc:
            GroupService(supabase).request_join(group["id"], member["id"])
        assert exc.value.status_code == 409
        assert exc.value.detail == "Group is full"

    def test_expired_group_rejects_join(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"], expires_at=future(days=-1))

        with pytest.raises(HTTPException) as exc:
            GroupService(supabase).request_join(group["id"], member["id"])
        assert exc.value.detail == "Group has expired"

    def test_unknown_group(self, supabase, member):
        with pytest.raises(HTTPException) as exc:
            GroupService(supabase).request_join("missing", member["id"])
        assert exc.value.status_code == 404

    def test_approve_takes_a_seat(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        service = GroupService(supabase)
        service.request_join(group["id"], member["id"])

        approved = service.approve_member(group["id"], member["id"])

        assert approved.status == "approved"
        assert service.fetch_group(group["id"])["current_members"] == 2
        assert supabase.profile(member["id"])["trust_score"] == 2

    def test_approve_never_overfills(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"], max_members=2)
        service = GroupService(supabase)
        service.request_join(group["id"], member["id"])
        other = supabase.seed_user(display_name="Other")
        service.request_join(group["id"], other["id"])

        service.approve_member(group["id"], member["id"])
        with pytest.raises(HTTPException) as exc:
            service.approve_member(group["id"], other["id"])

        assert exc.value.status_code == 409
        assert service.fetch_group(group["id"])["current_members"] == 2
        assert service.fetch_member(group["id"], other["id"], ["pending"]) is not None

    def test_member_count_retries_after_concurrent_change(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"], max_members=5)
        service = GroupService(supabase)
        service.request_join(group["id"], member["id"])
        read_group = service.fetch_group
        bumped = []

        def racing_fetch(group_id):
            observed = read_group(group_id)
            if not bumped:
                # another approval lands between our read and our write
                supabase.rows("sharing_groups")[0]["current_members"] += 1
                bumped.append(True)
            return observed

        service.fetch_group = racing_fetch
        service.approve_member(group["id"], member["id"])

        assert supabase.rows("sharing_groups")[0]["current_members"] == 3

    def test_member_count_gives_up_after_retries(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"], max_members=10)
        service = GroupService(supabase)
        service.request_join(group["id"], member["id"])
        read_group = service.fetch_group

        def always_racing(group_id):
            observed = read_group(group_id)
            supabase.rows("sharing_groups")[0]["current_members"] += 1
            return observed

        service.fetch_group = always_racing
        with pytest.raises(HTTPException) as exc:
            service.approve_member(group["id"], member["id"])

        assert exc.value.status_code == 409
        assert service.fetch_member(group["id"], member["id"], ["pending"]) is not None

    def test_reject_member(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        service = GroupService(supabase)
        service.request_join(group["id"], member["id"])

        assert service.reject_member(group["id"], member["id"]).status == "rejected"
        with pytest.raises(HTTPException):
            service.reject_member(group["id"], member["id"])

    def test_leave_frees_the_seat(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        service = GroupService(supabase)
        service.request_join(group["id"], member["id"])
        service.approve_member(group["id"], member["id"])

        left = service.leave_group(group["id"], member["id"])

        assert left.status == "left"
        assert service.fetch_group(group["id"])["current_members"] == 1

    def test_creator_cannot_leave(self, supabase, creator):
        group = seed_group(supabase, creator["id"])

        with pytest.raises(HTTPException) as exc:
            GroupService(supabase).leave_group(group["id"], creator["id"])
        assert exc.value.status_code == 400


class TestGroupLifecycle:
    def test_complete_releases_funded_escrow(self, supabase, creator):
        group = seed_group(supabase, creator["id"], escrow_status="funded")

        updated = GroupService(supabase).update_status(group["id"], "completed")

        assert updated.status == "completed"
        assert updated.escrow_status == "released"
        assert supabase.profile(creator["id"])["trust_score"] == 10

    def test_cancel_marks_escrow_refunded(self, supabase, creator):
        group = seed_group(supabase, creator["id"])

        updated = GroupService(supabase).update_status(group["id"], "cancelled")

        assert updated.status == "cancelled"
        assert updated.escrow_status == "refunded"

    def test_finished_group_cannot_change(self, supabase, creator):
        group = seed_group(supabase, creator["id"], status="completed")

        with pytest.raises(HTTPException) as exc:
            GroupService(supabase).update_status(group["id"], "cancelled")
        assert exc.value.status_code == 400

    def test_escrow_transitions(self, supabase, creator):
        group = seed_group(supabase, creator["id"])
        service = GroupService(supabase)

        with pytest.raises(HTTPException):
            service.set_escrow_status(group["id"], "released")
        assert service.set_escrow_status(group["id"], "funded").escrow_status == "funded"

    def test_expire_overdue_groups(self, supabase, creator):
        overdue = seed_group(supabase, creator["id"], expires_at=future(days=-1))
        current = seed_group(supabase, creator["id"])

        expired = GroupService(supabase).expire_overdue_groups()

        assert [g.id for g in expired] == [overdue["id"]]
        assert GroupService(supabase).fetch_group(current["id"])["status"] == "active"


class TestGroupRoutes:
    def test_join_and_approve(self, client, supabase, creator, member):
        group = seed_group(supabase, creator["id"])

        joined = client.post(f"/api/v1/groups/{group['id']}/join", headers=auth_headers(member["id"]))
        assert joined.status_code == 201

        forbidden = client.post(
            f"/api/v1/groups/{group['id']}/members/{member['id']}/approve",
            headers=auth_headers(member["id"]),
        )
        assert forbidden.status_code == 403

        approved = client.post(
            f"/api/v1/groups/{group['id']}/members/{member['id']}/approve",
            headers=auth_headers(creator["id"]),
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"

    def test_create_group_requires_session(self, client):
        response = client.post("/api/v1/groups", json=group_form())

        assert response.status_code == 401

    def test_get_group_with_members(self, client, supabase, creator):
        group = seed_group(supabase, creator["id"])

        response = client.get(f"/api/v1/groups/{group['id']}", headers=auth_headers(creator["id"]))

        body = response.json()
        assert body["current_members"] == 1
        assert body["members"][0]["user_id"] == creator["id"]
