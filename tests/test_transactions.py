"""
Tests for payments, escrow funding and refunds
"""

import pytest
from fastapi import HTTPException

from app.modules.groups.service import GroupService
from app.modules.transactions.schemas import PaymentCreate
from app.modules.transactions.service import TransactionService, generate_payment_reference
from tests.fakes import add_member, auth_headers, seed_group

SUPER_USER = {"type": "super_user"}


def pay(service, group, user_id):
    payment = service.create_payment(PaymentCreate(group_id=group["id"]), user_id)
    return service.complete_payment(payment.id)


def test_payment_reference_format():
    reference = generate_payment_reference()

    assert reference.startswith("ST")
    assert reference == reference.upper()
    assert reference.isalnum()
    assert generate_payment_reference() != reference


class TestPayments:
    def test_create_payment_for_approved_member(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])

        payment = TransactionService(supabase).create_payment(
            PaymentCreate(group_id=group["id"], payment_method="promptpay"), member["id"]
        )

        assert payment.status == "pending"
        assert payment.type == "payment"
        assert payment.amount == 105.0
        assert payment.currency == "THB"
        assert payment.payment_reference.startswith("ST")

    def test_pending_member_cannot_pay(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"], status="pending")

        with pytest.raises(HTTPException) as exc:
            TransactionService(supabase).create_payment(PaymentCreate(group_id=group["id"]), member["id"])
        assert exc.value.status_code == 403

    def test_paid_member_cannot_pay_twice(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)
        pay(service, group, member["id"])

        with pytest.raises(HTTPException) as exc:
            service.create_payment(PaymentCreate(group_id=group["id"]), member["id"])
        assert exc.value.status_code == 400

    def test_second_pending_payment_is_rejected(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)
        service.create_payment(PaymentCreate(group_id=group["id"]), member["id"])

        with pytest.raises(HTTPException) as exc:
            service.create_payment(PaymentCreate(group_id=group["id"]), member["id"])
        assert exc.value.status_code == 400
        assert len(supabase.rows("transactions")) == 1

    def test_member_is_charged_once_per_seat(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)
        first = service.create_payment(PaymentCreate(group_id=group["id"]), member["id"])
        duplicate = supabase.seed(
            "transactions", group_id=group["id"], user_id=member["id"], type="payment",
            amount=105.0, currency="THB", status="pending",
        )
        service.complete_payment(first.id)

        with pytest.raises(HTTPException) as exc:
            service.complete_payment(duplicate["id"])
        assert exc.value.status_code == 400
        completed = [t for t in supabase.rows("transactions") if t["status"] == "completed"]
        assert [t["id"] for t in completed] == [first.id]

    def test_complete_payment_marks_member_paid(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])

        completed = pay(TransactionService(supabase), group, member["id"])

        assert completed.status == "completed"
        assert completed.completed_at is not None
        paid = GroupService(supabase).fetch_member(group["id"], member["id"], ["approved"])
        assert paid["payment_status"] == "paid"
        assert supabase.profile(member["id"])["trust_score"] == 5

    def test_completed_payment_cannot_complete_again(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)
        completed = pay(service, group, member["id"])

        with pytest.raises(HTTPException) as exc:
            service.complete_payment(completed.id)
        assert exc.value.status_code == 400

    def test_escrow_funded_once_minimum_members_paid(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)

        pay(service, group, creator["id"])
        assert service.groups.fetch_group(group["id"])["escrow_status"] == "pending"

        pay(service, group, member["id"])
        assert service.groups.fetch_group(group["id"])["escrow_status"] == "funded"

    def test_cancel_only_own_pending_payment(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)
        payment = service.create_payment(PaymentCreate(group_id=group["id"]), member["id"])

        with pytest.raises(HTTPException) as exc:
            service.cancel_payment(payment.id, creator["id"])
        assert exc.value.status_code == 403

        assert service.cancel_payment(payment.id, member["id"]).status == "cancelled"
        with pytest.raises(HTTPException):
            service.cancel_payment(payment.id, member["id"])


class TestRefunds:
    def test_refund_group_pays_back_paid_members(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)
        pay(service, group, member["id"])

        refunds = service.refund_group(group["id"])

        assert [(r.user_id, r.type, r.amount, r.status) for r in refunds] == [
            (member["id"], "refund", 105.0, "completed")
        ]
        refunded = service.groups.fetch_member(group["id"], member["id"], ["approved"])
        assert refunded["payment_status"] == "refunded"

    def test_cancelling_group_refunds_through_route(self, client, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        pay(TransactionService(supabase), group, member["id"])

        response = client.patch(
            f"/api/v1/groups/{group['id']}/status",
            json={"status": "cancelled"},
            headers=auth_headers(creator["id"]),
        )

        assert response.status_code == 200
        assert response.json()["escrow_status"] == "refunded"
        refunds = [t for t in supabase.rows("transactions") if t["type"] == "refund"]
        assert len(refunds) == 1


    def test_pending_payment_of_cancelled_group_cannot_complete(self, client, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)
        payment = service.create_payment(PaymentCreate(group_id=group["id"]), member["id"])

        response = client.patch(
            f"/api/v1/groups/{group['id']}/status",
            json={"status": "cancelled"},
            headers=auth_headers(creator["id"]),
        )
        assert response.status_code == 200

        with pytest.raises(HTTPException):
            service.complete_payment(payment.id)
        transaction = next(t for t in supabase.rows("transactions") if t["id"] == payment.id)
        assert transaction["status"] == "cancelled"
        still_unpaid = service.groups.fetch_member(group["id"], member["id"], ["approved"])
        assert still_unpaid["payment_status"] == "pending"

    def test_complete_refused_once_group_is_inactive(self, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        service = TransactionService(supabase)
        payment = service.create_payment(PaymentCreate(group_id=group["id"]), member["id"])
        next(g for g in supabase.rows("sharing_groups") if g["id"] == group["id"])["status"] = "expired"

        with pytest.raises(HTTPException) as exc:
            service.complete_payment(payment.id)
        assert exc.value.status_code == 409
        assert service.groups.fetch_member(group["id"], member["id"], ["approved"])["payment_status"] == "pending"


class TestTransactionRoutes:
    def test_complete_requires_super_user(self, client, supabase, creator, member, admin):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        created = client.post(
            "/api/v1/transactions/payments",
            json={"group_id": group["id"]},
            headers=auth_headers(member["id"]),
        )
        assert created.status_code == 201
        transaction_id = created.json()["id"]

        forbidden = client.post(
            f"/api/v1/transactions/{transaction_id}/complete", headers=auth_headers(member["id"])
        )
        assert forbidden.status_code == 403

        completed = client.post(
            f"/api/v1/transactions/{transaction_id}/complete",
            headers=auth_headers(admin["id"], app_metadata=SUPER_USER),
        )
        assert completed.json()["status"] == "completed"

    def test_list_my_transactions(self, client, supabase, creator, member):
        group = seed_group(supabase, creator["id"])
        add_member(supabase, group, member["id"])
        TransactionService(supabase).create_payment(PaymentCreate(group_id=group["id"]), member["id"])

        response = client.get("/api/v1/transactions/me", headers=auth_headers(member["id"]))

        assert [t["user_id"] for t in response.json()] == [member["id"]]
