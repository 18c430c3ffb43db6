from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from marketplace_service.app.backend.models.Chat import Chat
from marketplace_service.app.backend.models.Notification import Notification
from marketplace_service.app.backend.models.ServiceRequest import ServiceRequest, ServiceCompletion
from marketplace_service.app.backend.models.Transaction import Transaction
from marketplace_service.app.backend.repositories import coach_repository, request_repository, notification_repository
from marketplace_service.app.backend.services.request_lifecycle import split_payment
from user_service.app.backend.repositories import user_repository
from user_service.app.backend.services.audit import APPROVE_COMPLETION, REOPEN_COMPLETION


def create_request(client, marketplace):
    response = client.post(
        "/api/requests",
        json={"published_service_id": marketplace["service_id"], "service_details": "Help me reach Diamond"},
        headers=marketplace["player"],
    )
    assert response.status_code == 201, response.text
    return response.json()["request"]["id"]


def run_to_pending_completion(client, marketplace):
    request_id = create_request(client, marketplace)
    assert client.post(f"/api/requests/{request_id}/accept", json={}, headers=marketplace["coach"]).status_code == 200
    assert client.post(f"/api/requests/{request_id}/confirm", headers=marketplace["player"]).status_code == 200
    response = client.post(
        f"/api/requests/{request_id}/complete",
        json={"completion_notes": "Three sessions done"},
        headers=marketplace["coach"],
    )
    assert response.status_code == 200
    return request_id, response.json()["completion"]["id"]


@pytest.mark.parametrize("amount, commission, earnings", [
    ("25", "2.50", "22.50"),
    ("19.99", "2.00", "17.99"),
    ("0.05", "0.01", "0.04"),
    ("100", "10.00", "90.00"),
])
def test_split_payment(amount, commission, earnings):
    assert split_payment(Decimal(amount)) == (Decimal(commission), Decimal(earnings))
    assert sum(split_payment(Decimal(amount))) == Decimal(amount)


def test_create_copies_price_and_assigns_employee(client, marketplace):
    response = client.post(
        "/api/requests",
        json={"published_service_id": marketplace["service_id"], "service_details": "Help me reach Diamond"},
        headers=marketplace["player"],
    )

    request = response.json()["request"]
    assert request["status"] == "pending"
    assert request["amount"] == 25.0
    assert request["employee_user_id"] == marketplace["coach_id"]
    assert request["requester_user_id"] == marketplace["player_id"]


def test_cannot_request_own_service(client, marketplace):
    response = client.post(
        "/api/requests",
        json={"published_service_id": marketplace["service_id"], "service_details": "Self help"},
        headers=marketplace["coach"],
    )
    assert response.status_code == 400


def test_request_for_missing_service_is_404(client, marketplace):
    response = client.post(
        "/api/requests",
        json={"published_service_id": 999, "service_details": "Anything"},
        headers=marketplace["player"],
    )
    assert response.status_code == 404


def test_full_lifecycle_pays_employee(client, marketplace, session_factory, audit_trail):
    request_id, completion_id = run_to_pending_completion(client, marketplace)

    response = client.post(
        f"/api/admin/completions/{completion_id}/approve",
        json={"admin_notes": "Verified"},
        headers=marketplace["admin"],
    )

    assert response.status_code == 200
    payment = response.json()["payment"]
    assert payment == {"amount": 25.0, "commission": 2.5, "employee_earnings": 22.5}
    assert response.json()["request"]["status"] == "closed"

    with session_factory() as db:
        coach = user_repository.get_user_by_id(db, marketplace["coach_id"])
        assert coach.wallet_balance == Decimal("22.50")
        transaction = db.query(Transaction).one()
        assert transaction.amount == Decimal("25.00")
        assert transaction.commission_amount == Decimal("2.50")
        assert transaction.amount - transaction.commission_amount == coach.wallet_balance
        assert coach_repository.get_profile(db, marketplace["coach_id"]).total_services_completed == 1
        chat = db.query(Chat).filter(Chat.service_request_id == request_id).one()
        assert chat.is_archived is True
        logs = audit_trail("service_completion", completion_id)
        assert [log.action for log in logs] == [APPROVE_COMPLETION]


def test_double_approval_does_not_pay_twice(client, marketplace, session_factory):
    _, completion_id = run_to_pending_completion(client, marketplace)

    client.post(f"/api/admin/completions/{completion_id}/approve", headers=marketplace["admin"])
    second = client.post(f"/api/admin/completions/{completion_id}/approve", headers=marketplace["admin"])

    assert second.status_code == 409
    with session_factory() as db:
        assert db.query(Transaction).count() == 1
        assert user_repository.get_user_by_id(db, marketplace["coach_id"]).wallet_balance == Decimal("22.50")


def test_states_cannot_be_skipped(client, marketplace):
    request_id = create_request(client, marketplace)

    # pending -> in_progress without employee acceptance
    confirm = client.post(f"/api/requests/{request_id}/confirm", headers=marketplace["player"])
    # pending -> pending_completion
    complete = client.post(f"/api/requests/{request_id}/complete", headers=marketplace["coach"])

    assert confirm.status_code == 409
    assert confirm.json()["current_status"] == "pending"
    assert complete.status_code == 409


def test_only_assigned_employee_may_accept(client, marketplace, make_user):
    request_id = create_request(client, marketplace)
    _, stranger = make_user("stranger@test.com")

    by_requester = client.post(f"/api/requests/{request_id}/accept", headers=marketplace["player"])
    by_stranger = client.post(f"/api/requests/{request_id}/accept", headers=stranger)

    assert by_requester.status_code == by_stranger.status_code == 403
    assert by_stranger.json()["error"] == "Unauthorized"


def test_only_requester_may_confirm(client, marketplace):
    request_id = create_request(client, marketplace)
    client.post(f"/api/requests/{request_id}/accept", headers=marketplace["coach"])

    assert client.post(f"/api/requests/{request_id}/confirm", headers=marketplace["coach"]).status_code == 403


def test_confirm_opens_chat(client, marketplace, session_factory):
    request_id = create_request(client, marketplace)
    client.post(f"/api/requests/{request_id}/accept", headers=marketplace["coach"])

    response = client.post(f"/api/requests/{request_id}/confirm", headers=marketplace["player"])

    assert response.json()["request"]["status"] == "in_progress"
    assert response.json()["request"]["chat_id"] is not None
    with session_factory() as db:
        chat = db.query(Chat).filter(Chat.service_request_id == request_id).one()
        assert chat.is_archived is False


def test_employee_reject_cancels_pending_request(client, marketplace):
    request_id = create_request(client, marketplace)

    response = client.post(
        f"/api/requests/{request_id}/reject",
        json={"employee_response": "Fully booked"},
        headers=marketplace["coach"],
    )

    assert response.json()["request"]["status"] == "cancelled"
    assert response.json()["request"]["employee_response"] == "Fully booked"


def test_reject_after_accept_conflicts(client, marketplace):
    request_id = create_request(client, marketplace)
    client.post(f"/api/requests/{request_id}/accept", headers=marketplace["coach"])

    assert client.post(f"/api/requests/{request_id}/reject", headers=marketplace["coach"]).status_code == 409


def test_either_party_may_cancel_and_chat_is_archived(client, marketplace, session_factory):
    request_id = create_request(client, marketplace)
    client.post(f"/api/requests/{request_id}/accept", headers=marketplace["coach"])
    client.post(f"/api/requests/{request_id}/confirm", headers=marketplace["player"])

    response = client.post(f"/api/requests/{request_id}/cancel", headers=marketplace["coach"])

    assert response.json()["request"]["status"] == "cancelled"
    with session_factory() as db:
        assert db.query(Chat).filter(Chat.service_request_id == request_id).one().is_archived is True

    again = client.post(f"/api/requests/{request_id}/cancel", headers=marketplace["player"])
    assert again.status_code == 409


def test_cannot_cancel_pending_completion(client, marketplace):
    request_id, _ = run_to_pending_completion(client, marketplace)
    assert client.post(f"/api/requests/{request_id}/cancel", headers=marketplace["player"]).status_code == 409


def test_reopen_returns_request_to_progress(client, marketplace, session_factory, audit_trail):
    request_id, completion_id = run_to_pending_completion(client, marketplace)

    response = client.post(
        f"/api/admin/completions/{completion_id}/reopen",
        json={"admin_notes": "Missing the VOD review"},
        headers=marketplace["admin"],
    )

    assert response.status_code == 200
    assert response.json()["completion"]["status"] == "needs_revision"
    assert response.json()["request"]["status"] == "in_progress"
    assert response.json()["request"]["completed_at"] is None

    with session_factory() as db:
        chat = db.query(Chat).filter(Chat.service_request_id == request_id).one()
        assert chat.is_archived is False
        logs = audit_trail("service_completion", completion_id)
        assert [log.action for log in logs] == [REOPEN_COMPLETION]

    # A second completion round can still be approved
    second = client.post(f"/api/requests/{request_id}/complete", headers=marketplace["coach"])
    new_completion_id = second.json()["completion"]["id"]
    assert new_completion_id != completion_id
    approve = client.post(f"/api/admin/completions/{new_completion_id}/approve", headers=marketplace["admin"])
    assert approve.json()["request"]["status"] == "closed"


def test_pending_completions_listing(client, marketplace):
    request_id, completion_id = run_to_pending_completion(client, marketplace)

    response = client.get("/api/admin/completions/pending", headers=marketplace["admin"])

    completions = response.json()["completions"]
    assert [item["id"] for item in completions] == [completion_id]
    assert completions[0]["request"]["id"] == request_id


def test_request_listings_and_detail_access(client, marketplace, make_user):
    request_id = create_request(client, marketplace)
    _, stranger = make_user("stranger@test.com")

    incoming = client.get("/api/requests/employee/pending", headers=marketplace["coach"]).json()["requests"]
    mine = client.get("/api/requests/user/my-requests", headers=marketplace["player"]).json()["requests"]

    assert [item["id"] for item in incoming] == [request_id]
    assert [item["id"] for item in mine] == [request_id]
    assert client.get(f"/api/requests/{request_id}", headers=marketplace["player"]).status_code == 200
    assert client.get(f"/api/requests/{request_id}", headers=marketplace["admin"]).status_code == 200
    assert client.get(f"/api/requests/{request_id}", headers=stranger).status_code == 403


def test_transitions_notify_counterparty(client, marketplace):
    request_id = create_request(client, marketplace)
    client.post(f"/api/requests/{request_id}/accept", headers=marketplace["coach"])

    coach_types = [item["notification_type"] for item in client.get("/api/notifications", headers=marketplace["coach"]).json()["notifications"]]
    player_types = [item["notification_type"] for item in client.get("/api/notifications", headers=marketplace["player"]).json()["notifications"]]

    assert "request_received" in coach_types
    assert "request_accepted" in player_types


def test_version_increments_on_each_transition(client, marketplace, session_factory):
    request_id = create_request(client, marketplace)
    with session_factory() as db:
        initial = request_repository.get_request_by_id(db, request_id).version

    client.post(f"/api/requests/{request_id}/accept", headers=marketplace["coach"])

    with session_factory() as db:
        assert request_repository.get_request_by_id(db, request_id).version == initial + 1


def test_blocked_user_cannot_create_requests(client, marketplace, session_factory):
    with session_factory() as db:
        user_repository.set_account_status(db, marketplace["player_id"], "banned")

    response = client.post(
        "/api/requests",
        json={"published_service_id": marketplace["service_id"], "service_details": "Help"},
        headers=marketplace["player"],
    )
    assert response.status_code == 403


def test_failed_payout_rolls_back_approval(failing_client, marketplace, session_factory, monkeypatch):
    request_id, completion_id = run_to_pending_completion(failing_client, marketplace)

    def broken_credit_wallet(db, user_id, amount):
        raise RuntimeError("wallet ledger unavailable")

    monkeypatch.setattr(user_repository, "credit_wallet", broken_credit_wallet)

    response = failing_client.post(f"/api/admin/completions/{completion_id}/approve", headers=marketplace["admin"])

    assert response.status_code == 500
    with session_factory() as db:
        assert request_repository.get_request_by_id(db, request_id).status == "pending_completion"
        assert db.get(ServiceCompletion, completion_id).status == "pending_review"
        assert db.query(Transaction).count() == 0
        assert user_repository.get_user_by_id(db, marketplace["coach_id"]).wallet_balance == 0
        assert db.query(Chat).filter(Chat.service_request_id == request_id).one().is_archived is False

    monkeypatch.undo()
    retry = failing_client.post(f"/api/admin/completions/{completion_id}/approve", headers=marketplace["admin"])
    assert retry.status_code == 200


def test_failed_notification_keeps_transition(client, marketplace, session_factory, monkeypatch):
    request_id = create_request(client, marketplace)

    def broken_add_notification(db, **kwargs):
        raise OperationalError("INSERT INTO notifications", {}, Exception("table locked"))

    monkeypatch.setattr(notification_repository, "add_notification", broken_add_notification)

    response = client.post(f"/api/requests/{request_id}/accept", json={}, headers=marketplace["coach"])

    assert response.status_code == 200
    assert response.json()["request"]["status"] == "employee_accepted"
    with session_factory() as db:
        assert request_repository.get_request_by_id(db, request_id).status == "employee_accepted"
        accepted = db.query(Notification).filter(Notification.notification_type == "request_accepted")
        assert accepted.count() == 0


def test_lost_race_on_request_conflicts(client, marketplace, session_factory, monkeypatch):
    request_id = create_request(client, marketplace)
    load_for_update = request_repository.get_request_for_update

    def load_then_concurrent_update(db, target_id):
        service_request = load_for_update(db, target_id)
        with session_factory() as other:
            other.query(ServiceRequest).filter(ServiceRequest.id == target_id).update(
                {ServiceRequest.version: ServiceRequest.version + 1},
                synchronize_session=False,
            )
            other.commit()
        return service_request

    monkeypatch.setattr(request_repository, "get_request_for_update", load_then_concurrent_update)

    response = client.post(f"/api/requests/{request_id}/accept", json={}, headers=marketplace["coach"])

    assert response.status_code == 409
    assert response.json() == {"error": "The record was modified by another request, please retry"}
    with session_factory() as db:
        assert request_repository.get_request_by_id(db, request_id).status == "pending"
