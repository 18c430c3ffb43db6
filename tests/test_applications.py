from marketplace_service.app.backend.models.PublishedService import PublishedService
from marketplace_service.app.backend.models.ServiceApplication import ServiceApplication
from marketplace_service.app.backend.repositories import coach_repository
from user_service.app.backend.repositories import user_repository
from user_service.app.backend.services.audit import APPROVE_APPLICATION, REJECT_APPLICATION


def submit(client, headers, game_id, title="Valorant Coaching", price=25):
    return client.post(
        "/api/applications",
        json={"game_id": game_id, "title": title, "description": "Aim and crosshair placement", "price": price},
        headers=headers,
    )


def test_submit_creates_pending_application(client, make_user, make_game):
    _, headers = make_user("coach@test.com")
    game_id = make_game()

    response = submit(client, headers, game_id)

    assert response.status_code == 201
    application = response.json()["application"]
    assert application["status"] == "pending"
    assert application["price"] == 25.0
    assert application["game_name"] == "Valorant"


def test_submit_rejects_unknown_game_and_bad_price(client, make_user, make_game):
    _, headers = make_user("coach@test.com")
    game_id = make_game()

    assert submit(client, headers, game_id + 100).status_code == 404
    assert submit(client, headers, game_id, price=0).status_code == 400
    assert submit(client, headers, game_id, price=-5).status_code == 400


def test_submit_rejects_overlong_title(client, make_user, make_game):
    _, headers = make_user("coach@test.com")
    game_id = make_game()

    response = submit(client, headers, game_id, title="x" * 101)

    assert response.status_code == 400
    assert "100" in response.json()["error"]


def test_approve_publishes_exactly_one_service(client, make_user, make_admin, make_game, session_factory, audit_trail):
    coach_id, coach_headers = make_user("coach@test.com")
    admin_id, admin_headers = make_admin()
    game_id = make_game()
    application_id = submit(client, coach_headers, game_id).json()["application"]["id"]

    response = client.post(
        f"/api/applications/{application_id}/approve",
        json={"admin_notes": "Looks good"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    service = response.json()["published_service"]
    assert service["title"] == "Valorant Coaching"
    assert service["price"] == 25.0
    assert service["game_id"] == game_id
    assert service["employee_id"] == coach_id
    assert service["is_active"] is True

    with session_factory() as db:
        assert db.query(PublishedService).count() == 1
        assert user_repository.get_user_by_id(db, coach_id).is_employee is True
        assert coach_repository.get_profile(db, coach_id).status == "active"
        logs = audit_trail("service_application", application_id)
        assert [log.action for log in logs] == [APPROVE_APPLICATION]
        assert logs[0].admin_id == admin_id


def test_approving_twice_conflicts(client, make_user, make_admin, make_game, session_factory):
    _, coach_headers = make_user("coach@test.com")
    _, admin_headers = make_admin()
    application_id = submit(client, coach_headers, make_game()).json()["application"]["id"]

    client.post(f"/api/applications/{application_id}/approve", headers=admin_headers)
    response = client.post(f"/api/applications/{application_id}/approve", headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["current_status"] == "approved"
    with session_factory() as db:
        assert db.query(PublishedService).count() == 1


def test_reject_publishes_nothing(client, make_user, make_admin, make_game, session_factory, audit_trail):
    coach_id, coach_headers = make_user("coach@test.com")
    admin_id, admin_headers = make_admin()
    application_id = submit(client, coach_headers, make_game()).json()["application"]["id"]

    response = client.post(
        f"/api/applications/{application_id}/reject",
        json={"reason": "Add more detail"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["application"]["status"] == "rejected"
    assert response.json()["application"]["admin_notes"] == "Add more detail"
    with session_factory() as db:
        assert db.query(PublishedService).count() == 0
        assert user_repository.get_user_by_id(db, coach_id).is_employee is False
        logs = audit_trail("service_application", application_id)
        assert [log.action for log in logs] == [REJECT_APPLICATION]


def test_editing_rejected_application_resubmits_it(client, make_user, make_admin, make_game):
    _, coach_headers = make_user("coach@test.com")
    _, admin_headers = make_admin()
    game_id = make_game()
    application_id = submit(client, coach_headers, game_id).json()["application"]["id"]
    client.post(f"/api/applications/{application_id}/reject", json={"reason": "Too vague"}, headers=admin_headers)

    response = client.put(
        f"/api/applications/{application_id}",
        json={"title": "Valorant Coaching Pro", "description": "VOD review", "price": 30},
        headers=coach_headers,
    )

    assert response.status_code == 200
    application = response.json()["application"]
    assert application["status"] == "pending"
    assert application["title"] == "Valorant Coaching Pro"
    assert application["admin_notes"] == "Too vague"


def test_only_owner_may_edit(client, make_user, make_game):
    _, coach_headers = make_user("coach@test.com")
    _, other_headers = make_user("other@test.com")
    application_id = submit(client, coach_headers, make_game()).json()["application"]["id"]

    response = client.put(
        f"/api/applications/{application_id}",
        json={"title": "Hijack", "description": "Mine now", "price": 1},
        headers=other_headers,
    )

    assert response.status_code == 403


def test_reapproval_after_edit_refreshes_existing_listing(client, make_user, make_admin, make_game, session_factory):
    _, coach_headers = make_user("coach@test.com")
    _, admin_headers = make_admin()
    application_id = submit(client, coach_headers, make_game()).json()["application"]["id"]
    first = client.post(f"/api/applications/{application_id}/approve", headers=admin_headers).json()

    client.put(
        f"/api/applications/{application_id}",
        json={"title": "Valorant Coaching", "description": "Now with VOD review", "price": 40},
        headers=coach_headers,
    )
    second = client.post(f"/api/applications/{application_id}/approve", headers=admin_headers).json()

    assert first["published_service"]["id"] == second["published_service"]["id"]
    assert second["published_service"]["price"] == 40.0
    with session_factory() as db:
        assert db.query(PublishedService).count() == 1


def test_my_applications_and_pending_queue(client, make_user, make_admin, make_game):
    _, coach_headers = make_user("coach@test.com", full_name="Coach Carl")
    _, admin_headers = make_admin()
    game_id = make_game()
    submit(client, coach_headers, game_id, title="First")
    submit(client, coach_headers, game_id, title="Second")

    mine = client.get("/api/applications/my-applications", headers=coach_headers).json()["applications"]
    pending = client.get("/api/applications/pending", headers=admin_headers).json()["applications"]

    assert [item["title"] for item in mine] == ["Second", "First"]
    assert [item["title"] for item in pending] == ["First", "Second"]
    assert pending[0]["applicant_name"] == "Coach Carl"
    assert pending[0]["applicant_email"] == "coach@test.com"
    assert pending[0]["days_pending"] == 0


def test_pending_queue_requires_admin(client, make_user):
    _, headers = make_user()
    assert client.get("/api/applications/pending", headers=headers).status_code == 403


def test_failed_approval_leaves_nothing_behind(failing_client, make_user, make_admin, make_game, session_factory, monkeypatch):
    coach_id, coach_headers = make_user("coach@test.com")
    _, admin_headers = make_admin()
    application_id = submit(failing_client, coach_headers, make_game()).json()["application"]["id"]

    def broken_ensure_profile(db, user_id):
        raise RuntimeError("profile table unavailable")

    monkeypatch.setattr(coach_repository, "ensure_profile", broken_ensure_profile)

    response = failing_client.post(f"/api/applications/{application_id}/approve", json={}, headers=admin_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Server error"}
    with session_factory() as db:
        assert db.get(ServiceApplication, application_id).status == "pending"
        assert db.query(PublishedService).count() == 0
        assert user_repository.get_user_by_id(db, coach_id).is_employee is False


def test_approval_for_deleted_game_is_refused(client, make_user, make_admin, make_game, session_factory):
    _, coach_headers = make_user("coach@test.com")
    _, admin_headers = make_admin()
    game_id = make_game()
    application_id = submit(client, coach_headers, game_id).json()["application"]["id"]
    assert client.delete(f"/api/games/{game_id}", headers=admin_headers).status_code == 200

    response = client.post(f"/api/applications/{application_id}/approve", json={}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Game is no longer available"
    with session_factory() as db:
        assert db.get(ServiceApplication, application_id).status == "pending"
        assert db.query(PublishedService).count() == 0
