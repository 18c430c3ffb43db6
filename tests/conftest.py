import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from common.db.database import Base, build_engine, get_db
from common.security.tokens import Identity, Role, AdminRole, create_access_token
from main import app
from user_service.app.backend.models.AdminLog import AdminLog
from user_service.app.backend.repositories import user_repository, admin_repository
from marketplace_service.app.backend.repositories import game_repository

engine = build_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False)

DEFAULT_PASSWORD = "Passw0rd1"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def reset_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def failing_client():
    """Returns 500 responses instead of re-raising unhandled server errors."""
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def audit_trail():
    def _audit_trail(target_type, target_id):
        with TestingSessionLocal() as db:
            return db.query(AdminLog)\
                .filter(AdminLog.target_type == target_type, AdminLog.target_id == target_id)\
                .order_by(AdminLog.id)\
                .all()
    return _audit_trail


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user():
    def _make_user(email="player@test.com", password=DEFAULT_PASSWORD, full_name="Test Player"):
        with TestingSessionLocal() as db:
            user = user_repository.create_user(db, email, password, full_name)
            token = create_access_token(Identity(id=user.id, role=Role.USER, email=user.email))
            return user.id, auth(token)
    return _make_user


@pytest.fixture
def make_admin():
    def _make_admin(email="admin@test.com", password=DEFAULT_PASSWORD, role="super", full_name="Test Admin"):
        with TestingSessionLocal() as db:
            admin = admin_repository.create_admin(db, email=email, full_name=full_name, role=role, password=password)
            token = create_access_token(
                Identity(id=admin.id, role=Role.ADMIN, email=admin.email, admin_role=AdminRole(role))
            )
            return admin.id, auth(token)
    return _make_admin


@pytest.fixture
def make_game():
    def _make_game(name="Valorant", slug="valorant", popularity_rank=1):
        with TestingSessionLocal() as db:
            game = game_repository.add_game(db, name, slug, "Tactical shooter", "FPS", "PC", popularity_rank)
            return game.id
    return _make_game


@pytest.fixture
def publish_service(client):
    """Runs a coach application through admin approval and returns the listing id."""
    def _publish_service(coach_headers, admin_headers, game_id, title="Valorant Coaching", price=25):
        response = client.post(
            "/api/applications",
            json={"game_id": game_id, "title": title, "description": "Aim and crosshair placement", "price": price},
            headers=coach_headers,
        )
        assert response.status_code == 201, response.text
        application_id = response.json()["application"]["id"]

        response = client.post(f"/api/applications/{application_id}/approve", json={}, headers=admin_headers)
        assert response.status_code == 200, response.text
        return response.json()["published_service"]["id"]
    return _publish_service


@pytest.fixture
def marketplace(make_user, make_admin, make_game, publish_service):
    """A coach with one published service, a separate player and a super admin."""
    coach_id, coach_headers = make_user("coach@test.com", full_name="Coach Carl")
    player_id, player_headers = make_user("player@test.com", full_name="Player Pam")
    admin_id, admin_headers = make_admin()
    game_id = make_game()
    service_id = publish_service(coach_headers, admin_headers, game_id)
    return {
        "coach_id": coach_id,
        "coach": coach_headers,
        "player_id": player_id,
        "player": player_headers,
        "admin_id": admin_id,
        "admin": admin_headers,
        "game_id": game_id,
        "service_id": service_id,
    }
