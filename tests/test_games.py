from user_service.app.backend.services.audit import CREATE_GAME, UPDATE_GAME, DELETE_GAME


def test_games_are_listed_by_popularity(client, make_game):
    make_game("League of Legends", "lol", popularity_rank=2)
    make_game("Valorant", "valorant", popularity_rank=1)
    make_game("Chess", "chess", popularity_rank=None)

    games = client.get("/api/games").json()["games"]

    assert [game["slug"] for game in games] == ["valorant", "lol", "chess"]


def test_game_detail_and_missing_game(client, make_game):
    game_id = make_game()
    assert client.get(f"/api/games/{game_id}").json()["game"]["name"] == "Valorant"
    assert client.get("/api/games/999").status_code == 404


def test_admin_creates_game_with_unique_slug(client, make_admin, session_factory, audit_trail):
    _, headers = make_admin()
    payload = {"name": "Counter-Strike 2", "slug": "cs2", "genre": "FPS"}

    created = client.post("/api/games", json=payload, headers=headers)
    duplicate = client.post("/api/games", json=payload, headers=headers)

    assert created.status_code == 201
    assert duplicate.status_code == 409
    game_id = created.json()["game"]["id"]
    with session_factory() as db:
        assert [log.action for log in audit_trail("game", game_id)] == [CREATE_GAME]


def test_users_cannot_create_games(client, make_user):
    _, headers = make_user()
    assert client.post("/api/games", json={"name": "X", "slug": "x"}, headers=headers).status_code == 403


def test_partial_update(client, make_admin, make_game, session_factory, audit_trail):
    _, headers = make_admin()
    game_id = make_game()

    response = client.put(f"/api/games/{game_id}", json={"genre": "Tactical FPS"}, headers=headers)

    game = response.json()["game"]
    assert game["genre"] == "Tactical FPS"
    assert game["name"] == "Valorant"
    with session_factory() as db:
        assert [log.action for log in audit_trail("game", game_id)] == [UPDATE_GAME]


def test_update_rejects_null_name(client, make_admin, make_game):
    _, headers = make_admin()
    game_id = make_game()

    response = client.put(f"/api/games/{game_id}", json={"name": None}, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"].startswith("name")
    assert client.get(f"/api/games/{game_id}").json()["game"]["name"] == "Valorant"


def test_soft_delete_hides_game_and_its_services(client, marketplace, session_factory, audit_trail):
    game_id = marketplace["game_id"]

    response = client.delete(f"/api/games/{game_id}", headers=marketplace["admin"])

    assert response.status_code == 200
    assert client.get(f"/api/games/{game_id}").status_code == 404
    assert client.get("/api/services").json()["services"] == []
    assert client.get(f"/api/services/{marketplace['service_id']}").status_code == 404
    with session_factory() as db:
        assert [log.action for log in audit_trail("game", game_id)] == [DELETE_GAME]


def test_game_stats(client, marketplace):
    stats = client.get(f"/api/games/{marketplace['game_id']}/stats").json()["stats"]

    assert stats["total_services"] == 1
    assert stats["total_coaches"] == 1
    assert stats["avg_coach_rating"] == 0
