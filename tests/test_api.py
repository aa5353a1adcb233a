# tests/test_api.py
"""
HTTP adapter smoke tests: routers, auth dependency and error mapping.
"""

import pytest
from fastapi.testclient import TestClient

from skillbridge.crud import user as user_crud
from skillbridge.database import get_db
from skillbridge.main import app
from skillbridge.utils.security import create_access_token


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def accounts(db_session):
    alice = user_crud.create_user(db_session, email="alice@example.com", name="Alice")
    bob = user_crud.create_user(db_session, email="bob@example.com", name="Bob")
    carol = user_crud.create_user(db_session, email="carol@example.com", name="Carol")
    ids = {"alice": alice.id, "bob": bob.id, "carol": carol.id}
    db_session.commit()
    return {
        name: {
            "id": user_id,
            "headers": {"Authorization": f"Bearer {create_access_token({'sub': str(user_id)})}"},
        }
        for name, user_id in ids.items()
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requests_need_a_valid_token(client):
    assert client.get("/matches/").status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.get("/matches/", headers=bad).status_code == 401


def test_full_exchange_flow(client, accounts):
    alice, bob = accounts["alice"], accounts["bob"]

    # Skills and matches
    r = client.put("/users/me/skills", headers=alice["headers"],
                   json={"teaching_skills": ["Guitar"], "learning_skills": ["Spanish"]})
    assert r.status_code == 200
    client.put("/users/me/skills", headers=bob["headers"],
               json={"teaching_skills": ["Spanish"], "learning_skills": ["Guitar"]})

    matches = client.get("/matches/", headers=alice["headers"]).json()
    assert matches[0]["user_id"] == bob["id"]
    assert matches[0]["match_score"] == 2

    # Connection lifecycle
    r = client.post("/connections/", headers=alice["headers"], json={"to_user_id": bob["id"]})
    assert r.status_code == 201
    connection_id = r.json()["connection_id"]

    r = client.post("/connections/", headers=bob["headers"], json={"to_user_id": alice["id"]})
    assert r.status_code == 409
    assert r.json()["error"] == "already_connected"
    assert r.json()["details"]["connection_id"] == connection_id

    r = client.patch(f"/connections/{connection_id}", headers=alice["headers"], json={"status": "accepted"})
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"

    r = client.patch(f"/connections/{connection_id}", headers=bob["headers"], json={"status": "accepted"})
    assert r.status_code == 200
    chat_room_id = r.json()["chat_room"]["chat_room_id"]

    r = client.patch(f"/connections/{connection_id}", headers=bob["headers"], json={"status": "rejected"})
    assert r.status_code == 409
    assert r.json()["error"] == "invalid_transition"

    # Chat
    r = client.post(f"/connections/chat-rooms/{chat_room_id}/messages",
                    headers=alice["headers"], json={"content": "When can we start?"})
    assert r.status_code == 201
    messages = client.get(f"/connections/chat-rooms/{chat_room_id}/messages", headers=bob["headers"]).json()
    assert [m["content"] for m in messages] == ["When can we start?"]

    # Reviews and reward
    guitar_id = next(s["skill_id"] for s in client.get("/skills/").json() if s["name"] == "Guitar")
    session = {
        "session_id": "api-session",
        "teacher_id": alice["id"],
        "learner_id": bob["id"],
        "duration_minutes": 90,
        "skill_ids": [guitar_id],
    }
    r = client.post("/reviews/", headers=bob["headers"], json={
        **session, "rating": 5, "skill_evaluations": [{"skill_id": guitar_id, "rating": 5}],
    })
    assert r.status_code == 201
    assert r.json()["status"] == "pending_review"

    r = client.post("/reviews/", headers=alice["headers"], json={**session, "rating": 4})
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "resolved"
    assert body["average_rating"] == 4.5
    assert body["reward"]["amount"] == 180

    assert client.post("/reviews/consensus", headers=bob["headers"], json=session).json()["reward"]["created"] is False
    assert client.get("/rewards/balance", headers=alice["headers"]).json()["total_tokens"] == 180
    assert client.get(f"/skills/{guitar_id}").json()["rating_count"] == 1

    stats = client.get("/users/me/stats", headers=alice["headers"]).json()
    assert stats["active_connections"] == 1
    assert stats["total_tokens"] == 180


def test_session_facts_are_bound_to_participants(client, accounts):
    alice, bob, carol = accounts["alice"], accounts["bob"], accounts["carol"]
    session = {
        "session_id": "bound-session",
        "teacher_id": alice["id"],
        "learner_id": bob["id"],
        "duration_minutes": 30,
    }
    assert client.post("/reviews/", headers=bob["headers"], json={**session, "rating": 5}).status_code == 201

    # Carol cannot step into the teacher role of a recorded session
    r = client.post("/reviews/", headers=carol["headers"], json={
        **session, "teacher_id": carol["id"], "duration_minutes": 10000, "rating": 5,
    })
    assert r.status_code == 400
    assert r.json()["details"]["fields"] == ["teacher_id", "duration_minutes"]

    r = client.get("/reviews/session/bound-session", headers=carol["headers"])
    assert r.status_code == 403
    r = client.get("/reviews/session/bound-session", headers=alice["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "pending_review"

    assert client.get("/rewards/balance", headers=carol["headers"]).json()["total_tokens"] == 0


def test_skill_maintenance_is_not_exposed(client, accounts):
    r = client.post("/reviews/recalculate-skills", headers=accounts["alice"]["headers"])
    assert r.status_code in (404, 405)


def test_error_mapping(client, accounts):
    alice = accounts["alice"]

    r = client.get("/connections/9999", headers=alice["headers"])
    assert r.status_code == 404
    assert r.json()["details"] == {"entity": "Connection", "identifier": 9999}

    r = client.post("/connections/", headers=alice["headers"], json={"to_user_id": alice["id"]})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_request"

    r = client.post("/reviews/", headers=alice["headers"], json={
        "session_id": "s", "teacher_id": alice["id"], "learner_id": accounts["bob"]["id"],
        "duration_minutes": 30, "rating": 7,
    })
    assert r.status_code == 422

    assert client.get("/rewards/session/nothing", headers=alice["headers"]).status_code == 404
