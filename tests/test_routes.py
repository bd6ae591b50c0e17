"""
Tests for the /events HTTP surface.

These use FastAPI TestClient with the Firestore dependency swapped for the
in-memory double, so the error taxonomy can be checked end to end.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from HIVE.core import config
from HIVE.core.firebase import get_firestore
from HIVE.core.security import create_access_token, get_current_caller
from HIVE.main import app

SECRET = "s" * 40


@pytest.fixture
def client(db):
    app.dependency_overrides[get_firestore] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signed_in():
    """Override the bearer-token dependency with a fixed caller."""
    def _as(user_id):
        app.dependency_overrides[get_current_caller] = lambda: {"user_id": user_id}
    return _as


@pytest.fixture
def upcoming_event(add_event, add_user):
    add_user("creator-1", role="public")
    start = datetime.now(timezone.utc) + timedelta(days=2)
    return add_event(
        "evt",
        state="published",
        createdBy="creator-1",
        startDate=start,
        endDate=start + timedelta(hours=2),
    )


def _transition(client, event_id="evt", target="draft", **kwargs):
    return client.post("/events/transition", json={"eventId": event_id, "targetState": target}, **kwargs)


# ---------------------------------------------------------------------------
# POST /events/transition
# ---------------------------------------------------------------------------


def test_creator_transition_succeeds(client, db, signed_in, upcoming_event):
    signed_in("creator-1")

    response = _transition(client)

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Event transitioned to draft"}
    assert db.event("evt")["state"] == "draft"
    assert db.event("evt")["stateHistory"][-1]["transitionType"] == "manual"


def test_missing_token_is_unauthenticated(client, upcoming_event):
    response = _transition(client)

    assert response.status_code == 401
    assert response.json()["error"]["status"] == "unauthenticated"


def test_bad_token_is_unauthenticated(client, upcoming_event, monkeypatch):
    monkeypatch.setattr(config, "SECRET_KEY", SECRET)

    response = _transition(client, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["error"]["status"] == "unauthenticated"


def test_valid_bearer_token_identifies_caller(client, db, upcoming_event, monkeypatch):
    monkeypatch.setattr(config, "SECRET_KEY", SECRET)
    token = create_access_token({"sub": "creator@campus.edu", "user_id": "creator-1"})

    response = _transition(client, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert db.event("evt")["stateHistory"][-1]["updatedBy"] == "creator-1"


def test_bad_target_state_is_invalid_argument(client, signed_in, upcoming_event):
    signed_in("creator-1")

    response = _transition(client, target="cancelled")

    assert response.status_code == 400
    assert response.json()["error"]["status"] == "invalid-argument"


def test_missing_event_id_is_invalid_argument(client, signed_in, upcoming_event):
    signed_in("creator-1")

    response = client.post("/events/transition", json={"targetState": "draft"})

    assert response.status_code == 400
    assert response.json()["error"]["status"] == "invalid-argument"


@pytest.mark.parametrize("body", [
    {"eventId": 123, "targetState": "draft"},
    {"eventId": "evt", "targetState": ["live"]},
    ["evt", "draft"],
])
def test_non_string_fields_are_invalid_argument(client, db, signed_in, upcoming_event, body):
    signed_in("creator-1")

    response = client.post("/events/transition", json=body)

    assert response.status_code == 400
    assert response.json()["error"]["status"] == "invalid-argument"
    assert db.event("evt")["state"] == "published"


def test_body_that_is_not_json_is_invalid_argument(client, signed_in, upcoming_event):
    signed_in("creator-1")

    response = client.post(
        "/events/transition", content=b"eventId=evt", headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["status"] == "invalid-argument"


@pytest.mark.parametrize("kwargs", [
    {"json": {"eventId": 123, "targetState": "draft"}},
    {"content": b"{not json", "headers": {"Content-Type": "application/json"}},
])
def test_anonymous_malformed_request_is_unauthenticated(client, upcoming_event, kwargs):
    response = client.post("/events/transition", **kwargs)

    assert response.status_code == 401
    assert response.json()["error"]["status"] == "unauthenticated"


def test_unknown_event_is_not_found(client, signed_in, upcoming_event):
    signed_in("creator-1")

    response = _transition(client, event_id="missing")

    assert response.status_code == 404
    assert response.json()["error"] == {"status": "not-found", "message": "Event not found"}


def test_stranger_is_permission_denied(client, db, signed_in, add_user, upcoming_event):
    signed_in(add_user("student-7", role="student"))

    response = _transition(client, target="live")

    assert response.status_code == 403
    assert response.json()["error"]["status"] == "permission-denied"
    assert db.event("evt")["state"] == "published"


# ---------------------------------------------------------------------------
# POST /events/lifecycle/run
# ---------------------------------------------------------------------------


def test_admin_runs_advancer(client, db, signed_in, add_user, add_event):
    signed_in(add_user("admin-1", role="admin"))
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    add_event("due", state="published", startDate=past, endDate=past + timedelta(hours=3))

    response = client.post("/events/lifecycle/run")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["updated"] == 1
    assert body["counts"]["publishedToLive"] == 1
    assert db.event("due")["state"] == "live"


def test_non_admin_cannot_run_advancer(client, signed_in, add_user):
    signed_in(add_user("creator-1", role="public"))

    response = client.post("/events/lifecycle/run")

    assert response.status_code == 403


def test_anonymous_cannot_run_advancer(client):
    response = client.post("/events/lifecycle/run")

    assert response.status_code == 401


def test_ping(client):
    assert client.get("/ping").json() == {"message": "pong"}
