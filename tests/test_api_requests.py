from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import make_project, make_request
from request_hub.core.security import create_access_token
from request_hub.main import app
from request_hub.models.request import RequestStatus
from request_hub.repositories.data_store import RevisionConflictError
from request_hub.services.container import lifecycle_engine, store, sweep_scheduler


def _headers(user_id: str, role: str = "member", department: str = "Engineering") -> dict[str, str]:
    token, _ = create_access_token(subject=user_id, role=role, department=department)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def test_health(client):
    assert client.get("/").json()["status"] == "ok"


def test_requests_require_valid_token(client):
    assert client.get("/requests/mine").status_code == 401
    assert client.get("/requests/mine", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/requests/stats").status_code == 401
    assert client.post("/requests/sweep").status_code == 401

    expired, _ = create_access_token("alice", "member", "Ops", expires_delta=timedelta(minutes=-1))
    assert client.get("/requests/mine", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_create_accept_complete_flow(client):
    created = client.post(
        "/requests",
        json={"department": "Finance", "title": "Invoice check", "description": "Q1"},
        headers=_headers("alice"),
    )
    assert created.status_code == 200
    body = created.json()
    item_id = body["request"]["id"]
    assert body["request"]["status"] == "Pending"
    assert body["request"]["acceptedBy"] is None

    accepted = client.post(f"/requests/{item_id}/accept", headers=_headers("bob"))
    assert accepted.json()["request"]["acceptedBy"] == "bob"
    assert accepted.json()["request"]["status"] == "In Process"

    listed = client.get("/requests/accepted", headers=_headers("bob")).json()
    assert [row["request"]["id"] for row in listed] == [item_id]

    done = client.post(f"/requests/{item_id}/complete", headers=_headers("bob"))
    assert done.json()["request"]["status"] == "Completed"
    assert done.json()["notification"]["title"] == "Marked as Completed"

    history = client.get("/requests/history", headers=_headers("alice")).json()
    assert [row["id"] for row in history] == [item_id]

    cleared = client.delete("/requests/history", headers=_headers("alice"))
    assert cleared.json()["removed"] == 1
    assert client.get("/requests/stats", headers=_headers("alice")).json()["total"] == 0


def test_unknown_item_is_silent(client):
    response = client.post("/requests/does-not-exist/complete", headers=_headers("bob"))

    assert response.status_code == 200
    assert response.json() == {"request": None, "notification": None}


def test_archiving_active_project_is_rejected(client):
    store.save([make_project(status=RequestStatus.IN_PROCESS, accepted_by={"bob"}, users_accepted=1)])

    response = client.post("/requests/proj-1/archive", headers=_headers("alice"))

    assert response.status_code == 400
    assert "pending" in response.json()["detail"]


def test_archived_listing_and_admin_only_sweep(client):
    store.save([make_project(), make_request()])

    archived = client.post("/requests/proj-1/archive", headers=_headers("alice"))
    assert archived.json()["request"]["archived"] is True

    rows = client.get("/requests/archived", headers=_headers("lead", role="admin")).json()
    assert [row["request"]["id"] for row in rows] == ["proj-1"]
    assert rows[0]["days_remaining"] == 7

    assert client.post("/requests/sweep", headers=_headers("alice")).status_code == 403
    report = client.post("/requests/sweep", headers=_headers("lead", role="admin")).json()
    assert report == {"marked_expired": 0, "removed_expired": 0, "purged_archived": 0}


def test_delete_by_stranger_is_forbidden(client):
    store.save([make_request(department="Finance")])

    assert client.delete("/requests/req-1", headers=_headers("mallory")).status_code == 403
    assert client.delete("/requests/req-1", headers=_headers("alice")).status_code == 200
    assert store.load() == []


def test_notifications_feed_is_per_user(client):
    store.save([make_request()])
    client.post("/requests/req-1/abandon", headers=_headers("bob"))

    feed = client.get("/notifications", headers=_headers("bob")).json()
    assert feed[0]["title"] == "Request Rejected"
    assert client.get("/notifications", headers=_headers("carol")).json() == []


def test_lifespan_runs_startup_sweep(client):
    with TestClient(app) as live:
        assert sweep_scheduler.running
        assert live.get("/").status_code == 200
    assert not sweep_scheduler.running


def test_revision_conflict_maps_to_409(client, monkeypatch):
    def conflicting():
        raise RevisionConflictError(expected=1, actual=2)

    monkeypatch.setattr(lifecycle_engine, "dashboard_stats", conflicting)

    response = client.get("/requests/stats", headers=_headers("alice"))

    assert response.status_code == 409
    assert "expected 1, found 2" in response.json()["detail"]
