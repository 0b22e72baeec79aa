# tests/test_api.py

from __future__ import annotations

import sqlite3

from fastapi.testclient import TestClient

from todoplus.api.app import create_app
from todoplus.core.state import AppState


def _create(client: TestClient, **payload) -> dict:
    payload.setdefault("externalId", "42")
    resp = client.post("/api/tasks", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()["task"]


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_auth_registers_once(client: TestClient) -> None:
    first = client.post("/api/auth", json={"externalId": 42, "firstName": "Alice", "handle": "alice"})
    assert first.status_code == 200
    user = first.json()["user"]
    assert user["externalId"] == "42"
    assert user["firstName"] == "Alice"
    assert user["createdAt"] == "2026-10-17 12:00:00"

    again = client.post("/api/auth", json={"externalId": "42", "firstName": "Changed"})
    assert again.json()["user"] == user


def test_auth_requires_external_id(client: TestClient) -> None:
    resp = client.post("/api/auth", json={"firstName": "Alice"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "externalId required"}


def test_create_task_validation(client: TestClient) -> None:
    no_owner = client.post("/api/tasks", json={"title": "x"})
    assert no_owner.status_code == 400
    assert no_owner.json() == {"error": "externalId required"}

    no_title = client.post("/api/tasks", json={"externalId": "42", "title": "  "})
    assert no_title.status_code == 400
    assert no_title.json() == {"error": "title required"}

    bad_due = client.post("/api/tasks", json={"externalId": "42", "title": "x", "dueAt": "tomorrow-ish"})
    assert bad_due.status_code == 400


def test_create_and_list_with_filters(client: TestClient) -> None:
    today = _create(client, title="Standup", dueAt="2026-10-17T09:30", tags=["work", "daily"], priority=2)
    _create(client, title="Dentist", dueAt="2026-10-20T15:00")
    _create(client, externalId="7", title="Not mine", dueAt="2026-10-17T10:00")

    assert today["dueAt"] == "2026-10-17 09:30:00"
    assert today["tags"] == ["work", "daily"]
    assert today["completed"] is False

    listed = client.get("/api/tasks", params={"externalId": "42", "filter": "today"})
    assert listed.status_code == 200
    assert [t["title"] for t in listed.json()["tasks"]] == ["Standup"]
    assert listed.json()["tasks"][0]["tags"] == ["work", "daily"]

    searched = client.get("/api/tasks", params={"externalId": "42", "q": "daily"})
    assert [t["title"] for t in searched.json()["tasks"]] == ["Standup"]

    everything = client.get("/api/tasks", params={"externalId": 42})
    assert [t["title"] for t in everything.json()["tasks"]] == ["Standup", "Dentist"]


def test_list_requires_owner_and_known_filter(client: TestClient) -> None:
    assert client.get("/api/tasks").status_code == 400

    resp = client.get("/api/tasks", params={"externalId": "42", "filter": "overdue"})
    assert resp.status_code == 400
    assert "filter" in resp.json()["error"]


def test_update_reopens_with_falsy_value(client: TestClient) -> None:
    task = _create(client, title="Laundry")

    done = client.put(f"/api/tasks/{task['id']}", json={"completed": True})
    assert done.json()["task"]["completed"] is True

    reopened = client.put(f"/api/tasks/{task['id']}", json={"completed": 0, "reminder_at": "2026-10-17T18:00"})
    body = reopened.json()["task"]
    assert body["completed"] is False
    assert body["reminderAt"] == "2026-10-17 18:00:00"
    assert body["title"] == "Laundry"

    active = client.get("/api/tasks", params={"externalId": "42", "filter": "active"})
    assert [t["id"] for t in active.json()["tasks"]] == [task["id"]]


def test_update_errors(client: TestClient) -> None:
    task = _create(client, title="t")

    missing = client.put("/api/tasks/999", json={"title": "x"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "not found"}

    nothing = client.put(f"/api/tasks/{task['id']}", json={"owner": "someone"})
    assert nothing.status_code == 400
    assert nothing.json() == {"error": "no fields to update"}

    not_object = client.put(f"/api/tasks/{task['id']}", json=["title"])
    assert not_object.status_code == 400

    bad_id = client.put("/api/tasks/abc", json={"title": "x"})
    assert bad_id.status_code == 400


def test_delete(client: TestClient) -> None:
    task = _create(client, title="Trash")

    resp = client.delete(f"/api/tasks/{task['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"deleted": True}

    assert client.get("/api/tasks", params={"externalId": "42"}).json()["tasks"] == []
    assert client.delete(f"/api/tasks/{task['id']}").status_code == 404


def test_store_errors_become_500(client: TestClient, state: AppState, monkeypatch) -> None:
    def broken(query):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(state.task_store, "query_tasks", broken)

    resp = client.get("/api/tasks", params={"externalId": "42"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "database is locked"}


def test_store_error_message_can_be_redacted(state: AppState, monkeypatch) -> None:
    def broken(query):
        raise sqlite3.OperationalError("database is locked")

    state.settings.expose_errors = False
    monkeypatch.setattr(state.task_store, "query_tasks", broken)

    with TestClient(create_app(state)) as client:
        resp = client.get("/api/tasks", params={"externalId": "42"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "internal error"}


def test_out_of_range_values(client: TestClient) -> None:
    huge = 10**20

    priority = client.post("/api/tasks", json={"externalId": "42", "title": "x", "priority": huge})
    assert priority.status_code == 400
    assert priority.json() == {"error": "priority is out of range"}

    assert client.put(f"/api/tasks/{huge}", json={"title": "x"}).status_code == 404
    deleted = client.delete(f"/api/tasks/{huge}")
    assert deleted.status_code == 404
    assert deleted.json() == {"error": "not found"}


def test_tags_with_commas_are_rejected(client: TestClient) -> None:
    resp = client.post("/api/tasks", json={"externalId": "42", "title": "x", "tags": ["a,b", "c"]})

    assert resp.status_code == 400
    assert resp.json() == {"error": "tags must not contain commas"}
    assert client.get("/api/tasks", params={"externalId": "42"}).json()["tasks"] == []


def test_unexpected_errors_use_the_error_envelope(state: AppState, monkeypatch) -> None:
    def broken(query):
        raise OverflowError("Python int too large to convert to SQLite INTEGER")

    monkeypatch.setattr(state.task_store, "query_tasks", broken)

    with TestClient(create_app(state), raise_server_exceptions=False) as client:
        resp = client.get("/api/tasks", params={"externalId": "42"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Python int too large to convert to SQLite INTEGER"}

        state.settings.expose_errors = False
        redacted = client.get("/api/tasks", params={"externalId": "42"})
        assert redacted.status_code == 500
        assert redacted.json() == {"error": "internal error"}
