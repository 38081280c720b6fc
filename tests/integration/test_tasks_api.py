"""Integration tests for the task endpoints behind the verification gate."""

from __future__ import annotations

import pytest

from tests.helpers.http import assert_problem, bearer

TASK = {"title": "Write report", "description": "Q1 numbers", "due_date": "2026-03-01T09:00:00Z"}


@pytest.fixture
def alice_headers(user, login):
    return bearer(login("alice")["access_token"])


@pytest.fixture
def admin_headers(admin, login):
    return bearer(login("root")["access_token"])


def test_requires_authentication(client) -> None:
    assert_problem(client.get("/api/v1/tasks"), 401)
    assert_problem(client.post("/api/v1/tasks", json=TASK), 401)


def test_create_then_read(client, alice_headers, user) -> None:
    resp = client.post("/api/v1/tasks", json=TASK, headers=alice_headers)
    assert resp.status_code == 201
    created = resp.get_json()["data"]
    assert created["status"] == "Pending"
    assert created["owner"] == user.public_id

    resp = client.get(f"/api/v1/tasks/{created['id']}", headers=alice_headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["title"] == "Write report"


def test_create_validates_payload(client, alice_headers) -> None:
    resp = client.post(
        "/api/v1/tasks", json={**TASK, "status": "Someday"}, headers=alice_headers
    )
    body = assert_problem(resp, 422, "validation_error")
    assert "status" in body["details"]["errors"]


def test_list_count_and_pagination(client, alice_headers) -> None:
    for i in range(3):
        client.post("/api/v1/tasks", json={**TASK, "title": f"T{i}"}, headers=alice_headers)

    resp = client.get("/api/v1/tasks?page=2&limit=2", headers=alice_headers)
    body = resp.get_json()
    assert resp.status_code == 200
    assert len(body["data"]) == 1
    assert body["meta"]["total"] == 3
    assert body["meta"]["page"] == 2

    resp = client.get("/api/v1/tasks/count", headers=alice_headers)
    assert resp.get_json()["data"]["count"] == 3


def test_update_and_delete(client, alice_headers) -> None:
    task_id = client.post("/api/v1/tasks", json=TASK, headers=alice_headers).get_json()["data"]["id"]
    client.get(f"/api/v1/tasks/{task_id}", headers=alice_headers)

    resp = client.patch(
        f"/api/v1/tasks/{task_id}", json={"status": "InProgress"}, headers=alice_headers
    )
    assert resp.get_json()["data"]["status"] == "InProgress"
    resp = client.get(f"/api/v1/tasks/{task_id}", headers=alice_headers)
    assert resp.get_json()["data"]["status"] == "InProgress"

    assert client.delete(f"/api/v1/tasks/{task_id}", headers=alice_headers).status_code == 204
    assert_problem(client.get(f"/api/v1/tasks/{task_id}", headers=alice_headers), 404)


def test_tenants_are_isolated(client, alice_headers, make_user, login) -> None:
    task_id = client.post("/api/v1/tasks", json=TASK, headers=alice_headers).get_json()["data"]["id"]
    make_user(username="bob", email="bob@example.com")
    bob_headers = bearer(login("bob")["access_token"])

    assert_problem(client.get(f"/api/v1/tasks/{task_id}", headers=bob_headers), 403, "forbidden")
    assert_problem(client.delete(f"/api/v1/tasks/{task_id}", headers=bob_headers), 403)
    assert client.get("/api/v1/tasks/count", headers=bob_headers).get_json()["data"]["count"] == 0


def test_all_tasks_is_admin_only(client, alice_headers, admin_headers) -> None:
    client.post("/api/v1/tasks", json=TASK, headers=alice_headers)

    assert_problem(client.get("/api/v1/tasks/all", headers=alice_headers), 403)

    resp = client.get("/api/v1/tasks/all", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["meta"]["total"] == 1


def test_logged_out_token_cannot_reach_tasks(client, alice_headers) -> None:
    client.post("/api/v1/auth/logout", headers=alice_headers)
    assert_problem(client.get("/api/v1/tasks", headers=alice_headers), 401)


def test_health(client) -> None:
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "db": "ok", "cache": "ok", "version": "dev"}
