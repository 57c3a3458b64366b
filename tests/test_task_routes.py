"""
tests/test_task_routes.py -- Integration tests for /api/tasks (staff only).

Coverage:
  - Client accounts are refused on every task route
  - Create needs at least one assignee; an unknown assignee stores nothing
  - Filters (?status=, ?assigned_to=) and /my
  - Only assignees may update; completion stamps completed_at
  - Comments
"""

from __future__ import annotations

import pytest

from conftest import ApiEnv


@pytest.fixture
def task(api: ApiEnv) -> str:
    resp = api.client.post(
        "/api/tasks",
        json={"title": "Quarterly report", "assigned_to": [api.team.id], "priority": "urgent"},
        headers=api.as_(api.management),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["task_id"]


class TestAccess:
    @pytest.mark.parametrize("method, path", [("get", "/api/tasks"), ("get", "/api/tasks/my"), ("post", "/api/tasks")])
    def test_client_role_refused(self, api: ApiEnv, method: str, path: str) -> None:
        resp = getattr(api.client, method)(path, headers=api.as_(api.client_user))
        assert resp.status_code == 403
        assert resp.json()["error"] == "Access denied"


class TestCreate:
    def test_no_assignees(self, api: ApiEnv) -> None:
        resp = api.client.post("/api/tasks", json={"title": "Orphan", "assigned_to": []}, headers=api.as_(api.team))
        assert resp.status_code == 400
        assert resp.json()["error"] == "At least one user must be assigned"

    def test_unknown_assignee_stores_nothing(self, api: ApiEnv) -> None:
        before = len(api.ops.list_tasks())
        resp = api.client.post(
            "/api/tasks",
            json={"title": "Ghost work", "assigned_to": [api.team.id, "ghost-id"]},
            headers=api.as_(api.team),
        )
        assert resp.status_code == 400
        assert len(api.ops.list_tasks()) == before

    def test_created_task_shape(self, api: ApiEnv, task: str) -> None:
        tasks = api.client.get("/api/tasks", headers=api.as_(api.team)).json()["tasks"]
        created = next(t for t in tasks if t["id"] == task)
        assert created["status"] == "pending"
        assert created["priority"] == "urgent"
        assert created["created_by"] == api.management.id
        assert created["created_by_name"] == api.management.name
        assert [u["id"] for u in created["assigned_users"]] == [api.team.id]


class TestQueries:
    def test_my_tasks(self, api: ApiEnv, task: str) -> None:
        mine = api.client.get("/api/tasks/my", headers=api.as_(api.team)).json()["tasks"]
        boss = api.client.get("/api/tasks/my", headers=api.as_(api.management)).json()["tasks"]
        assert task in [t["id"] for t in mine]
        assert task not in [t["id"] for t in boss]

    def test_filters(self, api: ApiEnv, task: str) -> None:
        headers = api.as_(api.team)
        by_user = api.client.get(f"/api/tasks?assigned_to={api.team.id}", headers=headers).json()["tasks"]
        assert task in [t["id"] for t in by_user]
        completed = api.client.get("/api/tasks?status=completed", headers=headers).json()["tasks"]
        assert task not in [t["id"] for t in completed]

    def test_bad_status_filter_is_422(self, api: ApiEnv) -> None:
        assert api.client.get("/api/tasks?status=sideways", headers=api.as_(api.team)).status_code == 422


class TestUpdate:
    def test_non_assignee_refused(self, api: ApiEnv, task: str) -> None:
        resp = api.client.put(f"/api/tasks/{task}", json={"status": "completed"}, headers=api.as_(api.management))
        assert resp.status_code == 403
        assert resp.json()["error"] == "You are not assigned to this task"

    def test_assignee_completes(self, api: ApiEnv, task: str) -> None:
        resp = api.client.put(f"/api/tasks/{task}", json={"status": "completed"}, headers=api.as_(api.team))
        assert resp.status_code == 200
        stored = api.ops.get_task(task)
        assert stored.status.value == "completed"
        assert stored.completed_at is not None

    def test_empty_update(self, api: ApiEnv, task: str) -> None:
        resp = api.client.put(f"/api/tasks/{task}", json={}, headers=api.as_(api.team))
        assert resp.status_code == 400

    def test_unknown_task(self, api: ApiEnv) -> None:
        resp = api.client.put("/api/tasks/missing", json={"status": "completed"}, headers=api.as_(api.team))
        assert resp.status_code == 404


class TestComments:
    def test_add_and_list(self, api: ApiEnv, task: str) -> None:
        headers = api.as_(api.management)
        resp = api.client.post(f"/api/tasks/{task}/comments", json={"comment": "Due Friday"}, headers=headers)
        assert resp.status_code == 201
        comments = api.client.get(f"/api/tasks/{task}/comments", headers=headers).json()["comments"]
        assert [c["comment"] for c in comments] == ["Due Friday"]

    def test_unknown_task(self, api: ApiEnv) -> None:
        resp = api.client.get("/api/tasks/missing/comments", headers=api.as_(api.team))
        assert resp.status_code == 404
