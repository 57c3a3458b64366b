"""
tests/test_member_routes.py -- Integration tests for /api/members.

Coverage:
  - Listing is staff-only and orders management first
  - Create / update / delete are management-only
  - Input rules: nickname length, email shape, password complexity, duplicates
  - Password changes are re-hashed; a manager cannot delete themselves
  - Role changes apply from the next login, not to live sessions
"""

from __future__ import annotations

import uuid

from auth.models import Role
from auth.passwords import verify_password
from conftest import TEST_PASSWORD, ApiEnv, seed_user


def _new_member(**overrides) -> dict:
    handle = uuid.uuid4().hex[:8]
    body = {
        "name": "Fresh Hire",
        "nickname": f"hire{handle}",
        "email": f"hire{handle}@example.com",
        "password": "Welcome-Aboard-7",
        "role": "team",
    }
    body.update(overrides)
    return body


class TestList:
    def test_client_refused(self, api: ApiEnv) -> None:
        assert api.client.get("/api/members", headers=api.as_(api.client_user)).status_code == 403

    def test_management_first(self, api: ApiEnv) -> None:
        resp = api.client.get("/api/members", headers=api.as_(api.team))
        assert resp.status_code == 200
        members = resp.json()["members"]
        assert members[0]["role"] == "management"
        assert all("password_hash" not in m for m in members)
        ranks = {"management": 0, "team": 1, "user": 2}
        assert [ranks[m["role"]] for m in members] == sorted(ranks[m["role"]] for m in members)


class TestCreate:
    def test_team_role_cannot_create(self, api: ApiEnv) -> None:
        resp = api.client.post("/api/members", json=_new_member(), headers=api.as_(api.team))
        assert resp.status_code == 403
        assert resp.json()["error"] == "Access denied: Management role required"

    def test_create(self, api: ApiEnv) -> None:
        body = _new_member()
        resp = api.client.post("/api/members", json=body, headers=api.as_(api.management))
        assert resp.status_code == 201, resp.text
        created = resp.json()["user"]
        assert created["role"] == "team"
        stored = api.users.get_by_id(created["id"])
        assert verify_password("Welcome-Aboard-7", stored.password_hash)

    def test_short_nickname(self, api: ApiEnv) -> None:
        resp = api.client.post("/api/members", json=_new_member(nickname="ab"), headers=api.as_(api.management))
        assert resp.status_code == 400

    def test_bad_email(self, api: ApiEnv) -> None:
        resp = api.client.post("/api/members", json=_new_member(email="nope"), headers=api.as_(api.management))
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid email format"

    def test_weak_password(self, api: ApiEnv) -> None:
        resp = api.client.post(
            "/api/members", json=_new_member(password="NoDigitsHere!"), headers=api.as_(api.management)
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Password must contain at least one number"

    def test_duplicate_email(self, api: ApiEnv) -> None:
        resp = api.client.post(
            "/api/members", json=_new_member(email="crew@example.com"), headers=api.as_(api.management)
        )
        assert resp.status_code == 409


class TestUpdate:
    def test_update_fields_and_password(self, api: ApiEnv) -> None:
        member = seed_user(api.users, Role.team)
        resp = api.client.put(
            f"/api/members/{member.id}",
            json={"name": "Promoted", "role": "management", "password": "Fresh-Start-2024"},
            headers=api.as_(api.management),
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "management"
        stored = api.users.get_by_id(member.id)
        assert stored.name == "Promoted"
        assert verify_password("Fresh-Start-2024", stored.password_hash)
        assert not verify_password(TEST_PASSWORD, stored.password_hash)

    def test_demotion_does_not_touch_live_session(self, api: ApiEnv) -> None:
        """Claims carry the role at login; the old cookie keeps working until it expires."""
        member = seed_user(api.users, Role.team)
        live = api.as_(member)
        api.client.put(f"/api/members/{member.id}", json={"role": "user"}, headers=api.as_(api.management))
        assert api.client.get("/api/tasks/my", headers=live).status_code == 200
        assert api.client.get("/api/tasks/my", headers=api.as_(api.users.get_by_id(member.id))).status_code == 403

    def test_empty_update(self, api: ApiEnv) -> None:
        member = seed_user(api.users, Role.team)
        resp = api.client.put(f"/api/members/{member.id}", json={}, headers=api.as_(api.management))
        assert resp.status_code == 400

    def test_unknown_member(self, api: ApiEnv) -> None:
        resp = api.client.put("/api/members/missing", json={"name": "X"}, headers=api.as_(api.management))
        assert resp.status_code == 404


class TestDelete:
    def test_delete(self, api: ApiEnv) -> None:
        member = seed_user(api.users, Role.team)
        resp = api.client.delete(f"/api/members/{member.id}", headers=api.as_(api.management))
        assert resp.status_code == 200
        assert api.users.get_by_id(member.id) is None

    def test_cannot_delete_self(self, api: ApiEnv) -> None:
        resp = api.client.delete(f"/api/members/{api.management.id}", headers=api.as_(api.management))
        assert resp.status_code == 400
        assert resp.json()["error"] == "Cannot delete your own account"

    def test_team_role_cannot_delete(self, api: ApiEnv) -> None:
        member = seed_user(api.users, Role.user)
        assert api.client.delete(f"/api/members/{member.id}", headers=api.as_(api.team)).status_code == 403

    def test_unknown_member(self, api: ApiEnv) -> None:
        assert api.client.delete("/api/members/missing", headers=api.as_(api.management)).status_code == 404
