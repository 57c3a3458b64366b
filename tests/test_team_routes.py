"""
tests/test_team_routes.py -- Integration tests for the staff workspace routes.

Coverage:
  - /api/absences: date parsing, auto-approval of running absences, expiry
    rejection on list, approval records the approver
  - /api/news, /api/blog, /api/plans: CRUD round trips and 404s
  - /api/schedules, /api/calendar: create + ordered listing
  - /api/services: staff-only management, per-client views and statistics
  - /api/statistics: dashboard aggregate shape
  - Client accounts are refused on every staff-only surface
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.models import Role
from conftest import ApiEnv, seed_user
from ops.models import Absence, AbsenceStatus


@pytest.mark.parametrize(
    "path",
    ["/api/absences", "/api/news", "/api/blog", "/api/plans", "/api/schedules", "/api/calendar", "/api/statistics"],
)
def test_client_role_refused(api: ApiEnv, path: str) -> None:
    resp = api.client.get(path, headers=api.as_(api.client_user))
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Absences
# ---------------------------------------------------------------------------


class TestAbsences:
    def test_future_absence_is_pending(self, api: ApiEnv) -> None:
        start = (datetime.now(timezone.utc) + timedelta(days=10)).date().isoformat()
        end = (datetime.now(timezone.utc) + timedelta(days=12)).date().isoformat()
        resp = api.client.post(
            "/api/absences",
            json={"reason": "Vacation", "start_date": start, "end_date": end},
            headers=api.as_(api.team),
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["status"] == "pending"

        absences = api.client.get("/api/absences", headers=api.as_(api.team)).json()["absences"]
        stored = next(a for a in absences if a["id"] == resp.json()["absence_id"])
        assert stored["start_date"].startswith(f"{start}T00:00:00")
        assert stored["end_date"].startswith(f"{end}T23:59:59")

    def test_running_absence_is_auto_approved(self, api: ApiEnv) -> None:
        today = datetime.now(timezone.utc).date().isoformat()
        resp = api.client.post(
            "/api/absences",
            json={"reason": "Sick", "start_date": today, "end_date": today},
            headers=api.as_(api.team),
        )
        assert resp.status_code == 201
        assert resp.json()["status"] == "approved"

    def test_invalid_dates(self, api: ApiEnv) -> None:
        resp = api.client.post(
            "/api/absences",
            json={"reason": "Vacation", "start_date": "soon", "end_date": "2025-01-01"},
            headers=api.as_(api.team),
        )
        assert resp.status_code == 400

    def test_end_before_start(self, api: ApiEnv) -> None:
        resp = api.client.post(
            "/api/absences",
            json={"reason": "Vacation", "start_date": "2030-01-05", "end_date": "2030-01-01"},
            headers=api.as_(api.team),
        )
        assert resp.status_code == 400

    def test_listing_rejects_expired_pending(self, api: ApiEnv) -> None:
        past = datetime.now(timezone.utc) - timedelta(days=30)
        absence_id = api.ops.create_absence(
            Absence(
                user_id=api.team.id,
                reason="Forgotten",
                start_date=past.isoformat(),
                end_date=(past + timedelta(days=1)).isoformat(),
            )
        )
        absences = api.client.get("/api/absences", headers=api.as_(api.management)).json()["absences"]
        assert next(a for a in absences if a["id"] == absence_id)["status"] == "rejected"

    def test_approve_records_approver(self, api: ApiEnv) -> None:
        start = datetime.now(timezone.utc) + timedelta(days=20)
        absence_id = api.ops.create_absence(
            Absence(
                user_id=api.team.id,
                reason="Conference",
                start_date=start.isoformat(),
                end_date=(start + timedelta(days=2)).isoformat(),
                status=AbsenceStatus.pending,
            )
        )
        resp = api.client.put(
            f"/api/absences/{absence_id}", json={"status": "approved"}, headers=api.as_(api.management)
        )
        assert resp.status_code == 200
        absences = api.client.get("/api/absences", headers=api.as_(api.management)).json()["absences"]
        stored = next(a for a in absences if a["id"] == absence_id)
        assert stored["status"] == "approved"
        assert stored["approved_by"] == api.management.id
        assert stored["approved_by_name"] == api.management.name

    def test_update_unknown(self, api: ApiEnv) -> None:
        resp = api.client.put("/api/absences/missing", json={"status": "approved"}, headers=api.as_(api.management))
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# News, blog, plans
# ---------------------------------------------------------------------------


class TestNews:
    def test_crud(self, api: ApiEnv) -> None:
        headers = api.as_(api.team)
        resp = api.client.post("/api/news", json={"title": "Office move", "content": "Friday"}, headers=headers)
        assert resp.status_code == 201
        news_id = resp.json()["news_id"]

        assert api.client.put(f"/api/news/{news_id}", json={"is_pinned": True}, headers=headers).status_code == 200
        items = api.client.get("/api/news", headers=headers).json()["news"]
        assert items[0]["id"] == news_id
        assert items[0]["is_pinned"] is True
        assert items[0]["author_name"] == api.team.name

        assert api.client.put(f"/api/news/{news_id}", json={}, headers=headers).status_code == 400
        assert api.client.delete(f"/api/news/{news_id}", headers=headers).status_code == 200
        assert api.client.delete(f"/api/news/{news_id}", headers=headers).status_code == 404


class TestBlog:
    def test_create_returns_slug(self, api: ApiEnv) -> None:
        resp = api.client.post(
            "/api/blog",
            json={"title": "Hello, World!", "content": "First post", "status": "published"},
            headers=api.as_(api.team),
        )
        assert resp.status_code == 201
        assert resp.json()["slug"] == "hello-world"
        posts = api.client.get("/api/blog", headers=api.as_(api.team)).json()["posts"]
        post = next(p for p in posts if p["id"] == resp.json()["post_id"])
        assert post["published_at"] is not None

    def test_title_without_letters(self, api: ApiEnv) -> None:
        resp = api.client.post("/api/blog", json={"title": "!!!", "content": "x"}, headers=api.as_(api.team))
        assert resp.status_code == 400

    def test_retitle_and_delete(self, api: ApiEnv) -> None:
        headers = api.as_(api.team)
        post_id = api.client.post("/api/blog", json={"title": "Draft", "content": "x"}, headers=headers).json()[
            "post_id"
        ]
        assert api.client.put(f"/api/blog/{post_id}", json={"title": "Final Cut"}, headers=headers).status_code == 200
        posts = api.client.get("/api/blog", headers=headers).json()["posts"]
        assert next(p for p in posts if p["id"] == post_id)["slug"] == "final-cut"
        assert api.client.delete(f"/api/blog/{post_id}", headers=headers).status_code == 200
        assert api.client.put(f"/api/blog/{post_id}", json={"content": "y"}, headers=headers).status_code == 404


class TestPlans:
    def test_complete_and_reopen(self, api: ApiEnv) -> None:
        headers = api.as_(api.management)
        resp = api.client.post("/api/plans", json={"title": "Open Berlin office", "category": "growth"}, headers=headers)
        assert resp.status_code == 201
        plan_id = resp.json()["plan_id"]

        api.client.put(f"/api/plans/{plan_id}", json={"status": "completed"}, headers=headers)
        plan = next(p for p in api.client.get("/api/plans", headers=headers).json()["plans"] if p["id"] == plan_id)
        assert plan["completed_at"] is not None
        assert plan["category"] == "growth"

        api.client.put(f"/api/plans/{plan_id}", json={"status": "planned"}, headers=headers)
        plan = next(p for p in api.client.get("/api/plans", headers=headers).json()["plans"] if p["id"] == plan_id)
        assert plan["completed_at"] is None

    def test_unknown_plan(self, api: ApiEnv) -> None:
        headers = api.as_(api.management)
        assert api.client.put("/api/plans/missing", json={"title": "x"}, headers=headers).status_code == 404
        assert api.client.delete("/api/plans/missing", headers=headers).status_code == 404


# ---------------------------------------------------------------------------
# Schedules & calendar
# ---------------------------------------------------------------------------


class TestCalendar:
    def test_schedules_ordered_by_start(self, api: ApiEnv) -> None:
        headers = api.as_(api.management)
        for start in ("2031-01-02T09:00:00+00:00", "2031-01-01T09:00:00+00:00"):
            resp = api.client.post(
                "/api/schedules",
                json={"user_id": api.team.id, "title": "Shift", "start_time": start, "end_time": start},
                headers=headers,
            )
            assert resp.status_code == 201
        starts = [s["start_time"] for s in api.client.get("/api/schedules", headers=headers).json()["schedules"]]
        assert starts == sorted(starts)

    def test_schedule_for_unknown_user(self, api: ApiEnv) -> None:
        resp = api.client.post(
            "/api/schedules",
            json={"user_id": "ghost", "title": "Shift", "start_time": "2031-01-01", "end_time": "2031-01-01"},
            headers=api.as_(api.management),
        )
        assert resp.status_code == 400

    def test_events(self, api: ApiEnv) -> None:
        headers = api.as_(api.team)
        resp = api.client.post(
            "/api/calendar",
            json={"title": "Offsite", "start_date": "2031-05-01", "all_day": True, "event_type": "meeting"},
            headers=headers,
        )
        assert resp.status_code == 201
        events = api.client.get("/api/calendar", headers=headers).json()["events"]
        event = next(e for e in events if e["id"] == resp.json()["event_id"])
        assert event["all_day"] is True
        assert event["created_by_name"] == api.team.name


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


class TestServices:
    def _body(self, client_id: str, **overrides) -> dict:
        body = {
            "user_id": client_id,
            "name": "SEO retainer",
            "description": "Monthly optimisation",
            "service_type": "seo",
            "price": 500.0,
            "start_date": "2025-01-01",
        }
        body.update(overrides)
        return body

    def test_client_cannot_manage(self, api: ApiEnv) -> None:
        resp = api.client.post("/api/services", json=self._body(api.client_user.id), headers=api.as_(api.client_user))
        assert resp.status_code == 403
        assert resp.json()["error"] == "Access denied"
        assert api.client.get("/api/services/all", headers=api.as_(api.client_user)).status_code == 403

    def test_client_views_own_services_and_statistics(self, api: ApiEnv) -> None:
        customer = seed_user(api.users, Role.user)
        staff = api.as_(api.team)
        api.client.post("/api/services", json=self._body(customer.id), headers=staff)
        api.client.post("/api/services", json=self._body(customer.id, price=250.0, status="paused"), headers=staff)
        api.client.post("/api/services", json=self._body(api.client_user.id, price=9999.0), headers=staff)

        mine = api.client.get("/api/services/my", headers=api.as_(customer)).json()["services"]
        assert len(mine) == 2
        assert {s["user_id"] for s in mine} == {customer.id}

        stats = api.client.get("/api/services/statistics", headers=api.as_(customer)).json()["statistics"]
        assert stats["total_services"] == 2
        assert stats["active_services"] == 1
        assert stats["paused_services"] == 1
        assert stats["total_value"] == pytest.approx(750.0)
        assert stats["active_value"] == pytest.approx(500.0)

    def test_missing_required_field(self, api: ApiEnv) -> None:
        resp = api.client.post(
            "/api/services", json=self._body(api.client_user.id, name=""), headers=api.as_(api.team)
        )
        assert resp.status_code == 400

    def test_update_and_delete(self, api: ApiEnv) -> None:
        staff = api.as_(api.team)
        service_id = api.client.post("/api/services", json=self._body(api.client_user.id), headers=staff).json()[
            "service_id"
        ]
        resp = api.client.put(f"/api/services/{service_id}", json={"progress": 60}, headers=staff)
        assert resp.status_code == 200
        everything = api.client.get("/api/services/all", headers=staff).json()["services"]
        assert next(s for s in everything if s["id"] == service_id)["progress"] == 60

        assert api.client.delete(f"/api/services/{service_id}", headers=staff).status_code == 200
        assert api.client.delete(f"/api/services/{service_id}", headers=staff).status_code == 404
        assert api.client.put(f"/api/services/{service_id}", json={"progress": 1}, headers=staff).status_code == 404

    def test_empty_update(self, api: ApiEnv) -> None:
        staff = api.as_(api.team)
        service_id = api.client.post("/api/services", json=self._body(api.client_user.id), headers=staff).json()[
            "service_id"
        ]
        resp = api.client.put(f"/api/services/{service_id}", json={}, headers=staff)
        assert resp.status_code == 400
        assert resp.json()["code"] == "no_changes"


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class TestStatistics:
    def test_shape(self, api: ApiEnv) -> None:
        resp = api.client.get("/api/statistics", headers=api.as_(api.team))
        assert resp.status_code == 200
        stats = resp.json()["statistics"]
        for key in (
            "total_tasks",
            "completed_tasks",
            "pending_tasks",
            "in_progress_tasks",
            "total_members",
            "team_members",
            "clients",
            "active_absences",
            "urgent_tasks",
            "total_blog_posts",
            "total_events",
            "upcoming_events",
            "total_tickets",
            "open_tickets",
            "resolved_tickets",
        ):
            assert isinstance(stats[key], int), key
        assert len(stats["daily_completion"]) == 7
        assert stats["daily_creation"][0]["day"] == "Day 1"
        assert stats["total_members"] >= 3
