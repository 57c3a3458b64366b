"""
ops/store.py -- SQLAlchemy Core persistence layer for team operations.

Uses SQLAlchemy Core (not ORM) so the dataclasses in ops/models.py remain the
authoritative domain representation.

Pattern: Repository + Data Mapper. OpsStore is the repository (one clean
interface per entity). The _row_to_* functions are the mappers. Route handlers
never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL. Partial
updates are built from Patch dataclasses via .values(**patch.changes()), so
column names only ever come from dataclass field names.

Shares the Engine (and the `users` table) with auth/store.py: author, owner
and assignee names are resolved with joins on aliased copies of users.

Usage:
    store = OpsStore(engine)
    ticket_id = store.create_ticket(Ticket(user_id=uid, title="Printer", description="Jammed"))
    store.update_ticket(ticket_id, TicketPatch(status=TicketStatus.resolved))
    store.dashboard_statistics()
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, Table, Text, case, func, select
from sqlalchemy.engine import Engine

from auth.store import users
from core.database import metadata, now_iso
from ops.models import (
    Absence,
    AbsenceStatus,
    AssignedUser,
    BlogPost,
    BlogPostPatch,
    BlogStatus,
    CalendarEvent,
    Comment,
    FuturePlan,
    FuturePlanPatch,
    News,
    NewsPatch,
    Priority,
    Schedule,
    Service,
    ServicePatch,
    ServiceStatistics,
    ServiceStatus,
    Task,
    TaskPatch,
    TaskStatus,
    Ticket,
    TicketPatch,
    TicketStatus,
)
from ops.rules import create_slug, last_n_days, parse_timestamp

logger = logging.getLogger("teamdesk.ops")

_USER_FK = "users.id"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

tickets = Table(
    "tickets",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("priority", String(20), nullable=False, server_default="medium"),
    Column("status", String(20), nullable=False, server_default="open"),
    Column("assigned_to", String(36), ForeignKey(_USER_FK, ondelete="SET NULL")),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
    Column("resolved_at", String(40)),
)

ticket_comments = Table(
    "ticket_comments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("ticket_id", String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("comment", Text, nullable=False),
    Column("created_at", String(40), nullable=False),
)

tasks = Table(
    "tasks",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("created_by", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("priority", String(20), nullable=False, server_default="medium"),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("due_date", String(40)),
    Column("completed_at", String(40)),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
)

task_assignments = Table(
    "task_assignments",
    metadata,
    Column("task_id", String(36), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), primary_key=True),
    Column("assigned_at", String(40), nullable=False),
)

task_comments = Table(
    "task_comments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("task_id", String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("comment", Text, nullable=False),
    Column("created_at", String(40), nullable=False),
)

absences = Table(
    "absences",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("reason", String(255), nullable=False),
    Column("description", Text),
    Column("start_date", String(40), nullable=False),  # normalized ISO 8601 UTC
    Column("end_date", String(40), nullable=False),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("approved_by", String(36), ForeignKey(_USER_FK, ondelete="SET NULL")),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
)

news = Table(
    "news",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("author_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("is_pinned", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
)

blog_posts = Table(
    "blog_posts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("slug", String(255), nullable=False, index=True),
    Column("content", Text, nullable=False),
    Column("excerpt", Text),
    Column("author_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("status", String(20), nullable=False, server_default="draft"),
    Column("published_at", String(40)),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
)

future_plans = Table(
    "future_plans",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("category", String(50), nullable=False, server_default="other"),
    Column("priority", String(20), nullable=False, server_default="medium"),
    Column("status", String(20), nullable=False, server_default="idea"),
    Column("target_date", String(40)),
    Column("completed_at", String(40)),
    Column("created_by", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
)

schedules = Table(
    "schedules",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("schedule_type", String(50), nullable=False, server_default="other"),
    Column("start_time", String(40), nullable=False),
    Column("end_time", String(40), nullable=False),
    Column("created_by", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
)

calendar_events = Table(
    "calendar_events",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("event_type", String(50), nullable=False, server_default="other"),
    Column("start_date", String(40), nullable=False),
    Column("end_date", String(40)),
    Column("all_day", Boolean, nullable=False, server_default="0"),
    Column("created_by", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
)

services = Table(
    "services",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("service_type", String(50), nullable=False),
    Column("price", Float, nullable=False, server_default="0"),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("start_date", String(40), nullable=False),
    Column("end_date", String(40)),
    Column("progress", Integer, nullable=False, server_default="0"),
    Column("notes", Text),
    Column("created_by", String(36), ForeignKey(_USER_FK, ondelete="CASCADE"), nullable=False),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
)

_OPS_TABLES = [
    tickets,
    ticket_comments,
    tasks,
    task_assignments,
    task_comments,
    absences,
    news,
    blog_posts,
    future_plans,
    schedules,
    calendar_events,
    services,
]

# Aliases of users for name lookups. Two are needed where a row references
# two accounts (e.g. absence owner + approver).
_owner = users.alias("owner")
_actor = users.alias("actor")


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OpsStore:
    """Repository for tickets, tasks, absences, content, planning and services."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[users, *_OPS_TABLES])

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    def create_ticket(self, ticket: Ticket) -> str:
        ticket_id = _new_id()
        now = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                tickets.insert().values(
                    id=ticket_id,
                    user_id=ticket.user_id,
                    title=ticket.title,
                    description=ticket.description,
                    priority=Priority(ticket.priority).value,
                    status=TicketStatus.open.value,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return ticket_id

    def _ticket_select(self):
        return select(tickets, _owner.c.name.label("user_name")).select_from(
            tickets.outerjoin(_owner, tickets.c.user_id == _owner.c.id)
        )

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        with self.engine.connect() as conn:
            row = conn.execute(self._ticket_select().where(tickets.c.id == ticket_id)).fetchone()
        return _row_to_ticket(row) if row is not None else None

    def list_tickets_for_user(self, user_id: str) -> list[Ticket]:
        """Tickets raised by user_id, newest first."""
        stmt = self._ticket_select().where(tickets.c.user_id == user_id).order_by(tickets.c.created_at.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_ticket(r) for r in rows]

    def list_all_tickets(self) -> list[Ticket]:
        with self.engine.connect() as conn:
            rows = conn.execute(self._ticket_select().order_by(tickets.c.created_at.desc())).fetchall()
        return [_row_to_ticket(r) for r in rows]

    def update_ticket(self, ticket_id: str, patch: TicketPatch) -> bool:
        """Apply patch. Moving to resolved stamps resolved_at. False if ticket_id is unknown."""
        changes = patch.changes()
        now = now_iso()
        if changes.get("status") == TicketStatus.resolved.value:
            changes["resolved_at"] = now
        with self.engine.connect() as conn:
            result = conn.execute(tickets.update().where(tickets.c.id == ticket_id).values(**changes, updated_at=now))
            conn.commit()
        return result.rowcount > 0

    def add_ticket_comment(self, comment: Comment) -> str:
        return self._add_comment(ticket_comments, ticket_comments.c.ticket_id.key, comment)

    def list_ticket_comments(self, ticket_id: str) -> list[Comment]:
        return self._list_comments(ticket_comments, ticket_comments.c.ticket_id, ticket_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, task: Task, assignee_ids: list[str]) -> str:
        """Insert the task and one assignment row per assignee atomically.

        engine.begin() commits on success and rolls back if any insert fails,
        so a task never exists without its assignments.
        """
        if not assignee_ids:
            raise ValueError("a task needs at least one assignee")
        task_id = _new_id()
        now = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                tasks.insert().values(
                    id=task_id,
                    title=task.title,
                    description=task.description,
                    created_by=task.created_by,
                    priority=Priority(task.priority).value,
                    status=TaskStatus.pending.value,
                    due_date=task.due_date,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.execute(
                task_assignments.insert(),
                [{"task_id": task_id, "user_id": uid, "assigned_at": now} for uid in dict.fromkeys(assignee_ids)],
            )
        return task_id

    def _task_select(self):
        return select(tasks, _actor.c.name.label("created_by_name")).select_from(
            tasks.outerjoin(_actor, tasks.c.created_by == _actor.c.id)
        )

    def get_task(self, task_id: str) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(self._task_select().where(tasks.c.id == task_id)).fetchone()
            if row is None:
                return None
            assignees = self._load_assignees(conn, [task_id])
        return _row_to_task(row, assignees.get(task_id, []))

    def list_tasks(self, status: Optional[TaskStatus] = None, assigned_to: Optional[str] = None) -> list[Task]:
        """All tasks, newest first, optionally filtered by status and/or assignee."""
        stmt = self._task_select()
        if status is not None:
            stmt = stmt.where(tasks.c.status == TaskStatus(status).value)
        if assigned_to is not None:
            assigned = select(task_assignments.c.task_id).where(task_assignments.c.user_id == assigned_to)
            stmt = stmt.where(tasks.c.id.in_(assigned))
        stmt = stmt.order_by(tasks.c.created_at.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
            assignees = self._load_assignees(conn, [r.id for r in rows])
        return [_row_to_task(r, assignees.get(r.id, [])) for r in rows]

    def list_tasks_for_user(self, user_id: str) -> list[Task]:
        return self.list_tasks(assigned_to=user_id)

    def is_assigned(self, task_id: str, user_id: str) -> bool:
        stmt = select(task_assignments.c.task_id).where(
            (task_assignments.c.task_id == task_id) & (task_assignments.c.user_id == user_id)
        )
        with self.engine.connect() as conn:
            return conn.execute(stmt).fetchone() is not None

    def update_task(self, task_id: str, patch: TaskPatch) -> bool:
        """Apply patch. Moving to completed stamps completed_at."""
        changes = patch.changes()
        now = now_iso()
        if changes.get("status") == TaskStatus.completed.value:
            changes["completed_at"] = now
        with self.engine.connect() as conn:
            result = conn.execute(tasks.update().where(tasks.c.id == task_id).values(**changes, updated_at=now))
            conn.commit()
        return result.rowcount > 0

    def add_task_comment(self, comment: Comment) -> str:
        return self._add_comment(task_comments, task_comments.c.task_id.key, comment)

    def list_task_comments(self, task_id: str) -> list[Comment]:
        return self._list_comments(task_comments, task_comments.c.task_id, task_id)

    def _load_assignees(self, conn, task_ids: list[str]) -> dict[str, list[AssignedUser]]:
        """Map task id -> assigned users in one query (no N+1)."""
        if not task_ids:
            return {}
        stmt = (
            select(task_assignments.c.task_id, users.c.id, users.c.name)
            .select_from(task_assignments.join(users, task_assignments.c.user_id == users.c.id))
            .where(task_assignments.c.task_id.in_(task_ids))
            .order_by(users.c.name)
        )
        result: dict[str, list[AssignedUser]] = {}
        for row in conn.execute(stmt).fetchall():
            result.setdefault(row.task_id, []).append(AssignedUser(id=row.id, name=row.name))
        return result

    # ------------------------------------------------------------------
    # Comments (shared by tickets and tasks)
    # ------------------------------------------------------------------

    def _add_comment(self, table: Table, parent_column: str, comment: Comment) -> str:
        comment_id = _new_id()
        with self.engine.connect() as conn:
            conn.execute(
                table.insert().values(
                    {
                        "id": comment_id,
                        parent_column: comment.parent_id,
                        "user_id": comment.user_id,
                        "comment": comment.comment,
                        "created_at": now_iso(),
                    }
                )
            )
            conn.commit()
        return comment_id

    def _list_comments(self, table: Table, parent_column, parent_id: str) -> list[Comment]:
        """Oldest first, so a thread reads top to bottom."""
        stmt = (
            select(table, _owner.c.name.label("user_name"))
            .select_from(table.outerjoin(_owner, table.c.user_id == _owner.c.id))
            .where(parent_column == parent_id)
            .order_by(table.c.created_at.asc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            Comment(
                id=r.id,
                parent_id=getattr(r, parent_column.key),
                user_id=r.user_id,
                user_name=r.user_name,
                comment=r.comment,
                created_at=r.created_at,
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Absences
    # ------------------------------------------------------------------

    def create_absence(self, absence: Absence) -> str:
        absence_id = _new_id()
        now = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                absences.insert().values(
                    id=absence_id,
                    user_id=absence.user_id,
                    reason=absence.reason,
                    description=absence.description,
                    start_date=absence.start_date,
                    end_date=absence.end_date,
                    status=AbsenceStatus(absence.status).value,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return absence_id

    def reject_expired_absences(self, now: Optional[datetime] = None) -> int:
        """Reject pending absences whose end date has passed. Returns how many changed.

        Stored dates are normalized ISO 8601 UTC, so string comparison orders
        them chronologically.
        """
        cutoff = (now or datetime.now(timezone.utc)).isoformat()
        with self.engine.connect() as conn:
            result = conn.execute(
                absences.update()
                .where((absences.c.status == AbsenceStatus.pending.value) & (absences.c.end_date < cutoff))
                .values(status=AbsenceStatus.rejected.value, updated_at=now_iso())
            )
            conn.commit()
        if result.rowcount:
            logger.info("Auto-rejected %d expired absence request(s)", result.rowcount)
        return result.rowcount

    def list_absences(self) -> list[Absence]:
        stmt = (
            select(absences, _owner.c.name.label("user_name"), _actor.c.name.label("approved_by_name"))
            .select_from(
                absences.outerjoin(_owner, absences.c.user_id == _owner.c.id).outerjoin(
                    _actor, absences.c.approved_by == _actor.c.id
                )
            )
            .order_by(absences.c.start_date.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_absence(r) for r in rows]

    def set_absence_status(self, absence_id: str, status: AbsenceStatus, approver_id: str) -> bool:
        """Record a decision. approver_id is stored for approvals and rejections alike."""
        with self.engine.connect() as conn:
            result = conn.execute(
                absences.update()
                .where(absences.c.id == absence_id)
                .values(status=AbsenceStatus(status).value, approved_by=approver_id, updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    def create_news(self, item: News) -> str:
        news_id = _new_id()
        now = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                news.insert().values(
                    id=news_id,
                    title=item.title,
                    content=item.content,
                    author_id=item.author_id,
                    is_pinned=bool(item.is_pinned),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return news_id

    def list_news(self) -> list[News]:
        """Pinned first, then newest first."""
        stmt = (
            select(news, _owner.c.name.label("author_name"))
            .select_from(news.outerjoin(_owner, news.c.author_id == _owner.c.id))
            .order_by(news.c.is_pinned.desc(), news.c.created_at.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_news(r) for r in rows]

    def update_news(self, news_id: str, patch: NewsPatch) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                news.update().where(news.c.id == news_id).values(**patch.changes(), updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_news(self, news_id: str) -> bool:
        return self._delete(news, news_id)

    # ------------------------------------------------------------------
    # Blog
    # ------------------------------------------------------------------

    def create_post(self, post: BlogPost) -> tuple[str, str]:
        """Insert post and return (id, slug). The slug is derived from the title."""
        post_id = _new_id()
        slug = create_slug(post.title)
        now = now_iso()
        status = BlogStatus(post.status)
        with self.engine.connect() as conn:
            conn.execute(
                blog_posts.insert().values(
                    id=post_id,
                    title=post.title,
                    slug=slug,
                    content=post.content,
                    excerpt=post.excerpt,
                    author_id=post.author_id,
                    status=status.value,
                    published_at=now if status == BlogStatus.published else None,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return post_id, slug

    def list_posts(self) -> list[BlogPost]:
        stmt = (
            select(blog_posts, _owner.c.name.label("author_name"))
            .select_from(blog_posts.outerjoin(_owner, blog_posts.c.author_id == _owner.c.id))
            .order_by(blog_posts.c.created_at.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_post(r) for r in rows]

    def update_post(self, post_id: str, patch: BlogPostPatch) -> bool:
        """Apply patch. A new title re-derives the slug; publishing stamps published_at."""
        changes = patch.changes()
        now = now_iso()
        if "title" in changes:
            changes["slug"] = create_slug(changes["title"])
        if changes.get("status") == BlogStatus.published.value:
            changes["published_at"] = now
        with self.engine.connect() as conn:
            result = conn.execute(
                blog_posts.update().where(blog_posts.c.id == post_id).values(**changes, updated_at=now)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_post(self, post_id: str) -> bool:
        return self._delete(blog_posts, post_id)

    # ------------------------------------------------------------------
    # Future plans
    # ------------------------------------------------------------------

    def create_plan(self, plan: FuturePlan) -> str:
        plan_id = _new_id()
        now = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                future_plans.insert().values(
                    id=plan_id,
                    title=plan.title,
                    description=plan.description,
                    category=plan.category,
                    priority=plan.priority,
                    status=plan.status,
                    target_date=plan.target_date,
                    created_by=plan.created_by,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return plan_id

    def list_plans(self) -> list[FuturePlan]:
        stmt = (
            select(future_plans, _actor.c.name.label("created_by_name"))
            .select_from(future_plans.outerjoin(_actor, future_plans.c.created_by == _actor.c.id))
            .order_by(future_plans.c.created_at.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_plan(r) for r in rows]

    def update_plan(self, plan_id: str, patch: FuturePlanPatch) -> bool:
        """Apply patch. Moving to completed stamps completed_at; any other status clears it."""
        changes = patch.changes()
        now = now_iso()
        if "status" in changes:
            changes["completed_at"] = now if changes["status"] == "completed" else None
        with self.engine.connect() as conn:
            result = conn.execute(
                future_plans.update().where(future_plans.c.id == plan_id).values(**changes, updated_at=now)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_plan(self, plan_id: str) -> bool:
        return self._delete(future_plans, plan_id)

    # ------------------------------------------------------------------
    # Schedules & calendar
    # ------------------------------------------------------------------

    def create_schedule(self, schedule: Schedule) -> str:
        schedule_id = _new_id()
        now = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                schedules.insert().values(
                    id=schedule_id,
                    user_id=schedule.user_id,
                    title=schedule.title,
                    description=schedule.description,
                    schedule_type=schedule.schedule_type,
                    start_time=schedule.start_time,
                    end_time=schedule.end_time,
                    created_by=schedule.created_by,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return schedule_id

    def list_schedules(self) -> list[Schedule]:
        stmt = (
            select(schedules, _owner.c.name.label("user_name"), _actor.c.name.label("created_by_name"))
            .select_from(
                schedules.outerjoin(_owner, schedules.c.user_id == _owner.c.id).outerjoin(
                    _actor, schedules.c.created_by == _actor.c.id
                )
            )
            .order_by(schedules.c.start_time.asc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_schedule(r) for r in rows]

    def create_event(self, event: CalendarEvent) -> str:
        event_id = _new_id()
        now = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                calendar_events.insert().values(
                    id=event_id,
                    title=event.title,
                    description=event.description,
                    event_type=event.event_type,
                    start_date=event.start_date,
                    end_date=event.end_date,
                    all_day=bool(event.all_day),
                    created_by=event.created_by,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return event_id

    def list_events(self) -> list[CalendarEvent]:
        stmt = (
            select(calendar_events, _actor.c.name.label("created_by_name"))
            .select_from(calendar_events.outerjoin(_actor, calendar_events.c.created_by == _actor.c.id))
            .order_by(calendar_events.c.start_date.asc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_event(r) for r in rows]

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def create_service(self, service: Service) -> str:
        service_id = _new_id()
        now = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                services.insert().values(
                    id=service_id,
                    user_id=service.user_id,
                    name=service.name,
                    description=service.description,
                    service_type=service.service_type,
                    price=service.price,
                    status=ServiceStatus(service.status).value,
                    start_date=service.start_date,
                    end_date=service.end_date,
                    progress=service.progress,
                    notes=service.notes,
                    created_by=service.created_by,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return service_id

    def list_services(self, user_id: Optional[str] = None) -> list[Service]:
        """All services, or only those delivered to user_id. Newest first."""
        stmt = select(services, _owner.c.name.label("user_name"), _actor.c.name.label("created_by_name")).select_from(
            services.outerjoin(_owner, services.c.user_id == _owner.c.id).outerjoin(
                _actor, services.c.created_by == _actor.c.id
            )
        )
        if user_id is not None:
            stmt = stmt.where(services.c.user_id == user_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(services.c.created_at.desc())).fetchall()
        return [_row_to_service(r) for r in rows]

    def service_statistics(self, user_id: str) -> ServiceStatistics:
        """Counts and value totals over the services delivered to user_id.

        Conditional aggregation: one SELECT, one row.
        """
        is_active = services.c.status == ServiceStatus.active.value
        stmt = select(
            func.count().label("total"),
            func.count(case((is_active, 1))).label("active"),
            func.count(case((services.c.status == ServiceStatus.completed.value, 1))).label("completed"),
            func.count(case((services.c.status == ServiceStatus.paused.value, 1))).label("paused"),
            func.coalesce(func.sum(services.c.price), 0.0).label("total_value"),
            func.coalesce(func.sum(case((is_active, services.c.price), else_=0.0)), 0.0).label("active_value"),
        ).where(services.c.user_id == user_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return ServiceStatistics(
            total_services=row.total,
            active_services=row.active,
            completed_services=row.completed,
            paused_services=row.paused,
            total_value=float(row.total_value),
            active_value=float(row.active_value),
        )

    def update_service(self, service_id: str, patch: ServicePatch) -> bool:
        """Apply patch; updated_at is always bumped. False if service_id is unknown."""
        with self.engine.connect() as conn:
            result = conn.execute(
                services.update().where(services.c.id == service_id).values(**patch.changes(), updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_service(self, service_id: str) -> bool:
        return self._delete(services, service_id)

    # ------------------------------------------------------------------
    # Dashboard statistics
    # ------------------------------------------------------------------

    def dashboard_statistics(self, now: Optional[datetime] = None) -> dict:
        """Aggregate counts for the team dashboard.

        daily_completion / daily_creation cover the last 7 days (oldest first,
        labelled "Day 1".."Day 7") and are bucketed in Python from the ISO
        timestamps so the query stays portable across SQLite and PostgreSQL.
        """
        now = now or datetime.now(timezone.utc)
        now_str = now.isoformat()

        task_stmt = select(
            func.count().label("total"),
            *[
                func.count(case((tasks.c.status == s.value, 1))).label(s.value)
                for s in (TaskStatus.completed, TaskStatus.pending, TaskStatus.in_progress)
            ],
            *[func.count(case((tasks.c.priority == p.value, 1))).label(f"p_{p.value}") for p in Priority],
        )
        member_stmt = select(
            func.count().label("total"),
            func.count(case((users.c.role.in_(["team", "management"]), 1))).label("team"),
            func.count(case((users.c.role == "user", 1))).label("clients"),
        )
        active_absence_stmt = select(func.count()).where(
            (absences.c.status == AbsenceStatus.approved.value)
            & (absences.c.start_date <= now_str)
            & (absences.c.end_date >= now_str)
        )
        blog_stmt = select(
            func.count().label("total"),
            func.count(case((blog_posts.c.status == BlogStatus.published.value, 1))).label("published"),
            func.count(case((blog_posts.c.status == BlogStatus.draft.value, 1))).label("draft"),
        )
        ticket_stmt = select(
            func.count().label("total"),
            func.count(case((tickets.c.status == TicketStatus.open.value, 1))).label("open"),
            func.count(case((tickets.c.status == TicketStatus.resolved.value, 1))).label("resolved"),
        )

        with self.engine.connect() as conn:
            t = conn.execute(task_stmt).fetchone()
            m = conn.execute(member_stmt).fetchone()
            active_absences = conn.execute(active_absence_stmt).scalar() or 0
            b = conn.execute(blog_stmt).fetchone()
            k = conn.execute(ticket_stmt).fetchone()
            task_times = conn.execute(select(tasks.c.status, tasks.c.created_at, tasks.c.completed_at)).fetchall()
            event_starts = conn.execute(select(calendar_events.c.start_date)).scalars().all()

        days = last_n_days(7, now.date())
        created = {d: 0 for d in days}
        completed = {d: 0 for d in days}
        for row in task_times:
            made = parse_timestamp(row.created_at)
            if made is not None and made.date() in created:
                created[made.date()] += 1
            done = parse_timestamp(row.completed_at)
            if row.status == TaskStatus.completed.value and done is not None and done.date() in completed:
                completed[done.date()] += 1

        upcoming_events = 0
        for value in event_starts:
            start = parse_timestamp(value)
            if start is not None and start >= now:
                upcoming_events += 1

        return {
            "total_tasks": t.total,
            "completed_tasks": t.completed,
            "pending_tasks": t.pending,
            "in_progress_tasks": t.in_progress,
            "total_members": m.total,
            "team_members": m.team,
            "clients": m.clients,
            "active_absences": active_absences,
            "urgent_tasks": t.p_urgent,
            "high_tasks": t.p_high,
            "medium_tasks": t.p_medium,
            "low_tasks": t.p_low,
            "daily_completion": [{"day": f"Day {i}", "completed": completed[d]} for i, d in enumerate(days, start=1)],
            "daily_creation": [{"day": f"Day {i}", "created": created[d]} for i, d in enumerate(days, start=1)],
            "total_blog_posts": b.total,
            "published_posts": b.published,
            "draft_posts": b.draft,
            "total_events": len(event_starts),
            "upcoming_events": upcoming_events,
            "total_tickets": k.total,
            "open_tickets": k.open,
            "resolved_tickets": k.resolved,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _delete(self, table: Table, row_id: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(table.delete().where(table.c.id == row_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_ticket(row) -> Ticket:
    return Ticket(
        id=row.id,
        user_id=row.user_id,
        user_name=row.user_name,
        title=row.title,
        description=row.description,
        priority=Priority(row.priority),
        status=TicketStatus(row.status),
        assigned_to=row.assigned_to,
        created_at=row.created_at,
        updated_at=row.updated_at,
        resolved_at=row.resolved_at,
    )


def _row_to_task(row, assigned: list[AssignedUser]) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description,
        created_by=row.created_by,
        created_by_name=row.created_by_name,
        priority=Priority(row.priority),
        status=TaskStatus(row.status),
        due_date=row.due_date,
        completed_at=row.completed_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
        assigned_users=assigned,
    )


def _row_to_absence(row) -> Absence:
    return Absence(
        id=row.id,
        user_id=row.user_id,
        user_name=row.user_name,
        reason=row.reason,
        description=row.description,
        start_date=row.start_date,
        end_date=row.end_date,
        status=AbsenceStatus(row.status),
        approved_by=row.approved_by,
        approved_by_name=row.approved_by_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_news(row) -> News:
    return News(
        id=row.id,
        title=row.title,
        content=row.content,
        author_id=row.author_id,
        author_name=row.author_name,
        is_pinned=bool(row.is_pinned),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_post(row) -> BlogPost:
    return BlogPost(
        id=row.id,
        title=row.title,
        slug=row.slug,
        content=row.content,
        excerpt=row.excerpt,
        author_id=row.author_id,
        author_name=row.author_name,
        status=BlogStatus(row.status),
        published_at=row.published_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_plan(row) -> FuturePlan:
    return FuturePlan(
        id=row.id,
        title=row.title,
        description=row.description,
        category=row.category,
        priority=row.priority,
        status=row.status,
        target_date=row.target_date,
        completed_at=row.completed_at,
        created_by=row.created_by,
        created_by_name=row.created_by_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_schedule(row) -> Schedule:
    return Schedule(
        id=row.id,
        user_id=row.user_id,
        user_name=row.user_name,
        title=row.title,
        description=row.description,
        schedule_type=row.schedule_type,
        start_time=row.start_time,
        end_time=row.end_time,
        created_by=row.created_by,
        created_by_name=row.created_by_name,
        created_at=row.created_at,
    )


def _row_to_event(row) -> CalendarEvent:
    return CalendarEvent(
        id=row.id,
        title=row.title,
        description=row.description,
        event_type=row.event_type,
        start_date=row.start_date,
        end_date=row.end_date,
        all_day=bool(row.all_day),
        created_by=row.created_by,
        created_by_name=row.created_by_name,
        created_at=row.created_at,
    )


def _row_to_service(row) -> Service:
    return Service(
        id=row.id,
        user_id=row.user_id,
        user_name=row.user_name,
        name=row.name,
        description=row.description,
        service_type=row.service_type,
        price=float(row.price),
        status=ServiceStatus(row.status),
        start_date=row.start_date,
        end_date=row.end_date,
        progress=row.progress,
        notes=row.notes,
        created_by=row.created_by,
        created_by_name=row.created_by_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
