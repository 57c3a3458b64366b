"""
ops/models.py -- Domain dataclasses for team operations entities.

Pattern: Data class (pure data container, zero logic). Mirrors auth/models.py.

Entities: Ticket, Comment (tickets and tasks), Task, Absence, News, BlogPost,
FuturePlan, Schedule, CalendarEvent, Service.

*_name fields (user_name, author_name, created_by_name, ...) are not stored;
the store fills them from a join on users so the frontend can render names
without a second request.

Patch dataclasses list the fields a partial update may touch. None means
"leave unchanged". OpsStore turns the set fields into one parameterized
UPDATE.

Layer rule: no imports from api/. core.models is allowed for the Patch base.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from core.models import Patch

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class TicketStatus(str, Enum):
    open = "open"
    in_progress = "in_progress"
    resolved = "resolved"
    closed = "closed"


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class AbsenceStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class BlogStatus(str, Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class ServiceStatus(str, Enum):
    active = "active"
    completed = "completed"
    paused = "paused"
    cancelled = "cancelled"


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------


@dataclass
class Ticket:
    """A support request raised by any user and worked by staff."""

    user_id: str
    title: str
    description: str
    priority: Priority = Priority.medium
    status: TicketStatus = TicketStatus.open
    id: Optional[str] = None
    assigned_to: Optional[str] = None
    user_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    resolved_at: Optional[str] = None  # stamped when status becomes resolved


@dataclass
class Comment:
    """A comment on a ticket or task. parent_id is the ticket/task id."""

    parent_id: str
    user_id: str
    comment: str
    id: Optional[str] = None
    user_name: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class TicketPatch(Patch):
    status: Optional[TicketStatus] = None
    assigned_to: Optional[str] = None
    priority: Optional[Priority] = None


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@dataclass
class AssignedUser:
    id: str
    name: str


@dataclass
class Task:
    """Internal staff work item. assigned_users is never empty for a stored task."""

    title: str
    created_by: str
    description: Optional[str] = None
    priority: Priority = Priority.medium
    status: TaskStatus = TaskStatus.pending
    due_date: Optional[str] = None
    id: Optional[str] = None
    created_by_name: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    assigned_users: list[AssignedUser] = field(default_factory=list)


@dataclass
class TaskPatch(Patch):
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    due_date: Optional[str] = None


# ---------------------------------------------------------------------------
# Absences
# ---------------------------------------------------------------------------


@dataclass
class Absence:
    user_id: str
    reason: str
    start_date: str  # ISO 8601
    end_date: str
    description: Optional[str] = None
    status: AbsenceStatus = AbsenceStatus.pending
    id: Optional[str] = None
    user_name: Optional[str] = None
    approved_by: Optional[str] = None
    approved_by_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# ---------------------------------------------------------------------------
# News & blog
# ---------------------------------------------------------------------------


@dataclass
class News:
    title: str
    content: str
    author_id: str
    is_pinned: bool = False
    id: Optional[str] = None
    author_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class NewsPatch(Patch):
    title: Optional[str] = None
    content: Optional[str] = None
    is_pinned: Optional[bool] = None


@dataclass
class BlogPost:
    title: str
    content: str
    author_id: str
    slug: str = ""
    excerpt: Optional[str] = None
    status: BlogStatus = BlogStatus.draft
    id: Optional[str] = None
    author_name: Optional[str] = None
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class BlogPostPatch(Patch):
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    status: Optional[BlogStatus] = None


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


@dataclass
class FuturePlan:
    title: str
    created_by: str
    description: Optional[str] = None
    category: str = "other"
    priority: str = "medium"
    status: str = "idea"
    target_date: Optional[str] = None
    id: Optional[str] = None
    created_by_name: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class FuturePlanPatch(Patch):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    target_date: Optional[str] = None


@dataclass
class Schedule:
    user_id: str
    title: str
    start_time: str
    end_time: str
    created_by: str
    description: Optional[str] = None
    schedule_type: str = "other"
    id: Optional[str] = None
    user_name: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class CalendarEvent:
    title: str
    start_date: str
    created_by: str
    description: Optional[str] = None
    event_type: str = "other"
    end_date: Optional[str] = None
    all_day: bool = False
    id: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[str] = None


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@dataclass
class Service:
    """A paid engagement delivered to a client account (user_id)."""

    user_id: str
    name: str
    description: str
    service_type: str
    start_date: str
    created_by: str
    price: float = 0.0
    status: ServiceStatus = ServiceStatus.active
    end_date: Optional[str] = None
    progress: int = 0  # percent, 0-100
    notes: Optional[str] = None
    id: Optional[str] = None
    user_name: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class ServicePatch(Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    service_type: Optional[str] = None
    price: Optional[float] = None
    status: Optional[ServiceStatus] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    progress: Optional[int] = None
    notes: Optional[str] = None


@dataclass
class ServiceStatistics:
    total_services: int = 0
    active_services: int = 0
    completed_services: int = 0
    paused_services: int = 0
    total_value: float = 0.0
    active_value: float = 0.0
