"""
API request and response models for TeamDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
ops/models.py, which own the internal domain representation. Response models
read domain dataclasses directly via from_attributes=True.

Envelope convention: every response carries `success`. Failures use
ErrorResponse: {"success": false, "error": "<message>", "code": "<code>"}.

Separation of concerns: domain models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from auth.models import Role
from ops.models import AbsenceStatus, BlogStatus, Priority, ServiceStatus, TaskStatus, TicketStatus

# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    detail: Optional[str] = None


class StatusResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "teamdesk"
    version: str


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class UserInfo(_Out):
    """Public view of an account. Never includes password_hash or totp_secret."""

    id: str
    name: str
    nickname: str
    email: str
    role: Role
    profile_picture: Optional[str] = None
    totp_enabled: bool = False


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(max_length=255)
    password: str = Field(max_length=1024)
    totp_code: Optional[str] = Field(default=None, max_length=10)


class LoginResponse(BaseModel):
    """Login outcome. The session token travels in the cookie only; `token` is always null."""

    success: bool
    user: Optional[UserInfo] = None
    token: Optional[str] = None
    error: Optional[str] = None
    requires_2fa: bool = False


class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    registration_secret: str
    name: str = Field(min_length=1, max_length=255)
    nickname: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(max_length=1024)
    role: Role = Role.user


class UserEnvelope(BaseModel):
    success: bool = True
    user: UserInfo


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(max_length=1024)
    new_password: str = Field(max_length=1024)


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    nickname: Optional[str] = Field(default=None, max_length=255)
    profile_picture: Optional[str] = None


class CreateMemberRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(max_length=255)
    nickname: str = Field(max_length=255)
    email: str = Field(max_length=255)
    password: str = Field(max_length=1024)
    role: Role = Role.team


class UpdateMemberRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    nickname: Optional[str] = Field(default=None, min_length=3, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    password: Optional[str] = Field(default=None, max_length=1024)


class MembersResponse(BaseModel):
    success: bool = True
    members: list[UserInfo]


# ---------------------------------------------------------------------------
# Two-factor
# ---------------------------------------------------------------------------


class Setup2FAResponse(BaseModel):
    success: bool = True
    secret: str
    qr_code: str  # data:image/svg+xml;base64,...


class Verify2FARequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(min_length=1, max_length=10)


class Disable2FARequest(BaseModel):
    password: str = Field(max_length=1024)


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------


class CreateTicketRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    priority: Priority = Priority.medium


class UpdateTicketRequest(BaseModel):
    status: Optional[TicketStatus] = None
    assigned_to: Optional[str] = None
    priority: Optional[Priority] = None


class TicketOut(_Out):
    id: str
    user_id: str
    user_name: Optional[str] = None
    title: str
    description: str
    priority: Priority
    status: TicketStatus
    assigned_to: Optional[str] = None
    created_at: str
    updated_at: str
    resolved_at: Optional[str] = None


class CreateCommentRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    comment: str = Field(min_length=1)


class CommentOut(_Out):
    id: str
    user_id: str
    user_name: Optional[str] = None
    comment: str
    created_at: str


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class CreateTaskRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_to: list[str] = Field(default_factory=list)
    priority: Priority = Priority.medium
    due_date: Optional[str] = None


class UpdateTaskRequest(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    due_date: Optional[str] = None


class AssignedUserOut(_Out):
    id: str
    name: str


class TaskOut(_Out):
    id: str
    title: str
    description: Optional[str] = None
    assigned_users: list[AssignedUserOut]
    created_by: str
    created_by_name: Optional[str] = None
    priority: Priority
    status: TaskStatus
    due_date: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: str
    updated_at: str


# ---------------------------------------------------------------------------
# Absences
# ---------------------------------------------------------------------------


class CreateAbsenceRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: str
    end_date: str


class UpdateAbsenceRequest(BaseModel):
    status: AbsenceStatus


class AbsenceOut(_Out):
    id: str
    user_id: str
    user_name: Optional[str] = None
    reason: str
    description: Optional[str] = None
    start_date: str
    end_date: str
    status: AbsenceStatus
    approved_by: Optional[str] = None
    approved_by_name: Optional[str] = None
    created_at: str
    updated_at: str


# ---------------------------------------------------------------------------
# News & blog
# ---------------------------------------------------------------------------


class CreateNewsRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    is_pinned: bool = False


class UpdateNewsRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    is_pinned: Optional[bool] = None


class NewsOut(_Out):
    id: str
    title: str
    content: str
    author_id: str
    author_name: Optional[str] = None
    is_pinned: bool
    created_at: str
    updated_at: str


class CreateBlogPostRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = None
    status: BlogStatus = BlogStatus.draft


class UpdateBlogPostRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    excerpt: Optional[str] = None
    status: Optional[BlogStatus] = None


class BlogPostOut(_Out):
    id: str
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    author_id: str
    author_name: Optional[str] = None
    status: BlogStatus
    published_at: Optional[str] = None
    created_at: str
    updated_at: str


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


class CreatePlanRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(default="other", max_length=50)
    priority: str = Field(default="medium", max_length=20)
    status: str = Field(default="idea", max_length=20)
    target_date: Optional[str] = None


class UpdatePlanRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    priority: Optional[str] = Field(default=None, max_length=20)
    status: Optional[str] = Field(default=None, max_length=20)
    target_date: Optional[str] = None


class PlanOut(_Out):
    id: str
    title: str
    description: Optional[str] = None
    category: str
    priority: str
    status: str
    target_date: Optional[str] = None
    completed_at: Optional[str] = None
    created_by: str
    created_by_name: Optional[str] = None
    created_at: str
    updated_at: str


class CreateScheduleRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    schedule_type: str = Field(default="other", max_length=50)
    start_time: str = Field(min_length=1)
    end_time: str = Field(min_length=1)


class ScheduleOut(_Out):
    id: str
    user_id: str
    user_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    schedule_type: str
    start_time: str
    end_time: str
    created_by: str
    created_by_name: Optional[str] = None
    created_at: str


class CreateEventRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    event_type: str = Field(default="other", max_length=50)
    start_date: str = Field(min_length=1)
    end_date: Optional[str] = None
    all_day: bool = False


class EventOut(_Out):
    id: str
    title: str
    description: Optional[str] = None
    event_type: str
    start_date: str
    end_date: Optional[str] = None
    all_day: bool
    created_by: str
    created_by_name: Optional[str] = None
    created_at: str


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


class CreateServiceRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str
    name: str
    description: str
    service_type: str
    price: float = Field(default=0.0, ge=0)
    status: ServiceStatus = ServiceStatus.active
    start_date: str
    end_date: Optional[str] = None
    progress: int = Field(default=0, ge=0, le=100)
    notes: Optional[str] = None


class UpdateServiceRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    service_type: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    status: Optional[ServiceStatus] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class ServiceOut(_Out):
    id: str
    user_id: str
    user_name: Optional[str] = None
    name: str
    description: str
    service_type: str
    price: float
    status: ServiceStatus
    start_date: str
    end_date: Optional[str] = None
    progress: int
    notes: Optional[str] = None
    created_by: str
    created_by_name: Optional[str] = None
    created_at: str
    updated_at: str


class ServiceStatisticsOut(_Out):
    total_services: int
    active_services: int
    completed_services: int
    paused_services: int
    total_value: float
    active_value: float
