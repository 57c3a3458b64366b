"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors ops/models.py --
dataclasses own domain shape; stores and routes do the work.

Patch dataclasses (ProfilePatch, MemberPatch) carry optional fields for partial
updates. A field left as None is not written. The store converts the set fields
into a single parameterized UPDATE, so column names only ever come from the
dataclass definition.

Layer rule: no imports from api/ or ops/. core.models supplies the Patch base.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from core.models import Patch


class Role(str, Enum):
    """Account role. Privilege order: user < team < management."""

    user = "user"
    team = "team"
    management = "management"

    @property
    def is_staff(self) -> bool:
        return self in (Role.team, Role.management)


@dataclass
class User:
    """An account. password_hash is an Argon2id PHC string.

    totp_secret is set by 2FA setup and stays in place while enrollment is
    pending; totp_enabled flips to True only after a code verifies. Disabling
    clears both.
    """

    name: str
    nickname: str
    email: str
    password_hash: str
    role: Role = Role.user
    id: str | None = None  # UUID string
    profile_picture: str | None = None  # data: URI
    totp_secret: str | None = None  # base32
    totp_enabled: bool = False
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Claims:
    """Signed session payload. exp is epoch seconds."""

    sub: str
    email: str
    role: Role
    exp: int


@dataclass
class ProfilePatch(Patch):
    name: str | None = None
    nickname: str | None = None
    profile_picture: str | None = None


@dataclass
class MemberPatch(Patch):
    name: str | None = None
    nickname: str | None = None
    email: str | None = None
    role: Role | None = None
    password_hash: str | None = None
