"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper (same as ops/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Partial updates come from ProfilePatch / MemberPatch: column names are the
  dataclass field names, never request input.

  Disabling 2FA writes totp_enabled=0 and totp_secret=NULL in a single UPDATE,
  so no reader ever sees the flag off with a secret still stored.

The `users` Table is public: ops/store.py joins against it for author and
assignee names.

Layer rule: no imports from api/ or ops/. core/ is allowed.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, String, Table, Text, case, func, select
from sqlalchemy.engine import Engine

from auth.models import MemberPatch, ProfilePatch, Role, User
from core.database import metadata, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("nickname", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),  # Argon2id PHC string
    Column("role", String(20), nullable=False, server_default="user"),
    Column("profile_picture", Text),  # data: URI
    Column("totp_secret", String(64)),  # base32; NULL unless 2FA set up
    Column("totp_enabled", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(engine)
        user = store.create_user(User(name="Ada", nickname="ada", email="ada@example.com",
                                      password_hash=hash_password("Secret123456")))
        store.find_by_email("ada@example.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[users])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_members(self) -> list[User]:
        """All accounts, management first then team then user, by name within a role."""
        role_rank = case(
            (users.c.role == Role.management.value, 0),
            (users.c.role == Role.team.value, 1),
            else_=2,
        )
        with self.engine.connect() as conn:
            rows = conn.execute(users.select().order_by(role_rank, users.c.name)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_by_role(self) -> dict[str, int]:
        counts = {role.value: 0 for role in Role}
        stmt = select(users.c.role, func.count()).group_by(users.c.role)
        with self.engine.connect() as conn:
            for role, n in conn.execute(stmt).fetchall():
                counts[role] = n
        return counts

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert user with a fresh UUID and return the stored record.

        Raises sqlalchemy.exc.IntegrityError if email or nickname already exists.
        """
        user_id = str(uuid.uuid4())
        now = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                users.insert().values(
                    id=user_id,
                    name=user.name,
                    nickname=user.nickname,
                    email=user.email,
                    password_hash=user.password_hash,
                    role=Role(user.role).value,
                    profile_picture=user.profile_picture,
                    totp_secret=None,
                    totp_enabled=False,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return self.get_by_id(user_id)

    def update_password(self, user_id: str, password_hash: str) -> bool:
        return self._update(user_id, {"password_hash": password_hash})

    def update_profile(self, user_id: str, patch: ProfilePatch) -> bool:
        return self._update(user_id, patch.changes())

    def update_member(self, user_id: str, patch: MemberPatch) -> bool:
        """Apply a management edit. Raises IntegrityError on email/nickname clash."""
        changes = patch.changes()
        if "role" in changes:
            changes["role"] = Role(changes["role"]).value
        return self._update(user_id, changes)

    def delete_user(self, user_id: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(users.delete().where(users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Two-factor state
    # ------------------------------------------------------------------

    def store_totp_secret(self, user_id: str, secret: str) -> bool:
        """Store a pending secret. The flag stays off until a code verifies."""
        return self._update(user_id, {"totp_secret": secret})

    def enable_two_factor(self, user_id: str) -> bool:
        return self._update(user_id, {"totp_enabled": True})

    def disable_two_factor(self, user_id: str) -> bool:
        return self._update(user_id, {"totp_enabled": False, "totp_secret": None})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _update(self, user_id: str, changes: dict) -> bool:
        """Single UPDATE of `changes` plus updated_at. False if user_id is unknown."""
        if not changes:
            return self.get_by_id(user_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(**changes, updated_at=now_iso()))
            conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        nickname=row.nickname,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        profile_picture=row.profile_picture,
        totp_secret=row.totp_secret,
        totp_enabled=bool(row.totp_enabled),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
