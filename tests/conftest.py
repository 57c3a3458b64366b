"""
tests/conftest.py -- Shared test fixtures for TeamDesk integration tests.

This module provides:
  - _make_test_stores(): one isolated in-memory DB shared by UserStore + OpsStore
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - seed_user() / session_headers(): accounts and cookies without going through /login
  - api: module-scoped ApiEnv with a TestClient and one account per role
  - stores: function-scoped (UserStore, OpsStore) for store-level tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment must be set before any core/auth/api import: get_settings() is
cached on first call and the limiter reads its limits at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: before any project import (see module docstring).
os.environ.setdefault("DEBUG", "true")
os.environ["REGISTRATION_SECRET"] = "test-registration-secret"
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"
os.environ["API_RATE_LIMIT"] = "10000/minute"

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import build_claims, issue_token
from core.config import get_settings
from core.database import create_db_engine
from ops.store import OpsStore

REGISTRATION_SECRET = "test-registration-secret"
TEST_PASSWORD = "Correct-Horse-42"

# Hashing is slow by design; every seeded account shares this digest.
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, OpsStore]:
    """Create both stores on one named shared-memory SQLite database.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:teamdesk_{db_suffix}?mode=memory&cache=shared&uri=true"
    engine = create_db_engine(url)
    return UserStore(engine), OpsStore(engine)


def _patch_lifespan(user_store: UserStore, ops_store: OpsStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.ops_store = ops_store
        yield

    return test_lifespan


def seed_user(store: UserStore, role: Role = Role.user, handle: str | None = None) -> User:
    """Insert an account whose password is TEST_PASSWORD."""
    handle = handle or f"{role.value}-{uuid.uuid4().hex[:8]}"
    return store.create_user(
        User(
            name=handle.replace("-", " ").title(),
            nickname=handle,
            email=f"{handle}@example.com",
            password_hash=_TEST_PASSWORD_HASH,
            role=role,
        )
    )


def session_headers(user: User, expire_seconds: int = 3600) -> dict[str, str]:
    """A Cookie header carrying a freshly signed session for user."""
    settings = get_settings()
    token = issue_token(build_claims(user, expire_seconds), settings.secret_key)
    return {"Cookie": f"{settings.session_cookie_name}={token}"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@dataclass
class ApiEnv:
    client: TestClient
    users: UserStore
    ops: OpsStore
    management: User
    team: User
    client_user: User

    def as_(self, user: User) -> dict[str, str]:
        return session_headers(user)


@pytest.fixture(scope="module")
def api(request) -> Generator[ApiEnv, None, None]:
    """Yield an ApiEnv for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers and middleware but an isolated in-memory DB. The
    base URL is https so the Secure session cookie is stored and sent back.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    user_store, ops_store = _make_test_stores(suffix)
    management = seed_user(user_store, Role.management, "boss")
    team = seed_user(user_store, Role.team, "crew")
    client_user = seed_user(user_store, Role.user, "client")

    app.router.lifespan_context = _patch_lifespan(user_store, ops_store)

    with TestClient(app, base_url="https://testserver") as client:
        yield ApiEnv(client, user_store, ops_store, management, team, client_user)

    ops_store.close()


@pytest.fixture
def stores() -> Generator[tuple[UserStore, OpsStore], None, None]:
    """Fresh (UserStore, OpsStore) per test."""
    user_store, ops_store = _make_test_stores(uuid.uuid4().hex)
    yield user_store, ops_store
    ops_store.close()
