"""Unit tests for auth/tokens.py -- session JWT issue/validate.

Covers:
- issue_token() / validate_token() round trip preserves sub, email, role, exp
- expired, wrongly signed, and structurally bad tokens all raise AuthFailure
  with the same client-facing reason
- build_claims() derives exp from the expiry window
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import AuthFailure
from auth.models import Role, User
from auth.tokens import build_claims, issue_token, validate_token

SECRET = "s" * 48
OTHER_SECRET = "o" * 48


def _user(role: Role = Role.team) -> User:
    return User(
        id="6f1c2a9e-0000-4000-8000-000000000001",
        name="Grace Hopper",
        nickname="grace",
        email="grace@example.com",
        password_hash="$argon2id$unused",
        role=role,
    )


class TestRoundTrip:
    def test_claims_survive_round_trip(self) -> None:
        claims = build_claims(_user(Role.management), 3600)
        decoded = validate_token(issue_token(claims, SECRET), SECRET)
        assert decoded == claims
        assert decoded.role is Role.management

    def test_build_claims_sets_exp_from_window(self) -> None:
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        claims = build_claims(_user(), 7 * 24 * 3600, now=now)
        assert claims.exp == int((now + timedelta(days=7)).timestamp())
        assert claims.sub == "6f1c2a9e-0000-4000-8000-000000000001"
        assert claims.email == "grace@example.com"


class TestRejection:
    """Every failure collapses to one opaque reason."""

    def test_expired_token(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = issue_token(build_claims(_user(), 60, now=past), SECRET)
        with pytest.raises(AuthFailure) as excinfo:
            validate_token(token, SECRET)
        assert excinfo.value.reason == "Invalid or expired session"

    def test_wrong_secret(self) -> None:
        token = issue_token(build_claims(_user(), 3600), SECRET)
        with pytest.raises(AuthFailure) as excinfo:
            validate_token(token, OTHER_SECRET)
        assert excinfo.value.reason == "Invalid or expired session"

    def test_garbage_token(self) -> None:
        with pytest.raises(AuthFailure):
            validate_token("not.a.jwt", SECRET)

    def test_unknown_role_claim(self) -> None:
        """A correctly signed token with a role outside user/team/management is still invalid."""
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        token = jwt.encode({"sub": "x", "email": "x@example.com", "role": "root", "exp": exp}, SECRET, algorithm="HS256")
        with pytest.raises(AuthFailure) as excinfo:
            validate_token(token, SECRET)
        assert excinfo.value.reason == "Invalid or expired session"

    def test_missing_claim(self) -> None:
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        token = jwt.encode({"sub": "x", "exp": exp}, SECRET, algorithm="HS256")
        with pytest.raises(AuthFailure):
            validate_token(token, SECRET)
