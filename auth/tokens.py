"""
auth/tokens.py -- Session JWT issuance/validation and the session cookie.

Security design decisions:
  JWT: python-jose with HS256. Claims carry sub (account id), email, role and
       exp. They are signed, not encrypted -- never put secrets in them.

  Validation collapses every failure (bad structure, bad signature, expired,
  unknown role) into one AuthFailure("Invalid or expired session") so a client
  cannot learn which check failed.

  No server-side revocation: a session ends when exp passes, the cookie is
  cleared, or SECRET_KEY is rotated. Claims reflect the role at issue time.

  The secret is passed in explicitly by callers (from Settings) rather than
  read at module import, so tests can sign with arbitrary keys.

Cookie: HttpOnly, Secure, SameSite=Lax, Path=/. The token is only ever
delivered through this cookie, never in a JSON body.

Layer rule: no imports from api/ or ops/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastapi import Response
from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import AuthFailure, SigningFailure
from auth.models import Claims, Role

if TYPE_CHECKING:
    from auth.models import User
    from core.config import Settings

logger = logging.getLogger("teamdesk.auth")

_ALGORITHM = "HS256"

_INVALID_SESSION = "Invalid or expired session"


def build_claims(user: User, expire_seconds: int, now: datetime | None = None) -> Claims:
    """Claims for user valid for expire_seconds from now."""
    issued = now or datetime.now(timezone.utc)
    return Claims(
        sub=user.id,
        email=user.email,
        role=Role(user.role),
        exp=int((issued + timedelta(seconds=expire_seconds)).timestamp()),
    )


def issue_token(claims: Claims, secret: str) -> str:
    payload = {
        "sub": claims.sub,
        "email": claims.email,
        "role": claims.role.value,
        "exp": claims.exp,
    }
    try:
        return jwt.encode(payload, secret, algorithm=_ALGORITHM)
    except JWTError as exc:
        raise SigningFailure("Failed to sign session token", error=str(exc)) from exc


def validate_token(token: str, secret: str) -> Claims:
    """Verify signature and expiry and return the Claims.

    Raises AuthFailure on any failure. python-jose checks exp during decode.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise AuthFailure(_INVALID_SESSION, cause="expired") from exc
    except JWTError as exc:
        raise AuthFailure(_INVALID_SESSION, cause="invalid") from exc
    try:
        return Claims(
            sub=str(payload["sub"]),
            email=str(payload["email"]),
            role=Role(payload["role"]),
            exp=int(payload["exp"]),
        )
    except (KeyError, ValueError, TypeError) as exc:
        raise AuthFailure(_INVALID_SESSION, cause="malformed claims") from exc


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.token_expire_seconds,
        path="/",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    # Attributes must match set_session_cookie or browsers keep the old cookie.
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
