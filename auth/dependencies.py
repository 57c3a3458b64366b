"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and roles.

Sessions arrive only through the session cookie (name from Settings). There is
no Bearer or API-key path: the frontend is a browser app and the cookie is
HttpOnly.

get_current_claims() validates the cookie and returns the signed Claims.
require_staff() additionally requires Team or Management.
require_management() requires Management.

Role checks use the role in the claims, i.e. the role at login time.

Layer rule: no imports from ops/. auth/dependencies.py may import from fastapi
because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from auth.errors import AuthFailure
from auth.models import Claims, Role
from auth.tokens import validate_token
from core.config import get_settings


def get_current_claims(request: Request) -> Claims:
    """Require a valid session cookie. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: Claims = Depends(get_current_claims)): ...
    """
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Missing authentication cookie"},
        )
    try:
        return validate_token(token, settings.secret_key)
    except AuthFailure as exc:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": exc.reason},
        ) from exc


def require_staff(claims: Claims = Depends(get_current_claims)) -> Claims:
    """Require Team or Management role. HTTP 403 otherwise."""
    if not claims.role.is_staff:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Access denied"},
        )
    return claims


def require_management(claims: Claims = Depends(get_current_claims)) -> Claims:
    if claims.role != Role.management:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Access denied: Management role required"},
        )
    return claims
