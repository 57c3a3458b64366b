"""
api/deps.py -- Store accessors and error helpers shared by the route modules.

Stores live on app.state (created by the lifespan in api/main.py), never at
module level, so tests can swap them for in-memory ones.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.store import UserStore
from ops.store import OpsStore


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_ops_store(request: Request) -> OpsStore:
    return request.app.state.ops_store


def http_error(status_code: int, code: str, message: str) -> HTTPException:
    """HTTPException whose detail the exception handler turns into an ErrorResponse."""
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


def not_found(what: str) -> HTTPException:
    return http_error(404, "not_found", f"{what} not found")
