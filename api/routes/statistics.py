"""
api/routes/statistics.py -- Team dashboard aggregates (staff only).

Route:
  GET /api/statistics -- task, member, absence, blog, event and ticket counts
                         plus 7-day task completion / creation series
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.deps import get_ops_store
from auth.dependencies import require_staff

router = APIRouter(dependencies=[Depends(require_staff)])


@router.get("/statistics")
def statistics(request: Request) -> dict:
    return {"success": True, "statistics": get_ops_store(request).dashboard_statistics()}
