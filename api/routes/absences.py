"""
api/routes/absences.py -- Staff absence requests.

Routes:
  POST /api/absences        -- caller's absence; auto-approved if already running
  GET  /api/absences        -- all absences (expired pending ones are rejected first)
  PUT  /api/absences/{id}   -- approve / reject; records the caller as approver

Dates accept RFC 3339 timestamps or plain YYYY-MM-DD. A plain start date means
00:00:00 UTC, a plain end date 23:59:59 UTC. They are stored normalized.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from api.deps import get_ops_store, not_found
from api.models import AbsenceOut, CreateAbsenceRequest, UpdateAbsenceRequest
from auth.dependencies import require_staff
from auth.errors import ValidationFailure
from auth.models import Claims
from ops.models import Absence
from ops.rules import initial_absence_status, parse_absence_bound

router = APIRouter(prefix="/absences", dependencies=[Depends(require_staff)])


@router.post("", status_code=201)
def create_absence(request: Request, body: CreateAbsenceRequest, claims: Claims = Depends(require_staff)) -> dict:
    start = parse_absence_bound(body.start_date, end_of_day=False)
    end = parse_absence_bound(body.end_date, end_of_day=True)
    if start is None or end is None:
        raise ValidationFailure("Dates must be RFC 3339 timestamps or YYYY-MM-DD")
    if end < start:
        raise ValidationFailure("end_date must not be before start_date")
    status = initial_absence_status(start, end, datetime.now(timezone.utc))
    absence_id = get_ops_store(request).create_absence(
        Absence(
            user_id=claims.sub,
            reason=body.reason,
            description=body.description,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            status=status,
        )
    )
    return {"success": True, "absence_id": absence_id, "status": status.value}


@router.get("")
def list_absences(request: Request) -> dict:
    store = get_ops_store(request)
    store.reject_expired_absences()
    return {"success": True, "absences": [AbsenceOut.model_validate(a) for a in store.list_absences()]}


@router.put("/{absence_id}")
def update_absence(
    request: Request,
    absence_id: str,
    body: UpdateAbsenceRequest,
    claims: Claims = Depends(require_staff),
) -> dict:
    if not get_ops_store(request).set_absence_status(absence_id, body.status, claims.sub):
        raise not_found("Absence")
    return {"success": True}
