"""
api/routes/calendar.py -- Staff schedules and shared calendar events (staff only).

Routes:
  POST /api/schedules    -- a shift / slot for one member
  GET  /api/schedules    -- by start_time ascending
  POST /api/calendar     -- team-wide event
  GET  /api/calendar     -- by start_date ascending
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.deps import get_ops_store, http_error
from api.models import CreateEventRequest, CreateScheduleRequest, EventOut, ScheduleOut
from auth.dependencies import require_staff
from auth.models import Claims
from ops.models import CalendarEvent, Schedule

router = APIRouter(dependencies=[Depends(require_staff)])


@router.post("/schedules", status_code=201)
def create_schedule(request: Request, body: CreateScheduleRequest, claims: Claims = Depends(require_staff)) -> dict:
    try:
        schedule_id = get_ops_store(request).create_schedule(
            Schedule(
                user_id=body.user_id,
                title=body.title,
                description=body.description,
                schedule_type=body.schedule_type,
                start_time=body.start_time,
                end_time=body.end_time,
                created_by=claims.sub,
            )
        )
    except IntegrityError as exc:
        raise http_error(400, "invalid_reference", "user_id is not a known user") from exc
    return {"success": True, "schedule_id": schedule_id}


@router.get("/schedules")
def list_schedules(request: Request) -> dict:
    schedules = get_ops_store(request).list_schedules()
    return {"success": True, "schedules": [ScheduleOut.model_validate(s) for s in schedules]}


@router.post("/calendar", status_code=201)
def create_event(request: Request, body: CreateEventRequest, claims: Claims = Depends(require_staff)) -> dict:
    event_id = get_ops_store(request).create_event(
        CalendarEvent(
            title=body.title,
            description=body.description,
            event_type=body.event_type,
            start_date=body.start_date,
            end_date=body.end_date,
            all_day=body.all_day,
            created_by=claims.sub,
        )
    )
    return {"success": True, "event_id": event_id}


@router.get("/calendar")
def list_events(request: Request) -> dict:
    return {"success": True, "events": [EventOut.model_validate(e) for e in get_ops_store(request).list_events()]}
