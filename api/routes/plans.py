"""
api/routes/plans.py -- Future plans / roadmap items (staff only).

Routes:
  POST   /api/plans
  GET    /api/plans
  PUT    /api/plans/{id}    -- status "completed" stamps completed_at
  DELETE /api/plans/{id}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.deps import get_ops_store, http_error, not_found
from api.models import CreatePlanRequest, PlanOut, UpdatePlanRequest
from auth.dependencies import require_staff
from auth.models import Claims
from ops.models import FuturePlan, FuturePlanPatch

router = APIRouter(prefix="/plans", dependencies=[Depends(require_staff)])


@router.post("", status_code=201)
def create_plan(request: Request, body: CreatePlanRequest, claims: Claims = Depends(require_staff)) -> dict:
    plan_id = get_ops_store(request).create_plan(
        FuturePlan(
            title=body.title,
            description=body.description,
            category=body.category,
            priority=body.priority,
            status=body.status,
            target_date=body.target_date,
            created_by=claims.sub,
        )
    )
    return {"success": True, "plan_id": plan_id}


@router.get("")
def list_plans(request: Request) -> dict:
    return {"success": True, "plans": [PlanOut.model_validate(p) for p in get_ops_store(request).list_plans()]}


@router.put("/{plan_id}")
def update_plan(request: Request, plan_id: str, body: UpdatePlanRequest) -> dict:
    patch = FuturePlanPatch(**body.model_dump())
    if patch.is_empty():
        raise http_error(400, "no_changes", "No updates provided")
    if not get_ops_store(request).update_plan(plan_id, patch):
        raise not_found("Plan")
    return {"success": True}


@router.delete("/{plan_id}")
def delete_plan(request: Request, plan_id: str) -> dict:
    if not get_ops_store(request).delete_plan(plan_id):
        raise not_found("Plan")
    return {"success": True}
