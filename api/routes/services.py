"""
api/routes/services.py -- Client services (engagements delivered to an account).

Routes:
  POST   /api/services              -- staff only
  GET    /api/services/all          -- staff only
  GET    /api/services/my           -- any role; services delivered to the caller
  GET    /api/services/statistics   -- any role; counts/values over the caller's services
  PUT    /api/services/{id}         -- staff only; 404 if unknown
  DELETE /api/services/{id}         -- staff only; 404 if unknown
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.deps import get_ops_store, http_error, not_found
from api.models import CreateServiceRequest, ServiceOut, ServiceStatisticsOut, UpdateServiceRequest
from auth.dependencies import get_current_claims, require_staff
from auth.errors import ValidationFailure
from auth.models import Claims
from ops.models import Service, ServicePatch

router = APIRouter(prefix="/services", dependencies=[Depends(get_current_claims)])


@router.post("", status_code=201)
def create_service(
    request: Request,
    body: CreateServiceRequest,
    claims: Claims = Depends(require_staff),
) -> dict:
    for field_name in ("user_id", "name", "description", "service_type", "start_date"):
        if not getattr(body, field_name):
            raise ValidationFailure(f"{field_name} is required")
    try:
        service_id = get_ops_store(request).create_service(
            Service(
                user_id=body.user_id,
                name=body.name,
                description=body.description,
                service_type=body.service_type,
                price=body.price,
                status=body.status,
                start_date=body.start_date,
                end_date=body.end_date,
                progress=body.progress,
                notes=body.notes,
                created_by=claims.sub,
            )
        )
    except IntegrityError as exc:
        raise http_error(400, "invalid_reference", "user_id is not a known user") from exc
    return {"success": True, "service_id": service_id}


@router.get("/all", dependencies=[Depends(require_staff)])
def all_services(request: Request) -> dict:
    return {"success": True, "services": [ServiceOut.model_validate(s) for s in get_ops_store(request).list_services()]}


@router.get("/my")
def my_services(request: Request, claims: Claims = Depends(get_current_claims)) -> dict:
    services = get_ops_store(request).list_services(user_id=claims.sub)
    return {"success": True, "services": [ServiceOut.model_validate(s) for s in services]}


@router.get("/statistics")
def service_statistics(request: Request, claims: Claims = Depends(get_current_claims)) -> dict:
    stats = get_ops_store(request).service_statistics(claims.sub)
    return {"success": True, "statistics": ServiceStatisticsOut.model_validate(stats)}


@router.put("/{service_id}", dependencies=[Depends(require_staff)])
def update_service(request: Request, service_id: str, body: UpdateServiceRequest) -> dict:
    patch = ServicePatch(**body.model_dump())
    if patch.is_empty():
        raise http_error(400, "no_changes", "No updates provided")
    if not get_ops_store(request).update_service(service_id, patch):
        raise not_found("Service")
    return {"success": True}


@router.delete("/{service_id}", dependencies=[Depends(require_staff)])
def delete_service(request: Request, service_id: str) -> dict:
    if not get_ops_store(request).delete_service(service_id):
        raise not_found("Service")
    return {"success": True}
