"""
api/routes/members.py -- Team member administration.

Routes:
  GET    /api/members        -- staff; management first, then by name
  POST   /api/members        -- management only
  PUT    /api/members/{id}   -- management only; password is re-hashed
  DELETE /api/members/{id}   -- management only; cannot delete yourself

Role changes take effect at the member's next login: existing sessions keep
the role they were issued with until they expire.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.deps import get_user_store, http_error, not_found
from api.models import CreateMemberRequest, MembersResponse, UpdateMemberRequest, UserEnvelope, UserInfo
from auth.dependencies import require_management, require_staff
from auth.errors import ValidationFailure
from auth.models import Claims, MemberPatch, User
from auth.passwords import hash_password, validate_password_complexity

logger = logging.getLogger("teamdesk.auth")

router = APIRouter(prefix="/members")

_MIN_NICKNAME = 3


@router.get("", response_model=MembersResponse, dependencies=[Depends(require_staff)])
def list_members(request: Request) -> MembersResponse:
    return MembersResponse(members=[UserInfo.model_validate(u) for u in get_user_store(request).list_members()])


@router.post("", response_model=UserEnvelope, status_code=201)
def create_member(
    request: Request,
    body: CreateMemberRequest,
    claims: Claims = Depends(require_management),
) -> UserEnvelope:
    if not body.name:
        raise ValidationFailure("Name is required")
    if len(body.nickname) < _MIN_NICKNAME:
        raise ValidationFailure(f"Nickname must be at least {_MIN_NICKNAME} characters")
    if "@" not in body.email:
        raise ValidationFailure("Invalid email format")
    validate_password_complexity(body.password)

    try:
        user = get_user_store(request).create_user(
            User(
                name=body.name,
                nickname=body.nickname,
                email=body.email,
                password_hash=hash_password(body.password),
                role=body.role,
            )
        )
    except IntegrityError as exc:
        raise http_error(409, "conflict", "Failed to create member (email or nickname may already exist)") from exc
    logger.info("Member %s created by %s", user.id, claims.sub)
    return UserEnvelope(user=UserInfo.model_validate(user))


@router.put("/{member_id}", response_model=UserEnvelope)
def update_member(
    request: Request,
    member_id: str,
    body: UpdateMemberRequest,
    claims: Claims = Depends(require_management),
) -> UserEnvelope:
    password_hash = None
    if body.password:
        validate_password_complexity(body.password)
        password_hash = hash_password(body.password)
    patch = MemberPatch(
        name=body.name,
        nickname=body.nickname,
        email=body.email,
        role=body.role,
        password_hash=password_hash,
    )
    if patch.is_empty():
        raise http_error(400, "no_changes", "No updates provided")

    store = get_user_store(request)
    try:
        updated = store.update_member(member_id, patch)
    except IntegrityError as exc:
        raise http_error(409, "conflict", "Email or nickname already exists") from exc
    if not updated:
        raise not_found("Member")
    logger.info("Member %s updated by %s", member_id, claims.sub)
    return UserEnvelope(user=UserInfo.model_validate(store.get_by_id(member_id)))


@router.delete("/{member_id}")
def delete_member(request: Request, member_id: str, claims: Claims = Depends(require_management)) -> dict:
    if member_id == claims.sub:
        raise http_error(400, "self_delete", "Cannot delete your own account")
    if not get_user_store(request).delete_user(member_id):
        raise not_found("Member")
    logger.info("Member %s deleted by %s", member_id, claims.sub)
    return {"success": True, "message": "Member deleted successfully"}
