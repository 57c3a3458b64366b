"""
api/routes/auth.py -- Authentication and account self-service endpoints.

Routes:
  POST /api/auth/login              -- password (+ TOTP) login; sets session cookie
  POST /api/auth/logout             -- clears the session cookie
  POST /api/auth/register           -- create an account with the registration secret
  GET  /api/auth/me                 -- current account
  POST /api/auth/change-password    -- requires the current password
  PUT  /api/auth/profile            -- name / nickname / picture (JSON)
  POST /api/auth/profile/upload     -- same, multipart with an image file

Security:
  POST /login and /register are rate-limited with LOGIN_RATE_LIMIT per IP.
  authenticate_user() provides timing equalization -- use it, never inline.
  Unknown email and wrong password produce the same 401 message.
  Cache-Control: no-store on every login response.
  The session token is delivered only in the HttpOnly cookie; `token` in the
  JSON body is always null.
"""

from __future__ import annotations

import base64
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.deps import get_user_store, http_error, not_found
from api.limiter import LOGIN_LIMIT, limiter
from api.models import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    StatusResponse,
    UpdateProfileRequest,
    UserEnvelope,
    UserInfo,
)
from auth.dependencies import get_current_claims
from auth.errors import AuthFailure, CryptoFailure, ValidationFailure
from auth.models import Claims, ProfilePatch, User
from auth.passwords import authenticate_user, hash_password, validate_password_complexity, verify_password
from auth.store import UserStore
from auth.tokens import build_claims, clear_session_cookie, issue_token, set_session_cookie
from auth.totp import verify_totp
from core.config import get_settings

logger = logging.getLogger("teamdesk.auth")

# Auth policy:
# - POST /api/auth/login, /logout, /register: public
# - everything else: session cookie (get_current_claims)
router = APIRouter()

_MIN_NICKNAME = 3


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(LOGIN_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email, password and (when enrolled) a TOTP code.

    Outcomes:
      200 success=true             -- session cookie set
      200 success=false, requires_2fa=true -- password ok, code needed; no cookie
      401 "Invalid email or password" / "Invalid 2FA code"
    """
    if "@" not in body.email:
        raise ValidationFailure("Invalid email format")

    settings = get_settings()
    user = authenticate_user(get_user_store(request), body.email, body.password)
    if user is None:
        raise AuthFailure("Invalid email or password")

    if user.totp_enabled:
        if not body.totp_code:
            return _login_response(200, LoginResponse(success=False, requires_2fa=True, error="2FA code required"))
        if not user.totp_secret:
            raise CryptoFailure("2FA configuration error", user_id=user.id)
        if not verify_totp(user.totp_secret, body.totp_code):
            logger.info("Rejected 2FA code for user %s", user.id)
            return _login_response(401, LoginResponse(success=False, requires_2fa=True, error="Invalid 2FA code"))

    token = issue_token(build_claims(user, settings.token_expire_seconds), settings.secret_key)
    resp = _login_response(200, LoginResponse(success=True, user=UserInfo.model_validate(user)))
    set_session_cookie(resp, token, settings)
    logger.info("User %s logged in", user.id)
    return resp


@router.post("/auth/logout", response_model=StatusResponse)
def logout() -> JSONResponse:
    """Clear the session cookie. The token itself stays valid until exp."""
    resp = JSONResponse(content=StatusResponse(message="Logged out successfully").model_dump())
    clear_session_cookie(resp, get_settings())
    return resp


@limiter.limit(LOGIN_LIMIT)
@router.post("/auth/register", response_model=UserEnvelope, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserEnvelope:
    """Create an account. Requires REGISTRATION_SECRET; 403 on mismatch, 409 if the email exists."""
    settings = get_settings()
    if not hmac.compare_digest(body.registration_secret.encode(), settings.registration_secret.encode()):
        raise http_error(403, "forbidden", "Invalid registration secret")

    validate_password_complexity(body.password)
    store = get_user_store(request)
    if store.find_by_email(body.email) is not None:
        raise http_error(409, "conflict", "Email already registered")

    user = _create_account(
        store,
        User(
            name=body.name,
            nickname=body.nickname,
            email=body.email,
            password_hash=hash_password(body.password),
            role=body.role,
        ),
    )
    logger.info("Registered user %s (%s)", user.id, user.role.value)
    return UserEnvelope(user=UserInfo.model_validate(user))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserEnvelope)
def me(request: Request, claims: Claims = Depends(get_current_claims)) -> UserEnvelope:
    return UserEnvelope(user=UserInfo.model_validate(_load_user(request, claims)))


@router.post("/auth/change-password", response_model=StatusResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    claims: Claims = Depends(get_current_claims),
) -> StatusResponse:
    """Replace the password. The new one must pass complexity; the current one must verify."""
    validate_password_complexity(body.new_password)
    store = get_user_store(request)
    user = _load_user(request, claims)
    if not verify_password(body.current_password, user.password_hash):
        raise AuthFailure("Current password is incorrect")
    store.update_password(user.id, hash_password(body.new_password))
    logger.info("Password changed for user %s", user.id)
    return StatusResponse(message="Password changed successfully")


@router.put("/auth/profile", response_model=UserEnvelope)
def update_profile(
    request: Request,
    body: UpdateProfileRequest,
    claims: Claims = Depends(get_current_claims),
) -> UserEnvelope:
    patch = ProfilePatch(name=body.name, nickname=body.nickname, profile_picture=body.profile_picture)
    return _apply_profile(request, claims, patch)


@router.post("/auth/profile/upload", response_model=UserEnvelope)
def upload_profile(
    request: Request,
    name: Optional[str] = Form(default=None),
    nickname: Optional[str] = Form(default=None),
    profile_picture: Optional[UploadFile] = File(default=None),
    claims: Claims = Depends(get_current_claims),
) -> UserEnvelope:
    """Multipart profile update. The picture is stored inline as a data: URI.

    Only image/* content types are accepted (400) and the file must not exceed
    MAX_UPLOAD_BYTES (413).
    """
    picture_uri: Optional[str] = None
    if profile_picture is not None and profile_picture.filename:
        content_type = profile_picture.content_type or ""
        if not content_type.startswith("image/"):
            raise ValidationFailure("Profile picture must be an image")
        limit = get_settings().max_upload_bytes
        data = profile_picture.file.read(limit + 1)
        if len(data) > limit:
            raise http_error(413, "payload_too_large", f"Profile picture exceeds the {_size_label(limit)} limit")
        picture_uri = f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"

    patch = ProfilePatch(
        name=name.strip() if name and name.strip() else None,
        nickname=nickname.strip() if nickname and nickname.strip() else None,
        profile_picture=picture_uri,
    )
    return _apply_profile(request, claims, patch)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _login_response(status_code: int, body: LoginResponse) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _size_label(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024 and num_bytes % (1024 * 1024) == 0:
        return f"{num_bytes // (1024 * 1024)}MB"
    return f"{num_bytes}-byte"


def _load_user(request: Request, claims: Claims) -> User:
    user = get_user_store(request).get_by_id(claims.sub)
    if user is None:
        raise not_found("User")
    return user


def _apply_profile(request: Request, claims: Claims, patch: ProfilePatch) -> UserEnvelope:
    if patch.nickname is not None and len(patch.nickname) < _MIN_NICKNAME:
        raise ValidationFailure(f"Nickname must be at least {_MIN_NICKNAME} characters")
    store = get_user_store(request)
    try:
        updated = store.update_profile(claims.sub, patch)
    except IntegrityError as exc:
        raise http_error(409, "conflict", "Nickname already taken") from exc
    if not updated:
        raise not_found("User")
    return UserEnvelope(user=UserInfo.model_validate(store.get_by_id(claims.sub)))


def _create_account(store: UserStore, user: User) -> User:
    try:
        return store.create_user(user)
    except IntegrityError as exc:
        raise http_error(409, "conflict", "Email or nickname already exists") from exc
