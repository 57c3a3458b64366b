"""
api/routes/two_factor.py -- TOTP enrollment and removal.

Routes:
  POST /api/auth/2fa/setup    -- generate + store a pending secret; return secret and QR
  POST /api/auth/2fa/verify   -- confirm a code from the app; enables 2FA
  POST /api/auth/2fa/disable  -- requires the account password; clears flag and secret

Enrollment states:
  NotEnabled --setup--> Pending (secret stored, flag off)
  Pending --verify(valid code)--> Enabled
  Enabled --disable(password)--> NotEnabled (secret cleared in the same UPDATE)

Calling setup again while Pending replaces the secret, so a lost QR code can be
re-issued. Setup while Enabled is refused; disable first.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.deps import get_user_store, http_error, not_found
from api.models import Disable2FARequest, Setup2FAResponse, StatusResponse, Verify2FARequest
from auth.dependencies import get_current_claims
from auth.errors import AuthFailure, ValidationFailure
from auth.models import Claims, User
from auth.passwords import verify_password
from auth.totp import generate_secret, qr_code_data_uri, verify_totp
from core.config import get_settings

logger = logging.getLogger("teamdesk.auth")

router = APIRouter(prefix="/auth/2fa", dependencies=[Depends(get_current_claims)])


def _user(request: Request, claims: Claims) -> User:
    user = get_user_store(request).get_by_id(claims.sub)
    if user is None:
        raise not_found("User")
    return user


@router.post("/setup", response_model=Setup2FAResponse)
def setup(request: Request, claims: Claims = Depends(get_current_claims)) -> Setup2FAResponse:
    user = _user(request, claims)
    if user.totp_enabled:
        raise http_error(400, "already_enabled", "2FA is already enabled")
    secret = generate_secret()
    qr_code = qr_code_data_uri(secret, user.email, get_settings().totp_issuer)
    get_user_store(request).store_totp_secret(user.id, secret)
    logger.info("2FA setup started for user %s", user.id)
    return Setup2FAResponse(secret=secret, qr_code=qr_code)


@router.post("/verify", response_model=StatusResponse)
def verify(request: Request, body: Verify2FARequest, claims: Claims = Depends(get_current_claims)) -> StatusResponse:
    user = _user(request, claims)
    if not user.totp_secret:
        raise ValidationFailure("2FA not setup. Please setup 2FA first.")
    if not verify_totp(user.totp_secret, body.code):
        raise ValidationFailure("Invalid 2FA code")
    get_user_store(request).enable_two_factor(user.id)
    logger.info("2FA enabled for user %s", user.id)
    return StatusResponse(message="2FA enabled successfully")


@router.post("/disable", response_model=StatusResponse)
def disable(request: Request, body: Disable2FARequest, claims: Claims = Depends(get_current_claims)) -> StatusResponse:
    user = _user(request, claims)
    if not verify_password(body.password, user.password_hash):
        raise AuthFailure("Invalid password")
    get_user_store(request).disable_two_factor(user.id)
    logger.info("2FA disabled for user %s", user.id)
    return StatusResponse(message="2FA disabled successfully")
