"""
auth/errors.py -- Typed failures raised by the credential, session and TOTP code.

Taxonomy:
  ValidationFailure -- bad input shape or password complexity. Expected.
  AuthFailure       -- wrong credential, wrong code or invalid session. Expected.
                       Deliberately indistinguishable from "not found".
  CryptoFailure     -- malformed stored digest or TOTP secret. Unexpected:
                       indicates data corruption.
  SigningFailure    -- token issuance failed. Unexpected.

api/main.py maps these to HTTP status codes in one place. Expected failures
become 400/401 with their reason; unexpected ones are logged and surface as an
opaque 500. Library exception text never reaches the client.

Layer rule: no imports from api/, core/, or ops/.
"""

from __future__ import annotations

from typing import Any


class AuthError(Exception):
    """Base class. `reason` is safe to show to a client; `context` is for logs only."""

    status_code: int = 500
    expected: bool = False

    def __init__(self, reason: str, **context: Any) -> None:
        super().__init__(reason)
        self.reason = reason
        self.context = context


class ValidationFailure(AuthError):
    status_code = 400
    expected = True


class AuthFailure(AuthError):
    status_code = 401
    expected = True


class CryptoFailure(AuthError):
    pass


class SigningFailure(AuthError):
    pass
