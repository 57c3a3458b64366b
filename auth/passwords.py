"""
auth/passwords.py -- Password complexity, Argon2id hashing and verification.

Hashing uses argon2-cffi's PasswordHasher with type=ID. The digest is a
self-describing PHC string ($argon2id$v=19$m=...,t=...,p=...$salt$hash), so
parameters can be raised later without breaking stored hashes. A fresh random
salt is generated on every call.

Timing equalization: authenticate_user() always performs exactly one Argon2
verification, against a dummy digest when the email is unknown, so response
time does not reveal which emails have accounts.

Argon2 is deliberately slow and memory-hard. Routes calling into this module
are plain `def` handlers, which FastAPI runs in its threadpool, keeping the
event loop free.

Layer rule: no imports from api/ or ops/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from argon2 import PasswordHasher, Type
from argon2.exceptions import HashingError, InvalidHashError, VerificationError, VerifyMismatchError

from auth.errors import CryptoFailure, ValidationFailure

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("teamdesk.auth")

_hasher = PasswordHasher(type=Type.ID)

MIN_PASSWORD_LENGTH = 12

# Pre-computed so authenticate_user() spends the same time whether or not the
# email exists.
_DUMMY_HASH = _hasher.hash("timing-equalization-placeholder")


def validate_password_complexity(password: str) -> None:
    """Raise ValidationFailure naming the first rule the password breaks.

    Rules, checked in order: length, uppercase, lowercase, digit.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailure(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not any(c.isupper() for c in password):
        raise ValidationFailure("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in password):
        raise ValidationFailure("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in password):
        raise ValidationFailure("Password must contain at least one number")


def hash_password(password: str) -> str:
    try:
        return _hasher.hash(password)
    except HashingError as exc:
        raise CryptoFailure("Password hashing failed", error=str(exc)) from exc


def verify_password(password: str, digest: str) -> bool:
    """Return True if password matches digest, False on mismatch.

    Raises CryptoFailure if digest is not a parseable Argon2 hash -- that is a
    data problem, not a wrong password.
    """
    try:
        return _hasher.verify(digest, password)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError) as exc:
        raise CryptoFailure("Stored password digest is malformed", error=str(exc)) from exc


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Return the User for valid credentials, None otherwise.

    Use this instead of inlining find_by_email() + verify_password(); the
    inline version skips the dummy verification and leaks account existence.
    """
    user = store.find_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
