"""
auth/totp.py -- TOTP secret generation, provisioning and windowed verification.

Parameters are the RFC 6238 defaults every authenticator app understands:
SHA1, 6 digits, 30-second step. pyotp supplies the algorithm; this module only
fixes the policy:

  - Secrets are 32 base32 characters (160 bits) from pyotp.random_base32(),
    which draws from the secrets module.
  - A code is accepted within one step either side of the current step
    (valid_window=1), tolerating +/-30s of clock skew between server and phone.
  - A mismatch returns False. A secret that is not valid base32 raises
    CryptoFailure: the stored value is corrupt, the user did nothing wrong.

QR codes are rendered as SVG by the qrcode package and returned as a base64
data: URI so the frontend can drop it straight into an <img src>.

Layer rule: no imports from api/ or ops/.
"""

from __future__ import annotations

import base64
import binascii
import io
import time

import pyotp
import qrcode
import qrcode.image.svg

from auth.errors import CryptoFailure

DIGITS = 6
INTERVAL = 30
VALID_WINDOW = 1


def generate_secret() -> str:
    return pyotp.random_base32()


def _totp(secret: str) -> pyotp.TOTP:
    if not secret:
        raise CryptoFailure("TOTP secret is empty")
    totp = pyotp.TOTP(secret, digits=DIGITS, interval=INTERVAL)
    try:
        # byte_secret() decodes the base32 string; fail here rather than mid-verify.
        totp.byte_secret()
    except (binascii.Error, ValueError) as exc:
        raise CryptoFailure("TOTP secret is not valid base32", error=str(exc)) from exc
    return totp


def provisioning_uri(secret: str, account_label: str, issuer: str) -> str:
    """otpauth://totp/<issuer>:<label>?secret=...&issuer=... for authenticator apps."""
    return _totp(secret).provisioning_uri(name=account_label, issuer_name=issuer)


def qr_code_data_uri(secret: str, account_label: str, issuer: str) -> str:
    """Render the provisioning URI as an SVG QR code, base64 data URI."""
    uri = provisioning_uri(secret, account_label, issuer)
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
        image_factory=qrcode.image.svg.SvgPathFillImage,
    )
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image()

    buffer = io.BytesIO()
    img.save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


def current_code(secret: str, for_time: float | None = None) -> str:
    """The code an authenticator would show at for_time (now if None)."""
    totp = _totp(secret)
    return totp.at(for_time if for_time is not None else time.time())


def verify_totp(secret: str, code: str, for_time: float | None = None) -> bool:
    """True if code matches within +/- VALID_WINDOW steps of for_time.

    Raises CryptoFailure if the secret itself is malformed.
    """
    totp = _totp(secret)
    code = (code or "").strip()
    if len(code) != DIGITS or not code.isdigit():
        return False
    when = for_time if for_time is not None else time.time()
    return totp.verify(code, for_time=when, valid_window=VALID_WINDOW)
