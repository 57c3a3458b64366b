"""
core/config.py -- TeamDesk settings, read once from the environment.

Every tunable lives on Settings. Modules ask get_settings() for values and
never read os.environ themselves, so tests control configuration by setting
environment variables before the first call (or by clearing the cache).

Field names map to upper-case env vars through pydantic-settings
(token_expire_seconds -> TOKEN_EXPIRE_SECONDS). A .env file in the working
directory is read too.

Secrets:
  SECRET_KEY signs session JWTs with HS256 and must be at least 32 chars.
  Changing it logs everyone out; there is no other way to revoke sessions.

  REGISTRATION_SECRET must accompany POST /api/auth/register. With DEBUG on,
  both secrets are generated when missing; without DEBUG, startup fails.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or ops/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("teamdesk.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'teamdesk.db'}"


class Settings(BaseSettings):
    """TeamDesk configuration. Every field has a default except the two
    secrets, which validate_secrets() fills in (DEBUG) or demands.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # "" means unset; validate_secrets() replaces or rejects it.
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    frontend_url: str = "http://localhost:5173"
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    secure_cookies: bool = True
    # __Secure- prefix: browsers only accept the cookie over HTTPS with Secure set.
    session_cookie_name: str = "__Secure-SP-Session"
    token_expire_seconds: int = 7 * 24 * 60 * 60

    # ------------------------------------------------------------------
    # Two-factor
    # ------------------------------------------------------------------

    totp_issuer: str = "SocialPreview Dashboard"

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "5/minute"
    api_rate_limit: str = "100/minute"

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    registration_secret: str = ""
    max_upload_bytes: int = 20 * 1024 * 1024

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce SECRET_KEY and REGISTRATION_SECRET policy.

        Dev mode (DEBUG=true): auto-generate missing values with a warning.
            Generated keys change on every restart, so sessions do not persist.

        Production mode: refuse to start if either secret is missing.

        Both modes: reject SECRET_KEY shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is not set. Provide it via the environment or .env, "
                    "or set DEBUG=true to use a throwaway key."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not self.registration_secret:
            if self.debug:
                self.registration_secret = secrets.token_urlsafe(24)
                logger.warning("Using auto-generated REGISTRATION_SECRET. Self-registration is effectively closed.")
            else:
                raise ValueError("REGISTRATION_SECRET is required in production mode.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Cached Settings. Tests that change env vars call get_settings.cache_clear()."""
    return Settings()
