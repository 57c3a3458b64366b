"""
api/main.py -- FastAPI application entry point for TeamDesk.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- allows the frontend origin, with credentials (cookie)
  3. SlowAPIMiddleware     -- enforces API_RATE_LIMIT globally, LOGIN_RATE_LIMIT on auth

Lifespan builds the shared Engine, creates the schema, and hangs both stores
on app.state. Nothing here is a module-level singleton except the app itself.

Error mapping lives in this module only:
  ValidationFailure / AuthFailure -> 400 / 401 with their reason
  CryptoFailure / SigningFailure  -> logged, opaque 500
  HTTPException                   -> status + {"success": false, "error", "code"}
  RequestValidationError          -> 422
  anything else                   -> logged with traceback, opaque 500
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.absences import router as absences_router
from api.routes.auth import router as auth_router
from api.routes.blog import router as blog_router
from api.routes.calendar import router as calendar_router
from api.routes.members import router as members_router
from api.routes.news import router as news_router
from api.routes.plans import router as plans_router
from api.routes.services import router as services_router
from api.routes.statistics import router as statistics_router
from api.routes.tasks import router as tasks_router
from api.routes.tickets import router as tickets_router
from api.routes.two_factor import router as two_factor_router
from auth.errors import AuthError
from auth.store import UserStore
from core.config import get_settings
from core.database import create_db_engine, init_schema
from ops.store import OpsStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("teamdesk.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the Engine and stores on startup; dispose the pool on shutdown.

    UserStore is built before OpsStore because ops tables reference users.
    """
    logger.info("TeamDesk API starting up")
    engine = create_db_engine(_settings.database_url)
    app.state.user_store = UserStore(engine)
    app.state.ops_store = OpsStore(engine)
    init_schema(engine)
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))

    yield

    engine.dispose()
    logger.info("TeamDesk API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TeamDesk API",
    description="Internal operations backend: accounts, 2FA, tickets, tasks, absences, content and services.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[_settings.frontend_url],
    allow_credentials=True,  # the session travels in a cookie
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(two_factor_router, prefix="/api", tags=["Two-factor"])
app.include_router(tickets_router, prefix="/api", tags=["Tickets"])
app.include_router(tasks_router, prefix="/api", tags=["Tasks"])
app.include_router(absences_router, prefix="/api", tags=["Absences"])
app.include_router(news_router, prefix="/api", tags=["News"])
app.include_router(blog_router, prefix="/api", tags=["Blog"])
app.include_router(members_router, prefix="/api", tags=["Members"])
app.include_router(plans_router, prefix="/api", tags=["Plans"])
app.include_router(calendar_router, prefix="/api", tags=["Calendar"])
app.include_router(services_router, prefix="/api", tags=["Services"])
app.include_router(statistics_router, prefix="/api", tags=["Statistics"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so the frontend can
# read `error` without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code, detail=detail).model_dump(exclude_none=True),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map the typed auth failures to HTTP.

    Expected failures carry a client-safe reason. Unexpected ones (corrupt
    digest or secret, signing failure) are logged with their context and the
    client sees only a generic message.
    """
    if exc.expected:
        code = "validation_error" if exc.status_code == 400 else "unauthorized"
        response = _error(exc.status_code, code, exc.reason)
    else:
        logger.error(
            "%s on %s %s: %s %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.reason,
            exc.context,
        )
        response = _error(500, "internal_error", "Internal server error")
    if request.url.path.startswith("/api/auth"):
        response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report field locations and messages only; submitted values (passwords included) are never echoed."""
    detail = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors())
    return _error(422, "validation_error", "Request validation failed.", detail)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Route handlers raise HTTPException with detail={"code", "message"}; plain strings also work."""
    if isinstance(exc.detail, dict):
        return _error(exc.status_code, exc.detail.get("code", f"http_{exc.status_code}"), exc.detail.get("message", ""))
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors. The traceback goes to the log, never the response."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "Internal server error")


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit: health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@limiter.exempt  # ABOVE @app.get so FastAPI registers the undecorated coroutine
@app.get("/api/health", tags=["Health"])
async def health() -> HealthResponse:
    return HealthResponse(version=VERSION)
