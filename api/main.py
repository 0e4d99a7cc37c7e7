"""
api/main.py -- FastAPI application entry point for Audit Desk.

Exposes the entity stores over HTTP so a browser front end or scripted
clients can manage audits, checklists, corrective actions and reports
without running the CLI.

Run with:      uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan opens the key-value backend named by STORAGE_URL, builds the five
stores and the auth objects over it, and closes the backend on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.audit_types import router as audit_types_router
from api.routes.v1.audits import router as audits_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.corrective_actions import router as actions_router
from api.routes.v1.dashboard import router as dashboard_router
from api.routes.v1.executions import router as executions_router
from api.routes.v1.ingest import router as ingest_router
from api.routes.v1.reports import router as reports_router
from api.routes.v1.sampling import router as sampling_router
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import SessionStore, UserDirectory
from core.config import get_settings
from storage.backend import open_backend
from stores.entities import open_stores

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("auditdesk.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open shared resources on startup and release them on shutdown.

    Startup order matters:
      1. Backend first -- every store and the session blob live in it.
      2. Stores second -- built lazily, nothing is read until first request.
      3. Auth last -- SessionStore shares the backend with the stores.
    """
    settings = get_settings()
    logger.info("Audit Desk API starting up")
    app.state.backend = open_backend(settings.storage_url)
    app.state.stores = open_stores(app.state.backend)
    logger.info("Stores initialized")
    app.state.users = UserDirectory()
    app.state.sessions = SessionStore(app.state.backend)
    logger.info("Auth initialized (%d allow-listed users)", len(app.state.users.list_users()))

    yield

    app.state.backend.close()
    logger.info("Audit Desk API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Audit Desk API",
    description="Audit planning, checklist execution, corrective actions and audit reports.",
    version=API_VERSION,
    lifespan=lifespan,
    # Built-in /docs and /redoc are replaced by auth-protected routes below.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=["localhost", "127.0.0.1", "*.localhost", "testserver"],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler; wall-clock time around call_next gives the latency.
# ---------------------------------------------------------------------------


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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(audit_types_router, prefix="/api/v1", tags=["Audit Types"])
app.include_router(audits_router, prefix="/api/v1", tags=["Audits"])
app.include_router(executions_router, prefix="/api/v1", tags=["Checklist Executions"])
app.include_router(actions_router, prefix="/api/v1", tags=["Corrective Actions"])
app.include_router(reports_router, prefix="/api/v1", tags=["Reports"])
app.include_router(dashboard_router, prefix="/api/v1", tags=["Dashboard"])
app.include_router(ingest_router, prefix="/api/v1", tags=["Ingestion"])
app.include_router(sampling_router, prefix="/api/v1", tags=["Sampling"])


# ---------------------------------------------------------------------------
# Auth-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(user: User = Depends(get_current_user)):
    """Swagger UI -- requires authentication."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Audit Desk API")


@app.get("/redoc", include_in_schema=False)
async def redoc(user: User = Depends(get_current_user)):
    """ReDoc UI -- requires authentication."""
    return get_redoc_html(openapi_url="/openapi.json", title="Audit Desk API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every failure leaves the API as the same {"error": {code, message, detail}}
# envelope, whichever layer raised it.
# ---------------------------------------------------------------------------


def _error(status_code: int, detail: ErrorDetail, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(),
        headers=headers,
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with Retry-After; the limit that tripped goes into detail."""
    retry_after = int(getattr(exc, "retry_after", 60))
    return _error(
        429,
        ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc)),
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request models rejected the body or query: 422 before any store is touched."""
    return _error(
        422,
        ErrorDetail(code="validation_error", message="Request validation failed.", detail=str(exc.errors())),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Routes and auth dependencies raise HTTPException with a dict detail
    (ErrorDetail(...).model_dump()); anything else gets a generic http_<status> code.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    return _error(exc.status_code, ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)), headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # The traceback goes to the log only, never to the client.
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, ErrorDetail(code="internal_error", message="An unexpected error occurred."))


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit and no auth: load balancers and monitors must reach it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=API_VERSION)
