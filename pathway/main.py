"""FastAPI application entry point."""
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from pathway.core.config import settings
from pathway.core.structured_logging import build_log_context, configure_logging
from pathway.db.session import engine
from pathway.services.errors import ServiceError

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Don't send PII to Sentry
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from pathway.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Pathway API",
    description="Admission and curriculum progression for a multi-organization learning program",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# Request Logging
# ============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag every request with an X-Request-ID and log its outcome."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()

    response = await call_next(request)

    duration_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s -> %d (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        extra=build_log_context(
            member_id=getattr(request.state, "member_id", None),
            org_id=getattr(request.state, "org_id", None),
            request_id=request_id,
            route=request.url.path,
            method=request.method,
        ),
    )
    return response


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Render workflow errors with their status and per-field messages."""
    content: dict = {"detail": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are a 400 with one message per field."""
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(location) or "body", "message": error.get("msg", "")})
    detail = errors[0]["message"] if len(errors) == 1 else "Invalid input"
    return JSONResponse(status_code=400, content={"detail": detail, "errors": errors})


@app.exception_handler(OperationalError)
async def database_unavailable_handler(request: Request, exc: OperationalError):
    logger.error(
        "Database unavailable",
        exc_info=exc,
        extra=build_log_context(
            member_id=getattr(request.state, "member_id", None),
            org_id=getattr(request.state, "org_id", None),
            request_id=getattr(request.state, "request_id", None),
            route=request.url.path,
            method=request.method,
        ),
    )
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable"})


# ============================================================================
# Routers
# ============================================================================

from pathway.routers import (
    activities,
    auth,
    content,
    entry_requests,
    members,
    notifications,
    organizations,
    progress,
    submissions,
)

# Auth router (registration is unauthenticated)
app.include_router(auth.router, prefix="/auth", tags=["auth"])

# Admission
app.include_router(entry_requests.router, prefix="/entry-requests", tags=["entry-requests"])

# Organizations and accounts
app.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
app.include_router(members.router, prefix="/members", tags=["members"])

# Curriculum
app.include_router(content.router, prefix="/content", tags=["content"])
app.include_router(progress.router, prefix="/members", tags=["progress"])

# Activities and submissions
app.include_router(activities.router, prefix="/activities", tags=["activities"])
app.include_router(submissions.router, prefix="/submissions", tags=["submissions"])

# Staff pushes
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
