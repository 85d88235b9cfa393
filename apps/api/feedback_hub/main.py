"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from feedback_hub.core.config import settings
from feedback_hub.core.errors import ParseError, ServiceError, UpstreamError
from feedback_hub.core.structured_logging import build_log_context, configure_logging
from feedback_hub.db.session import engine

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
from feedback_hub.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Feedback Hub API",
    description="Community feedback and ticket tracking API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# ============================================================================
# Service Errors
# ============================================================================


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Render service errors as {"detail": ...} with their mapped status."""
    log_context = build_log_context(route=request.url.path, method=request.method)
    if isinstance(exc, (UpstreamError, ParseError)):
        logger.warning(
            f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.__cause__!r}",
            extra=log_context,
        )
    content: dict = {"detail": exc.detail}
    reason = getattr(exc, "reason", None)
    if reason:
        content["reason"] = reason
    return JSONResponse(status_code=exc.status_code, content=content)


# ============================================================================
# Routers
# ============================================================================

from feedback_hub.routers import ai, auth, orgs, reddit, tickets

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(orgs.router, prefix="/orgs", tags=["organizations"])
app.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
app.include_router(reddit.router, prefix="/reddit", tags=["ai"])
app.include_router(ai.router, prefix="/ai", tags=["ai"])

# Dev router (ONLY mounted in dev mode)
if settings.ENV == "dev":
    from feedback_hub.routers import dev
    app.include_router(dev.router, prefix="/dev", tags=["dev"])


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
