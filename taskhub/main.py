# taskhub/main.py - application assembly with tracing, metrics and rate limiting
from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from contextlib import asynccontextmanager
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import time
import asyncio

from taskhub.core.config import settings
from taskhub.db.database import get_db, init_db, ping_db, engine, AsyncSessionLocal
from taskhub.core import tracing

from taskhub.api.v1.router import api_router

from taskhub.middleware.security import SecurityHeadersMiddleware
from taskhub.middleware.cors import setup_cors_middleware
from taskhub.middleware.rate_limiting import limiter, rate_limit_exceeded_handler
from taskhub.middleware.monitoring import MonitoringMiddleware

from taskhub.exceptions.handlers import (
    http_exception_handler,
    validation_exception_handler,
    global_exception_handler,
    starlette_http_exception_handler
)

from taskhub.db.crud.token import cleanup_expired_tokens
from taskhub.storage.avatars import avatar_storage

TOKEN_CLEANUP_INTERVAL = 3600

tracing_enabled = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create tables on startup and run the token cleanup loop until shutdown
    """
    tracing.info("TaskHub API startup initiated")

    try:
        await init_db()
    except Exception as e:
        tracing.error(f"Database initialization failed: {e}")
        raise

    cleanup_task = asyncio.create_task(periodic_token_cleanup())

    tracing.info(f"Environment: {settings.ENVIRONMENT}")
    tracing.info(f"Tracing: {'Enabled' if tracing_enabled else 'Disabled'}")
    tracing.info(f"Rate Limiting: {'Enabled' if settings.RATE_LIMIT_ENABLED else 'Disabled'}")
    tracing.info(f"Avatar directory: {avatar_storage.directory}")

    yield

    tracing.info("TaskHub API shutdown initiated")
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass
    await engine.dispose()
    tracing.info("TaskHub API shutdown complete")


app = FastAPI(
    title="TaskHub API",
    description="Task management with ownership, assignment and role-based access",
    version=tracing.VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    openapi_url="/openapi.json" if settings.ENVIRONMENT == "development" else None
)

# =============================================================================
# TRACING
# =============================================================================

tracing_enabled = tracing.setup_tracing(app, engine)

# =============================================================================
# MIDDLEWARE (last added runs first)
# =============================================================================

app.add_middleware(MonitoringMiddleware)
app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.ENVIRONMENT == "production")
setup_cors_middleware(app)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(StarletteHTTPException, starlette_http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# =============================================================================
# PROMETHEUS METRICS
# =============================================================================

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    should_instrument_requests_inprogress=True,
    inprogress_labels=True,
    excluded_handlers=["/metrics", settings.AVATAR_URL_PREFIX + ".*"]
)
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

# =============================================================================
# ROUTES
# =============================================================================

app.include_router(api_router, prefix="/api/v1")

avatar_storage.ensure_directory()
app.mount(settings.AVATAR_URL_PREFIX, StaticFiles(directory=str(avatar_storage.directory)), name="avatars")


@app.get("/health", tags=["System"])
@limiter.exempt
async def health_check(db: AsyncSession = Depends(get_db)):
    """Liveness plus a database round trip"""
    try:
        await ping_db(db)
    except Exception as e:
        tracing.error(f"Health check failed: {e}", endpoint="/health", error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy - database connection failed"
        )

    return {
        "status": "healthy",
        "service": tracing.SERVICE,
        "version": tracing.VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "trace_id": tracing.get_current_trace_id(),
        "checks": {
            "database": "connected",
            "tracing": "enabled" if tracing_enabled else "disabled",
            "rate_limiting": "enabled" if settings.RATE_LIMIT_ENABLED else "disabled"
        }
    }


@app.get("/", tags=["System"])
async def api_information():
    return {
        "message": "TaskHub API",
        "version": tracing.VERSION,
        "environment": settings.ENVIRONMENT,
        "trace_id": tracing.get_current_trace_id(),
        "endpoints": {
            "health": "/health",
            "metrics": "/metrics",
            "authentication": "/api/v1/auth",
            "tasks": "/api/v1/tasks",
            "users": "/api/v1/users",
            "profile": "/api/v1/profile",
            "documentation": "/docs" if settings.ENVIRONMENT == "development" else None
        },
        "timestamp": time.time()
    }


# =============================================================================
# BACKGROUND TASKS
# =============================================================================

async def periodic_token_cleanup():
    """Drop expired refresh tokens and blacklist entries once an hour"""
    while True:
        try:
            async with AsyncSessionLocal() as db:
                stats = await cleanup_expired_tokens(db)
                tracing.info("Token cleanup completed", cleanup_stats=stats, task="periodic_cleanup")
        except Exception as e:
            tracing.error(f"Token cleanup failed: {e}", task="periodic_cleanup", error_type=type(e).__name__)

        await asyncio.sleep(TOKEN_CLEANUP_INTERVAL)
