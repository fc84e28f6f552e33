"""
main.py
FastAPI application entry point.
Registers all routers, middleware, exception handlers and startup/shutdown events.
"""

import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from logging import LogRecord

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import close_db, get_db, get_db_context, init_db
from config.redis_client import close_redis, get_cache, init_redis
from config.settings import settings
from shared.utils.errors import AppError

# Service routers
from services.admin.router import router as admin_router
from services.application.router import router as application_router
from services.auth.router import router as auth_router
from services.catalog.router import router as catalog_router
from services.favorite.router import router as favorite_router
from services.notification.router import router as notification_router
from services.seo.router import router as seo_router


# ── Logging ──────────────────────────────────────────────────

class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "instance": os.getenv("INSTANCE_NAME", "unknown"),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            log_data["request_id"] = request_id
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)


# ── Lifespan (startup/shutdown) ───────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle handler."""
    logger.info(f"Starting {settings.APP_NAME} ({settings.APP_ENV})")

    await init_db()
    logger.info("Database ready")

    await init_redis()

    # Sample catalog, only in dev
    if settings.is_development:
        await seed_initial_data()

    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} is ready")
    yield

    await close_redis()
    await close_db()
    logger.info("Server shutdown complete")


async def seed_initial_data():
    from services.catalog.seed import seed_catalog

    async with get_db_context() as db:
        counts = await seed_catalog(db)
    logger.info(f"Catalog counts: {counts}")


# ── App Factory ───────────────────────────────────────────────

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
## Study in UK API

REST API for the study-abroad counseling platform:
- **Catalog**: universities, courses with filters, counselors, tutorials
- **Applications**: submit and track applications to UK courses
- **Favorites**: saved courses per user
- **Notifications**: in-app notifications and admin broadcast
- **Admin**: dashboard stats, analytics, application status updates

### Authentication
Protected endpoints require `Authorization: Bearer <access_token>`, where the
token is a Supabase access token.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware (last added runs first) ─────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=500)

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        """
        Fixed-window limit for unauthenticated callers, per client IP.
        Authenticated requests are not limited here. Fails open without Redis.
        """
        skip_paths = {"/health", "/docs", "/redoc", "/openapi.json", "/metrics"}
        if request.url.path in skip_paths:
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        cache = get_cache()
        if cache and not auth_header.startswith("Bearer "):
            client_ip = request.client.host if request.client else "unknown"
            try:
                allowed = await cache.check_rate_limit(
                    f"rate:unauth:{client_ip}", settings.RATE_LIMIT_UNAUTH_PER_MINUTE
                )
            except RedisError as e:
                logger.error(f"Rate limit check failed: {e}")
                allowed = True

            if not allowed:
                logger.warning(f"Rate limit exceeded for IP {client_ip}")
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"detail": "Rate limit exceeded. Please slow down."},
                    headers={"Retry-After": "60"},
                )

        return await call_next(request)

    @app.middleware("http")
    async def process_time_middleware(request: Request, call_next):
        """Track and expose request processing time."""
        start = time.perf_counter()
        response = await call_next(request)
        process_time = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Process-Time"] = f"{process_time}ms"
        return response

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add unique X-Request-ID to every request for tracing."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # ── Exception Handlers ─────────────────────────────────────────

    def _request_id(request: Request):
        return getattr(request.state, "request_id", None)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        request_id = _request_id(request)
        if exc.status_code >= 500:
            logger.error(
                f"{request.method} {request.url.path} failed: {exc.detail}",
                extra={"request_id": request_id},
            )
            detail = exc.detail if settings.DEBUG else "An internal server error occurred"
        else:
            detail = exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": detail, "request_id": request_id},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies and parameters are client errors: 400, not 422."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Invalid request",
                "request_id": _request_id(request),
                "errors": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        request_id = _request_id(request)
        logger.error(
            f"Database error on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
            extra={"request_id": request_id},
        )
        detail = str(exc) if settings.DEBUG else "An internal server error occurred"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": detail, "request_id": request_id},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler. Never expose stack traces in production."""
        request_id = _request_id(request)
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
            extra={"request_id": request_id},
        )
        detail = str(exc) if settings.DEBUG else "An internal server error occurred"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": detail, "request_id": request_id},
        )

    # ── Routes ────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], include_in_schema=False)
    async def health_check(db: AsyncSession = Depends(get_db)):
        from config.redis_client import redis_client

        checks = {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.APP_ENV,
            "version": settings.APP_VERSION,
        }

        try:
            await db.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except SQLAlchemyError:
            logger.exception("Health check: database unreachable")
            checks["database"] = "error"
            checks["status"] = "degraded"
            await db.rollback()

        # Redis is optional; its state is reported but never fails the check
        if redis_client is None:
            checks["redis"] = "disabled"
        else:
            try:
                await redis_client.ping()
                checks["redis"] = "ok"
            except RedisError:
                checks["redis"] = "error"

        status_code = 200 if checks["database"] == "ok" else 503
        return JSONResponse(content=checks, status_code=status_code)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health",
        }

    # Register all service routers
    app.include_router(auth_router)
    app.include_router(catalog_router)
    app.include_router(favorite_router)
    app.include_router(application_router)
    app.include_router(notification_router)
    app.include_router(admin_router)
    app.include_router(seo_router)

    # ── Prometheus Metrics ─────────────────────────────────────────
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", tags=["Monitoring"])

    return app


# ── Entry Point ───────────────────────────────────────────────

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS,
        log_level="debug" if settings.DEBUG else "info",
        access_log=True,
    )
