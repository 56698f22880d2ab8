"""
FastAPI application setup with monitoring, rate limiting, error handling and
the expiration sweep lifecycle.
"""
import time

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from keyhub.core.exceptions import (
    KeyHubException,
    error_body,
    general_exception_handler,
    http_exception_handler,
    keyhub_exception_handler,
    rate_limit_exceeded_handler,
)
from keyhub.core.logging import configure_logging
from keyhub.core.monitoring import (
    init_sentry,
    metrics,
    increment_http_requests,
    observe_http_request_duration,
)
from keyhub.core.monitoring.health_checks import basic_health_check, readiness_check
from keyhub.core.monitoring.prometheus_metrics import registry
from keyhub.core.rate_limit import limiter
from keyhub.core.settings import settings

configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.app_name,
        description="Issues, validates and retires time-bounded subscription keys",
        version=settings.app_version,
        docs_url="/docs" if settings.enable_docs and not settings.is_production else None,
        redoc_url="/redoc" if settings.enable_docs and not settings.is_production else None,
    )
    app.state.sweep_scheduler = None

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    setup_middleware(app)
    setup_monitoring(app)
    setup_exception_handlers(app)
    setup_routers(app)
    setup_event_handlers(app)

    return app


def setup_middleware(app: FastAPI):
    """Setup CORS and rate limiting middleware."""

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-API-Key"] if settings.is_production else ["*"],
        max_age=3600 if settings.is_production else 600,
    )
    logger.info("CORS configured", allowed_origins=settings.allowed_origins)


def setup_monitoring(app: FastAPI):
    """Setup Sentry, request metrics and the Prometheus endpoint."""

    init_sentry(component="api")

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        # Label by route template so key strings do not become label values
        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")
        duration = time.time() - start_time
        increment_http_requests(request.method, endpoint, str(response.status_code))
        observe_http_request_duration(request.method, endpoint, duration)

        return response

    if settings.enable_metrics:
        Instrumentator(
            should_group_status_codes=False,
            should_ignore_untemplated=True,
            excluded_handlers=["/metrics", "/healthz", "/readyz"],
            registry=registry,
        ).instrument(app)

    @app.get("/metrics", include_in_schema=False)
    async def get_metrics():
        """Expose Prometheus metrics."""
        return metrics.get_metrics_response()


def setup_exception_handlers(app: FastAPI):
    """Render every error in the ``success``/``message`` envelope."""

    app.add_exception_handler(KeyHubException, keyhub_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed requests are input errors (400)."""
        logger.warning(
            "Request validation error",
            path=request.url.path,
            method=request.method,
            errors=str(exc.errors())
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(
                "Input validation failed",
                "ValidationInputError",
                status.HTTP_400_BAD_REQUEST,
                {"errors": [
                    {"loc": list(error.get("loc", [])), "msg": error.get("msg")}
                    for error in exc.errors()
                ]}
            )
        )


def setup_routers(app: FastAPI):
    """Setup API routers and health endpoints."""

    from keyhub.api.routers import admin, subscriptions, users

    app.include_router(users.router)
    app.include_router(subscriptions.router)
    app.include_router(admin.router)

    @app.get("/healthz")
    async def health_check():
        """Basic health check endpoint."""
        return await basic_health_check()

    @app.get("/readyz")
    async def readiness_check_endpoint(request: Request):
        """Readiness check covering the key store and the sweep scheduler."""
        from keyhub.db.session import engine

        result = await readiness_check(engine, request.app.state.sweep_scheduler)
        code = status.HTTP_200_OK if result["status"] == "ready" else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(status_code=code, content=result)

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if settings.enable_docs and not settings.is_production else None,
        }


def setup_event_handlers(app: FastAPI):
    """Create tables, seed the admin and manage the sweep scheduler."""

    @app.on_event("startup")
    def startup_event():
        from keyhub.api.services import AuthService
        from keyhub.db.session import create_db_and_tables, engine
        from keyhub.worker.scheduler import SweepScheduler

        logger.info("Key service starting up", environment=settings.environment)

        for issue in settings.validate_production_config():
            logger.warning("Production configuration issue", issue=issue)

        create_db_and_tables()
        with Session(engine) as session:
            AuthService.ensure_default_admin(session)

        if settings.enable_sweep_scheduler:
            scheduler = SweepScheduler(settings.sweep_interval_seconds)
            scheduler.start()
            app.state.sweep_scheduler = scheduler
        else:
            logger.info("In-process sweep scheduler disabled")

        logger.info("Key service started")

    @app.on_event("shutdown")
    def shutdown_event():
        scheduler = app.state.sweep_scheduler
        if scheduler is not None:
            scheduler.stop()
            app.state.sweep_scheduler = None
        logger.info("Key service shut down")


# Create application instance
app = create_application()
