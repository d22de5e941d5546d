"""FastAPI application factory and configuration.

This module provides the application factory function for creating
and configuring the FastAPI application with all middleware, routes,
and lifecycle handlers.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rolekeeper.core.config import get_settings
from rolekeeper.core.logging import (
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
)
from rolekeeper.domain.exceptions import (
    ConflictError,
    DefaultRoleError,
    ProtectedRoleError,
    RoleError,
    RoleNotFoundError,
    StoreError,
    ValidationError,
)
from rolekeeper.infrastructure.persistence.database import (
    close_database,
    get_db_manager,
    init_database,
)
from rolekeeper.infrastructure.persistence.repositories import (
    RoleRepository,
    RoleSettingsRepository,
)

logger = get_logger(__name__)

# Most specific first; ConcurrentModificationError falls under ConflictError.
ERROR_STATUS_CODES: tuple[tuple[type[RoleError], int], ...] = (
    (ValidationError, 400),
    (ProtectedRoleError, 403),
    (RoleNotFoundError, 404),
    (ConflictError, 409),
    (DefaultRoleError, 409),
    (StoreError, 503),
)


def status_code_for(exc: RoleError) -> int:
    """Map a domain error to an HTTP status code."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Initializes the database, wires the repositories onto ``app.state`` and
    loads the first role snapshot.
    """
    settings = get_settings()

    # Configure logging
    configure_logging(settings)

    logger.info(
        "Starting rolekeeper",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize database
    try:
        await init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    db = get_db_manager()
    app.state.role_repository = RoleRepository(db.session_factory)
    app.state.role_settings_repository = RoleSettingsRepository(db.session_factory, settings)
    snapshot = await app.state.role_repository.refresh()
    logger.info("Role snapshot loaded", count=len(snapshot))

    yield

    # Shutdown
    logger.info("Shutting down rolekeeper")
    await close_database()
    logger.info("Database connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Role-based access control for back-office tools",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_health_check(app)
    register_routes(app)
    register_exception_handlers(app)
    register_middleware(app)

    return app


def register_health_check(app: FastAPI) -> None:
    """Register health check endpoints.

    Args:
        app: FastAPI application instance.
    """

    @app.get("/health", tags=["health"])
    async def health_check():
        """Basic health check endpoint.

        Returns 200 if the service is running. Does not check
        database connectivity or other dependencies.
        """
        return {
            "status": "healthy",
            "service": "rolekeeper",
            "version": get_settings().app_version,
        }

    @app.get("/ready", tags=["health"])
    async def readiness_check():
        """Readiness check endpoint.

        Returns 200 if the database answers and a role snapshot is loaded.
        """
        db_healthy = await get_db_manager().check_connection()
        repository = getattr(app.state, "role_repository", None)
        snapshot_loaded = repository is not None and repository.snapshot.loaded_at is not None

        if db_healthy and snapshot_loaded:
            return {
                "status": "ready",
                "service": "rolekeeper",
                "version": get_settings().app_version,
                "database": "connected",
                "roles": len(repository.snapshot),
            }
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "service": "rolekeeper",
                "database": "connected" if db_healthy else "disconnected",
            },
        )


def register_routes(app: FastAPI) -> None:
    """Register API routes.

    Args:
        app: FastAPI application instance.
    """
    from rolekeeper.infrastructure.api.routes import roles_router

    settings = get_settings()

    app.include_router(roles_router, prefix=f"{settings.api_prefix}/roles", tags=["roles"])

    @app.get(settings.api_prefix, tags=["root"])
    async def api_root():
        """API root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "api_version": "v1",
        }


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Args:
        app: FastAPI application instance.
    """

    @app.exception_handler(RoleError)
    async def role_error_handler(request: Request, exc: RoleError):
        """Translate domain errors to HTTP responses."""
        status_code = status_code_for(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "Role request rejected",
            path=str(request.url.path),
            method=request.method,
            status_code=status_code,
            error=str(exc),
            exc_type=type(exc).__name__,
            role_id=exc.role_id,
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "error": type(exc).__name__,
                "detail": str(exc),
                "role_id": exc.role_id,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=str(request.url),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if get_settings().debug else "An unexpected error occurred",
            },
        )


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware.

    Args:
        app: FastAPI application instance.
    """

    @app.middleware("http")
    async def logging_middleware(request, call_next):
        """Log every request and tag it with a correlation ID."""
        correlation_id = request.headers.get("X-Correlation-ID", f"cid_{uuid.uuid4().hex[:12]}")
        bind_correlation_id(correlation_id)

        logger.info(
            "Request started",
            method=request.method,
            path=str(request.url.path),
        )

        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=str(request.url.path),
                status_code=response.status_code,
            )
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            clear_context()


# Create the application instance
app = create_app()
