"""
Stuff Tracker API - FastAPI Application

Main entry point for the FastAPI application.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound, OperationalError

from stuff_tracker.config import get_settings
from stuff_tracker.core.database import close_db, init_db
from stuff_tracker.core.exceptions import (
    CycleRejectedError,
    LocationHasContentsError,
    NotFoundError,
    StuffTrackerError,
    ValidationFailedError,
)
from stuff_tracker.models.contracts.common import ErrorResponse
from stuff_tracker.routers import (
    health_router,
    items_router,
    locations_router,
    search_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

# Domain error -> HTTP status
DOMAIN_ERROR_STATUS: dict[type[StuffTrackerError], int] = {
    NotFoundError: 404,
    ValidationFailedError: 400,
    CycleRejectedError: 400,
    LocationHasContentsError: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Stuff Tracker API...")
    settings = get_settings()

    logger.info("Initializing database connection...")
    await init_db()
    logger.info("Database connection established")

    logger.info(
        f"Stuff Tracker API started in {settings.environment} mode "
        f"(descendant strategy: {settings.descendant_strategy})"
    )

    yield

    # Shutdown
    logger.info("Shutting down Stuff Tracker API...")
    await close_db()
    logger.info("Stuff Tracker API shutdown complete")


def _validation_response(errors: list[dict]) -> JSONResponse:
    field_errors = {".".join(str(loc) for loc in e["loc"]): e["msg"] for e in errors}
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error="validation_error",
            message="Validation failed",
            details={"fields": field_errors},
        ).model_dump(),
    )


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Stuff Tracker API",
        description="Household inventory tracker with nested storage locations",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ==========================================================================
    # CORS Middleware
    # ==========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==========================================================================
    # Global Exception Handlers
    # ==========================================================================

    @app.exception_handler(StuffTrackerError)
    async def domain_error_handler(request: Request, exc: StuffTrackerError) -> JSONResponse:
        """Domain errors raised by services -> 400/404/409."""
        status_code = DOMAIN_ERROR_STATUS.get(type(exc), 400)
        if status_code >= 409:
            logger.info(
                f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
                extra={"details": exc.details},
            )
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=exc.error_code,
                message=exc.message,
                details=exc.details,
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed request bodies or parameters -> 422."""
        return _validation_response(list(exc.errors()))

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_handler(
        request: Request, exc: PydanticValidationError
    ) -> JSONResponse:
        """Pydantic model validation errors -> 422."""
        return _validation_response(list(exc.errors()))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        """Database constraint violations -> 409."""
        detail = str(exc.orig) if exc.orig else str(exc)

        if "unique" in detail.lower() or "duplicate" in detail.lower():
            message = "Resource already exists"
        elif "foreign key" in detail.lower():
            message = "Referenced resource not found"
        else:
            message = "Database constraint violation"

        logger.warning(f"IntegrityError: {detail}")
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(
                error="conflict",
                message=message,
            ).model_dump(),
        )

    @app.exception_handler(NoResultFound)
    async def no_result_handler(request: Request, exc: NoResultFound) -> JSONResponse:
        """Query returned no results -> 404."""
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(
                error="not_found",
                message="Resource not found",
            ).model_dump(),
        )

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        """Database connection issues -> 503."""
        logger.error(f"Database operational error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(
                error="service_unavailable",
                message="Service temporarily unavailable",
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions -> 500."""
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="internal_error",
                message="An unexpected error occurred",
            ).model_dump(),
        )

    # ==========================================================================
    # Register Routers
    # ==========================================================================
    app.include_router(health_router)
    app.include_router(locations_router)
    app.include_router(items_router)
    app.include_router(search_router)

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "name": "Stuff Tracker API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "stuff_tracker.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
