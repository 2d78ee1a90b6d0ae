"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Can create multiple app instances if needed (e.g., for testing)

For local development:
    uvicorn snapfeed.main:app --reload

For production:
    gunicorn snapfeed.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import health, posts, upload
from .config.settings import Settings, get_settings
from .infrastructure.database.client import (
    create_database_engine,
    create_mock_engine,
    create_schema,
)
from .infrastructure.storage.client import create_storage_client

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application. Tests pass their
    own Settings; in production they come from the environment.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Builds the long-lived resources from the settings object: the
        database engine (and with it the connection pool shared by all
        requests) and the storage client. Both live on app.state for
        the dependencies to pick up.
        """
        logger.info(
            "SnapFeed API starting",
            extra={
                "version": settings.api_version,
                "mock_mode": {
                    "database": settings.database_mock_mode,
                    "r2": settings.r2_mock_mode,
                }
            }
        )

        missing_fields = settings.validate_required_fields()
        if missing_fields:
            logger.error(
                "Missing required configuration",
                extra={"missing_fields": missing_fields}
            )

        if settings.database_mock_mode:
            engine = create_mock_engine()
        else:
            engine = create_database_engine(settings.database_config())
            if settings.database_create_schema:
                create_schema(engine)

        if settings.r2_mock_mode:
            storage_client = create_storage_client(mock_mode=True)
        else:
            storage_client = create_storage_client(config=settings.storage_config())

        app.state.settings = settings
        app.state.engine = engine
        app.state.storage_client = storage_client

        yield

        logger.info("SnapFeed API shutting down")
        engine.dispose()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Media wall: upload images, videos and audio, then like and comment.

        ## Workflow

        1. **Upload**: `POST /api/upload` with a multipart `file` field
        2. **Browse**: `GET /api/posts`, newest first
        3. **Interact**: `POST /api/posts/{id}/like`, `POST /api/posts/{id}/comment`
        4. **Download**: `GET /api/posts/{id}/download` redirects to the stored file
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Settings are also needed before startup runs (e.g. dependency overrides in tests)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        upload.router,
        prefix="/api",
        tags=["Upload"],
    )

    app.include_router(
        posts.router,
        prefix="/api/posts",
        tags=["Posts"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Malformed ids and bodies are client mistakes, reported as 400.

        FastAPI's default is 422; the API contract uses 400 for every
        invalid input.
        """
        logger.info(
            "Rejected invalid request",
            extra={"path": request.url.path, "errors": exc.errors()}
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request", "errors": jsonable_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. We log the full
        error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw input, which may not be JSON-serializable."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


configure_logging(get_settings())

# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "snapfeed.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
