"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn bucketfs.main:app --reload

For production:
    gunicorn bucketfs.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import files, health, images
from .config.settings import get_settings
from .core.storage.errors import FileManagerError
from .infrastructure.storage.client import StorageError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Runs on startup and shutdown. There are no pools to open; startup
    only reports the configuration we came up with.
    """
    # Startup
    settings = get_settings()

    logger.info(
        "bucketfs API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {"r2": settings.r2_mock_mode},
            "bucket": settings.r2_bucket_name,
        }
    )

    # Validate configuration
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        # /health/ready reports not_ready until this is fixed

    yield

    # Shutdown
    logger.info("bucketfs API shutting down")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map domain and storage errors to JSON responses.

    Every error body is {"error": code, "detail": message}.
    """

    @app.exception_handler(FileManagerError)
    async def file_manager_error_handler(request: Request, exc: FileManagerError):
        logger.info(
            "Request rejected",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_code": exc.code,
                "error": exc.message,
            },
        )
        return JSONResponse(
            status_code=exc.http_status,
            content={"error": exc.code, "detail": exc.message},
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(
            "Storage operation failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "storage_error", "detail": str(exc)},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Logs the full error server-side, returns a generic message.
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
            status_code=500,
            content={
                "error": "internal_error",
                "detail": "Internal server error. Please contact support if this persists.",
            }
        )


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application. Called once at
    import for the server, and again by tests that need a fresh app.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Hierarchical file manager over a flat R2 bucket.

        ## Features

        - Browse virtual folders with search, type filter and pagination
        - Upload files (image dimensions are recorded)
        - Create, rename and delete folders
        - Rename, download and delete files
        - Image gallery across all folders

        ## Authentication

        All endpoints require an API key provided in the `X-API-Key` header.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    # Configure allowed origins via CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        files.router,
        prefix="/api/files",
        tags=["Files"],
    )

    app.include_router(
        images.router,
        prefix="/api/images",
        tags=["Images"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "bucketfs API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    register_exception_handlers(app)

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "bucketfs.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
