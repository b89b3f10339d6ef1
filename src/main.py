"""
FastAPI application entry point.

This module creates and configures the FastAPI application using an
application factory (create_app), so tests can build fresh instances.

For local development:
    uvicorn src.main:app --reload

For production:
    gunicorn src.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api.routes import health, videos
from .config.settings import get_settings
from .core.videos.errors import VideoUploadError
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

    Logs startup configuration and flags missing settings. FastAPI calls
    this automatically when the application starts/stops.
    """
    settings = get_settings()

    logger.info(
        "Tubely API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "s3": settings.s3_mock_mode,
                "ffmpeg": settings.video_processor_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Tubely API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Video upload service.

        Upload an MP4 for an existing video record with
        `POST /api/video_upload/{video_id}` (multipart field `video`,
        `Authorization: Bearer <token>`). The file is remuxed for fast
        start, stored in S3 under its aspect ratio and the record's
        `videoURL` is updated.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

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
        videos.router,
        prefix="/api",
        tags=["Videos"],
    )

    @app.exception_handler(VideoUploadError)
    async def video_upload_error_handler(request: Request, exc: VideoUploadError):
        """
        Render domain errors with the status code they carry.

        Client errors echo their message. Server-side failures carry raw
        ffmpeg output, which is logged but not returned.
        """
        server_error = exc.status_code >= 500
        log = logger.error if server_error else logger.info
        log(
            "Request failed",
            extra={
                "path": request.url.path,
                "status_code": exc.status_code,
                "error": exc.message,
            }
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Couldn't process video" if server_error else exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Render framework errors (malformed multipart bodies, unknown
        routes) in the same {"error": ...} shape as domain errors.
        """
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(
            "Object storage failure",
            extra={"path": request.url.path, "error": str(exc)},
        )

        return JSONResponse(
            status_code=500,
            content={"error": "Couldn't upload video to storage"},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Logs the full error server-side but returns a generic message.
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
            content={"error": "Internal server error"}
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": __version__,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8091,
        reload=True,
        log_level=settings.log_level.lower(),
    )
