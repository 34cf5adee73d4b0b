"""
ShortClip API application.

`create_app` builds the FastAPI app; `app` is the instance uvicorn serves.

Local run:
    uvicorn shortclip.main:app --reload

Deployments must use a single worker: clip jobs and their artifacts are
kept in process memory.
    uvicorn shortclip.main:app --host 0.0.0.0 --port 8000 --workers 1
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.dependencies import reset_shared_instances
from .api.routes import acquisition, clips, health, search
from .config.settings import get_settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)

DESCRIPTION = """
Turn YouTube search results into 30-second portrait clips.

## Workflow

1. **Search**: `GET /api/collect-videos?q=...`
   - Up to 10 videos sampled from the top 50 results

2. **Download source**: `POST /api/process-video`
   - Streams the original MP4 for a `videoId`

3. **Create clip**: `POST /api/v1/clips`
   - Trims to 30s, crops to 9:16, re-encodes to 720x1280 @ 30fps
   - Returns download links for the original, trimmed and processed files
"""

# (router, prefix, tag)
ROUTERS = (
    (health.router, "/health", "Health"),
    (search.router, "/api/collect-videos", "Search"),
    (acquisition.router, "/api/process-video", "Acquisition"),
    (clips.router, "/api/v1/clips", "Clips"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Apply the log level and report missing configuration on startup."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "ShortClip API starting",
        extra={
            "version": __version__,
            "mock_mode": {
                "youtube": settings.youtube_mock_mode,
                "ffmpeg": settings.ffmpeg_mock_mode,
            },
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # the app still starts; search answers 500 until the key is set
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    # drops the clip service and with it every buffered artifact
    reset_shared_instances()
    logger.info("ShortClip API stopped")


async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log with traceback, answer with an opaque 500."""
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        },
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# POST endpoints whose failures are all reported as {"error": ...}
VIDEO_ID_ENDPOINTS = ("/api/process-video", "/api/v1/clips")


async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies on the video endpoints are a missing video id."""
    body_error = any(tuple(err.get("loc", ()))[:1] == ("body",) for err in exc.errors())
    if request.method == "POST" and request.url.path in VIDEO_ID_ENDPOINTS and body_error:
        logger.warning(
            "Rejected malformed request body",
            extra={"path": request.url.path, "errors": len(exc.errors())}
        )
        return JSONResponse(status_code=400, content={"error": "Video ID is required"})
    return await request_validation_exception_handler(request, exc)


def create_app() -> FastAPI:
    """Build the ShortClip FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description=DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS_ORIGINS is a comma-separated list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    app.add_exception_handler(RequestValidationError, invalid_request)
    app.add_exception_handler(Exception, unhandled_exception)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "shortclip",
            "version": __version__,
            "endpoints": [prefix for _, prefix, _ in ROUTERS],
            "docs": "/docs",
        }

    logger.info("Application created", extra={"routers": len(ROUTERS)})
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shortclip.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=get_settings().log_level.lower(),
    )
