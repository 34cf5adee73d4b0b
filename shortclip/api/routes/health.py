"""
Health endpoints.

- /health: the process is up (never touches FFmpeg or YouTube)
- /health/ready: configuration is complete and ffmpeg/ffprobe are on PATH
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...config.settings import Settings
from ...infrastructure.video.processor import ffmpeg_available
from ..dependencies import SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """One dependency check: "ok" or "error" with a reason."""
    name: str
    status: str
    error: Optional[str] = None


class ReadinessResponse(BaseModel):
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


def check_configuration(settings: Settings) -> ReadinessCheck:
    missing = settings.validate_required_fields()
    if missing:
        return ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing)}",
        )
    return ReadinessCheck(name="configuration", status="ok")


def check_ffmpeg(settings: Settings) -> ReadinessCheck:
    if settings.ffmpeg_mock_mode:
        return ReadinessCheck(name="ffmpeg", status="ok", error="mock mode")

    missing = [
        path for path in (settings.ffmpeg_path, settings.ffprobe_path)
        if not ffmpeg_available(path)
    ]
    if missing:
        return ReadinessCheck(
            name="ffmpeg",
            status="error",
            error=f"Not found on PATH: {', '.join(missing)}",
        )
    return ReadinessCheck(name="ffmpeg", status="ok")


@router.get(
    "",
    response_model=HealthResponse,
    summary="Liveness",
    description="200 while the process is running. No dependency checks.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "mock_mode": {
                "youtube": settings.youtube_mock_mode,
                "ffmpeg": settings.ffmpeg_mock_mode,
            },
        },
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness",
    description="200 when search is configured and FFmpeg is installed, 503 otherwise.",
    responses={503: {"description": "Not ready", "model": ReadinessResponse}},
)
async def readiness_check(settings: SettingsDep, response: Response) -> ReadinessResponse:
    checks = [check_configuration(settings), check_ffmpeg(settings)]
    ready = all(check.status == "ok" for check in checks)

    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Not ready",
            extra={"failed_checks": [c.name for c in checks if c.status != "ok"]}
        )

    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        checks=checks,
    )
