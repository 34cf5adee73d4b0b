"""
Clip job endpoints (server-side pipeline).

This is the full flow in one request:
1. Acquire the source video and buffer it
2. Trim to 30 seconds (stream copy)
3. Crop to 9:16, scale/pad to 720x1280 at 30 fps, re-encode
4. Keep original, trimmed and processed artifacts for download

Only one job runs at a time. Each client (X-Client-Id header) keeps its
latest job; starting a new one releases the previous artifacts, and only a
few jobs are kept overall. While a POST is running, GET /current (same
header) or GET /{job_id} shows the stage the job has reached.
"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Header, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...core.clipping.errors import AcquisitionError, InputError, JobInProgressError
from ...core.clipping.models import MediaJob
from ..dependencies import ClipServiceDep
from .acquisition import ProcessVideoRequest, acquisition_status

logger = logging.getLogger(__name__)

router = APIRouter()

ARTIFACTS = ("original", "trimmed", "processed")


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class OutputInfo(BaseModel):
    """Structural properties of the processed clip."""
    duration_seconds: float
    width: int
    height: int
    fps: float
    codec: str
    file_size_bytes: int


class ClipArtifacts(BaseModel):
    """Download URLs for the artifacts a job has produced so far."""
    original: Optional[str] = None
    trimmed: Optional[str] = None
    processed: Optional[str] = None


class ClipJobResponse(BaseModel):
    """State of a clip job."""
    job_id: UUID = Field(description="Job identifier")
    source_id: str = Field(description="YouTube video id the clip was made from")
    stage: str = Field(description="idle, ingested, trimmed, encoded, ready or failed")
    stage_label: str = Field(description="Human-readable stage, including the failed stage")
    failed_stage: Optional[str] = Field(default=None, description="ingest, trim or encode")
    error: Optional[str] = Field(default=None, description="Failure message")
    artifacts: ClipArtifacts
    output: Optional[OutputInfo] = None


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def artifact_bytes(job: MediaJob, name: str) -> Optional[bytes]:
    if name == "original":
        return job.raw_bytes or None
    if name == "trimmed":
        return job.trimmed_bytes
    if name == "processed":
        return job.output_bytes
    return None


def to_response(job: MediaJob, request: Request) -> ClipJobResponse:
    urls = {
        name: str(request.url_for("download_artifact", job_id=str(job.job_id), artifact=name))
        for name in ARTIFACTS
        if artifact_bytes(job, name)
    }

    output = None
    if job.output_info is not None:
        info = job.output_info
        output = OutputInfo(
            duration_seconds=info.duration_seconds,
            width=info.width,
            height=info.height,
            fps=info.fps,
            codec=info.codec,
            file_size_bytes=info.file_size_bytes,
        )

    return ClipJobResponse(
        job_id=job.job_id,
        source_id=job.source_id,
        stage=job.stage.value,
        stage_label=job.stage_label,
        failed_stage=job.failed_stage.value if job.failed_stage else None,
        error=job.last_error,
        artifacts=ClipArtifacts(**urls),
        output=output,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ClipJobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create clip",
    description="Fetch a YouTube video and turn its first 30 seconds into a portrait clip",
    responses={
        400: {"description": "Missing video id"},
        404: {"description": "Video not found"},
        409: {"description": "Another clip job is running"},
        502: {"description": "Upstream failure"},
    },
)
async def create_clip(
    body: ProcessVideoRequest,
    request: Request,
    clips: ClipServiceDep,
    x_client_id: Annotated[Optional[str], Header()] = None,
):
    """
    Run the whole pipeline for one video.

    A transcode failure still creates the job: the response carries
    stage "failed", the stage that failed and the artifacts produced
    before it.
    """
    client_id = x_client_id or "anonymous"

    try:
        job = await clips.create(body.video_id, client_id=client_id)
    except InputError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})
    except JobInProgressError as e:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": e.message})
    except AcquisitionError as e:
        logger.error(
            "Clip acquisition failed",
            extra={"video_id": body.video_id, "kind": e.kind.value, "error": e.message}
        )
        return JSONResponse(
            status_code=acquisition_status(e),
            content={"error": f"Failed to download video: {e.message}"},
        )

    return to_response(job, request)


@router.get(
    "/current",
    response_model=ClipJobResponse,
    summary="Get the caller's latest clip job",
    description="Readable while the job runs, so the stage can be polled",
    responses={404: {"description": "No job for this client"}},
)
async def get_current_clip(
    request: Request,
    clips: ClipServiceDep,
    x_client_id: Annotated[Optional[str], Header()] = None,
) -> ClipJobResponse:
    job = clips.current(x_client_id or "anonymous")
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No clip job for this client")
    return to_response(job, request)


@router.get(
    "/{job_id}",
    response_model=ClipJobResponse,
    summary="Get clip job",
)
async def get_clip(job_id: UUID, request: Request, clips: ClipServiceDep) -> ClipJobResponse:
    job = clips.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clip job not found")
    return to_response(job, request)


@router.get(
    "/{job_id}/{artifact}",
    name="download_artifact",
    summary="Download clip artifact",
    response_class=Response,
    responses={200: {"content": {"video/mp4": {}}}},
)
async def download_artifact(job_id: UUID, artifact: str, clips: ClipServiceDep) -> Response:
    if artifact not in ARTIFACTS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown artifact: {artifact}. Use one of {', '.join(ARTIFACTS)}."
        )

    job = clips.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clip job not found")

    data = artifact_bytes(job, artifact)
    if not data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Artifact {artifact} is not available (stage: {job.stage_label})"
        )

    return Response(
        content=data,
        media_type="video/mp4",
        headers={"Content-Disposition": f'attachment; filename="{artifact}.mp4"'},
    )


@router.delete(
    "/{job_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Release clip job",
)
async def release_clip(job_id: UUID, clips: ClipServiceDep) -> Response:
    if not clips.release(job_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clip job not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
