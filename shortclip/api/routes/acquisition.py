"""
Source video download endpoint.

Streams the source video for an id straight through to the client. The
upstream response is relayed chunk by chunk, so memory use does not grow
with the length of the video.
"""

import logging
from typing import Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.background import BackgroundTask

from ...core.clipping.errors import AcquisitionError, AcquisitionErrorKind, InputError
from ..dependencies import AcquisitionServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


class ProcessVideoRequest(BaseModel):
    """Request body naming the video to fetch."""
    model_config = ConfigDict(populate_by_name=True)

    video_id: Optional[str] = Field(
        default=None,
        alias="videoId",
        description="YouTube video id"
    )


def acquisition_status(error: AcquisitionError) -> int:
    if error.kind == AcquisitionErrorKind.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_502_BAD_GATEWAY


@router.post(
    "",
    summary="Download source video",
    description="Stream the source MP4 for a YouTube video id",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"video/mp4": {}}},
        400: {"description": "Missing video id"},
        404: {"description": "Video not found"},
        502: {"description": "Upstream failure"},
    },
)
async def process_video(
    request: ProcessVideoRequest,
    acquisition: AcquisitionServiceDep,
):
    try:
        stream = await acquisition.acquire(request.video_id)
    except InputError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": e.message},
        )
    except AcquisitionError as e:
        logger.error(
            "Error processing video",
            extra={"video_id": request.video_id, "kind": e.kind.value, "error": e.message}
        )
        return JSONResponse(
            status_code=acquisition_status(e),
            content={"error": "Failed to process video"},
        )

    headers = {"Content-Disposition": 'attachment; filename="video.mp4"'}
    if stream.content_length is not None:
        headers["Content-Length"] = str(stream.content_length)

    return StreamingResponse(
        stream.chunks,
        media_type=stream.content_type,
        headers=headers,
        background=BackgroundTask(stream.aclose),
    )
