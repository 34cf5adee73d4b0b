"""
Acquisition service.

Turns a video identifier into a readable stream of container bytes.
The service itself only validates input and normalizes failures; the
actual resolution and transfer is done by a VideoSource.
"""

import logging
from typing import Optional, Protocol

from .errors import AcquisitionError, AcquisitionErrorKind, InputError
from .models import MediaStream

logger = logging.getLogger(__name__)


class VideoSource(Protocol):
    """Protocol for something that can open a source video by id."""

    async def open(self, video_id: str) -> MediaStream:
        """
        Resolve the id and open the upstream stream.

        Must raise AcquisitionError before returning when the video cannot
        be resolved, so callers can report failure before streaming starts.
        """
        ...


class AcquisitionService:
    """
    Acquires source videos at a fixed quality tier.

    No retries: any upstream failure is reported once, as an
    AcquisitionError, to the caller.
    """

    def __init__(self, source: VideoSource, max_source_bytes: Optional[int] = None) -> None:
        self._source = source
        self._max_source_bytes = max_source_bytes

    async def acquire(self, video_id: Optional[str]) -> MediaStream:
        """Open a stream for `video_id`. Empty ids never reach the source."""
        if not video_id or not video_id.strip():
            raise InputError("Video ID is required")

        video_id = video_id.strip()
        logger.info("Acquiring source video", extra={"video_id": video_id})

        try:
            stream = await self._source.open(video_id)
        except AcquisitionError as e:
            logger.warning(
                "Acquisition failed",
                extra={"video_id": video_id, "kind": e.kind.value, "error": e.message}
            )
            raise

        logger.info(
            "Source stream opened",
            extra={
                "video_id": video_id,
                "content_length": stream.content_length,
            }
        )
        return stream

    async def acquire_bytes(self, video_id: Optional[str]) -> bytes:
        """
        Acquire and fully buffer a source.

        The transcode pipeline needs random access, so it cannot work from
        the stream directly.
        """
        stream = await self.acquire(video_id)
        try:
            data = await stream.read(max_bytes=self._max_source_bytes)
        except OverflowError as e:
            raise AcquisitionError(AcquisitionErrorKind.UPSTREAM_REJECTED, str(e)) from e

        if not data:
            raise AcquisitionError(
                AcquisitionErrorKind.UPSTREAM_REJECTED,
                f"Source {stream.video_id} returned no data",
            )

        logger.info(
            "Source buffered",
            extra={"video_id": stream.video_id, "size_bytes": len(data)}
        )
        return data
