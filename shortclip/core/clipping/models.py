"""
Domain models for clipping.

These models have no dependencies on FastAPI, httpx, yt-dlp or FFmpeg.
The job model owns the buffers of one pipeline run and enforces the
order in which they may be produced.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Optional
from uuid import UUID, uuid4


class JobStage(Enum):
    """Where a media job is in the transcode state machine."""
    IDLE = "idle"
    INGESTED = "ingested"
    TRIMMED = "trimmed"
    ENCODED = "encoded"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStage.READY, JobStage.FAILED)


class PipelineStage(Enum):
    """The stage a failure is attributed to."""
    INGEST = "ingest"
    TRIM = "trim"
    ENCODE = "encode"


@dataclass(frozen=True)
class Thumbnail:
    url: str
    width: int
    height: int


@dataclass(frozen=True)
class SearchResult:
    """
    One candidate video returned by a search.

    Frozen because a result is a value that lives for a single
    query response.
    """
    id: str
    title: str
    thumbnail: Thumbnail

    def to_wire(self) -> dict:
        """Serialize in the upstream item shape clients already understand."""
        return {
            "id": {"videoId": self.id},
            "snippet": {
                "title": self.title,
                "thumbnails": {
                    "medium": {
                        "url": self.thumbnail.url,
                        "width": self.thumbnail.width,
                        "height": self.thumbnail.height,
                    }
                },
            },
        }


@dataclass(frozen=True)
class VideoInfo:
    """Technical information about a media file, as reported by ffprobe."""
    duration_seconds: float
    width: int
    height: int
    fps: float
    codec: str
    file_size_bytes: int

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class MediaStream:
    """
    A readable stream of container bytes for one source video.

    `chunks` is pulled by the consumer, so a slow consumer slows the
    producer down instead of piling bytes up in memory.
    """
    video_id: str
    chunks: AsyncIterator[bytes]
    content_type: str = "video/mp4"
    content_length: Optional[int] = None
    on_close: Optional[Callable[[], Awaitable[None]]] = None

    async def read(self, max_bytes: Optional[int] = None) -> bytes:
        """
        Materialize the whole stream.

        Raises OverflowError once more than `max_bytes` have arrived; the
        underlying iterator is closed either way.
        """
        buffer = bytearray()
        try:
            async for chunk in self.chunks:
                buffer.extend(chunk)
                if max_bytes is not None and len(buffer) > max_bytes:
                    raise OverflowError(
                        f"Source exceeds {max_bytes} bytes"
                    )
        finally:
            await self.aclose()
        return bytes(buffer)

    async def aclose(self) -> None:
        """Release the upstream connection, whether or not it was consumed."""
        aclose = getattr(self.chunks, "aclose", None)
        if aclose is not None:
            await aclose()
        if self.on_close is not None:
            await self.on_close()


@dataclass
class MediaJob:
    """
    One pass of a source video through the transcode pipeline.

    A job is owned by exactly one pipeline invocation. Every stage stores a
    new buffer and never touches the previous one, so partial artifacts
    stay available when a later stage fails.
    """
    source_id: str
    raw_bytes: bytes = b""
    job_id: UUID = field(default_factory=uuid4)
    trimmed_bytes: Optional[bytes] = None
    output_bytes: Optional[bytes] = None
    stage: JobStage = JobStage.IDLE
    failed_stage: Optional[PipelineStage] = None
    last_error: Optional[str] = None
    output_info: Optional[VideoInfo] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def _advance(self, expected: JobStage, target: JobStage) -> None:
        if self.stage != expected:
            raise ValueError(
                f"Cannot move job from {self.stage.value} to {target.value}"
            )
        self.stage = target
        self.updated_at = datetime.utcnow()

    def mark_ingested(self) -> None:
        if not self.raw_bytes:
            raise ValueError("Cannot ingest an empty buffer")
        self._advance(JobStage.IDLE, JobStage.INGESTED)

    def mark_trimmed(self, trimmed: bytes) -> None:
        if not self.raw_bytes:
            raise ValueError("Trimmed output requires raw input")
        if not trimmed:
            raise ValueError("Trim produced an empty buffer")
        self._advance(JobStage.INGESTED, JobStage.TRIMMED)
        self.trimmed_bytes = trimmed

    def mark_encoded(self) -> None:
        if self.trimmed_bytes is None:
            raise ValueError("Encode requires a trimmed buffer")
        self._advance(JobStage.TRIMMED, JobStage.ENCODED)

    def mark_ready(self, output: bytes) -> None:
        if not output:
            raise ValueError("Encode produced an empty buffer")
        self._advance(JobStage.ENCODED, JobStage.READY)
        self.output_bytes = output

    def fail(self, stage: PipelineStage, message: str) -> None:
        """Move to the absorbing failed state, keeping what was produced so far."""
        if self.stage.is_terminal:
            raise ValueError(f"Job is already {self.stage.value}")
        self.stage = JobStage.FAILED
        self.failed_stage = stage
        self.last_error = message
        self.updated_at = datetime.utcnow()

    def release(self) -> None:
        """Drop every buffer so the memory can be reclaimed."""
        self.raw_bytes = b""
        self.trimmed_bytes = None
        self.output_bytes = None

    @property
    def is_ready(self) -> bool:
        return self.stage == JobStage.READY

    @property
    def is_failed(self) -> bool:
        return self.stage == JobStage.FAILED

    @property
    def stage_label(self) -> str:
        """Last known stage, as shown next to a failure message."""
        if self.failed_stage is not None:
            return f"{self.stage.value} ({self.failed_stage.value})"
        return self.stage.value
