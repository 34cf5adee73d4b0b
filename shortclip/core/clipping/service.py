"""
Clip service.

Composes acquisition and the transcode pipeline into a single job and
keeps the resulting artifacts around until they are replaced or released.
This is the explicit job context that callers pass around instead of
holding "current job" state globally.
"""

import asyncio
import logging
from typing import Optional, Protocol
from uuid import UUID

from .acquisition import AcquisitionService
from .errors import AcquisitionError, InputError, JobInProgressError, PipelineError
from .models import MediaJob, VideoInfo
from .pipeline import EngineError, TranscodePipeline

logger = logging.getLogger(__name__)


class MediaProber(Protocol):
    async def probe(self, data: bytes) -> VideoInfo:
        ...


class ClipService:
    """
    Runs one clip job at a time and keeps a bounded set of finished jobs.

    Only one job is in flight at any moment; a second submission while one
    is running is rejected rather than queued. A job is registered before
    its source is fetched, so its stage can be read while it runs.

    When a client starts a new job, its previous job's buffers are
    released. At most `max_jobs` jobs are kept across all clients; the
    oldest is released to make room.
    """

    def __init__(
        self,
        acquisition: AcquisitionService,
        pipeline: TranscodePipeline,
        prober: Optional[MediaProber] = None,
        max_jobs: int = 4,
    ) -> None:
        if max_jobs < 1:
            raise ValueError("max_jobs must be at least 1")
        self._acquisition = acquisition
        self._pipeline = pipeline
        self._prober = prober
        self._max_jobs = max_jobs
        self._lock = asyncio.Lock()
        # insertion order is age order
        self._jobs: dict[UUID, MediaJob] = {}
        self._current: dict[str, UUID] = {}

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def job_count(self) -> int:
        return len(self._jobs)

    async def create(self, video_id: Optional[str], client_id: str = "anonymous") -> MediaJob:
        """
        Acquire `video_id` and run it through the pipeline.

        Acquisition errors propagate and the job is dropped. A pipeline
        failure does not raise: the failed job is returned with whatever
        artifacts it produced before the failing stage.
        """
        if self._lock.locked():
            raise JobInProgressError("A clip job is already running")

        async with self._lock:
            source_id = (video_id or "").strip()
            if not source_id:
                raise InputError("Video ID is required")

            job = MediaJob(source_id=source_id)
            self._replace(client_id, job)

            try:
                job.raw_bytes = await self._acquisition.acquire_bytes(source_id)
            except AcquisitionError:
                self.release(job.job_id)
                raise

            def on_stage(current: MediaJob) -> None:
                logger.info(
                    "Clip progress",
                    extra={
                        "job_id": str(current.job_id),
                        "client_id": client_id,
                        "stage": current.stage_label,
                    }
                )

            try:
                await self._pipeline.run(job, on_stage=on_stage)
            except PipelineError:
                return job

            if self._prober is not None:
                try:
                    job.output_info = await self._prober.probe(job.output_bytes)
                except EngineError as e:
                    logger.warning(
                        "Could not probe clip output",
                        extra={"job_id": str(job.job_id), "error": str(e)}
                    )

            logger.info(
                "Clip ready",
                extra={
                    "job_id": str(job.job_id),
                    "source_id": job.source_id,
                    "output_bytes": len(job.output_bytes),
                }
            )
            return job

    def get(self, job_id: UUID) -> Optional[MediaJob]:
        return self._jobs.get(job_id)

    def current(self, client_id: str) -> Optional[MediaJob]:
        """The latest job of `client_id`, including one still running."""
        job_id = self._current.get(client_id)
        return self._jobs.get(job_id) if job_id is not None else None

    def release(self, job_id: UUID) -> bool:
        """Drop a job and its buffers. Returns False if it was not tracked."""
        job = self._jobs.pop(job_id, None)
        if job is None:
            return False
        job.release()
        for client_id, current in list(self._current.items()):
            if current == job_id:
                del self._current[client_id]
        logger.info("Released clip job", extra={"job_id": str(job_id)})
        return True

    def _replace(self, client_id: str, job: MediaJob) -> None:
        previous = self._current.get(client_id)
        if previous is not None:
            self.release(previous)

        while len(self._jobs) >= self._max_jobs:
            oldest = next(iter(self._jobs))
            logger.info("Evicting oldest clip job", extra={"job_id": str(oldest)})
            self.release(oldest)

        self._jobs[job.job_id] = job
        self._current[client_id] = job.job_id
