"""
Transcode pipeline.

Runs one MediaJob through a strictly ordered state machine:

    idle -> ingested -> trimmed -> encoded -> ready
                 \\          \\          \\
                  +----------+----------+--> failed(stage)

The trim is a stream copy, so it is near-instant whatever the source
length, and the expensive crop + re-encode only ever sees 30 seconds of
input. Each run gets its own temporary directory; nothing one job writes
is visible to another.
"""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Callable, Optional, Protocol

from .errors import PipelineError
from .models import JobStage, MediaJob, PipelineStage

logger = logging.getLogger(__name__)

INPUT_NAME = "input.mp4"
TRIMMED_NAME = "trimmed.mp4"
OUTPUT_NAME = "output.mp4"

StageCallback = Callable[[MediaJob], None]


class EngineError(Exception):
    """Raised by a TranscodeEngine when a command fails."""
    pass


class TranscodeEngine(Protocol):
    """Protocol for the encoding engine that executes the stage commands."""

    async def trim(self, input_path: Path, output_path: Path) -> None:
        """Stream-copy the first 30 seconds."""
        ...

    async def trim_reencode(self, input_path: Path, output_path: Path) -> None:
        """Cut the first 30 seconds, re-encoding on the way."""
        ...

    async def encode(self, input_path: Path, output_path: Path) -> None:
        """Apply the portrait filter graph and re-encode."""
        ...


class TranscodePipeline:
    """
    Drives a MediaJob through ingest, trim and encode.

    Args:
        engine: Executes the FFmpeg stages
        reencode_fallback: Retry a failed stream-copy trim once with a
            re-encoding trim before giving up
        workspace_root: Parent directory for per-job workspaces
            (default: the system temp dir)
    """

    def __init__(
        self,
        engine: TranscodeEngine,
        reencode_fallback: bool = True,
        workspace_root: Optional[Path] = None,
    ) -> None:
        self._engine = engine
        self._reencode_fallback = reencode_fallback
        self._workspace_root = workspace_root

    async def run(
        self,
        job: MediaJob,
        on_stage: Optional[StageCallback] = None,
    ) -> MediaJob:
        """
        Run all stages for `job`.

        Returns the job in the ready state. On failure the job is moved to
        failed with the stage recorded, and PipelineError is raised; buffers
        from earlier stages stay on the job.
        """
        if job.stage != JobStage.IDLE:
            raise ValueError(f"Job {job.job_id} has already been run")

        def report() -> None:
            logger.info(
                "Job stage changed",
                extra={
                    "job_id": str(job.job_id),
                    "source_id": job.source_id,
                    "stage": job.stage.value,
                }
            )
            if on_stage is not None:
                on_stage(job)

        with tempfile.TemporaryDirectory(prefix="shortclip-", dir=self._workspace_root) as tmp:
            workspace = Path(tmp)
            try:
                await self._ingest(job, workspace)
                report()
                await self._trim(job, workspace)
                report()
                await self._encode(job, workspace)
                report()
                await self._read_output(job, workspace)
                report()
            except PipelineError as e:
                job.fail(e.stage, e.message)
                logger.error(
                    "Job failed",
                    extra={
                        "job_id": str(job.job_id),
                        "stage": e.stage.value,
                        "error": e.message,
                    }
                )
                report()
                raise

        return job

    async def _ingest(self, job: MediaJob, workspace: Path) -> None:
        if not job.raw_bytes:
            raise PipelineError(PipelineStage.INGEST, "Source buffer is empty")
        try:
            await asyncio.to_thread((workspace / INPUT_NAME).write_bytes, job.raw_bytes)
        except OSError as e:
            raise PipelineError(PipelineStage.INGEST, f"Could not write input: {e}") from e
        job.mark_ingested()

    async def _trim(self, job: MediaJob, workspace: Path) -> None:
        source = workspace / INPUT_NAME
        target = workspace / TRIMMED_NAME

        try:
            await self._engine.trim(source, target)
        except EngineError as e:
            if not self._reencode_fallback:
                raise PipelineError(PipelineStage.TRIM, str(e)) from e
            logger.warning(
                "Stream-copy trim failed, re-encoding instead",
                extra={"job_id": str(job.job_id), "error": str(e)}
            )
            try:
                await self._engine.trim_reencode(source, target)
            except EngineError as fallback_error:
                raise PipelineError(PipelineStage.TRIM, str(fallback_error)) from fallback_error

        trimmed = await self._read(target, PipelineStage.TRIM)
        job.mark_trimmed(trimmed)

    async def _encode(self, job: MediaJob, workspace: Path) -> None:
        try:
            await self._engine.encode(workspace / TRIMMED_NAME, workspace / OUTPUT_NAME)
        except EngineError as e:
            raise PipelineError(PipelineStage.ENCODE, str(e)) from e
        job.mark_encoded()

    async def _read_output(self, job: MediaJob, workspace: Path) -> None:
        output = await self._read(workspace / OUTPUT_NAME, PipelineStage.ENCODE)
        job.mark_ready(output)

    @staticmethod
    async def _read(path: Path, stage: PipelineStage) -> bytes:
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise PipelineError(stage, f"Could not read {path.name}: {e}") from e
        if not data:
            raise PipelineError(stage, f"{path.name} is empty")
        return data
