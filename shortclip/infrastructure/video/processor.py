"""
Transcode engine using FFmpeg.

This module executes the two pipeline stages and probes media files:
1. Trim: stream-copy the first 30 seconds (with a re-encoding fallback)
2. Encode: 30 fps, 9:16 crop, 720x1280 canvas, H.264/AAC, faststart
3. Probe: duration, resolution, fps via FFprobe

FFmpeg works best with file paths, so the pipeline hands us paths inside
its per-job workspace. Blocking subprocess calls run in a worker thread
to keep the event loop free.
"""

import asyncio
import json
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from ...core.clipping.commands import (
    TARGET_FPS,
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    encode_args,
    trim_args,
    trim_reencode_args,
)
from ...core.clipping.models import VideoInfo
from ...core.clipping.pipeline import EngineError, TranscodeEngine

logger = logging.getLogger(__name__)

# stderr can be huge; keep the tail, which is where FFmpeg reports the error
STDERR_TAIL = 2000


def parse_frame_rate(value: str) -> float:
    """Parse FFprobe rates, which can be fractions like "30000/1001"."""
    if not value:
        return 0.0
    if "/" in value:
        num, denom = value.split("/", 1)
        if float(denom) == 0:
            return 0.0
        return float(num) / float(denom)
    return float(value)


class FFmpegTranscodeEngine:
    """
    Transcode engine backed by the FFmpeg/FFprobe binaries.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout_seconds: float = 600.0,
    ):
        """
        Initialize engine with FFmpeg paths.

        Args:
            ffmpeg_path: Path to ffmpeg binary (default assumes it's in PATH)
            ffprobe_path: Path to ffprobe binary
            timeout_seconds: Upper bound for any single FFmpeg run
        """
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path
        self._timeout = timeout_seconds

        # verify ffmpeg is available
        try:
            result = subprocess.run(
                [self._ffmpeg, "-version"],
                capture_output=True,
                text=True,
                timeout=5
            )
            if result.returncode != 0:
                raise RuntimeError("FFmpeg not working properly")
            logger.info("FFmpeg transcode engine initialized")
        except FileNotFoundError:
            raise RuntimeError(
                "FFmpeg not found. Install with: apt-get install ffmpeg"
            )

    async def trim(self, input_path: Path, output_path: Path) -> None:
        await self._run("trim", trim_args(input_path, output_path))

    async def trim_reencode(self, input_path: Path, output_path: Path) -> None:
        await self._run("trim_reencode", trim_reencode_args(input_path, output_path))

    async def encode(self, input_path: Path, output_path: Path) -> None:
        await self._run("encode", encode_args(input_path, output_path))

    async def _run(self, step: str, args: list[str]) -> None:
        cmd = [self._ffmpeg, "-hide_banner", "-loglevel", "error", *args]
        logger.debug("Running ffmpeg", extra={"step": step, "cmd": cmd})

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout
            )
        except subprocess.TimeoutExpired as e:
            raise EngineError(f"FFmpeg {step} timed out after {self._timeout:.0f}s") from e
        except OSError as e:
            raise EngineError(f"Could not start FFmpeg: {e}") from e

        if result.returncode != 0:
            raise EngineError(
                f"FFmpeg {step} exited with {result.returncode}: "
                f"{result.stderr.strip()[-STDERR_TAIL:]}"
            )

        logger.info("FFmpeg step finished", extra={"step": step})

    async def probe(self, data: bytes) -> VideoInfo:
        """
        Extract video metadata using FFprobe.

        FFprobe outputs JSON with stream info - we parse that to get
        duration, resolution, fps, codec.
        """
        with tempfile.NamedTemporaryFile(suffix=".mp4", delete=False) as tmp:
            tmp.write(data)
            tmp_path = tmp.name

        try:
            return await self.probe_file(Path(tmp_path), file_size_bytes=len(data))
        finally:
            os.unlink(tmp_path)

    async def probe_file(self, path: Path, file_size_bytes: int | None = None) -> VideoInfo:
        cmd = [
            self._ffprobe,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(path)
        ]

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=30
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            raise EngineError(f"FFprobe failed: {e}") from e

        if result.returncode != 0:
            raise EngineError(f"FFprobe failed: {result.stderr}")

        try:
            return self._parse_probe(result.stdout, path, file_size_bytes)
        except ValueError as e:
            # bad JSON, or "N/A" where a number was expected
            raise EngineError(f"Unreadable FFprobe output: {e}") from e

    @staticmethod
    def _parse_probe(stdout: str, path: Path, file_size_bytes: int | None) -> VideoInfo:
        info = json.loads(stdout)
        if not isinstance(info, dict):
            raise ValueError("expected a JSON object")

        # find video stream
        video_stream = None
        for stream in info.get("streams", []):
            if stream.get("codec_type") == "video":
                video_stream = stream
                break

        if not video_stream:
            raise EngineError("No video stream found")

        fps = parse_frame_rate(
            video_stream.get("avg_frame_rate") or video_stream.get("r_frame_rate", "")
        )

        # get duration from format or stream
        duration = float(info.get("format", {}).get("duration", 0))
        if duration == 0:
            duration = float(video_stream.get("duration", 0))

        return VideoInfo(
            duration_seconds=duration,
            width=int(video_stream.get("width", 0)),
            height=int(video_stream.get("height", 0)),
            fps=fps,
            codec=video_stream.get("codec_name", "unknown"),
            file_size_bytes=(
                file_size_bytes if file_size_bytes is not None else path.stat().st_size
            ),
        )


class MockTranscodeEngine:
    """
    Mock engine for local development without FFmpeg.

    Copies input to output for every stage, so the pipeline and API flow
    can be exercised end to end. Output is not actually trimmed or
    re-encoded; probe reports the policy values.
    """

    def __init__(self):
        logger.info("Initialized mock transcode engine")

    async def trim(self, input_path: Path, output_path: Path) -> None:
        await asyncio.to_thread(shutil.copyfile, input_path, output_path)

    async def trim_reencode(self, input_path: Path, output_path: Path) -> None:
        await asyncio.to_thread(shutil.copyfile, input_path, output_path)

    async def encode(self, input_path: Path, output_path: Path) -> None:
        await asyncio.to_thread(shutil.copyfile, input_path, output_path)

    async def probe(self, data: bytes) -> VideoInfo:
        """Return dummy video info."""
        return VideoInfo(
            duration_seconds=30.0,
            width=CANVAS_WIDTH,
            height=CANVAS_HEIGHT,
            fps=float(TARGET_FPS),
            codec="h264",
            file_size_bytes=len(data),
        )


def ffmpeg_available(ffmpeg_path: str = "ffmpeg") -> bool:
    return shutil.which(ffmpeg_path) is not None


def create_transcode_engine(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    ffprobe_path: str = "ffprobe",
    timeout_seconds: float = 600.0,
) -> TranscodeEngine:
    """
    Factory function for the transcode engine.

    Args:
        mock_mode: If True, return mock engine (no FFmpeg required)

    Returns:
        TranscodeEngine implementation
    """
    if mock_mode:
        return MockTranscodeEngine()

    return FFmpegTranscodeEngine(
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
        timeout_seconds=timeout_seconds,
    )
