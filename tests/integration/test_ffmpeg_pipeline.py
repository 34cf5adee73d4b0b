"""
End-to-end transcode tests against the real FFmpeg binaries.

Sources are synthesized with lavfi (testsrc2 + sine), so no media files
are checked in. Skipped when ffmpeg/ffprobe are not installed.
"""

import subprocess
from pathlib import Path

import pytest

from shortclip.core.clipping.models import MediaJob
from shortclip.core.clipping.pipeline import TranscodePipeline
from shortclip.infrastructure.video.processor import FFmpegTranscodeEngine

pytestmark = pytest.mark.integration

# one output frame at 30 fps, plus an AAC frame of slack for the container
DURATION_TOLERANCE = 1 / 30 + 0.05


def make_source(
    ffmpeg: str,
    path: Path,
    width: int,
    height: int,
    fps: int,
    seconds: float,
) -> bytes:
    subprocess.run(
        [
            ffmpeg, "-hide_banner", "-loglevel", "error", "-y",
            "-f", "lavfi", "-i", f"testsrc2=size={width}x{height}:rate={fps}:duration={seconds}",
            "-f", "lavfi", "-i", f"sine=frequency=440:duration={seconds}",
            "-c:v", "libx264", "-preset", "ultrafast", "-pix_fmt", "yuv420p",
            "-c:a", "aac",
            "-shortest",
            str(path),
        ],
        check=True,
        capture_output=True,
    )
    return path.read_bytes()


@pytest.fixture
def ffmpeg_engine(ffmpeg_binary) -> FFmpegTranscodeEngine:
    return FFmpegTranscodeEngine(ffmpeg_path=ffmpeg_binary)


async def run_pipeline(engine: FFmpegTranscodeEngine, data: bytes) -> MediaJob:
    job = MediaJob(source_id="synthetic", raw_bytes=data)
    await TranscodePipeline(engine).run(job)
    return job


class TestPortraitOutput:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "width, height",
        [
            (640, 360),    # landscape 16:9
            (480, 480),    # square
            (360, 640),    # already portrait
            (240, 640),    # narrower than 9:16, padded only
        ],
    )
    async def test_any_aspect_ends_up_on_portrait_canvas(
        self, ffmpeg_binary, ffmpeg_engine, tmp_path, width, height
    ):
        data = make_source(ffmpeg_binary, tmp_path / "src.mp4", width, height, 30, 2)

        job = await run_pipeline(ffmpeg_engine, data)
        info = await ffmpeg_engine.probe(job.output_bytes)

        assert job.is_ready
        assert (info.width, info.height) == (720, 1280)
        assert info.codec == "h264"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fps", [24, 25, 60])
    async def test_frame_rate_is_normalized(self, ffmpeg_binary, ffmpeg_engine, tmp_path, fps):
        data = make_source(ffmpeg_binary, tmp_path / "src.mp4", 640, 360, fps, 2)

        job = await run_pipeline(ffmpeg_engine, data)
        info = await ffmpeg_engine.probe(job.output_bytes)

        assert info.fps == pytest.approx(30.0, abs=0.01)


class TestDuration:

    @pytest.mark.asyncio
    async def test_long_source_is_cut_to_thirty_seconds(self, ffmpeg_binary, ffmpeg_engine, tmp_path):
        data = make_source(ffmpeg_binary, tmp_path / "src.mp4", 1920, 1080, 30, 45)

        job = await run_pipeline(ffmpeg_engine, data)
        trimmed = await ffmpeg_engine.probe(job.trimmed_bytes)
        output = await ffmpeg_engine.probe(job.output_bytes)

        assert trimmed.duration_seconds == pytest.approx(30.0, abs=DURATION_TOLERANCE)
        assert output.duration_seconds == pytest.approx(30.0, abs=DURATION_TOLERANCE)
        assert (output.width, output.height) == (720, 1280)
        assert output.fps == pytest.approx(30.0, abs=0.01)

    @pytest.mark.asyncio
    async def test_short_source_keeps_its_length(self, ffmpeg_binary, ffmpeg_engine, tmp_path):
        data = make_source(ffmpeg_binary, tmp_path / "src.mp4", 640, 360, 30, 5)
        source = await ffmpeg_engine.probe(data)

        job = await run_pipeline(ffmpeg_engine, data)
        output = await ffmpeg_engine.probe(job.output_bytes)

        assert output.duration_seconds == pytest.approx(source.duration_seconds, abs=DURATION_TOLERANCE)


class TestRepeatability:

    @pytest.mark.asyncio
    async def test_same_input_gives_same_structure(self, ffmpeg_binary, ffmpeg_engine, tmp_path):
        data = make_source(ffmpeg_binary, tmp_path / "src.mp4", 640, 360, 25, 3)

        first = await ffmpeg_engine.probe((await run_pipeline(ffmpeg_engine, data)).output_bytes)
        second = await ffmpeg_engine.probe((await run_pipeline(ffmpeg_engine, data)).output_bytes)

        assert (first.width, first.height, first.fps, first.codec) == (
            second.width, second.height, second.fps, second.codec
        )
        assert first.duration_seconds == pytest.approx(second.duration_seconds, abs=0.001)

    @pytest.mark.asyncio
    async def test_output_is_faststart(self, ffmpeg_binary, ffmpeg_engine, tmp_path):
        data = make_source(ffmpeg_binary, tmp_path / "src.mp4", 640, 360, 30, 2)

        output = (await run_pipeline(ffmpeg_engine, data)).output_bytes

        # moov atom ahead of mdat
        assert output.index(b"moov") < output.index(b"mdat")
