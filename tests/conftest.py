"""
Shared fixtures.

The fakes here stand in for FFmpeg and YouTube so the workflow can be
tested without binaries or network. Real-FFmpeg tests live under
tests/integration.
"""

import asyncio
import os
import shutil
from pathlib import Path

import pytest

# Settings are read from the environment; keep a developer's .env out of tests
os.environ.setdefault("YOUTUBE_API_KEY", "")
os.environ.setdefault("YOUTUBE_MOCK_MODE", "false")
os.environ.setdefault("FFMPEG_MOCK_MODE", "true")

from shortclip.core.clipping.pipeline import EngineError  # noqa: E402


class RecordingEngine:
    """
    Engine that copies files and records every call.

    `fail_on` names steps that should raise EngineError instead.
    """

    def __init__(self, fail_on: tuple[str, ...] = ()) -> None:
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, Path, Path]] = []
        self.workspaces: list[Path] = []

    async def _step(self, name: str, input_path: Path, output_path: Path) -> None:
        self.calls.append((name, input_path, output_path))
        self.workspaces.append(input_path.parent)
        if name in self.fail_on:
            raise EngineError(f"{name} exploded")
        data = input_path.read_bytes()
        output_path.write_bytes(f"{name}:".encode() + data[:64])

    async def trim(self, input_path: Path, output_path: Path) -> None:
        await self._step("trim", input_path, output_path)

    async def trim_reencode(self, input_path: Path, output_path: Path) -> None:
        await self._step("trim_reencode", input_path, output_path)

    async def encode(self, input_path: Path, output_path: Path) -> None:
        await self._step("encode", input_path, output_path)

    @property
    def step_names(self) -> list[str]:
        return [name for name, _, _ in self.calls]


class GatedEngine(RecordingEngine):
    """
    RecordingEngine that holds the job inside encode.

    `entered` is set once encode starts; the step finishes after `gate` is set.
    """

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def encode(self, input_path: Path, output_path: Path) -> None:
        self.entered.set()
        await self.gate.wait()
        await super().encode(input_path, output_path)


@pytest.fixture
def engine() -> RecordingEngine:
    return RecordingEngine()


@pytest.fixture
def failing_engine():
    """Build a RecordingEngine that fails on the given steps."""
    def make(*steps: str) -> RecordingEngine:
        return RecordingEngine(fail_on=steps)
    return make


@pytest.fixture
def gated_engine() -> GatedEngine:
    return GatedEngine()


@pytest.fixture
def ffmpeg_binary() -> str:
    path = shutil.which("ffmpeg")
    if path is None or shutil.which("ffprobe") is None:
        pytest.skip("ffmpeg/ffprobe not installed")
    return path
