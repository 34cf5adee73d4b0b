"""
Video processing infrastructure.

Handles server-side transcoding using FFmpeg:
- Stream-copy trim to 30 seconds
- Portrait crop and re-encode to 720x1280
- Media metadata extraction via FFprobe
"""

from .processor import (
    FFmpegTranscodeEngine,
    MockTranscodeEngine,
    create_transcode_engine,
    ffmpeg_available,
)

__all__ = [
    "FFmpegTranscodeEngine",
    "MockTranscodeEngine",
    "create_transcode_engine",
    "ffmpeg_available",
]
