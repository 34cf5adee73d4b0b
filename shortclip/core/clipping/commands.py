"""
FFmpeg argument lists for the two transcode stages.

These are fixed policy, not parameters: changing the duration, canvas,
frame rate or codec settings is a different feature, not a tweak.
Paths are the only inputs.
"""

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]

TRIM_SECONDS = 30
TARGET_FPS = 30
CANVAS_WIDTH = 720
CANVAS_HEIGHT = 1280
VIDEO_CODEC = "libx264"
VIDEO_PRESET = "medium"
VIDEO_CRF = 22
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "192k"

# min(iw, ...) keeps sources narrower than 9:16 uncropped; pad fills the rest.
PORTRAIT_FILTER = (
    f"fps={TARGET_FPS},"
    "crop='min(iw,ih*9/16)':ih,"
    f"scale={CANVAS_WIDTH}:{CANVAS_HEIGHT}:force_original_aspect_ratio=decrease,"
    f"pad={CANVAS_WIDTH}:{CANVAS_HEIGHT}:(ow-iw)/2:(oh-ih)/2"
)

# Only used when the source cannot be stream-copied.
FALLBACK_PRESET = "veryfast"
FALLBACK_CRF = 18


def trim_args(input_path: PathLike, output_path: PathLike) -> list[str]:
    """Stage 1: keep the first 30 seconds, remux only."""
    return [
        "-y",
        "-i", str(input_path),
        "-t", str(TRIM_SECONDS),
        "-c", "copy",
        str(output_path),
    ]


def trim_reencode_args(input_path: PathLike, output_path: PathLike) -> list[str]:
    """Stage 1 fallback: same cut, re-encoded with a fast preset."""
    return [
        "-y",
        "-i", str(input_path),
        "-t", str(TRIM_SECONDS),
        "-c:v", VIDEO_CODEC,
        "-preset", FALLBACK_PRESET,
        "-crf", str(FALLBACK_CRF),
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
        str(output_path),
    ]


def encode_args(input_path: PathLike, output_path: PathLike) -> list[str]:
    """Stage 2: 30 fps, 9:16 center crop, 720x1280 canvas, faststart MP4."""
    return [
        "-y",
        "-i", str(input_path),
        "-vf", PORTRAIT_FILTER,
        "-c:v", VIDEO_CODEC,
        "-preset", VIDEO_PRESET,
        "-crf", str(VIDEO_CRF),
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
        "-movflags", "+faststart",
        str(output_path),
    ]
