"""
Clipping workflow: search, acquisition and the transcode pipeline.

Contains the domain models, the error taxonomy and the services that
turn a search term into a 30-second portrait clip.
"""

from .acquisition import AcquisitionService, VideoSource
from .errors import (
    AcquisitionError,
    AcquisitionErrorKind,
    ClipError,
    ConfigurationError,
    InputError,
    JobInProgressError,
    PipelineError,
    UpstreamError,
)
from .models import (
    JobStage,
    MediaJob,
    MediaStream,
    PipelineStage,
    SearchResult,
    Thumbnail,
    VideoInfo,
)
from .pipeline import EngineError, TranscodeEngine, TranscodePipeline
from .search import SearchAdapter, SearchProvider
from .service import ClipService

__all__ = [
    "AcquisitionService",
    "VideoSource",
    "AcquisitionError",
    "AcquisitionErrorKind",
    "ClipError",
    "ConfigurationError",
    "InputError",
    "JobInProgressError",
    "PipelineError",
    "UpstreamError",
    "JobStage",
    "MediaJob",
    "MediaStream",
    "PipelineStage",
    "SearchResult",
    "Thumbnail",
    "VideoInfo",
    "EngineError",
    "TranscodeEngine",
    "TranscodePipeline",
    "SearchAdapter",
    "SearchProvider",
    "ClipService",
]
