"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests via app.dependency_overrides
- Configuration is centralized

The clip service and transcode engine are process-wide: the service owns
the single-flight lock and the artifacts of the current jobs, so every
request must see the same instance.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.clipping.acquisition import AcquisitionService
from ..core.clipping.pipeline import TranscodeEngine, TranscodePipeline
from ..core.clipping.search import SearchAdapter, SearchProvider
from ..core.clipping.service import ClipService
from ..infrastructure.video.processor import create_transcode_engine
from ..infrastructure.youtube.search import MockSearchProvider, YouTubeConfig, YouTubeSearchClient
from ..infrastructure.youtube.source import MockVideoSource, SourceConfig, YtDlpVideoSource

logger = logging.getLogger(__name__)

# Process-wide instances
_transcode_engine: Optional[TranscodeEngine] = None
_clip_service: Optional[ClipService] = None


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

def get_search_provider(
    settings: Annotated[Settings, Depends(get_settings)],
) -> SearchProvider:
    """
    Provide the search backend.

    The real client is returned even without an API key; it reports the
    missing credential itself so the endpoint can answer with an error.
    """
    if settings.youtube_mock_mode:
        return MockSearchProvider()

    return YouTubeSearchClient(
        YouTubeConfig(
            api_key=settings.youtube_api_key,
            search_url=settings.youtube_api_url,
            timeout_seconds=settings.upstream_timeout_seconds,
        )
    )


def get_search_adapter(
    settings: Annotated[Settings, Depends(get_settings)],
    provider: Annotated[SearchProvider, Depends(get_search_provider)],
) -> SearchAdapter:
    return SearchAdapter(
        provider,
        default_query=settings.default_search_query,
        max_results=settings.search_max_results,
        sample_size=settings.search_sample_size,
    )


def get_acquisition_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AcquisitionService:
    """Provide an acquisition service over yt-dlp (or the mock source)."""
    if settings.youtube_mock_mode:
        source = MockVideoSource(chunk_size=settings.stream_chunk_size)
    else:
        source = YtDlpVideoSource(
            SourceConfig(
                format=settings.source_format,
                chunk_size=settings.stream_chunk_size,
                timeout_seconds=settings.upstream_timeout_seconds,
            )
        )
    return AcquisitionService(source, max_source_bytes=settings.max_source_size_bytes)


def get_transcode_engine(
    settings: Annotated[Settings, Depends(get_settings)],
) -> TranscodeEngine:
    """
    Provide the transcode engine.

    Created once: the FFmpeg engine checks the binary on construction and
    there is no per-request state in it.
    """
    global _transcode_engine

    if _transcode_engine is None:
        _transcode_engine = create_transcode_engine(
            mock_mode=settings.ffmpeg_mock_mode,
            ffmpeg_path=settings.ffmpeg_path,
            ffprobe_path=settings.ffprobe_path,
            timeout_seconds=settings.ffmpeg_timeout_seconds,
        )
        logger.info(
            "Created transcode engine",
            extra={"mock_mode": settings.ffmpeg_mock_mode}
        )
    return _transcode_engine


def get_clip_service(
    settings: Annotated[Settings, Depends(get_settings)],
    acquisition: Annotated[AcquisitionService, Depends(get_acquisition_service)],
    engine: Annotated[TranscodeEngine, Depends(get_transcode_engine)],
) -> ClipService:
    """Provide the shared clip service (single-flight lock + artifacts)."""
    global _clip_service

    if _clip_service is None:
        pipeline = TranscodePipeline(
            engine,
            reencode_fallback=settings.trim_reencode_fallback,
        )
        _clip_service = ClipService(
            acquisition,
            pipeline,
            prober=engine,
            max_jobs=settings.max_retained_jobs,
        )
        logger.info("Created shared clip service")
    return _clip_service


def reset_shared_instances() -> None:
    """Forget process-wide instances. Used by tests and on shutdown."""
    global _transcode_engine, _clip_service
    _transcode_engine = None
    _clip_service = None


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
SearchAdapterDep = Annotated[SearchAdapter, Depends(get_search_adapter)]
AcquisitionServiceDep = Annotated[AcquisitionService, Depends(get_acquisition_service)]
ClipServiceDep = Annotated[ClipService, Depends(get_clip_service)]
