"""
YouTube integration.

- search: YouTube Data API v3 search client
- source: yt-dlp resolution + httpx streaming of the source video

Both come with in-memory mocks for local development without network.
"""

from .search import MockSearchProvider, YouTubeConfig, YouTubeSearchClient
from .source import MockVideoSource, SourceConfig, YtDlpVideoSource

__all__ = [
    "MockSearchProvider",
    "YouTubeConfig",
    "YouTubeSearchClient",
    "MockVideoSource",
    "SourceConfig",
    "YtDlpVideoSource",
]
