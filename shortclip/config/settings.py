"""
Settings for the ShortClip API.

Values come from environment variables or a .env file; names are the
field names in upper case (YOUTUBE_API_KEY, FFMPEG_PATH, ...). Invalid
values fail at startup rather than on the first request.

The two mock modes replace YouTube and FFmpeg with in-process fakes.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All runtime configuration. Lists (cors_origins) are comma-separated."""

    # API Configuration
    api_title: str = "ShortClip API"
    api_version: str = "v1"

    # YouTube Configuration
    youtube_api_key: str = Field(
        default="",
        description="YouTube Data API v3 key. Required for search unless in mock mode."
    )
    youtube_api_url: str = Field(
        default="https://www.googleapis.com/youtube/v3/search",
        description="Search endpoint of the YouTube Data API."
    )
    youtube_mock_mode: bool = Field(
        default=False,
        description="Use in-memory fake search and source instead of YouTube."
    )
    default_search_query: str = Field(
        default="trending",
        description="Query used when the caller sends an empty search term."
    )
    search_max_results: int = Field(
        default=50,
        ge=1,
        le=50,
        description="How many candidates to request from the provider before sampling."
    )
    search_sample_size: int = Field(
        default=10,
        ge=1,
        description="How many candidates are returned to the caller."
    )

    # Acquisition
    source_format: str = Field(
        default="18",
        description="yt-dlp format selector. 18 is the 360p muxed audio+video MP4 tier."
    )
    stream_chunk_size: int = Field(
        default=64 * 1024,
        description="Chunk size in bytes when relaying the source stream."
    )
    upstream_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for search and media requests."
    )
    max_source_size_mb: int = Field(
        default=200,
        description="Largest source the clip pipeline will buffer in memory."
    )
    max_retained_jobs: int = Field(
        default=4,
        ge=1,
        description="Clip jobs kept in memory across all clients; the oldest is released first."
    )

    # FFmpeg
    ffmpeg_path: str = Field(default="ffmpeg", description="Path to the ffmpeg binary")
    ffprobe_path: str = Field(default="ffprobe", description="Path to the ffprobe binary")
    ffmpeg_timeout_seconds: float = Field(
        default=600.0,
        description="Upper bound for a single ffmpeg stage."
    )
    ffmpeg_mock_mode: bool = Field(
        default=False,
        description="Use a pass-through engine instead of FFmpeg. Output is not really transcoded."
    )
    trim_reencode_fallback: bool = Field(
        default=True,
        description="Re-encode during trim when the source cannot be stream-copied."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_source_size_bytes(self) -> int:
        return self.max_source_size_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Names of settings that must be set but are not.

        The API key is only needed when search talks to YouTube, so this
        depends on the mock flags and cannot be a plain field validator.
        """
        missing = []

        if not self.youtube_mock_mode and not self.youtube_api_key:
            missing.append("YOUTUBE_API_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process; tests call get_settings.cache_clear()."""
    return Settings()
