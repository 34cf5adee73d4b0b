"""
Application configuration using Pydantic settings.

Everything is read from environment variables (or a .env file). YouTube
and FFmpeg each have a mock mode, so the API can run locally without an
API key or the ffmpeg binaries.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
