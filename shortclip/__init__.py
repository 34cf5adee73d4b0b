"""
ShortClip - turn YouTube videos into 30-second portrait clips.

This package contains the complete application:
- core: Framework-agnostic clipping workflow
- infrastructure: YouTube and FFmpeg integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
