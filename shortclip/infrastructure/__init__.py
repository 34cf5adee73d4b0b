"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- youtube: search API and source video fetching
- video: FFmpeg transcoding and probing

These wrappers translate between external formats and our domain models.
"""
