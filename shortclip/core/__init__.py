"""
Core business logic for clip generation.

This module is framework-agnostic - it doesn't import FastAPI, httpx,
yt-dlp or any infrastructure concerns. FFmpeg and YouTube sit behind
protocols so the workflow can be tested with in-memory fakes.
"""
