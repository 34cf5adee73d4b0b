"""
Source video fetcher.

Resolves a YouTube video id to a direct media URL with yt-dlp and relays
the bytes with httpx. We always ask for the same muxed audio+video tier
(format 18, 360p MP4) so the transcode stage sees predictable input.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

import httpx
import yt_dlp
from yt_dlp.utils import DownloadError, ExtractorError

from ...core.clipping.errors import AcquisitionError, AcquisitionErrorKind
from ...core.clipping.models import MediaStream

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

# yt-dlp only reports failures as text, so classify on the message
NOT_FOUND_MARKERS = (
    "video unavailable",
    "private video",
    "has been removed",
    "does not exist",
    "not available",
    "incomplete youtube id",
)
NETWORK_MARKERS = (
    "unable to download webpage",
    "timed out",
    "connection",
    "temporary failure",
)

Resolver = Callable[[str], dict[str, Any]]


@dataclass
class SourceConfig:
    """Configuration for the yt-dlp backed source."""
    format: str = "18"
    chunk_size: int = 64 * 1024
    timeout_seconds: float = 30.0


def classify_download_error(message: str) -> AcquisitionErrorKind:
    lowered = message.lower()
    if "requested format is not available" in lowered:
        return AcquisitionErrorKind.UPSTREAM_REJECTED
    if any(marker in lowered for marker in NOT_FOUND_MARKERS):
        return AcquisitionErrorKind.NOT_FOUND
    if any(marker in lowered for marker in NETWORK_MARKERS):
        return AcquisitionErrorKind.NETWORK_FAILURE
    return AcquisitionErrorKind.UPSTREAM_REJECTED


class YtDlpVideoSource:
    """
    VideoSource that resolves ids with yt-dlp and streams over HTTP.

    Both resolution and the first response are completed inside `open`,
    so a bad id or a rejected request is reported before any byte is
    handed to the caller.
    """

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        resolver: Optional[Resolver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or SourceConfig()
        self._resolver = resolver or self._resolve_with_ytdlp
        self._transport = transport

    def _resolve_with_ytdlp(self, video_id: str) -> dict[str, Any]:
        opts = {
            "format": self._config.format,
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "skip_download": True,
            "socket_timeout": self._config.timeout_seconds,
        }
        with yt_dlp.YoutubeDL(opts) as ydl:
            info = ydl.extract_info(WATCH_URL.format(video_id=video_id), download=False)
        if info is None:
            raise DownloadError(f"yt-dlp returned no info for {video_id}")
        return info

    async def open(self, video_id: str) -> MediaStream:
        try:
            info = await asyncio.to_thread(self._resolver, video_id)
        except (DownloadError, ExtractorError) as e:
            message = str(e)
            raise AcquisitionError(classify_download_error(message), message) from e

        media_url = info.get("url")
        if not media_url:
            raise AcquisitionError(
                AcquisitionErrorKind.UPSTREAM_REJECTED,
                f"No direct media URL for format {self._config.format}",
            )

        client = httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        )
        request = client.build_request("GET", media_url, headers=info.get("http_headers") or {})

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise AcquisitionError(
                AcquisitionErrorKind.NETWORK_FAILURE,
                f"Could not reach media host: {e}",
            ) from e

        async def close() -> None:
            await response.aclose()
            await client.aclose()

        if response.status_code >= 400:
            await close()
            kind = (
                AcquisitionErrorKind.NOT_FOUND
                if response.status_code in (404, 410)
                else AcquisitionErrorKind.UPSTREAM_REJECTED
            )
            raise AcquisitionError(kind, f"Media host returned {response.status_code}")

        content_length = response.headers.get("content-length")

        async def chunks() -> AsyncIterator[bytes]:
            try:
                async for chunk in response.aiter_bytes(self._config.chunk_size):
                    yield chunk
            except httpx.HTTPError as e:
                raise AcquisitionError(
                    AcquisitionErrorKind.NETWORK_FAILURE,
                    f"Stream interrupted: {e}",
                ) from e
            finally:
                await close()

        return MediaStream(
            video_id=video_id,
            chunks=chunks(),
            content_type="video/mp4",
            content_length=int(content_length) if content_length else None,
            on_close=close,
        )


class MockVideoSource:
    """
    In-memory source for local development and tests.

    Serves the bytes registered for an id, or generated filler of
    `default_size` bytes when no mapping was given. Unknown ids in a
    mapping are reported as not found.
    """

    def __init__(
        self,
        videos: Optional[dict[str, bytes]] = None,
        default_size: int = 256 * 1024,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self._videos = videos
        self._default_size = default_size
        self._chunk_size = chunk_size
        self.opened: list[str] = []
        logger.info("Initialized mock video source")

    async def open(self, video_id: str) -> MediaStream:
        self.opened.append(video_id)

        if self._videos is None:
            data = bytes(i % 251 for i in range(self._default_size))
        elif video_id in self._videos:
            data = self._videos[video_id]
        else:
            raise AcquisitionError(
                AcquisitionErrorKind.NOT_FOUND,
                f"Video unavailable: {video_id}",
            )

        size = self._chunk_size

        async def chunks() -> AsyncIterator[bytes]:
            for offset in range(0, len(data), size):
                yield data[offset:offset + size]

        return MediaStream(
            video_id=video_id,
            chunks=chunks(),
            content_length=len(data),
        )
