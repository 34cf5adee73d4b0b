"""
YouTube Data API search client.

Implements the SearchProvider protocol on top of `search.list`. We call
the REST endpoint with httpx rather than pulling in the full Google API
client: one GET with four query parameters is all we need.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ...core.clipping.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"


@dataclass
class YouTubeConfig:
    """Configuration for the YouTube search client."""
    api_key: str
    search_url: str = DEFAULT_SEARCH_URL
    timeout_seconds: float = 30.0


class YouTubeSearchClient:
    """
    Search provider backed by the YouTube Data API v3.

    A missing API key is reported as ConfigurationError on the first
    search, before any request is made, so the API can answer with an
    explicit error instead of an empty result list.
    """

    def __init__(
        self,
        config: YouTubeConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def search(self, query: str, max_results: int) -> list[dict[str, Any]]:
        if not self._config.api_key:
            raise ConfigurationError("YouTube API Key is not configured on the server.")

        params = {
            "part": "snippet",
            "q": query,
            "type": "video",
            "maxResults": max_results,
            "key": self._config.api_key,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(self._config.search_url, params=params)
        except httpx.TransportError as e:
            logger.error("YouTube search request failed", extra={"error": str(e)})
            raise UpstreamError(
                "Error fetching videos from YouTube API.",
                transient=True,
                detail=str(e) or e.__class__.__name__,
            ) from e

        if response.status_code >= 400:
            detail = self._error_message(response)
            logger.error(
                "YouTube search returned an error",
                extra={"status": response.status_code, "error": detail}
            )
            raise UpstreamError(
                "Error fetching videos from YouTube API.",
                transient=response.status_code in (429, 500, 502, 503, 504),
                detail=detail,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(
                "Error fetching videos from YouTube API.",
                detail="Response was not valid JSON",
            ) from e

        items = (payload.get("items") or []) if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise UpstreamError(
                "Error fetching videos from YouTube API.",
                detail="Unexpected response shape",
            )
        return items

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the message Google puts in the error body."""
        fallback = "Failed to fetch videos from YouTube."
        try:
            body = response.json()
        except ValueError:
            return fallback
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return fallback


class MockSearchProvider:
    """
    In-memory search provider for local development and tests.

    Generates deterministic items in the upstream shape.
    """

    def __init__(self, items: Optional[list[dict[str, Any]]] = None, total: int = 50) -> None:
        self._items = items
        self._total = total
        self.queries: list[str] = []
        logger.info("Initialized mock search provider")

    async def search(self, query: str, max_results: int) -> list[dict[str, Any]]:
        self.queries.append(query)
        if self._items is not None:
            return self._items[:max_results]
        return [
            make_item(f"mock{i:07d}", f"{query} #{i}")
            for i in range(min(self._total, max_results))
        ]


def make_item(video_id: str, title: str) -> dict[str, Any]:
    """Build one item in the `search.list` response shape."""
    return {
        "id": {"kind": "youtube#video", "videoId": video_id},
        "snippet": {
            "title": title,
            "thumbnails": {
                "medium": {
                    "url": f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg",
                    "width": 320,
                    "height": 180,
                }
            },
        },
    }
