"""
Search adapter.

Wraps a video search provider, normalizes its items to SearchResult and
samples a handful of them. Sampling rather than ranking keeps repeated
searches for the same term from always surfacing the same clips.
"""

import logging
import random
from typing import Any, Optional, Protocol

from .errors import UpstreamError
from .models import SearchResult, Thumbnail

logger = logging.getLogger(__name__)


class SearchProvider(Protocol):
    """Protocol for a video search backend."""

    async def search(self, query: str, max_results: int) -> list[dict[str, Any]]:
        """Return raw items in the YouTube `search.list` item shape."""
        ...


def normalize_item(item: dict[str, Any]) -> Optional[SearchResult]:
    """
    Convert one provider item to a SearchResult.

    Returns None for items that cannot be selected (no video id).
    Missing titles and thumbnails degrade to empty values.
    """
    if not isinstance(item, dict) or not isinstance(item.get("id"), dict):
        return None

    video_id = item["id"].get("videoId")
    if not video_id:
        return None

    snippet = item.get("snippet") or {}
    medium = (snippet.get("thumbnails") or {}).get("medium") or {}

    return SearchResult(
        id=video_id,
        title=snippet.get("title") or "",
        thumbnail=Thumbnail(
            url=medium.get("url") or "",
            width=int(medium.get("width") or 0),
            height=int(medium.get("height") or 0),
        ),
    )


class SearchAdapter:
    """
    Normalizes and samples search results.

    Args:
        provider: Backend to query
        default_query: Used when the caller sends nothing
        max_results: Candidates requested from the provider
        sample_size: Candidates returned to the caller
        rng: Random source; injectable so tests can be deterministic
    """

    def __init__(
        self,
        provider: SearchProvider,
        default_query: str = "trending",
        max_results: int = 50,
        sample_size: int = 10,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._provider = provider
        self._default_query = default_query
        self._max_results = max_results
        self._sample_size = sample_size
        self._rng = rng or random.Random()

    async def search(self, query: Optional[str] = None) -> list[SearchResult]:
        term = (query or "").strip() or self._default_query

        items = await self._provider.search(term, self._max_results)
        if items is None:
            raise UpstreamError("Search provider returned no data")

        results = [r for r in (normalize_item(i) for i in items) if r is not None]
        sampled = self._rng.sample(results, min(self._sample_size, len(results)))

        logger.info(
            "Search completed",
            extra={
                "query": term,
                "candidates": len(results),
                "returned": len(sampled),
            }
        )

        return sampled
