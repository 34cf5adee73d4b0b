"""
Video search endpoint.

Returns a small random sample of YouTube results for a query, in the
`search.list` item shape. Failures are always explicit: a missing API key
is a 500 with a message, never a 200 with an empty list.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from ...core.clipping.errors import ConfigurationError, UpstreamError
from ..dependencies import SearchAdapterDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    summary="Search videos",
    description="Search YouTube and return up to 10 sampled results",
    responses={
        500: {"description": "Search provider unreachable or not configured"},
    },
)
async def collect_videos(
    adapter: SearchAdapterDep,
    q: Optional[str] = Query(default=None, description="Free-text search term"),
) -> Any:
    try:
        results = await adapter.search(q)
    except ConfigurationError as e:
        logger.warning("YouTube API Key not found in /api/collect-videos.")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": e.message},
        )
    except UpstreamError as e:
        logger.error(
            "Error fetching YouTube videos",
            extra={"error": e.detail or e.message, "transient": e.transient}
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": e.message,
                "error": e.detail or "Failed to fetch videos from YouTube.",
            },
        )

    return [result.to_wire() for result in results]
