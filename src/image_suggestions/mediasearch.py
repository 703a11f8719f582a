"""
Commons MediaSearch client for image-suggestions.

Looks up candidate images for a page title through the MediaWiki Action API
on Commons. These results top up pages that have fewer algorithm
suggestions than the per-page quota.

API Documentation: https://www.mediawiki.org/wiki/API:Search
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .errors import UpstreamError
from .models import Source

logger = logging.getLogger(__name__)

MEDIASEARCH_CONFIDENCE = "low"
FILE_NAMESPACE = 6


@dataclass
class MediaSearchResult:
    """A single candidate file from MediaSearch."""

    filename: str
    index: int = 0  # Position in MediaSearch ranking
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the response suggestion shape."""
        return {
            "filename": self.filename,
            "confidence_rating": MEDIASEARCH_CONFIDENCE,
            "source": {
                "name": Source.MS.value,
                "details": self.details,  # No extra details for this source
            },
        }


class MediaSearchClient:
    """
    Client for Commons MediaSearch.

    Provides a single search call returning ranked file suggestions.
    """

    def __init__(
        self,
        api_base: str = "https://commons.wikimedia.org/w/api.php",
        timeout_seconds: float = 10.0,
        search_prefix: str = "filetype:bitmap|drawing",
        user_agent: str = "image-suggestions/0.1.0",
    ):
        """
        Initialize the MediaSearch client.

        Args:
            api_base: MediaWiki Action API endpoint
            timeout_seconds: Request timeout in seconds
            search_prefix: Search keywords prepended to every query
            user_agent: User-Agent header sent with requests
        """
        self.api_base = api_base
        self.timeout = timeout_seconds
        self.search_prefix = search_prefix
        self.user_agent = user_agent

    def build_query(self, title: str, limit: int) -> dict[str, Any]:
        """Build Action API parameters for a page title."""
        search_text = title.replace("_", " ").strip()
        return {
            "action": "query",
            "format": "json",
            "formatversion": 2,
            "generator": "search",
            "gsrsearch": f"{self.search_prefix} {search_text}".strip(),
            "gsrlimit": limit,
            "gsroffset": 0,
            "gsrnamespace": FILE_NAMESPACE,
            "gsrinfo": "totalhits|suggestion",
            "uselang": "en",
        }

    async def search(self, title: str, limit: int) -> list[dict[str, Any]]:
        """
        Search for images matching a page title.

        Args:
            title: Page title (underscores are treated as spaces)
            limit: Maximum number of results

        Returns:
            Suggestions in MediaSearch ranking order

        Raises:
            UpstreamError: If the request fails or returns an error status
        """
        if limit <= 0:
            return []

        params = self.build_query(title, limit)
        logger.debug(f"Searching MediaSearch: {params['gsrsearch']}")

        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
        ) as client:
            try:
                response = await client.get(self.api_base, params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPError as e:
                logger.warning(f"MediaSearch request failed for {title!r}: {e}")
                raise UpstreamError("Unable to retrieve mediasearch results") from e
            except ValueError as e:
                logger.warning(f"MediaSearch returned invalid JSON for {title!r}")
                raise UpstreamError("Unable to retrieve mediasearch results") from e

        return [r.to_dict() for r in self._parse_results(data)[:limit]]

    def _parse_results(self, data: Any) -> list[MediaSearchResult]:
        """Parse a generator=search response, in ranking order."""
        if not isinstance(data, dict):
            return []
        if "error" in data:
            info = data["error"].get("info", "unknown error")
            raise UpstreamError(f"MediaSearch API error: {info}")

        query = data.get("query")
        if not query:
            return []
        if query.get("searchinfo", {}).get("totalhits", 0) <= 0:
            return []

        pages = query.get("pages", [])
        # formatversion=1 returns pages keyed by page id
        if isinstance(pages, dict):
            pages = list(pages.values())

        results = [
            MediaSearchResult(
                filename=page.get("title", "").removeprefix("File:"),
                index=page.get("index", 0),
            )
            for page in pages
            if page.get("title")
        ]
        # Match the order of Special:MediaSearch
        results.sort(key=lambda r: r.index)
        return results
