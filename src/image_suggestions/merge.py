"""
Merging algorithm results with MediaSearch results.

Algorithm suggestions come first on every page. Pages still under the
per-page quota are topped up from the external provider, one request per
page, all issued concurrently.
"""

import asyncio
import logging
from typing import Any, Protocol

from .errors import UpstreamError
from .models import Page, Source, allows

logger = logging.getLogger(__name__)


class SuggestionProvider(Protocol):
    """Anything that can suggest images for a page title."""

    async def search(self, title: str, limit: int) -> list[dict[str, Any]]: ...


def page_to_dict(
    page: Page,
    include_algorithm: bool,
    max_suggestions: int | None = None,
) -> dict[str, Any]:
    """Build the response entry for a page, keeping at most `max_suggestions`."""
    suggestions = page.suggestions[:max_suggestions] if include_algorithm else []
    return {
        "project": page.project,
        "page": page.title,
        "page_id": page.page_id,
        "suggestions": [s.to_dict() for s in suggestions],
    }


async def merge_suggestions(
    pages: list[Page],
    source: Source | None,
    max_suggestions_per_page: int,
    provider: SuggestionProvider | None = None,
    no_filter: bool = False,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    """
    Combine stored and external suggestions into the response pages.

    Args:
        pages: Pages from the store, in response order
        source: Source filter; None allows every source
        max_suggestions_per_page: Quota shared by all sources
        provider: External provider; None skips external results
        no_filter: Keep pages that end up with no suggestions
        timeout: Bound in seconds on the whole external fan-out

    Returns:
        Response page entries, in the same order as `pages`

    Raises:
        UpstreamError: If any external request fails or the fan-out times out.
            No partially merged response is returned.
    """
    include_algorithm = allows(source, Source.IMA)
    results = [
        page_to_dict(page, include_algorithm, max_suggestions_per_page) for page in pages
    ]

    if provider is not None and allows(source, Source.MS):
        wanted = []
        for entry in results:
            remaining = max_suggestions_per_page - len(entry["suggestions"])
            if remaining > 0:
                wanted.append((entry, remaining))

        if wanted:
            logger.debug(f"Requesting MediaSearch results for {len(wanted)} page(s)")
            tasks = [
                asyncio.ensure_future(provider.search(entry["page"], remaining))
                for entry, remaining in wanted
            ]
            try:
                found = await asyncio.wait_for(asyncio.gather(*tasks), timeout)
            except asyncio.TimeoutError:
                raise UpstreamError(
                    f"Timed out after {timeout}s waiting for mediasearch results"
                ) from None
            except UpstreamError:
                raise
            except Exception as e:
                logger.exception("MediaSearch fan-out failed")
                raise UpstreamError("Unable to retrieve mediasearch results") from e
            finally:
                for task in tasks:
                    task.cancel()
                # Collect the outcome of every sibling so none is left unretrieved
                await asyncio.gather(*tasks, return_exceptions=True)

            # gather() keeps the order of its inputs, not completion order
            for (entry, remaining), external in zip(wanted, found):
                entry["suggestions"].extend(external[:remaining])

    if no_filter:
        return results
    return [entry for entry in results if entry["suggestions"]]
