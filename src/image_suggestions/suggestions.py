"""
Image suggestion requests.

Validates caller parameters and runs a request through the row-count index,
the sampler, the store and the merge step.
"""

import logging
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .config import SuggestionsConfig
from .errors import NotFoundError, ValidationError
from .merge import SuggestionProvider, merge_suggestions
from .models import Page, QueryMode, Source
from .row_counts import RowCountIndex
from .sampler import sample_row_numbers
from .store import SuggestionStore
from .wiki_id import get_wiki_id

logger = logging.getLogger(__name__)

MAX_SEED = 2**31 - 1
TRUE_VALUES = ("1", "true", "yes")


@dataclass
class PageRequest:
    """A validated request for suggested pages."""

    partition: str
    limit: int
    offset: int = 0
    seed: int | None = None  # None only for explicit id requests
    source: Source | None = None
    ids: list[int] | None = None
    no_filter: bool = False


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name.capitalize()} must be a number") from None


class ImageSuggestions:
    """Serves suggested pages for one store."""

    def __init__(
        self,
        config: SuggestionsConfig,
        store: SuggestionStore,
        index: RowCountIndex,
        provider: SuggestionProvider | None = None,
    ):
        self.config = config
        self.store = store
        self.index = index
        self.provider = provider

    def validate_params(self, wiki: str, lang: str, args: Mapping[str, str]) -> PageRequest:
        """
        Validate request parameters.

        Raises:
            NotFoundError: If the wiki/language pair is unknown
            ValidationError: If any parameter is malformed or out of range
        """
        paging = self.config.paging

        partition = get_wiki_id(wiki, lang, self.config.ingest.languages)
        if partition is None:
            raise NotFoundError(
                f"Unable to find a wikiId for language {lang} and property {wiki}"
            )

        source = None
        if args.get("source"):
            try:
                source = Source(args["source"])
            except ValueError:
                raise ValidationError(f"Unrecognized source: {args['source']}") from None

        no_filter = str(args.get("nofilter", "")).lower() in TRUE_VALUES

        if args.get("id"):
            conflicting = [name for name in ("seed", "limit", "offset") if args.get(name)]
            if conflicting:
                raise ValidationError(
                    f"Parameter id cannot be combined with {', '.join(conflicting)}"
                )
            ids = [_parse_int("id", v) for v in str(args["id"]).split("|") if v.strip()]
            if not ids:
                raise ValidationError("Id must list at least one page id")
            if len(ids) > paging.max_limit:
                raise ValidationError(f"No more than {paging.max_limit} ids may be requested")
            return PageRequest(
                partition=partition,
                limit=len(ids),
                source=source,
                ids=ids,
                no_filter=no_filter,
            )

        limit = _parse_int("limit", args.get("limit") or paging.default_limit)
        if limit < 1 or limit > paging.max_limit:
            raise ValidationError(f"Limit must be a number between 1 and {paging.max_limit}")

        offset = _parse_int("offset", args.get("offset") or 0)
        if offset < 0:
            raise ValidationError("Offset must be a positive number")

        if args.get("seed") not in (None, ""):
            seed = _parse_int("seed", args["seed"])
            if seed < 0 or seed > MAX_SEED:
                raise ValidationError(f"Seed must be a number between 0 and {MAX_SEED}")
        else:
            seed = secrets.randbelow(MAX_SEED) + 1

        return PageRequest(
            partition=partition,
            limit=limit,
            offset=offset,
            seed=seed,
            source=source,
            no_filter=no_filter,
        )

    def fetch_pages(self, request: PageRequest) -> list[Page]:
        """Get the stored pages selected by a request."""
        mode = QueryMode.for_source(request.source)

        if request.ids is not None:
            row_nums = self.store.row_nums_for_ids(request.partition, mode, request.ids)
            if not row_nums:
                return []
            return self.store.fetch_pages(request.partition, mode, len(row_nums), 0, row_nums)

        if request.seed == 0:
            return self.store.fetch_pages(
                request.partition, mode, request.limit, request.offset
            )

        population = self.index.get(request.partition, request.source)
        if population == 0:
            return []
        row_nums = sample_row_numbers(request.seed, request.limit, request.offset, population)
        return self.store.fetch_pages(request.partition, mode, request.limit, 0, row_nums)

    async def get_pages(self, request: PageRequest) -> dict[str, Any]:
        """
        Run a request.

        Returns:
            {"seed": ..., "pages": [...]}
        """
        if request.partition not in self.index:
            raise NotFoundError(f"No image suggestions loaded for {request.partition}")

        pages = self.fetch_pages(request)
        logger.debug(
            f"{request.partition}: {len(pages)} page(s) from store "
            f"(seed={request.seed}, limit={request.limit}, offset={request.offset})"
        )

        merged = await merge_suggestions(
            pages,
            source=request.source,
            max_suggestions_per_page=self.config.paging.max_suggestions_per_page,
            provider=self.provider,
            no_filter=request.no_filter,
            timeout=self.config.mediasearch.fanout_timeout_seconds,
        )
        return {"seed": request.seed, "pages": merged}
