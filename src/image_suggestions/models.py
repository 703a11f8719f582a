"""
Data models for image-suggestions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Source(str, Enum):
    """Where a suggestion comes from."""

    IMA = "ima"  # Image matching algorithm (precomputed, stored)
    MS = "ms"  # Commons MediaSearch (on demand)


class QueryMode(str, Enum):
    """Shape of the page query run against a partition."""

    # Inner join: pages without algorithm suggestions are left out.
    ALGORITHM_ONLY = "algorithm_only"
    # Every page, even with no algorithm suggestions, since another
    # source may still fill them in.
    ALL_SOURCES = "all_sources"

    @classmethod
    def for_source(cls, source: Source | None) -> "QueryMode":
        """Pick the query mode for a request's source filter."""
        if source == Source.IMA:
            return cls.ALGORITHM_ONLY
        return cls.ALL_SOURCES

    @property
    def row_num_column(self) -> str:
        """Row numbering used for pagination and sampling in this mode."""
        if self is QueryMode.ALGORITHM_ONLY:
            return "row_num_ima"
        return "row_num"


def allows(source_filter: Source | None, source: Source) -> bool:
    """Check whether a source filter (None meaning all) lets a source through."""
    return source_filter is None or source_filter == source


@dataclass
class AlgorithmSuggestion:
    """A stored image matching algorithm result for a page."""

    filename: str
    confidence_rating: str | None = None
    source: str | None = None  # Wiki the image was found through
    dataset_id: str | None = None
    found_on: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the response suggestion shape."""
        found_on = [w for w in (self.found_on or "").split(",") if w]
        return {
            "filename": self.filename,
            "confidence_rating": self.confidence_rating,
            "source": {
                "name": Source.IMA.value,
                "details": {
                    "from": self.source,
                    "found_on": found_on,
                    "dataset_id": self.dataset_id,
                },
            },
        }


@dataclass
class Page:
    """A page row from the store with its algorithm suggestions."""

    row_num: int
    page_id: int
    title: str
    project: str
    suggestions: list[AlgorithmSuggestion] = field(default_factory=list)


@dataclass(frozen=True)
class RowCounts:
    """Highest assigned row numbers for one partition."""

    max_row_num: int = 0
    max_row_num_ima: int = 0
