"""
Row-count index.

Sampling needs the size of each partition's page population. Partitions are
immutable once loaded, so the counts are computed once (during ingestion, or
by a startup scan of an existing store) and only read while serving.
"""

import logging

from .errors import NotFoundError
from .models import RowCounts, Source
from .store import SuggestionStore

logger = logging.getLogger(__name__)


class RowCountIndex:
    """Highest assigned row numbers per partition."""

    def __init__(self):
        self._counts: dict[str, RowCounts] = {}

    def __contains__(self, partition: str) -> bool:
        return partition in self._counts

    def partitions(self) -> list[str]:
        """Partitions currently indexed."""
        return sorted(self._counts)

    def set(self, partition: str, max_row_num: int, max_row_num_ima: int) -> None:
        """Record counts for a freshly loaded partition."""
        self._counts[partition] = RowCounts(
            max_row_num=max_row_num,
            max_row_num_ima=max_row_num_ima,
        )

    def counts(self, partition: str) -> RowCounts:
        """Get both counts for a partition."""
        try:
            return self._counts[partition]
        except KeyError:
            raise NotFoundError(f"No image suggestions loaded for {partition}") from None

    def get(self, partition: str, source: Source | None = None) -> int:
        """
        Get the population size for a partition and source filter.

        Filtering to algorithm results counts only pages that have them.
        """
        counts = self.counts(partition)
        if source == Source.IMA:
            return counts.max_row_num_ima
        return counts.max_row_num

    def load(self, store: SuggestionStore, only_missing: bool = False) -> list[str]:
        """
        Scan an existing store and index the partitions in it.

        With only_missing, partitions already indexed (e.g. just ingested)
        keep their counts and only the others are scanned.

        Returns:
            Every partition in the store
        """
        partitions = store.partitions()
        for partition in partitions:
            if only_missing and partition in self._counts:
                continue
            counts = store.row_counts(partition)
            self._counts[partition] = counts
            logger.info(
                f"Indexed {partition}: {counts.max_row_num} pages, "
                f"{counts.max_row_num_ima} with suggestions"
            )
        return partitions
