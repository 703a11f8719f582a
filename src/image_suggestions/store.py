"""
Suggestion store: read access to ingested partitions.
"""

import logging
import sqlite3
from collections.abc import Sequence
from itertools import groupby
from pathlib import Path

from .errors import InternalError
from .models import AlgorithmSuggestion, Page, QueryMode, RowCounts
from .schema import list_partitions, table_names

logger = logging.getLogger(__name__)

# Pages are limited/offset in a subquery so LIMIT counts pages, not
# page-image rows. Image columns are NULL for pages without suggestions
# in the all-sources (outer join) shape.
PAGES_QUERY = """
SELECT
    p.row_num,
    p.id AS page_id,
    p.title,
    i.id AS filename,
    i.confidence_rating,
    i.source,
    i.dataset_id,
    i.found_on
FROM (
    SELECT row_num, id, title
    FROM {page}
    WHERE {where}
    ORDER BY {order_column}
    LIMIT ? OFFSET ?
) p
{join} JOIN {image_page} ip ON ip.page_id = p.id
{join} JOIN {image} i ON i.id = ip.image_id AND i.source = ip.image_source
ORDER BY p.row_num, ip.rowid
"""


class SuggestionStore:
    """Database operations for ingested algorithm results."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def connect(self) -> sqlite3.Connection:
        """Open a connection for bulk loading."""
        return self._connect()

    def partitions(self) -> list[str]:
        """List partitions present in the store."""
        try:
            conn = self._connect()
            try:
                return list_partitions(conn)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise InternalError(f"Unable to list partitions in {self.db_path}") from e

    def row_counts(self, partition: str) -> RowCounts:
        """Compute the highest row numbers for a partition from its page table."""
        names = table_names(partition)
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    f"SELECT MAX(row_num), MAX(row_num_ima) FROM {names.page}"
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise InternalError(f"Unable to count pages for {partition}") from e
        return RowCounts(max_row_num=row[0] or 0, max_row_num_ima=row[1] or 0)

    def row_nums_for_ids(
        self,
        partition: str,
        mode: QueryMode,
        page_ids: Sequence[int],
    ) -> list[int]:
        """
        Resolve page ids to row numbers for the given query mode.

        In algorithm-only mode, pages without suggestions have no row
        number and are dropped.
        """
        if not page_ids:
            return []

        names = table_names(partition)
        column = mode.row_num_column
        placeholders = ", ".join("?" for _ in page_ids)
        try:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    f"""
                    SELECT {column} FROM {names.page}
                    WHERE id IN ({placeholders}) AND {column} IS NOT NULL
                    ORDER BY {column}
                    """,
                    list(page_ids),
                )
                return [row[0] for row in cursor.fetchall()]
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.exception(f"Row number lookup failed for {partition}")
            raise InternalError(f"Unable to retrieve page ids for {partition}") from e

    def fetch_pages(
        self,
        partition: str,
        mode: QueryMode,
        limit: int,
        offset: int = 0,
        row_nums: Sequence[int] | None = None,
    ) -> list[Page]:
        """
        Get pages with their algorithm suggestions.

        With row_nums, exactly those pages (by the mode's row numbering) are
        returned and offset is ignored. Pages always come back in row_num
        order, whatever order row_nums was given in.
        """
        names = table_names(partition)
        column = mode.row_num_column
        params: list = []

        if row_nums:
            placeholders = ", ".join("?" for _ in row_nums)
            where = f"{column} IN ({placeholders})"
            params.extend(row_nums)
            limit = len(row_nums)
            offset = 0
        elif mode is QueryMode.ALGORITHM_ONLY:
            where = f"{column} IS NOT NULL"
        else:
            where = "1"
        params.extend([limit, offset])

        sql = PAGES_QUERY.format(
            page=names.page,
            image=names.image,
            image_page=names.image_page,
            where=where,
            order_column=column,
            join="INNER" if mode is QueryMode.ALGORITHM_ONLY else "LEFT",
        )

        try:
            conn = self._connect()
            try:
                rows = conn.execute(sql, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.exception(f"Page query failed for {partition}")
            raise InternalError(
                f"Unable to retrieve image matching algorithm results for {partition}"
            ) from e

        pages = []
        for row_num, group in groupby(rows, key=lambda r: r["row_num"]):
            group = list(group)
            first = group[0]
            pages.append(
                Page(
                    row_num=row_num,
                    page_id=first["page_id"],
                    title=first["title"],
                    project=partition,
                    suggestions=[
                        AlgorithmSuggestion(
                            filename=r["filename"],
                            confidence_rating=r["confidence_rating"],
                            source=r["source"],
                            dataset_id=r["dataset_id"],
                            found_on=r["found_on"],
                        )
                        for r in group
                        if r["filename"] is not None
                    ],
                )
            )
        return pages
