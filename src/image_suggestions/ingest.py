"""
Ingestion of image matching algorithm results.

Each `<wikiid>.tsv` file holds one partition. The file has one row per
(page, suggested image), with consecutive rows for the same page, or a
single row with an empty image id for a page without suggestions:

    page_id  page_title  image_id  confidence_rating  source  dataset_id
    insertion_ts  wiki  found_on

Rows are streamed and written in chunks, so memory use does not grow with
the size of the file. Loading a partition always rebuilds its tables from
scratch: row numbers are dense and are only meaningful for one full load.
"""

import contextlib
import logging
import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import InternalError, NotFoundError, ValidationError
from .row_counts import RowCountIndex
from .schema import (
    TableNames,
    create_partition,
    drop_partition,
    replace_partition,
    staging_partition,
    table_names,
)
from .store import SuggestionStore
from .wiki_id import RECOGNIZED_LANGUAGES, partition_from_filename

logger = logging.getLogger(__name__)

EXPECTED_HEADERS = (
    "page_id",
    "page_title",
    "image_id",
    "confidence_rating",
    "source",
    "dataset_id",
    "insertion_ts",
    "wiki",
    "found_on",
)

NULL_MARKERS = frozenset({"", "NULL"})

DEFAULT_CHUNK_SIZE = 40


def validate_headers(
    headers: Sequence[str],
    expected: Sequence[str] = EXPECTED_HEADERS,
) -> None:
    """
    Check the header row of a results file.

    Raises:
        ValidationError: If the headers differ from the expected ones in
            number, name or order.
    """
    if len(headers) != len(expected):
        raise ValidationError("TSV headers do not match expected headers")
    for header, expected_header in zip(headers, expected):
        if header != expected_header:
            raise ValidationError(f"Expected {header} to equal {expected_header}")


def is_empty_value(value: str | None) -> bool:
    """Check for the empty/null markers used in results files."""
    return value is None or value in NULL_MARKERS


def _optional(value: str) -> str | None:
    return None if is_empty_value(value) else value


@dataclass
class IngestResult:
    """Summary of one loaded results file."""

    partition: str
    source_file: Path
    pages: int = 0
    pages_with_suggestions: int = 0
    image_links: int = 0
    duplicate_images: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "partition": self.partition,
            "source_file": str(self.source_file),
            "pages": self.pages,
            "pages_with_suggestions": self.pages_with_suggestions,
            "image_links": self.image_links,
            "duplicate_images": self.duplicate_images,
        }


@dataclass
class _PendingPage:
    """Rows seen so far for the page currently being read."""

    page_id: int
    title: str
    rows: int = 0
    images: list[tuple] = field(default_factory=list)


@dataclass
class _Batch:
    """Rows waiting to be written."""

    pages: list[tuple] = field(default_factory=list)
    images: list[tuple] = field(default_factory=list)
    links: list[tuple] = field(default_factory=list)
    rows: int = 0


class IngestionPipeline:
    """Loads results files into the suggestion store."""

    def __init__(
        self,
        store: SuggestionStore,
        index: RowCountIndex,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        languages: Iterable[str] = RECOGNIZED_LANGUAGES,
    ):
        """
        Initialize the pipeline.

        Args:
            store: Store to load partitions into
            index: Row-count index updated after each successful load
            chunk_size: Number of source rows per insert batch
            languages: Language codes whose files are recognized
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.store = store
        self.index = index
        self.chunk_size = chunk_size
        self.languages = list(languages)

    def ingest_directory(self, tsv_dir: Path) -> list[IngestResult]:
        """
        Load every recognized results file in a directory.

        A file that fails validation is logged and skipped; the remaining
        files still load.

        Raises:
            NotFoundError: If the directory is missing or holds no .tsv files
            InternalError: If the store itself fails
        """
        tsv_dir = Path(tsv_dir)
        if not tsv_dir.is_dir():
            raise NotFoundError(f"Data directory {tsv_dir} does not exist")

        tsv_files = sorted(p for p in tsv_dir.iterdir() if p.suffix == ".tsv")
        if not tsv_files:
            raise NotFoundError(f"No tsv files found in {tsv_dir} to populate database with")

        results = []
        for path in tsv_files:
            partition = partition_from_filename(path.name, self.languages)
            if partition is None:
                logger.warning(f"Skipping unrecognized results file {path.name}")
                continue
            try:
                results.append(self.ingest_file(path, partition))
            except (ValidationError, NotFoundError) as e:
                logger.error(f"Failed to ingest {path.name}: {e.detail}")

        logger.info(f"Ingested {len(results)} of {len(tsv_files)} file(s) from {tsv_dir}")
        return results

    def ingest_file(self, path: Path, partition: str | None = None) -> IngestResult:
        """
        Load one results file, replacing its partition.

        The file is loaded into staging tables first; the partition being
        replaced keeps serving until the new data has loaded completely.

        Args:
            path: Path to the .tsv file
            partition: Partition id; derived from the file name if omitted

        Returns:
            Summary of the load

        Raises:
            NotFoundError: If the file does not exist
            ValidationError: If the file name, header or a row is malformed
            InternalError: If the store fails
        """
        path = Path(path)
        if partition is None:
            partition = partition_from_filename(path.name, self.languages)
            if partition is None:
                raise ValidationError(f"Unrecognized results file name: {path.name}")
        table_names(partition)  # rejects unsafe ids before touching the store
        staging = staging_partition(partition)
        staging_names = table_names(staging)

        if not path.is_file():
            raise NotFoundError(f"Cannot find algorithm results for {path.name}")

        logger.info(f"Starting {path.name} into partition {partition}")
        result = IngestResult(partition=partition, source_file=path)

        try:
            conn = self.store.connect()
        except sqlite3.Error as e:
            raise InternalError(f"Unable to open store for {partition}") from e

        try:
            try:
                drop_partition(conn, staging)
                create_partition(conn, staging)
                self._load(conn, staging_names, path, result)
                replace_partition(conn, staging, partition)
            except sqlite3.Error as e:
                raise InternalError(
                    f"Unable to store algorithm results for {partition}"
                ) from e
            except UnicodeDecodeError as e:
                raise ValidationError(f"{path.name} is not valid UTF-8") from e
            except OSError as e:
                raise InternalError(f"Unable to read {path.name}") from e
        except Exception:
            # Leave no half-built staging tables behind.
            conn.rollback()
            with contextlib.suppress(sqlite3.Error):
                drop_partition(conn, staging)
            raise
        finally:
            conn.close()

        self.index.set(partition, result.pages, result.pages_with_suggestions)

        if result.duplicate_images:
            logger.warning(
                f"Ignored {result.duplicate_images} duplicate image row(s) in {path.name}"
            )
        logger.info(
            f"Done inserting {path.name}: {result.pages} pages, "
            f"{result.pages_with_suggestions} with suggestions, "
            f"{result.image_links} image links"
        )
        return result

    def _load(
        self,
        conn: sqlite3.Connection,
        names: TableNames,
        path: Path,
        result: IngestResult,
    ) -> None:
        """Stream the file into the partition's tables."""
        with open(path, encoding="utf-8", newline="") as f:
            header_line = f.readline()
            if not header_line:
                raise ValidationError(f"{path.name} is empty")
            validate_headers(header_line.rstrip("\r\n").split("\t"))

            batch = _Batch()
            current: _PendingPage | None = None

            for line_no, line in enumerate(f, start=2):
                line = line.rstrip("\r\n")
                if not line.strip():
                    continue

                row = line.split("\t")
                if len(row) != len(EXPECTED_HEADERS):
                    raise ValidationError(
                        f"Invalid row to insert: {path.name} line {line_no} has "
                        f"{len(row)} columns, expected {len(EXPECTED_HEADERS)}"
                    )

                page_id = self._parse_page_id(row[0], path, line_no)
                if current is None or page_id != current.page_id:
                    if current is not None:
                        self._finish_page(current, batch, result)
                        if batch.rows >= self.chunk_size:
                            self._flush(conn, names, batch, result, path)
                            batch = _Batch()
                    current = _PendingPage(page_id=page_id, title=row[1])

                current.rows += 1
                image = self._parse_image(row, path, line_no)
                if image is not None:
                    current.images.append(image)

            if current is not None:
                self._finish_page(current, batch, result)
            if batch.pages:
                self._flush(conn, names, batch, result, path)

    def _parse_page_id(self, value: str, path: Path, line_no: int) -> int:
        try:
            return int(value)
        except ValueError:
            raise ValidationError(
                f"Invalid page id {value!r} in {path.name} line {line_no}"
            ) from None

    def _parse_image(self, row: list[str], path: Path, line_no: int) -> tuple | None:
        """Build an image row, or None for a page's no-suggestion marker row."""
        (
            _page_id,
            _title,
            image_id,
            confidence_rating,
            source,
            dataset_id,
            insertion_ts,
            _wiki,  # implied by the partition
            found_on,
        ) = row

        if is_empty_value(image_id):
            return None
        if is_empty_value(source):
            raise ValidationError(
                f"Missing source for image {image_id} in {path.name} line {line_no}"
            )

        timestamp = None
        if not is_empty_value(insertion_ts):
            try:
                timestamp = float(insertion_ts)
            except ValueError:
                raise ValidationError(
                    f"Invalid insertion_ts {insertion_ts!r} in {path.name} line {line_no}"
                ) from None

        return (
            image_id,
            _optional(confidence_rating),
            source,
            _optional(dataset_id),
            timestamp,
            _optional(found_on),
        )

    def _finish_page(
        self,
        page: _PendingPage,
        batch: _Batch,
        result: IngestResult,
    ) -> None:
        """Assign row numbers to a completed page and queue its rows."""
        result.pages += 1
        row_num_ima = None
        if page.images:
            result.pages_with_suggestions += 1
            row_num_ima = result.pages_with_suggestions

        batch.pages.append((result.pages, row_num_ima, page.page_id, page.title))
        for image in page.images:
            batch.images.append(image)
            batch.links.append((page.page_id, image[0], image[2]))
        batch.rows += page.rows

    def _flush(
        self,
        conn: sqlite3.Connection,
        names: TableNames,
        batch: _Batch,
        result: IngestResult,
        path: Path,
    ) -> None:
        """Write one batch and commit it."""
        try:
            conn.executemany(
                f"INSERT INTO {names.page} (row_num, row_num_ima, id, title) "
                "VALUES (?, ?, ?, ?)",
                batch.pages,
            )
        except sqlite3.IntegrityError as e:
            raise ValidationError(
                f"Page ids in {path.name} must be unique and their rows consecutive"
            ) from e

        if batch.images:
            # The same image may be suggested for several pages, and reloads
            # see the same rows again: keep the first copy.
            cursor = conn.executemany(
                f"INSERT OR IGNORE INTO {names.image} "
                "(id, confidence_rating, source, dataset_id, insertion_ts, found_on) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                batch.images,
            )
            result.duplicate_images += len(batch.images) - cursor.rowcount

            cursor = conn.executemany(
                f"INSERT OR IGNORE INTO {names.image_page} "
                "(page_id, image_id, image_source) VALUES (?, ?, ?)",
                batch.links,
            )
            result.image_links += cursor.rowcount

        conn.commit()
