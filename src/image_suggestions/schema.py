"""
Per-partition table definitions.

Every partition (wiki id) gets its own three tables. They are created
whole during ingestion and never modified afterwards. A reload builds
a staging copy and swaps it in once it has loaded completely.
"""

import sqlite3
from dataclasses import dataclass

from .errors import ValidationError
from .wiki_id import is_valid_partition

# row_num is the primary key because pages are selected by it constantly.
# It is assigned by the loader instead of relying on rowid, which is not
# guaranteed to be gapless.
PAGE_TABLE = """
CREATE TABLE {page} (
    row_num INTEGER NOT NULL PRIMARY KEY,
    row_num_ima INTEGER UNIQUE,
    id INTEGER NOT NULL UNIQUE,
    title TEXT NOT NULL
)
"""

IMAGE_TABLE = """
CREATE TABLE {image} (
    id TEXT NOT NULL,
    confidence_rating TEXT,
    source TEXT NOT NULL,
    dataset_id TEXT,
    insertion_ts REAL,
    found_on TEXT,
    PRIMARY KEY (id, source)
)
"""

IMAGE_PAGE_TABLE = """
CREATE TABLE {image_page} (
    page_id INTEGER NOT NULL,
    image_id TEXT NOT NULL,
    image_source TEXT NOT NULL,
    PRIMARY KEY (page_id, image_id, image_source)
)
"""


STAGING_SUFFIX = "_staging"


@dataclass(frozen=True)
class TableNames:
    """Table names for one partition."""

    page: str
    image: str
    image_page: str


def table_names(partition: str) -> TableNames:
    """Get the table names for a partition, rejecting unsafe ids."""
    if not is_valid_partition(partition):
        raise ValidationError(f"Invalid partition id: {partition!r}")
    return TableNames(
        page=f"{partition}_page",
        image=f"{partition}_image",
        image_page=f"{partition}_image_page",
    )


def create_partition(conn: sqlite3.Connection, partition: str) -> TableNames:
    """Create empty tables for a partition."""
    names = table_names(partition)
    conn.execute(PAGE_TABLE.format(page=names.page))
    conn.execute(IMAGE_TABLE.format(image=names.image))
    conn.execute(IMAGE_PAGE_TABLE.format(image_page=names.image_page))
    conn.commit()
    return names


def staging_partition(partition: str) -> str:
    """Name of the partition a reload of `partition` is built in."""
    return f"{partition}{STAGING_SUFFIX}"


def drop_partition(conn: sqlite3.Connection, partition: str) -> None:
    """Drop a partition's tables if they exist."""
    names = table_names(partition)
    for table in (names.image_page, names.image, names.page):
        conn.execute(f"DROP TABLE IF EXISTS {table}")
    conn.commit()


def list_partitions(conn: sqlite3.Connection) -> list[str]:
    """List partitions that have all three tables."""
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    tables = {row[0] for row in cursor.fetchall()}

    partitions = []
    for name in sorted(tables):
        if not name.endswith("_page") or name.endswith("_image_page"):
            continue
        partition = name[: -len("_page")]
        if not is_valid_partition(partition) or partition.endswith(STAGING_SUFFIX):
            continue
        if f"{partition}_image" in tables and f"{partition}_image_page" in tables:
            partitions.append(partition)
    return partitions


def replace_partition(conn: sqlite3.Connection, staging: str, partition: str) -> None:
    """
    Swap a fully loaded staging partition in place of `partition`.

    The old tables are dropped and the staging tables renamed in one
    transaction, so readers see either the old partition or the new one.
    """
    old = table_names(partition)
    new = table_names(staging)
    conn.execute("BEGIN")
    try:
        for table in (old.image_page, old.image, old.page):
            conn.execute(f"DROP TABLE IF EXISTS {table}")
        for source, target in (
            (new.page, old.page),
            (new.image, old.image),
            (new.image_page, old.image_page),
        ):
            conn.execute(f"ALTER TABLE {source} RENAME TO {target}")
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
