"""
Wiki identifiers.

A wiki id (e.g. "arwiki") names one partition of the store. It is derived
either from a property/language pair in a request or from the name of a
results file.
"""

import re
from collections.abc import Iterable

PROPERTY_MAP = {
    "wikipedia": "wiki",
}

RECOGNIZED_LANGUAGES = (
    "ar",
    "ceb",
    "en",
    "hy",
    "pt",
    "sv",
    "arz",
    "eu",
    "he",
    "ru",
    "tr",
    "bn",
    "de",
    "fa",
    "hu",
    "pl",
    "srw",
    "uk",
    "cs",
    "fr",
    "vi",
    "ko",
)

# Partition ids end up in table names, so keep them to a safe alphabet.
PARTITION_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,63}$")
FILENAME_PATTERN = re.compile(r"^(?P<lang>[a-z]{2,3})(?P<suffix>wiki)\.tsv$")


def get_wiki_id(
    wiki: str,
    lang: str,
    languages: Iterable[str] = RECOGNIZED_LANGUAGES,
) -> str | None:
    """
    Convert a property/language pair to a wiki id.

    ("wikipedia", "en") -> "enwiki". Returns None if either is unrecognized.
    """
    # Plain dict membership: request input like "__class__" never matches.
    suffix = PROPERTY_MAP.get(wiki)
    if suffix is None or lang not in set(languages):
        return None
    return f"{lang}{suffix}"


def partition_from_filename(
    filename: str,
    languages: Iterable[str] = RECOGNIZED_LANGUAGES,
) -> str | None:
    """Get the partition id for a results file name, e.g. "arwiki.tsv" -> "arwiki"."""
    match = FILENAME_PATTERN.match(filename)
    if not match or match.group("lang") not in set(languages):
        return None
    return f"{match.group('lang')}{match.group('suffix')}"


def is_valid_partition(partition: str) -> bool:
    """Check that a partition id is safe to use in a table name."""
    return bool(PARTITION_PATTERN.match(partition)) and not partition.endswith("_image")
