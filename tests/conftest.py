"""Shared pytest fixtures for image-suggestions tests."""

from pathlib import Path

import pytest
from datasette.app import Datasette

from image_suggestions.config import PLUGIN_NAME
from image_suggestions.errors import UpstreamError
from image_suggestions.ingest import EXPECTED_HEADERS, IngestionPipeline
from image_suggestions.row_counts import RowCountIndex
from image_suggestions.store import SuggestionStore

HEADER_LINE = "\t".join(EXPECTED_HEADERS)


def tsv_row(
    page_id,
    title,
    image_id="",
    confidence_rating="medium",
    source="wikidata",
    dataset_id="be49d19a-a81e-4286-9ae3-3bcd8f2b9145",
    insertion_ts="1.61481587E9",
    wiki="arwiki",
    found_on="",
) -> str:
    """Build one results file line."""
    return "\t".join(
        str(v)
        for v in (
            page_id,
            title,
            image_id,
            confidence_rating,
            source,
            dataset_id,
            insertion_ts,
            wiki,
            found_on,
        )
    )


@pytest.fixture
def row():
    """Factory for results file lines."""
    return tsv_row


@pytest.fixture
def write_tsv(tmp_path):
    """Factory writing a results file (header + lines) into a data directory."""
    data_dir = tmp_path / "static"
    data_dir.mkdir(exist_ok=True)

    def _write(name: str, lines: list[str], header: str = HEADER_LINE) -> Path:
        path = data_dir / name
        path.write_text("\n".join([header, *lines]) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def scenario_tsv(write_tsv):
    """Page 100 with two images, page 200 with no suggestions."""
    return write_tsv(
        "arwiki.tsv",
        [
            tsv_row(100, "تأثير_وودوارد", "Macheffect.png", found_on="enwiki,frwiki"),
            tsv_row(100, "تأثير_وودوارد", "Woodward_effect.jpg", "low", "commons"),
            tsv_row(200, "Empty_page", "", "", "", "", "", "arwiki", ""),
        ],
    )


@pytest.fixture
def large_tsv(write_tsv):
    """30 pages (ids 1001..1030); every third page has no suggestions."""
    lines = []
    for n in range(1, 31):
        page_id = 1000 + n
        title = f"Page_{n}"
        if n % 3 == 0:
            lines.append(tsv_row(page_id, title, "NULL", "NULL", "NULL", "NULL", "NULL", "enwiki", "NULL"))
        else:
            lines.append(tsv_row(page_id, title, f"Image_{n}_a.jpg", wiki="enwiki"))
            lines.append(tsv_row(page_id, title, f"Image_{n}_b.jpg", "low", "commons", wiki="enwiki"))
    return write_tsv("enwiki.tsv", lines)


@pytest.fixture
def db_path(tmp_path):
    """Path for a temporary suggestion store."""
    return tmp_path / "test_suggestions.db"


@pytest.fixture
def store(db_path):
    return SuggestionStore(db_path)


@pytest.fixture
def index():
    return RowCountIndex()


@pytest.fixture
def pipeline(store, index):
    """Ingestion pipeline with a small chunk size so batches split often."""
    return IngestionPipeline(store, index, chunk_size=4)


class FakeProvider:
    """Stands in for MediaSearch: returns `limit` made-up files per title."""

    def __init__(self, fail_on: str | None = None):
        self.calls: list[tuple[str, int]] = []
        self.fail_on = fail_on

    async def search(self, title: str, limit: int) -> list[dict]:
        self.calls.append((title, limit))
        if title == self.fail_on:
            raise UpstreamError("Unable to retrieve mediasearch results")
        return [
            {
                "filename": f"{title}_ms_{i}.jpg",
                "confidence_rating": "low",
                "source": {"name": "ms", "details": {}},
            }
            for i in range(limit)
        ]


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def datasette(db_path, scenario_tsv, large_tsv):
    """Create a Datasette instance that ingests the fixture files on startup.

    MediaSearch stays disabled; tests that need it patch the client.
    """
    return Datasette(
        config={
            "plugins": {
                PLUGIN_NAME: {
                    "db_path": str(db_path),
                    "ingest": {
                        "data_dir": str(scenario_tsv.parent),
                        "on_startup": True,
                    },
                    "mediasearch": {"enabled": False},
                }
            },
        },
    )


@pytest.fixture
def make_provider():
    """Factory for fake providers, e.g. make_provider(fail_on="Page_1")."""
    return FakeProvider
