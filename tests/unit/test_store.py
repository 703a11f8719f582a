"""Tests for reading pages from the suggestion store."""

import pytest

from image_suggestions.errors import InternalError, ValidationError
from image_suggestions.models import QueryMode, RowCounts


@pytest.fixture
def loaded_store(pipeline, store, large_tsv):
    """Store holding the 30-page enwiki partition."""
    pipeline.ingest_file(large_tsv)
    return store


class TestFetchPages:
    """Test SuggestionStore.fetch_pages."""

    def test_all_sources_natural_order(self, loaded_store):
        """Should include pages without suggestions, in row order."""
        pages = loaded_store.fetch_pages("enwiki", QueryMode.ALL_SOURCES, 5)

        assert [p.page_id for p in pages] == [1001, 1002, 1003, 1004, 1005]
        assert [p.row_num for p in pages] == [1, 2, 3, 4, 5]
        assert pages[2].suggestions == []
        assert all(p.project == "enwiki" for p in pages)

    def test_suggestions_keep_file_order(self, loaded_store):
        pages = loaded_store.fetch_pages("enwiki", QueryMode.ALL_SOURCES, 1)
        assert [s.filename for s in pages[0].suggestions] == ["Image_1_a.jpg", "Image_1_b.jpg"]
        assert [s.source for s in pages[0].suggestions] == ["wikidata", "commons"]

    def test_algorithm_only(self, loaded_store):
        """Should leave out pages without algorithm suggestions."""
        pages = loaded_store.fetch_pages("enwiki", QueryMode.ALGORITHM_ONLY, 5)

        assert [p.page_id for p in pages] == [1001, 1002, 1004, 1005, 1007]
        assert all(len(p.suggestions) == 2 for p in pages)

    def test_limit_counts_pages(self, loaded_store):
        """Should limit pages, not page-image rows."""
        pages = loaded_store.fetch_pages("enwiki", QueryMode.ALGORITHM_ONLY, 3)
        assert len(pages) == 3
        assert sum(len(p.suggestions) for p in pages) == 6

    def test_offset(self, loaded_store):
        pages = loaded_store.fetch_pages("enwiki", QueryMode.ALL_SOURCES, 5, offset=28)
        assert [p.page_id for p in pages] == [1029, 1030]

        pages = loaded_store.fetch_pages("enwiki", QueryMode.ALGORITHM_ONLY, 5, offset=18)
        assert [p.page_id for p in pages] == [1028, 1029]

    def test_row_nums_come_back_in_row_order(self, loaded_store):
        """Should return selected pages ordered by row number."""
        pages = loaded_store.fetch_pages(
            "enwiki", QueryMode.ALL_SOURCES, 2, row_nums=[5, 2]
        )
        assert [p.page_id for p in pages] == [1002, 1005]

    def test_row_nums_in_algorithm_numbering(self, loaded_store):
        """Should select by row_num_ima when filtering to the algorithm."""
        pages = loaded_store.fetch_pages(
            "enwiki", QueryMode.ALGORITHM_ONLY, 1, row_nums=[3]
        )
        assert [p.page_id for p in pages] == [1004]

    def test_row_nums_beyond_population(self, loaded_store):
        pages = loaded_store.fetch_pages(
            "enwiki", QueryMode.ALL_SOURCES, 2, row_nums=[30, 31]
        )
        assert [p.page_id for p in pages] == [1030]

    def test_suggestion_to_dict(self, pipeline, store, scenario_tsv):
        """Should shape stored suggestions for the response."""
        pipeline.ingest_file(scenario_tsv)
        page = store.fetch_pages("arwiki", QueryMode.ALL_SOURCES, 1)[0]

        assert page.suggestions[0].to_dict() == {
            "filename": "Macheffect.png",
            "confidence_rating": "medium",
            "source": {
                "name": "ima",
                "details": {
                    "from": "wikidata",
                    "found_on": ["enwiki", "frwiki"],
                    "dataset_id": "be49d19a-a81e-4286-9ae3-3bcd8f2b9145",
                },
            },
        }
        assert page.suggestions[1].to_dict()["source"]["details"]["found_on"] == []

    def test_missing_partition(self, store):
        """Should raise InternalError when the tables do not exist."""
        with pytest.raises(InternalError, match="dewiki"):
            store.fetch_pages("dewiki", QueryMode.ALL_SOURCES, 5)

    def test_invalid_partition(self, store):
        with pytest.raises(ValidationError):
            store.fetch_pages("dewiki_page --", QueryMode.ALL_SOURCES, 5)


class TestRowNumsForIds:
    """Test SuggestionStore.row_nums_for_ids."""

    def test_all_sources(self, loaded_store):
        """Should resolve known ids and skip unknown ones."""
        row_nums = loaded_store.row_nums_for_ids(
            "enwiki", QueryMode.ALL_SOURCES, [1003, 1001, 9999]
        )
        assert row_nums == [1, 3]

    def test_algorithm_only(self, loaded_store):
        """Should drop pages without algorithm suggestions."""
        row_nums = loaded_store.row_nums_for_ids(
            "enwiki", QueryMode.ALGORITHM_ONLY, [1003, 1001, 1004]
        )
        assert row_nums == [1, 3]

    def test_empty(self, loaded_store):
        assert loaded_store.row_nums_for_ids("enwiki", QueryMode.ALL_SOURCES, []) == []

    def test_missing_partition(self, store):
        with pytest.raises(InternalError):
            store.row_nums_for_ids("dewiki", QueryMode.ALL_SOURCES, [1])


class TestRowCounts:
    """Test SuggestionStore.row_counts and partitions."""

    def test_counts(self, loaded_store):
        assert loaded_store.row_counts("enwiki") == RowCounts(max_row_num=30, max_row_num_ima=20)

    def test_partitions(self, loaded_store):
        assert loaded_store.partitions() == ["enwiki"]

    def test_missing_partition(self, store):
        with pytest.raises(InternalError):
            store.row_counts("dewiki")


class TestScenario:
    """Page A with two images and page B with a sentinel row."""

    def test_query_modes(self, pipeline, store, scenario_tsv):
        pipeline.ingest_file(scenario_tsv)

        algorithm = store.fetch_pages("arwiki", QueryMode.ALGORITHM_ONLY, 10)
        assert [(p.page_id, len(p.suggestions)) for p in algorithm] == [(100, 2)]

        everything = store.fetch_pages("arwiki", QueryMode.ALL_SOURCES, 10)
        assert [(p.page_id, len(p.suggestions)) for p in everything] == [(100, 2), (200, 0)]
