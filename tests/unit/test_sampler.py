"""Tests for deterministic row number sampling."""

import pytest

from image_suggestions.sampler import sample_row_numbers


class TestSampleRowNumbers:
    """Test sample_row_numbers."""

    def test_deterministic(self):
        """Should return the same row numbers for the same inputs."""
        first = sample_row_numbers(7, 2, 3, 1000)
        second = sample_row_numbers(7, 2, 3, 1000)
        assert first == second
        assert len(first) == 2

    def test_seeds_differ(self):
        """Should give different orderings for different seeds."""
        assert sample_row_numbers(1, 10, 0, 100000) != sample_row_numbers(2, 10, 0, 100000)

    def test_offset_moves_the_window(self):
        """Should skip draws for later pages."""
        assert sample_row_numbers(7, 5, 0, 100000) != sample_row_numbers(7, 5, 5, 100000)

    def test_distinct_and_in_range(self):
        """Should return distinct values within the population."""
        for seed in range(1, 50):
            row_nums = sample_row_numbers(seed, 20, seed, 30)
            assert len(row_nums) == 20
            assert len(set(row_nums)) == 20
            assert all(1 <= n <= 30 for n in row_nums)

    def test_population_smaller_than_limit(self):
        """Should still terminate, drawing from [1, limit]."""
        row_nums = sample_row_numbers(3, 5, 0, 3)
        assert sorted(row_nums) == [1, 2, 3, 4, 5]

    def test_population_equal_to_limit(self):
        row_nums = sample_row_numbers(11, 4, 2, 4)
        assert sorted(row_nums) == [1, 2, 3, 4]

    def test_empty_population(self):
        """Should return nothing for an empty population."""
        assert sample_row_numbers(5, 10, 0, 0) == []

    def test_zero_limit(self):
        assert sample_row_numbers(5, 0, 0, 10) == []

    def test_seed_zero_rejected(self):
        """Should reject seed 0, which means natural order."""
        with pytest.raises(ValueError):
            sample_row_numbers(0, 5, 0, 10)

    def test_negative_offset_rejected(self):
        with pytest.raises(ValueError):
            sample_row_numbers(5, 5, -1, 10)
