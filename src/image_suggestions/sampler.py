"""
Deterministic sampling of row numbers.

A seed picks a reproducible "random" ordering of a partition's pages. Each
seed drives its own generator, so the same (seed, limit, offset) gives the
same row numbers in every call and every process. Paging works by skipping
`offset` draws before collecting the page.

Cost is linear in offset: every page replays the stream from the start.
"""

import math
import random


def sample_row_numbers(
    seed: int,
    limit: int,
    offset: int,
    population_size: int,
) -> list[int]:
    """
    Draw `limit` distinct 1-origin row numbers for a seed.

    Values fall in [1, population_size], or in [1, limit] when the population
    is smaller than the page, so that enough distinct values always exist.
    Numbers beyond the population simply match no page.

    Args:
        seed: Positive seed. Seed 0 means natural order and never reaches here.
        limit: Number of row numbers to return
        offset: Number of draws to discard first
        population_size: Highest row number in the population

    Returns:
        Row numbers in draw order
    """
    if seed <= 0:
        raise ValueError("Seed must be positive; seed 0 means natural order")
    if offset < 0:
        raise ValueError("Offset must not be negative")
    if limit <= 0 or population_size <= 0:
        return []

    rng = random.Random(seed)
    for _ in range(offset):
        rng.random()

    scale = population_size if population_size >= limit else limit

    row_nums: list[int] = []
    seen: set[int] = set()
    while len(row_nums) < limit:
        row_num = math.floor(rng.random() * scale) + 1
        if row_num in seen:
            continue
        seen.add(row_num)
        row_nums.append(row_num)
    return row_nums
