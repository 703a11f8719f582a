"""
image-suggestions: Suggested media for under-illustrated wiki pages.

Loads precomputed image matching algorithm results into a per-wiki SQLite
store and serves paginated, reproducibly "random" page lists, topped up with
results from Commons MediaSearch.
"""

__version__ = "0.1.0"
