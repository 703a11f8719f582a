"""Datasette plugin serving image suggestions for under-illustrated wiki pages."""

from datasette_image_suggestions.plugin import (
    register_routes,
    startup,
)

__all__ = [
    "register_routes",
    "startup",
]
