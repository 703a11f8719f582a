"""
Error types for image-suggestions.

Every error carries the status/type/title/detail shape that the HTTP layer
renders back to the caller.
"""

from typing import Any


class SuggestionError(Exception):
    """Base class for all errors surfaced to callers."""

    status: int = 500
    type: str = "error"
    title: str = "Error"

    def __init__(self, detail: str, title: str | None = None):
        super().__init__(detail)
        self.detail = detail
        if title:
            self.title = title

    def to_dict(self) -> dict[str, Any]:
        """Convert to the caller-facing error body."""
        return {
            "status": self.status,
            "type": self.type,
            "title": self.title,
            "detail": self.detail,
        }


class NotFoundError(SuggestionError):
    """Unknown partition, or a missing source file/directory."""

    status = 404
    type = "not_found"
    title = "Not Found"


class ValidationError(SuggestionError):
    """Malformed input: bad TSV header or row, or bad request parameters."""

    status = 400
    type = "bad_request"
    title = "Bad Request"


class InternalError(SuggestionError):
    """Storage fault during ingestion or query."""

    status = 500
    type = "error"
    title = "Error"


class UpstreamError(SuggestionError):
    """External media-search provider fault."""

    status = 502
    type = "upstream_error"
    title = "Cannot retrieve mediasearch results"
