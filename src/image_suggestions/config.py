"""
Configuration for image-suggestions.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .wiki_id import RECOGNIZED_LANGUAGES

PLUGIN_NAME = "datasette-image-suggestions"


@dataclass
class PagingConfig:
    """Request size limits."""

    default_limit: int = 10
    max_limit: int = 100
    max_suggestions_per_page: int = 10  # Shared between all sources


@dataclass
class IngestConfig:
    """Where algorithm results come from and how they are loaded."""

    data_dir: Path | None = None
    on_startup: bool = False  # Rebuild partitions when the plugin starts
    chunk_size: int = 40
    languages: list[str] = field(default_factory=lambda: list(RECOGNIZED_LANGUAGES))


@dataclass
class MediaSearchConfig:
    """Commons MediaSearch (MediaWiki Action API) configuration."""

    enabled: bool = True
    api_base: str = "https://commons.wikimedia.org/w/api.php"
    timeout_seconds: float = 10.0
    fanout_timeout_seconds: float = 30.0
    search_prefix: str = "filetype:bitmap|drawing"
    user_agent: str = "image-suggestions/0.1.0"


@dataclass
class SuggestionsConfig:
    """Complete image-suggestions configuration."""

    db_path: Path = field(default_factory=lambda: Path("image_suggestions.db"))
    paging: PagingConfig = field(default_factory=PagingConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    mediasearch: MediaSearchConfig = field(default_factory=MediaSearchConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SuggestionsConfig":
        """Create config from a dictionary (e.g., a plugin config block)."""
        config = cls()

        if "db_path" in data:
            config.db_path = Path(data["db_path"])

        if "paging" in data:
            paging = data["paging"]
            config.paging = PagingConfig(
                default_limit=paging.get("default_limit", 10),
                max_limit=paging.get("max_limit", 100),
                max_suggestions_per_page=paging.get("max_suggestions_per_page", 10),
            )

        if "ingest" in data:
            ingest = data["ingest"]
            data_dir = ingest.get("data_dir")
            config.ingest = IngestConfig(
                data_dir=Path(data_dir) if data_dir else None,
                on_startup=ingest.get("on_startup", False),
                chunk_size=ingest.get("chunk_size", 40),
                languages=list(ingest.get("languages", RECOGNIZED_LANGUAGES)),
            )

        if "mediasearch" in data:
            ms = data["mediasearch"]
            defaults = MediaSearchConfig()
            config.mediasearch = MediaSearchConfig(
                enabled=ms.get("enabled", True),
                api_base=ms.get("api_base", defaults.api_base),
                timeout_seconds=ms.get("timeout_seconds", defaults.timeout_seconds),
                fanout_timeout_seconds=ms.get(
                    "fanout_timeout_seconds", defaults.fanout_timeout_seconds
                ),
                search_prefix=ms.get("search_prefix", defaults.search_prefix),
                user_agent=ms.get("user_agent", defaults.user_agent),
            )

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "SuggestionsConfig":
        """Load config from a YAML file (datasette.yaml format)."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Look for config under plugins.datasette-image-suggestions
        plugin_config = data.get("plugins", {}).get(PLUGIN_NAME, {})
        return cls.from_dict(plugin_config or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for JSON serialization."""
        return {
            "db_path": str(self.db_path),
            "paging": {
                "default_limit": self.paging.default_limit,
                "max_limit": self.paging.max_limit,
                "max_suggestions_per_page": self.paging.max_suggestions_per_page,
            },
            "ingest": {
                "data_dir": str(self.ingest.data_dir) if self.ingest.data_dir else None,
                "on_startup": self.ingest.on_startup,
                "chunk_size": self.ingest.chunk_size,
                "languages": self.ingest.languages,
            },
            "mediasearch": {
                "enabled": self.mediasearch.enabled,
                "api_base": self.mediasearch.api_base,
                "timeout_seconds": self.mediasearch.timeout_seconds,
                "fanout_timeout_seconds": self.mediasearch.fanout_timeout_seconds,
            },
        }
