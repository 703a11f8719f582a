"""
Datasette plugin serving image suggestions for under-illustrated pages.

Routes:
- GET /image-suggestions/v0/{wiki}/{lang}/pages
  Pages and their suggested images. With `id`, suggestions for those pages;
  otherwise a seeded "random" page list (seed=0 for natural order).
- GET /_info
  Basic service info.
"""

import logging
import weakref

from datasette import Response, hookimpl
from datasette.utils.asgi import Request

from image_suggestions import __version__
from image_suggestions.config import PLUGIN_NAME, SuggestionsConfig
from image_suggestions.errors import NotFoundError, SuggestionError
from image_suggestions.ingest import IngestionPipeline
from image_suggestions.mediasearch import MediaSearchClient
from image_suggestions.row_counts import RowCountIndex
from image_suggestions.store import SuggestionStore
from image_suggestions.suggestions import ImageSuggestions

logger = logging.getLogger(__name__)

SERVICE_DESCRIPTION = "Image suggestions for under-illustrated wiki pages"

# One service per Datasette instance; it owns that instance's row-count index.
_services: "weakref.WeakKeyDictionary" = weakref.WeakKeyDictionary()


# -----------------------------------------------------------------------------
# Plugin Configuration
# -----------------------------------------------------------------------------


def get_plugin_config(datasette) -> SuggestionsConfig:
    """Get plugin configuration from datasette.yaml."""
    return SuggestionsConfig.from_dict(datasette.plugin_config(PLUGIN_NAME) or {})


def build_service(config: SuggestionsConfig) -> ImageSuggestions:
    """
    Build the store, row-count index and provider for a configuration.

    Ingests the data directory when configured to, then indexes the
    partitions already in the store that ingestion did not cover.
    """
    store = SuggestionStore(config.db_path)
    index = RowCountIndex()

    if config.ingest.on_startup and config.ingest.data_dir:
        pipeline = IngestionPipeline(
            store,
            index,
            chunk_size=config.ingest.chunk_size,
            languages=config.ingest.languages,
        )
        try:
            pipeline.ingest_directory(config.ingest.data_dir)
        except NotFoundError as e:
            logger.error(f"Startup ingestion skipped: {e.detail}")

    index.load(store, only_missing=True)

    provider = None
    if config.mediasearch.enabled:
        provider = MediaSearchClient(
            api_base=config.mediasearch.api_base,
            timeout_seconds=config.mediasearch.timeout_seconds,
            search_prefix=config.mediasearch.search_prefix,
            user_agent=config.mediasearch.user_agent,
        )

    logger.info(f"Serving image suggestions for: {', '.join(index.partitions()) or 'none'}")
    return ImageSuggestions(config, store, index, provider)


def get_service(datasette) -> ImageSuggestions:
    """Get (building on first use) the service for a Datasette instance."""
    service = _services.get(datasette)
    if service is None:
        service = build_service(get_plugin_config(datasette))
        _services[datasette] = service
    return service


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------


async def pages_view(request: Request, datasette) -> Response:
    """Under-illustrated pages and their image suggestions."""
    wiki = request.url_vars["wiki"]
    lang = request.url_vars["lang"]
    args = {key: request.args.get(key) for key in request.args.keys()}

    try:
        service = get_service(datasette)
        page_request = service.validate_params(wiki, lang, args)
        body = await service.get_pages(page_request)
    except SuggestionError as e:
        logger.info(f"{request.path} failed with {e.status}: {e.detail}")
        return Response.json(e.to_dict(), status=e.status)

    return Response.json(body)


async def info_view(request: Request, datasette) -> Response:
    """Basic info about this service."""
    return Response.json(
        {
            "name": PLUGIN_NAME,
            "version": __version__,
            "description": SERVICE_DESCRIPTION,
        }
    )


# -----------------------------------------------------------------------------
# Datasette Hooks
# -----------------------------------------------------------------------------


@hookimpl
def register_routes():
    """Register plugin routes with Datasette."""
    return [
        (r"^/image-suggestions/v0/(?P<wiki>[^/]+)/(?P<lang>[^/]+)/pages$", pages_view),
        (r"^/_info$", info_view),
    ]


@hookimpl
def startup(datasette):
    """
    Run on Datasette startup.

    Loads (or indexes) the suggestion store before the first request.
    """
    get_service(datasette)
