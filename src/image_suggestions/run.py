"""
CLI runner for image-suggestions.

Usage:
    python -m image_suggestions.run [OPTIONS]

    # Load every <wikiid>.tsv file in a directory
    python -m image_suggestions.run --data-dir ./static

    # Load (or reload) a single file
    python -m image_suggestions.run --file ./static/arwiki.tsv

    # Show row counts for the partitions already in the store
    python -m image_suggestions.run --counts
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import SuggestionsConfig
from .errors import SuggestionError
from .ingest import IngestionPipeline
from .row_counts import RowCountIndex
from .store import SuggestionStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("image-suggestions")


def ingest(
    config: SuggestionsConfig,
    data_dir: Path | None,
    file: Path | None,
    partition: str | None = None,
) -> int:
    """Load results files into the store. Returns the number loaded."""
    store = SuggestionStore(config.db_path)
    index = RowCountIndex()
    pipeline = IngestionPipeline(
        store,
        index,
        chunk_size=config.ingest.chunk_size,
        languages=config.ingest.languages,
    )

    if file is not None:
        result = pipeline.ingest_file(file, partition)
        results = [result]
    else:
        results = pipeline.ingest_directory(data_dir)

    for result in results:
        logger.info(
            f"  {result.partition}: {result.pages} pages, "
            f"{result.pages_with_suggestions} with suggestions"
        )
    return len(results)


def show_counts(config: SuggestionsConfig) -> None:
    """Print row counts for every partition in the store."""
    store = SuggestionStore(config.db_path)
    index = RowCountIndex()
    partitions = index.load(store)
    if not partitions:
        print("No partitions loaded.")
        return
    for partition in partitions:
        counts = index.counts(partition)
        print(f"{partition}\t{counts.max_row_num}\t{counts.max_row_num_ima}")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="image-suggestions: load and inspect algorithm results",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Load all results files configured in datasette.yaml
    python -m image_suggestions.run --config datasette.yaml --data-dir static

    # Reload one wiki
    python -m image_suggestions.run --file static/enwiki.tsv

    # Show what the store holds
    python -m image_suggestions.run --counts
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=Path("datasette.yaml"),
        help="Path to config file (default: datasette.yaml)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Override database path from config",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--data-dir",
        type=Path,
        help="Load every recognized .tsv file in this directory",
    )
    source.add_argument(
        "--file",
        type=Path,
        help="Load a single .tsv file",
    )
    parser.add_argument(
        "--partition",
        type=str,
        help="Partition id for --file (default: derived from the file name)",
    )
    parser.add_argument(
        "--counts",
        action="store_true",
        help="Print per-partition row counts",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load config
    config = SuggestionsConfig.from_yaml(args.config)
    if args.db:
        config.db_path = args.db

    logger.info(f"Config loaded from {args.config}")
    logger.info(f"Database: {config.db_path}")

    data_dir = args.data_dir
    if data_dir is None and args.file is None and not args.counts:
        data_dir = config.ingest.data_dir

    try:
        if data_dir is not None or args.file is not None:
            loaded = ingest(config, data_dir, args.file, args.partition)
            if loaded == 0:
                logger.error("No partitions were loaded")
                return 1
        if args.counts:
            show_counts(config)
    except SuggestionError as e:
        logger.error(f"{e.title}: {e.detail}")
        return 1

    if data_dir is None and args.file is None and not args.counts:
        # Nothing to do: show help
        parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
