"""Main entry point for the radio catalog intake."""

import argparse
import logging
import sys
from pathlib import Path

import httpx

from radiocatalog.core.classifier import SegmentClassifier
from radiocatalog.core.config import load_config
from radiocatalog.core.database import Catalog
from radiocatalog.core.errors import CatalogError, FetchError
from radiocatalog.core.intake import IntakeOrchestrator
from radiocatalog.core.segment_filter import create_segment_filter
from radiocatalog.utils.logger import setup_logging
from soundmatch.client import OracleClient
from soundmatch.matcher import MatchConsolidator


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="radiocatalog",
        description="Catalog the audio of a live HLS radio stream",
    )
    parser.add_argument("stream_url", help="URL of the HLS media playlist")
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Path to config file (default: first of config/config.yaml, "
        "~/.config/radiocatalog/config.yaml, ~/.radiocatalog/config.yaml)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Application entry point."""
    args = parse_args(argv)
    try:
        # Load configuration
        config = load_config(args.config)

        # Setup logging
        setup_logging(config.logging)

        matching = config.matching
        consolidator = MatchConsolidator(
            single_threshold=matching.single_threshold,
            pair_min=matching.pair_min,
            pair_max=matching.pair_max,
        )

        with (
            Catalog(config.catalog.path) as catalog,
            OracleClient(
                config.oracle.base_url,
                api_key=config.oracle.api_key,
                timeout=config.oracle.timeout,
            ) as oracle,
            httpx.Client(timeout=config.stream.request_timeout, follow_redirects=True) as http,
        ):
            stats = catalog.get_stats()
            logging.info(
                f"[Main] Catalog {config.catalog.path}: {stats.total_tracks} tracks, "
                f"{stats.total_matches} matches"
            )

            orchestrator = IntakeOrchestrator(
                args.stream_url,
                config,
                catalog,
                oracle,
                create_segment_filter(config.filter),
                http,
                classifier=SegmentClassifier(),
                consolidator=consolidator,
            )
            orchestrator.run()

    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except (FetchError, CatalogError) as e:
        logging.critical(f"[Main] {e}")
        print(f"Fatal error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logging.info("[Main] Interrupted")
    except Exception as e:
        print(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
