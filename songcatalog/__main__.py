"""
Song Catalog - Entry Point

Run with: python -m songcatalog
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from songcatalog import __version__
from songcatalog.config import CatalogConfig, load_config
from songcatalog.server import CatalogServer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="songcatalog",
        description="Song Catalog - songs, audio files and catalog statistics over HTTP",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML configuration file",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to (default: 0.0.0.0)",
    )

    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=None,
        help="HTTP port (default: 8000)",
    )

    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="SQLite database file (default: songcatalog.sqlite3)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CatalogConfig:
    """Assemble configuration from file, environment and command line."""
    config = load_config(args.config)
    return config.with_overrides(host=args.host, port=args.port, db_path=args.db_path)


async def run_server(config: CatalogConfig) -> None:
    """Start and run the catalog server."""
    server = CatalogServer(config)
    await server.run()


def main() -> int:
    """Main entry point for the application."""
    args = parse_args()
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)
    logger.info("Starting Song Catalog...")

    try:
        config = build_config(args)
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
