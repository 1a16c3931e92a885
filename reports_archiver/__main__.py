"""
Standalone entrypoint for running the reports archiver independently.

This allows the archiver to run as a separate process from the reports
server, periodically moving finished executions into local storage.

Usage:
    python -m reports_archiver [OPTIONS]
    reports-archiver [OPTIONS]  (after pip install)

Configuration is read from the ARCHIVER_* environment variables (see
reports_common.config). Command-line arguments override them.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from reports_archiver.archiver import ReportsArchiver
from reports_common.config import ArchiverConfig
from reports_common.models import REPORTS_FOLDER_NAME
from reports_persistence.sqlite_persistency import SQLiteMetadataPersistency

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Reports Archiver - move finished executions from a remote reports server to local storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  ARCHIVER_DIFIDO_SERVER         Remote reports server URL
  ARCHIVER_ENABLED               Enable the archiver (default: false)
  ARCHIVER_MIN_REPORTS_AGE       Minimum execution age in days (default: 5)
  ARCHIVER_MAX_TO_ARCHIVE        Maximum executions per cycle (default: 10)
  ARCHIVER_DELETE_AFTER_ARCHIVE  Delete remote executions after archiving
  ARCHIVER_DELETE_FROM_ELASTIC   Also delete from the remote search index
  ARCHIVER_INTERVAL              Seconds between archive cycles (default: 60)
  ARCHIVER_WORKERS               Worker pool size (default: 4)
  ARCHIVER_REQUEST_TIMEOUT       Seconds per remote call (default: 60)
  ARCHIVER_DB_PATH               Local database path (default: archiver.db)
  DOC_ROOT_FOLDER                Local document root (default: docRoot)

Note: Command-line arguments override environment variables.

Examples:
  # Archive from a remote server every 10 minutes
  reports-archiver --server http://difido:9000/ --interval 600

  # Enable debug logging
  reports-archiver --log-level DEBUG
        """,
    )

    parser.add_argument(
        "--server",
        type=str,
        default=None,
        help="Remote reports server URL (default: ARCHIVER_DIFIDO_SERVER env)",
    )

    parser.add_argument(
        "--doc-root",
        type=str,
        default=None,
        help="Local document root holding the reports folder (default: DOC_ROOT_FOLDER env)",
    )

    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="Path to SQLite database file (default: ARCHIVER_DB_PATH env or archiver.db)",
    )

    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between archive cycles (default: ARCHIVER_INTERVAL env or 60)",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Size of the archive worker pool (default: ARCHIVER_WORKERS env or 4)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ArchiverConfig:
    """
    Build the archiver configuration from the environment and CLI args.

    Args:
        args: Parsed command-line arguments

    Returns:
        Immutable archiver configuration
    """
    config = ArchiverConfig.from_env()

    interval = args.interval
    if interval is not None and interval <= 0:
        logger.warning(
            f"Invalid interval={interval}, using {config.archive_interval}"
        )
        interval = None

    workers = args.workers
    if workers is not None and workers <= 0:
        logger.warning(f"Invalid workers={workers}, using {config.worker_pool_size}")
        workers = None

    return config.with_overrides(
        difido_server=args.server,
        reports_folder=Path(args.doc_root) / REPORTS_FOLDER_NAME
        if args.doc_root
        else None,
        db_path=args.db_path,
        archive_interval=interval,
        worker_pool_size=workers,
    )


async def run_archiver(config: ArchiverConfig) -> None:
    """
    Initialize and run the reports archiver.

    Args:
        config: Archiver configuration

    This function runs the archive loop until interrupted by SIGINT or SIGTERM.
    """
    logger.info("Starting Reports Archiver")
    logger.info(f"  Remote server: {config.difido_server}")
    logger.info(f"  Reports folder: {config.reports_folder}")
    logger.info(f"  Database: {config.db_path}")
    logger.info(f"  Archive interval: {config.archive_interval}s")
    logger.info(f"  Enabled: {config.enabled}")

    persistency = SQLiteMetadataPersistency(config.db_path)
    await persistency.initialize()
    logger.info("Database initialized")

    archiver = ReportsArchiver(config, persistency)

    # Set up signal handlers for graceful shutdown
    shutdown_event = asyncio.Event()

    def signal_handler(sig: Any, _frame: Any) -> None:
        """Handle shutdown signals."""
        logger.info(f"Received signal {sig}, initiating graceful shutdown...")
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await archiver.start()
        await shutdown_event.wait()
    except Exception as e:
        logger.error(f"Archiver error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Stopping archiver...")
        await archiver.stop()
        logger.info("Closing database connections...")
        await persistency.close()
        logger.info("Archiver stopped cleanly")


def main() -> int:
    """
    Main entrypoint for the archiver.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        asyncio.run(run_archiver(build_config(args)))
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
