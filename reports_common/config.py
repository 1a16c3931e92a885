"""
Archiver configuration.

The configuration is read once, when the archiver is constructed, and is
immutable afterwards. Changes require a restart.

Environment Variables:
    ARCHIVER_DIFIDO_SERVER: Remote reports server URL (default: http://localhost:9000/)
    ARCHIVER_ENABLED: Enable the archiver (default: false)
    ARCHIVER_MIN_REPORTS_AGE: Minimum execution age in days (default: 5)
    ARCHIVER_MAX_TO_ARCHIVE: Maximum executions archived per cycle (default: 10)
    ARCHIVER_DELETE_AFTER_ARCHIVE: Delete remote execution after archiving (default: false)
    ARCHIVER_DELETE_FROM_ELASTIC: Also delete from the remote search index (default: false)
    ARCHIVER_INTERVAL: Seconds between archive cycles (default: 60)
    ARCHIVER_WORKERS: Size of the archive worker pool (default: 4)
    ARCHIVER_REQUEST_TIMEOUT: Seconds before a remote call is abandoned (default: 60)
    ARCHIVER_DB_PATH: Local persistency database (default: archiver.db)
    DOC_ROOT_FOLDER: Local document root holding the reports folder (default: docRoot)
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path

from .models import REPORTS_FOLDER_NAME

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _read_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning(f"Invalid {name}={raw}, using default {default}")
    return default


def _read_number(environ: Mapping[str, str], name: str, default, cast, minimum):
    raw = environ.get(name)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw}, using default {default}")
        return default
    if value < minimum:
        logger.warning(f"Invalid {name}={value}, using default {default}")
        return default
    return value


@dataclass(frozen=True)
class ArchiverConfig:
    """
    Process-wide archiver settings.

    The enabled flag here is the administrative setting. The archiver keeps
    its own runtime flag, which it may clear when local storage fails.
    """

    difido_server: str = "http://localhost:9000/"
    enabled: bool = False
    min_reports_age_days: int = 5
    reports_folder: Path = Path("docRoot") / REPORTS_FOLDER_NAME
    max_to_archive: int = 10
    delete_after_archive: bool = False
    delete_from_elastic: bool = False
    archive_interval: float = 60.0
    worker_pool_size: int = 4
    request_timeout: float = 60.0
    db_path: str = "archiver.db"

    @property
    def min_reports_age_millis(self) -> int:
        return int(timedelta(days=self.min_reports_age_days).total_seconds() * 1000)

    def with_overrides(self, **changes) -> "ArchiverConfig":
        """Return a copy with the given fields replaced (None values are ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ArchiverConfig":
        """
        Build the configuration from environment variables.

        Invalid values are logged and replaced by their defaults.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            Immutable archiver configuration
        """
        if environ is None:
            environ = os.environ
        defaults = cls()
        doc_root = environ.get("DOC_ROOT_FOLDER", "docRoot")
        return cls(
            difido_server=environ.get("ARCHIVER_DIFIDO_SERVER", defaults.difido_server),
            enabled=_read_bool(environ, "ARCHIVER_ENABLED", defaults.enabled),
            min_reports_age_days=_read_number(
                environ,
                "ARCHIVER_MIN_REPORTS_AGE",
                defaults.min_reports_age_days,
                int,
                0,
            ),
            reports_folder=Path(doc_root) / REPORTS_FOLDER_NAME,
            max_to_archive=_read_number(
                environ, "ARCHIVER_MAX_TO_ARCHIVE", defaults.max_to_archive, int, 0
            ),
            delete_after_archive=_read_bool(
                environ, "ARCHIVER_DELETE_AFTER_ARCHIVE", defaults.delete_after_archive
            ),
            delete_from_elastic=_read_bool(
                environ, "ARCHIVER_DELETE_FROM_ELASTIC", defaults.delete_from_elastic
            ),
            archive_interval=_read_number(
                environ, "ARCHIVER_INTERVAL", defaults.archive_interval, float, 0.1
            ),
            worker_pool_size=_read_number(
                environ, "ARCHIVER_WORKERS", defaults.worker_pool_size, int, 1
            ),
            request_timeout=_read_number(
                environ,
                "ARCHIVER_REQUEST_TIMEOUT",
                defaults.request_timeout,
                float,
                0.1,
            ),
            db_path=environ.get("ARCHIVER_DB_PATH", defaults.db_path),
        )
