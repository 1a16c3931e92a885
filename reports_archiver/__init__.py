"""
Reports Archiver module.

This module contains the archive orchestrator and its building blocks: the
execution filter, the integrity verifier, the per-execution worker and the
bounded archive history.

The archiver can run as a separate process (python -m reports_archiver) or be
hosted by the reports server, which exposes its health and history.
"""

from .archiver import ReportsArchiver
from .filter import select_executions_to_archive
from .history import MAX_RECORDS_IN_HISTORY, ArchiveHistory
from .integrity import check_reports_integrity, directory_size
from .worker import ArchiveWorker

__all__ = [
    "MAX_RECORDS_IN_HISTORY",
    "ArchiveHistory",
    "ArchiveWorker",
    "ReportsArchiver",
    "check_reports_integrity",
    "directory_size",
    "select_executions_to_archive",
]
