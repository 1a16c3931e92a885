"""
Reports Common module.

This module contains shared domain models, configuration and interfaces used
across the archiver components (archiver, persistence, client, server).

The common module has no dependencies on other reports_* modules, making it
a pure domain layer that can be imported by any component.
"""

from .config import ArchiverConfig
from .models import ArchiveHistoryRecord, ExecutionMetadata
from .persistency import MetadataPersistency

__all__ = [
    "ArchiveHistoryRecord",
    "ArchiverConfig",
    "ExecutionMetadata",
    "MetadataPersistency",
]
