"""
Reports Persistence module.

This module contains the database implementation for archived execution
metadata. Currently supports SQLite, but can be extended to PostgreSQL, etc.

The persistence layer depends on reports_common for domain models and
interfaces, and is used by both reports_archiver and reports_server.
"""

from .sqlite_persistency import SQLiteMetadataPersistency

__all__ = ["SQLiteMetadataPersistency"]
