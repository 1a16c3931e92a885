"""
SQLite implementation of the execution metadata persistency.

Uses aiosqlite for async operations. Writes are serialized with an asyncio
lock so concurrent archive workers never interleave on the shared connection.
Can be easily replaced with PostgreSQL/MySQL implementations.
"""

import asyncio

import aiosqlite

from reports_common.models import ExecutionMetadata
from reports_common.persistency import MetadataPersistency

_COLUMNS = (
    "id, date, time, description, folder_name, uri, num_of_tests, active, locked, dirty"
)


def _row_to_execution(row: tuple) -> ExecutionMetadata:
    (
        execution_id,
        date,
        time,
        description,
        folder_name,
        uri,
        num_of_tests,
        active,
        locked,
        dirty,
    ) = row
    return ExecutionMetadata(
        id=execution_id,
        date=date,
        time=time,
        description=description,
        folder_name=folder_name,
        uri=uri,
        num_of_tests=num_of_tests or 0,
        active=bool(active),
        locked=bool(locked),
        dirty=bool(dirty),
    )


class SQLiteMetadataPersistency(MetadataPersistency):
    """
    SQLite-based execution metadata storage.

    Uses a single database file with one table:
    - executions: archived execution metadata keyed by execution id
    """

    def __init__(self, db_path: str = "archiver.db"):
        """
        Initialize the SQLite persistency.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
        return self._connection

    async def initialize(self) -> None:
        """
        Create database tables if they don't exist.

        Schema:
        - executions table: metadata of archived executions
        """
        conn = await self._get_connection()

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS executions (
                id INTEGER PRIMARY KEY,
                date TEXT,
                time TEXT,
                description TEXT,
                folder_name TEXT,
                uri TEXT,
                num_of_tests INTEGER NOT NULL DEFAULT 0,
                active INTEGER NOT NULL DEFAULT 0,
                locked INTEGER NOT NULL DEFAULT 0,
                dirty INTEGER NOT NULL DEFAULT 0
            )
        """)

        await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def add(self, execution: ExecutionMetadata) -> None:
        """
        Store an execution, replacing any record with the same id.

        Args:
            execution: Execution metadata to persist
        """
        async with self._lock:
            conn = await self._get_connection()

            await conn.execute(
                f"""
                INSERT OR REPLACE INTO executions ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    execution.id,
                    execution.date,
                    execution.time,
                    execution.description,
                    execution.folder_name,
                    execution.uri,
                    execution.num_of_tests,
                    1 if execution.active else 0,
                    1 if execution.locked else 0,
                    1 if execution.dirty else 0,
                ),
            )
            await conn.commit()

    async def get_all(self) -> list[ExecutionMetadata]:
        """
        List all stored executions.

        Returns:
            List of ExecutionMetadata ordered by id
        """
        conn = await self._get_connection()

        cursor = await conn.execute(f"SELECT {_COLUMNS} FROM executions ORDER BY id")
        rows = await cursor.fetchall()

        return [_row_to_execution(row) for row in rows]

    async def get(self, execution_id: int) -> ExecutionMetadata | None:
        """
        Retrieve one execution by id.

        Args:
            execution_id: Id of the execution

        Returns:
            ExecutionMetadata if found, None otherwise
        """
        conn = await self._get_connection()

        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM executions WHERE id = ?", (execution_id,)
        )
        row = await cursor.fetchone()

        if row is None:
            return None
        return _row_to_execution(row)

    async def remove(self, execution_id: int) -> bool:
        """
        Remove an execution from the store.

        Args:
            execution_id: Id of the execution

        Returns:
            True if a record was removed
        """
        async with self._lock:
            conn = await self._get_connection()

            cursor = await conn.execute(
                "DELETE FROM executions WHERE id = ?", (execution_id,)
            )
            await conn.commit()
            return cursor.rowcount > 0
