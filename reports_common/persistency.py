"""
Abstract persistency interface for archived execution metadata.

This module defines the contract that any local store must follow, allowing
easy swapping between SQLite, PostgreSQL, an in-memory store, etc.
"""

from abc import ABC, abstractmethod

from .models import ExecutionMetadata


class MetadataPersistency(ABC):
    """
    Abstract base class for local execution metadata storage.

    Implementations must tolerate concurrent add() calls from several archive
    workers and handle their own connection management.
    """

    @abstractmethod
    async def add(self, execution: ExecutionMetadata) -> None:
        """
        Store an execution, replacing any record with the same id.

        Args:
            execution: Execution metadata to persist
        """
        pass

    @abstractmethod
    async def get_all(self) -> list[ExecutionMetadata]:
        """
        List all locally stored executions.

        Returns:
            List of ExecutionMetadata ordered by id
        """
        pass

    @abstractmethod
    async def get(self, execution_id: int) -> ExecutionMetadata | None:
        """
        Retrieve one execution by id.

        Args:
            execution_id: Id of the execution

        Returns:
            ExecutionMetadata if found, None otherwise
        """
        pass

    @abstractmethod
    async def remove(self, execution_id: int) -> bool:
        """
        Remove an execution from the store.

        Args:
            execution_id: Id of the execution

        Returns:
            True if a record was removed
        """
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the store (create tables, etc.).

        Called once at application startup.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Close connections and cleanup resources.

        Called at application shutdown.
        """
        pass
