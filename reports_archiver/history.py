"""
Bounded history of archive cycles.
"""

import threading

from reports_common.models import ArchiveHistoryRecord

# The archiver keeps records of the last archive cycles only
MAX_RECORDS_IN_HISTORY = 10


class ArchiveHistory:
    """
    Fixed-capacity circular buffer of archive history records.

    Appending to a full buffer overwrites the oldest record. Reads and writes
    are guarded by a lock so the info and health endpoints can take snapshots
    while a cycle is recording.
    """

    def __init__(self, capacity: int = MAX_RECORDS_IN_HISTORY):
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._records: list[ArchiveHistoryRecord | None] = [None] * capacity
        self._head = 0  # index of the oldest record
        self._count = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        with self._lock:
            return self._count

    def append(self, record: ArchiveHistoryRecord) -> None:
        """Add a record, evicting the oldest one if the buffer is full."""
        with self._lock:
            if self._count < self.capacity:
                self._records[(self._head + self._count) % self.capacity] = record
                self._count += 1
            else:
                self._records[self._head] = record
                self._head = (self._head + 1) % self.capacity

    def snapshot(self) -> list[ArchiveHistoryRecord]:
        """Return the stored records, oldest first."""
        with self._lock:
            return [
                self._records[(self._head + i) % self.capacity]
                for i in range(self._count)
            ]
