"""
Data models for execution reports and archive history.

These models represent the domain objects exchanged between the remote
reports server, the archiver and the local persistency, independent of the
underlying transport or storage mechanism.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Folder under the document root that holds all execution reports
REPORTS_FOLDER_NAME = "reports"

# Each execution is stored in "<prefix>_<id>" and downloaded as "<prefix>_<id>.zip"
EXECUTION_REPORT_FOLDER_PREFIX = "execution"

DATE_FORMATS = ("%Y/%m/%d", "%Y-%m-%d")


def execution_folder_name(execution_id: int) -> str:
    """Name of the local folder holding the reports of an execution."""
    return f"{EXECUTION_REPORT_FOLDER_PREFIX}_{execution_id}"


def execution_archive_name(execution_id: int) -> str:
    """Name of the zip file an execution is downloaded as."""
    return f"{execution_folder_name(execution_id)}.zip"


def parse_execution_date(value: str | None) -> datetime | None:
    """
    Parse an execution date string.

    Args:
        value: Date as reported by the server (e.g. "2024/01/15")

    Returns:
        Parsed datetime, or None if the value is blank or unparsable
    """
    if value is None or not value.strip():
        return None
    value = value.strip()
    for date_format in DATE_FORMATS:
        try:
            return datetime.strptime(value, date_format)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        # Compare in local naive time, like the plain date formats
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


@dataclass
class ExecutionMetadata:
    """
    Represents one test execution run tracked by a reports server.

    Executions are created remotely while they run (active=True) and become
    candidates for archiving once they are finished. The dirty flag marks a
    local copy that still needs to be flushed by the persistence layer.
    """

    id: int
    date: str | None = None  # "YYYY/MM/DD" as reported by the server
    time: str | None = None  # "HH:MM:SS"
    description: str | None = None
    folder_name: str | None = None
    uri: str | None = None
    num_of_tests: int = 0
    active: bool = False
    locked: bool = False
    dirty: bool = False

    def parsed_date(self) -> datetime | None:
        """Return the execution date, or None if blank or unparsable."""
        return parse_execution_date(self.date)

    def to_dict(self) -> dict[str, Any]:
        """Convert execution to the server's meta.json format."""
        return {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "description": self.description,
            "folderName": self.folder_name,
            "uri": self.uri,
            "numOfTests": self.num_of_tests,
            "active": self.active,
            "locked": self.locked,
            "dirty": self.dirty,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionMetadata":
        """Create execution from the server's meta.json format."""
        return cls(
            id=int(data["id"]),
            date=data.get("date"),
            time=data.get("time"),
            description=data.get("description"),
            folder_name=data.get("folderName"),
            uri=data.get("uri"),
            num_of_tests=int(data.get("numOfTests") or 0),
            active=bool(data.get("active", False)),
            locked=bool(data.get("locked", False)),
            dirty=bool(data.get("dirty", False)),
        )


@dataclass(frozen=True)
class ArchiveHistoryRecord:
    """
    Summary of one archive cycle that had executions to archive.

    archived_ids holds every execution the cycle attempted to archive;
    succeeded_ids is the subset that was verified and committed locally.
    """

    remote_executions: int
    archived_ids: tuple[int, ...]
    succeeded_ids: tuple[int, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def archived_executions(self) -> int:
        return len(self.archived_ids)

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary format (for the info endpoint)."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "overall_remote_executions": self.remote_executions,
            "archived_executions": self.archived_executions,
            "archived_execution_ids": list(self.archived_ids),
            "succeeded_execution_ids": list(self.succeeded_ids),
        }
