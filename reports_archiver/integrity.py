"""
Integrity check of a freshly extracted execution against the remote copy.

The local folder is accepted only if its total size in bytes is exactly the
size the remote server reports. Any problem getting the remote size fails the
check.
"""

import logging
from pathlib import Path

from reports_client.client import RemoteReportClient
from reports_common.models import execution_folder_name

logger = logging.getLogger(__name__)


def directory_size(path: Path) -> int:
    """Total size in bytes of all regular files under path (0 if it doesn't exist)."""
    if not path.is_dir():
        return 0
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


def parse_remote_size(response: str | None) -> int | None:
    """
    Parse the size reported by the remote server.

    Returns:
        The size in bytes, or None if it is empty, unparsable or not positive
    """
    if response is None or not response.strip():
        logger.error("Failed to get response from remote server about size of execution")
        return None
    try:
        remote_size = int(response.strip())
    except ValueError:
        logger.error(f"Remote server returned an unparsable size: {response!r}")
        return None
    if remote_size <= 0:
        logger.error(f"Failed to get remote execution folder size. Received {remote_size}")
        return None
    return remote_size


def check_reports_integrity(
    client: RemoteReportClient, reports_folder: Path, execution_id: int
) -> bool:
    """
    Check that the local execution folder matches the remote one.

    Args:
        client: Client of the remote reports server
        reports_folder: Local reports root
        execution_id: Execution id

    Returns:
        True if both execution folders have the same size
    """
    remote_size = parse_remote_size(
        client.get_string(f"/api/reports/{execution_id}/size")
    )
    if remote_size is None:
        return False
    logger.debug(f"Remote execution folder size is {remote_size} bytes")

    local_size = directory_size(reports_folder / execution_folder_name(execution_id))
    if local_size != remote_size:
        logger.error(
            f"Local execution folder size ({local_size}) of execution {execution_id} "
            f"is not equal to remote size ({remote_size})"
        )
        return False
    return True
