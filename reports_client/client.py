"""
HTTP client for the remote reports server.

Every call is bounded by a timeout. Network errors and HTTP error statuses are
logged and reported as None (or False for delete) so callers can treat them as
ordinary failure results.
"""

import logging
import tempfile
from pathlib import Path
from typing import Any

import requests

from reports_common.models import ExecutionMetadata

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class RemoteReportClient:
    """Thin client exposing string, JSON, file and delete verbs on a reports server."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        download_dir: Path | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the remote reports server
            timeout: Seconds before any single request is abandoned
            download_dir: Where downloaded files are written (default: system temp dir)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.download_dir = download_dir or Path(tempfile.gettempdir())

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get_json(self, path: str) -> dict[int, ExecutionMetadata] | None:
        """
        Fetch a map of execution id to execution metadata.

        Args:
            path: Path of the executions index (e.g. "/reports/meta.json")

        Returns:
            Map of ids to ExecutionMetadata, or None if the request or parsing failed
        """
        try:
            response = requests.get(self._url(path), timeout=self.timeout)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
            return {
                int(key): ExecutionMetadata.from_dict(value)
                for key, value in data.items()
            }
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to get {path} from remote server: {e}")
            return None
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Remote server returned malformed executions from {path}: {e}")
            return None

    def get_string(self, path: str) -> str | None:
        """
        Fetch a scalar value as text.

        Args:
            path: Path of the resource (e.g. "/api/reports/12/size")

        Returns:
            Response body stripped of surrounding whitespace, or None on failure
        """
        try:
            response = requests.get(self._url(path), timeout=self.timeout)
            response.raise_for_status()
            return response.text.strip()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to get {path} from remote server: {e}")
            return None

    def get_file(self, path: str, destination_name: str) -> Path | None:
        """
        Download a file into the download directory.

        Args:
            path: Path of the file on the remote server
            destination_name: File name to save the download as

        Returns:
            Path of the downloaded file, or None on failure. Partial downloads are removed.
        """
        destination = self.download_dir / destination_name
        try:
            with requests.get(
                self._url(path), stream=True, timeout=self.timeout
            ) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            return destination
        except (requests.exceptions.RequestException, OSError) as e:
            logger.error(f"Failed to download {path} to {destination}: {e}")
            destination.unlink(missing_ok=True)
            return None

    def delete(self, path: str) -> bool:
        """
        Request deletion of a remote resource.

        Args:
            path: Path of the resource, including any query string

        Returns:
            True if the server accepted the request
        """
        try:
            response = requests.delete(self._url(path), timeout=self.timeout)
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to delete {path} on remote server: {e}")
            return False
