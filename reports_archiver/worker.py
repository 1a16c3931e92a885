"""
Per-execution archive pipeline.

Each execution goes through fetch -> extract -> verify -> commit -> remote
cleanup. A failure at any step before the commit leaves the local side as it
was before the attempt: the extracted folder is rolled back and the downloaded
zip file is always removed.
"""

import asyncio
import logging
import shutil
import zipfile
from collections.abc import Generator
from concurrent.futures import Executor
from contextlib import contextmanager
from functools import partial
from pathlib import Path

from reports_client.client import RemoteReportClient
from reports_common.config import ArchiverConfig
from reports_common.models import (
    ExecutionMetadata,
    execution_archive_name,
    execution_folder_name,
)
from reports_common.persistency import MetadataPersistency

from .integrity import check_reports_integrity

logger = logging.getLogger(__name__)


@contextmanager
def temporary_archive(archive_file: Path) -> Generator[Path, None, None]:
    """Yield a downloaded archive and delete it on exit, whatever the outcome."""
    try:
        yield archive_file
    finally:
        try:
            archive_file.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete archive file {archive_file}: {e}")


class ArchiveWorker:
    """
    Archives single executions from the remote server into local storage.

    Blocking network and filesystem work runs on the given executor so the
    event loop (and the scheduler running on it) is never blocked.
    """

    def __init__(
        self,
        config: ArchiverConfig,
        client: RemoteReportClient,
        persistency: MetadataPersistency,
        executor: Executor | None = None,
    ):
        """
        Initialize the worker.

        Args:
            config: Archiver configuration
            client: Client of the remote reports server
            persistency: Local execution metadata store
            executor: Pool for blocking work (default: the loop's default executor)
        """
        self.config = config
        self.client = client
        self.persistency = persistency
        self.executor = executor

    @property
    def reports_folder(self) -> Path:
        return self.config.reports_folder

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, partial(func, *args))

    async def archive(self, execution: ExecutionMetadata) -> bool:
        """
        Fully archive one execution.

        Args:
            execution: Eligible execution to archive

        Returns:
            True if the execution was verified and committed locally
        """
        try:
            return await self._archive(execution)
        except Exception as e:
            logger.error(f"Failed to archive execution {execution.id}: {e}", exc_info=True)
            return False

    async def _archive(self, execution: ExecutionMetadata) -> bool:
        archive_file = await self._run_blocking(self._fetch_archive, execution)
        if archive_file is None:
            return False

        with temporary_archive(archive_file):
            if not await self._run_blocking(self._extract, archive_file, execution.id):
                await self._run_blocking(self._delete_execution_folder, execution.id)
                return False

            verified = await self._run_blocking(
                check_reports_integrity, self.client, self.reports_folder, execution.id
            )
            if not verified:
                logger.error(
                    f"Retrieving reports of execution {execution.id} was unsuccessful. "
                    "Rolling back and deleting local execution"
                )
                await self._run_blocking(self._delete_execution_folder, execution.id)
                return False

            try:
                await self._add_execution_to_persistency(execution)
            except Exception:
                await self._run_blocking(self._delete_execution_folder, execution.id)
                raise

        # Committed locally: a failing remote delete doesn't undo the archive
        try:
            await self._run_blocking(self._delete_remote_execution, execution)
        except Exception as e:
            logger.error(
                f"Failed to delete execution {execution.id} from the remote server: {e}",
                exc_info=True,
            )
        return True

    def _fetch_archive(self, execution: ExecutionMetadata) -> Path | None:
        """
        Get the execution reports as a zip file from the remote server.

        Returns:
            Path of the downloaded zip file, or None if the download failed
        """
        archive_file = self.client.get_file(
            f"/api/reports/{execution.id}", execution_archive_name(execution.id)
        )
        if archive_file is None:
            logger.error(f"Failed to get execution zip file for execution {execution.id}")
            return None
        logger.debug(f"Got archived reports file {archive_file.name}")
        return archive_file

    def _extract(self, archive_file: Path, execution_id: int) -> bool:
        """
        Extract the archive into the local reports folder.

        The archive must hold nothing but the execution folder, so extraction
        never touches files of other executions and rollback can undo it.

        Returns:
            True if extraction succeeded
        """
        prefix = execution_folder_name(execution_id) + "/"
        try:
            with zipfile.ZipFile(archive_file) as zf:
                foreign = [
                    name
                    for name in zf.namelist()
                    if not name.startswith(prefix) or ".." in Path(name).parts
                ]
                if foreign:
                    logger.error(
                        f"Archive {archive_file} holds entries outside {prefix}: {foreign}"
                    )
                    return False
                zf.extractall(self.reports_folder)
            return True
        except (zipfile.BadZipFile, OSError) as e:
            logger.error(f"Couldn't extract the file {archive_file}: {e}")
            return False

    def _delete_execution_folder(self, execution_id: int) -> None:
        """Delete the local execution folder. Failures are logged, not raised."""
        folder_to_delete = self.reports_folder / execution_folder_name(execution_id)
        if not folder_to_delete.exists():
            return
        logger.debug(f"Deleting execution folder {folder_to_delete}")
        try:
            shutil.rmtree(folder_to_delete)
        except OSError as e:
            logger.error(f"Failed to delete folder {folder_to_delete}: {e}")

    async def _add_execution_to_persistency(self, execution: ExecutionMetadata) -> None:
        logger.debug(f"Adding execution {execution.id} to persistency")
        execution.dirty = True
        await self.persistency.add(execution)

    def _delete_remote_execution(self, execution: ExecutionMetadata) -> None:
        """Ask the remote server to delete the execution, if configured to."""
        if not self.config.delete_after_archive:
            return
        from_elastic = str(self.config.delete_from_elastic).lower()
        logger.debug(
            f"About to delete execution {execution.id} from the remote server. "
            f"Delete from Elastic: {from_elastic}"
        )
        self.client.delete(f"/api/executions/{execution.id}?fromElastic={from_elastic}")
