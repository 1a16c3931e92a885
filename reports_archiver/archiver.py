"""
Reports archiver: periodic move of finished executions from a remote reports
server into local storage.

A background loop triggers one archive cycle per interval. Each cycle:
1. Makes sure the local reports folder exists (disabling the archiver if it can't)
2. Gets all the remote executions
3. Selects the finished, old enough executions that are not archived yet
4. Archives them concurrently on a bounded worker pool
5. Records the cycle in a bounded history
"""

import asyncio
import logging
import shutil
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from reports_client.client import RemoteReportClient
from reports_common.config import ArchiverConfig
from reports_common.models import (
    REPORTS_FOLDER_NAME,
    ArchiveHistoryRecord,
    ExecutionMetadata,
)
from reports_common.persistency import MetadataPersistency

from .filter import select_executions_to_archive
from .history import ArchiveHistory
from .worker import ArchiveWorker

logger = logging.getLogger(__name__)


class ReportsArchiver:
    """
    Orchestrates archive cycles and reports on their outcome.

    The administrative enabled flag comes from the configuration. At runtime
    the archiver may disable itself when local storage is unusable; it then
    stays disabled until the process is restarted.
    """

    def __init__(
        self,
        config: ArchiverConfig,
        persistency: MetadataPersistency,
        client: RemoteReportClient | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        """
        Initialize the archiver.

        Args:
            config: Archiver configuration, read once
            persistency: Local execution metadata store
            client: Client of the remote reports server (default: built from config,
                    downloading into a private temporary directory)
            executor: Worker pool for blocking work (default: owned pool of
                      config.worker_pool_size threads)
        """
        self.config = config
        self.persistency = persistency
        self._download_dir: Path | None = None
        if client is None:
            self._download_dir = Path(tempfile.mkdtemp(prefix="archiver"))
            client = RemoteReportClient(
                config.difido_server,
                timeout=config.request_timeout,
                download_dir=self._download_dir,
            )
        self.client = client
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=config.worker_pool_size, thread_name_prefix="archiver"
        )
        self.worker = ArchiveWorker(config, self.client, persistency, self.executor)
        self.history = ArchiveHistory()

        self._enabled = threading.Event()
        self._disabled_reason: str | None = None
        if config.enabled:
            self._enabled.set()

        self._cycle_task: asyncio.Task | None = None
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled.is_set()

    def disable(self, reason: str) -> None:
        """Disable the archiver for the rest of the process lifetime."""
        logger.error(f"Disabling reports archiver: {reason}")
        self._disabled_reason = reason
        self._enabled.clear()

    async def start(self) -> None:
        """Start the background archive loop."""
        if self._running:
            logger.warning("Archiver already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            f"Reports archiver started (enabled={self.enabled}, "
            f"interval={self.config.archive_interval}s)"
        )

    async def stop(self) -> None:
        """Stop the loop, wait for an in-flight cycle and release the worker pool and download directory."""
        if self._running:
            logger.info("Stopping reports archiver...")
            self._running = False

            if self._task:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        if self._cycle_task and not self._cycle_task.done():
            logger.info("Waiting for the current archive cycle to finish")
            await asyncio.gather(self._cycle_task, return_exceptions=True)

        if self._owns_executor:
            self.executor.shutdown(wait=True)
        if self._download_dir is not None:
            shutil.rmtree(self._download_dir, ignore_errors=True)
            self._download_dir = None
        logger.info("Reports archiver stopped")

    async def _run_loop(self) -> None:
        """Main scheduling loop. Submits cycles without waiting for them."""
        while self._running:
            try:
                self.run_cycle()
                await asyncio.sleep(self.config.archive_interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in archive loop: {e}", exc_info=True)
                await asyncio.sleep(self.config.archive_interval)

    def run_cycle(self) -> asyncio.Task | None:
        """
        Submit one archive cycle as a background task.

        Must be called from a running event loop. The caller is not expected
        to await the returned task.

        Returns:
            The cycle task, or None if the archiver is disabled or the
            previous cycle is still running
        """
        if not self.enabled:
            return None
        if self._cycle_task is not None and not self._cycle_task.done():
            logger.warning("Previous archive cycle still running, skipping this one")
            return None
        self._cycle_task = asyncio.create_task(self.archive_once())
        return self._cycle_task

    async def archive_once(self) -> ArchiveHistoryRecord | None:
        """
        Run one full archive cycle and wait for all its workers.

        Returns:
            The history record of the cycle, or None if nothing was archived
        """
        if not self.enabled:
            return None

        try:
            if not await self._init_reports_folder():
                return None

            remote_executions = await self._get_all_remote_executions()
            if remote_executions is None:
                return None

            local_executions = await self.persistency.get_all()
            executions_to_archive = select_executions_to_archive(
                remote_executions,
                local_executions,
                self.config.min_reports_age_millis,
                self.config.max_to_archive,
            )
            if executions_to_archive is None:
                logger.error("Executions to archive can't be None")
                return None
            if not executions_to_archive:
                return None

            results = await asyncio.gather(
                *(self.worker.archive(e) for e in executions_to_archive)
            )
            return self._log_history(remote_executions, executions_to_archive, results)
        except Exception as e:
            logger.error(f"Error in archive cycle: {e}", exc_info=True)
            return None

    async def _init_reports_folder(self) -> bool:
        """Create the local reports folder if none exists. Disables the archiver on failure."""
        reports_folder = self.config.reports_folder
        if reports_folder.is_dir():
            return True
        logger.debug(f"Preparing new {reports_folder} folder")
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                self.executor,
                lambda: reports_folder.mkdir(parents=True, exist_ok=True),
            )
            return True
        except OSError as e:
            self.disable(f"failed to create {reports_folder} folder: {e}")
            return False

    async def _get_all_remote_executions(self) -> dict[int, ExecutionMetadata] | None:
        """Get all the remote executions, not filtered."""
        loop = asyncio.get_running_loop()
        remote_executions = await loop.run_in_executor(
            self.executor,
            self.client.get_json,
            f"/{REPORTS_FOLDER_NAME}/meta.json",
        )
        if remote_executions is None:
            logger.error("Failed to get executions from the remote server")
            return None
        logger.debug(f"Found {len(remote_executions)} executions in the remote server")
        return remote_executions

    def _log_history(
        self,
        remote_executions: dict[int, ExecutionMetadata],
        executions_to_archive: list[ExecutionMetadata],
        results: list[bool],
    ) -> ArchiveHistoryRecord:
        record = ArchiveHistoryRecord(
            remote_executions=len(remote_executions),
            archived_ids=tuple(e.id for e in executions_to_archive),
            succeeded_ids=tuple(
                e.id for e, ok in zip(executions_to_archive, results) if ok
            ),
        )
        self.history.append(record)
        logger.info(
            f"Archive cycle done: {len(record.succeeded_ids)} of "
            f"{record.archived_executions} executions archived"
        )
        return record

    def health(self) -> dict[str, Any]:
        """
        Health of the archiver.

        Not running because of the configuration is not a failure. Only a
        runtime self-disable is reported as down.
        """
        if self.config.enabled and not self.enabled:
            return {
                "status": "DOWN",
                "details": {
                    "reports_archiver": f"Reports archiver is down: {self._disabled_reason}"
                },
            }
        return {"status": "UP"}

    def info(self) -> dict[str, Any]:
        """History of the last archive cycles, oldest first. Empty when disabled."""
        if not self.enabled:
            return {}
        return {
            "reports_archiver": [record.to_dict() for record in self.history.snapshot()]
        }
