"""
Unit tests for ArchiveWorker.

These tests use real zip files and folders in a temporary directory and mock
the remote client and the persistency to test the archive pipeline and its
rollback paths in isolation.
"""

import zipfile
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from reports_archiver.worker import ArchiveWorker, temporary_archive
from reports_common.config import ArchiverConfig
from reports_common.models import ExecutionMetadata


def write_execution_zip(path: Path, execution_id: int, size: int) -> Path:
    """Write a zip holding an execution folder whose files total size bytes."""
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(f"execution_{execution_id}/index.html", b"x" * (size - size // 4))
        zf.writestr(f"execution_{execution_id}/tests/test_1.json", b"y" * (size // 4))
    return path


class TestArchiveWorker:
    """Test suite for ArchiveWorker class."""

    @pytest.fixture
    def download_dir(self, tmp_path):
        path = tmp_path / "downloads"
        path.mkdir()
        return path

    @pytest.fixture
    def reports_folder(self, tmp_path):
        path = tmp_path / "docRoot" / "reports"
        path.mkdir(parents=True)
        return path

    @pytest.fixture
    def config(self, reports_folder):
        return ArchiverConfig(
            enabled=True,
            reports_folder=reports_folder,
            delete_after_archive=True,
            delete_from_elastic=False,
        )

    @pytest.fixture
    def mock_client(self, download_dir):
        """Create a mock client serving a 500-byte execution."""
        client = Mock()

        def get_file(path, destination_name):
            execution_id = int(path.rsplit("/", 1)[1])
            return write_execution_zip(download_dir / destination_name, execution_id, 500)

        client.get_file = Mock(side_effect=get_file)
        client.get_string = Mock(return_value="500")
        client.delete = Mock(return_value=True)
        return client

    @pytest.fixture
    def mock_persistency(self):
        persistency = AsyncMock()
        persistency.add = AsyncMock()
        persistency.get_all = AsyncMock(return_value=[])
        return persistency

    @pytest.fixture
    def worker(self, config, mock_client, mock_persistency):
        return ArchiveWorker(config, mock_client, mock_persistency)

    @pytest.mark.asyncio
    async def test_successful_archive(
        self, worker, mock_client, mock_persistency, reports_folder, download_dir
    ):
        """Test that a verified execution is committed and deleted remotely."""
        execution = ExecutionMetadata(id=2, date="2024/01/01")

        assert await worker.archive(execution) is True

        assert (reports_folder / "execution_2" / "index.html").exists()
        mock_persistency.add.assert_awaited_once_with(execution)
        assert execution.dirty is True
        assert not (download_dir / "execution_2.zip").exists()
        mock_client.get_file.assert_called_once_with(
            "/api/reports/2", "execution_2.zip"
        )
        mock_client.delete.assert_called_once_with(
            "/api/executions/2?fromElastic=false"
        )

    @pytest.mark.asyncio
    async def test_delete_from_elastic(
        self, config, mock_client, mock_persistency
    ):
        """Test that the search index deletion flag is passed to the server."""
        config = config.with_overrides(delete_from_elastic=True)
        worker = ArchiveWorker(config, mock_client, mock_persistency)

        await worker.archive(ExecutionMetadata(id=2))

        mock_client.delete.assert_called_once_with(
            "/api/executions/2?fromElastic=true"
        )

    @pytest.mark.asyncio
    async def test_no_remote_delete_unless_configured(
        self, config, mock_client, mock_persistency
    ):
        config = config.with_overrides(delete_after_archive=False)
        worker = ArchiveWorker(config, mock_client, mock_persistency)

        assert await worker.archive(ExecutionMetadata(id=2)) is True

        mock_persistency.add.assert_awaited_once()
        mock_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_size_mismatch_rolls_back(
        self, worker, mock_client, mock_persistency, reports_folder, download_dir
    ):
        """Test that a failed verification leaves no trace of the execution."""
        mock_client.get_string.return_value = "480"

        assert await worker.archive(ExecutionMetadata(id=2)) is False

        assert not (reports_folder / "execution_2").exists()
        mock_persistency.add.assert_not_called()
        mock_client.delete.assert_not_called()
        assert not (download_dir / "execution_2.zip").exists()

    @pytest.mark.asyncio
    async def test_remote_size_unavailable_rolls_back(
        self, worker, mock_client, mock_persistency, reports_folder
    ):
        mock_client.get_string.return_value = None

        assert await worker.archive(ExecutionMetadata(id=2)) is False

        assert not (reports_folder / "execution_2").exists()
        mock_persistency.add.assert_not_called()
        mock_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_download_failure(
        self, worker, mock_client, mock_persistency, reports_folder
    ):
        """Test that a failed download aborts only this execution."""
        mock_client.get_file.side_effect = None
        mock_client.get_file.return_value = None

        assert await worker.archive(ExecutionMetadata(id=2)) is False

        assert list(reports_folder.iterdir()) == []
        mock_client.get_string.assert_not_called()
        mock_persistency.add.assert_not_called()
        mock_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_extraction_failure_removes_zip(
        self, worker, mock_client, mock_persistency, reports_folder, download_dir
    ):
        """Test that a corrupt zip is cleaned up and nothing is committed."""

        def corrupt_file(path, destination_name):
            target = download_dir / destination_name
            target.write_bytes(b"this is not a zip file")
            return target

        mock_client.get_file.side_effect = corrupt_file

        assert await worker.archive(ExecutionMetadata(id=2)) is False

        assert not (download_dir / "execution_2.zip").exists()
        assert not (reports_folder / "execution_2").exists()
        mock_client.get_string.assert_not_called()
        mock_persistency.add.assert_not_called()
        mock_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_persistency_failure_rolls_back(
        self, worker, mock_client, mock_persistency, reports_folder, download_dir
    ):
        """Test that a failing commit removes the extracted folder."""
        mock_persistency.add.side_effect = RuntimeError("database is locked")

        assert await worker.archive(ExecutionMetadata(id=2)) is False

        assert not (reports_folder / "execution_2").exists()
        assert not (download_dir / "execution_2.zip").exists()
        mock_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_remote_delete_failure_keeps_local_copy(
        self, worker, mock_client, mock_persistency, reports_folder
    ):
        """Test that the local commit stands when the remote delete fails."""
        mock_client.delete.return_value = False

        assert await worker.archive(ExecutionMetadata(id=2)) is True

        assert (reports_folder / "execution_2").exists()
        mock_persistency.add.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_remote_delete_error_still_counts_as_archived(
        self, worker, mock_client, mock_persistency, reports_folder
    ):
        """Test that an unexpected remote delete error doesn't fail a committed execution."""
        mock_client.delete.side_effect = ValueError("unexpected response")

        assert await worker.archive(ExecutionMetadata(id=2)) is True

        assert (reports_folder / "execution_2" / "index.html").exists()
        mock_persistency.add.assert_awaited_once()
        mock_client.delete.assert_called_once()

    @pytest.mark.asyncio
    async def test_entries_outside_execution_folder_are_rejected(
        self, worker, mock_client, mock_persistency, reports_folder, download_dir
    ):
        """Test that an archive touching other paths is not extracted at all."""
        archived = reports_folder / "execution_3"
        archived.mkdir()
        (archived / "index.html").write_bytes(b"original")

        def foreign_entries(path, destination_name):
            target = download_dir / destination_name
            with zipfile.ZipFile(target, "w") as zf:
                zf.writestr("execution_2/index.html", b"x" * 500)
                zf.writestr("stray.html", b"stray")
                zf.writestr("execution_3/index.html", b"clobbered")
            return target

        mock_client.get_file.side_effect = foreign_entries

        assert await worker.archive(ExecutionMetadata(id=2)) is False

        assert sorted(p.name for p in reports_folder.iterdir()) == ["execution_3"]
        assert (archived / "index.html").read_bytes() == b"original"
        assert not (download_dir / "execution_2.zip").exists()
        mock_client.get_string.assert_not_called()
        mock_persistency.add.assert_not_called()
        mock_client.delete.assert_not_called()


class TestTemporaryArchive:
    """Test suite for the temporary_archive context manager."""

    def test_deletes_on_success(self, tmp_path):
        archive = tmp_path / "execution_1.zip"
        archive.write_bytes(b"data")

        with temporary_archive(archive) as path:
            assert path.exists()

        assert not archive.exists()

    def test_deletes_on_error(self, tmp_path):
        archive = tmp_path / "execution_1.zip"
        archive.write_bytes(b"data")

        with pytest.raises(RuntimeError):
            with temporary_archive(archive):
                raise RuntimeError("boom")

        assert not archive.exists()

    def test_missing_file_is_ignored(self, tmp_path):
        with temporary_archive(tmp_path / "gone.zip"):
            pass
