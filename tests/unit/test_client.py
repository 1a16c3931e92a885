"""
Unit tests for reports_client.client module.

Tests the remote report client's mapping of HTTP responses and failures.
"""

from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from reports_client.client import RemoteReportClient


@pytest.fixture
def client(tmp_path):
    """Create a client downloading into a temporary directory."""
    return RemoteReportClient(
        "http://difido:9000/", timeout=5, download_dir=tmp_path
    )


def make_response(**attrs):
    response = Mock()
    response.raise_for_status = Mock()
    for name, value in attrs.items():
        setattr(response, name, value)
    return response


class TestGetJson:
    """Test suite for RemoteReportClient.get_json."""

    @patch("reports_client.client.requests.get")
    def test_parses_executions(self, mock_get, client):
        """Test that the executions index is parsed into a map keyed by int id."""
        response = make_response()
        response.json.return_value = {
            "1": {"id": 1, "date": "2024/01/15", "active": True},
            "2": {"id": 2, "date": "2024/01/10", "active": False},
        }
        mock_get.return_value = response

        executions = client.get_json("/reports/meta.json")

        assert set(executions) == {1, 2}
        assert executions[1].active is True
        assert executions[2].date == "2024/01/10"
        mock_get.assert_called_once_with(
            "http://difido:9000/reports/meta.json", timeout=5
        )

    @patch("reports_client.client.requests.get")
    def test_network_error_returns_none(self, mock_get, client):
        """Test that network errors are reported as None."""
        mock_get.side_effect = requests.exceptions.ConnectionError("Connection failed")

        assert client.get_json("/reports/meta.json") is None

    @patch("reports_client.client.requests.get")
    def test_malformed_body_returns_none(self, mock_get, client):
        """Test that an unexpected body is reported as None."""
        response = make_response()
        response.json.return_value = {"1": {"no_id": True}}
        mock_get.return_value = response

        assert client.get_json("/reports/meta.json") is None

    @patch("reports_client.client.requests.get")
    def test_invalid_json_returns_none(self, mock_get, client):
        """Test that a non-JSON body is reported as None."""
        response = make_response()
        response.json.side_effect = ValueError("No JSON object could be decoded")
        mock_get.return_value = response

        assert client.get_json("/reports/meta.json") is None


class TestGetString:
    """Test suite for RemoteReportClient.get_string."""

    @patch("reports_client.client.requests.get")
    def test_returns_stripped_text(self, mock_get, client):
        mock_get.return_value = make_response(text="500\n")

        assert client.get_string("/api/reports/2/size") == "500"
        mock_get.assert_called_once_with(
            "http://difido:9000/api/reports/2/size", timeout=5
        )

    @patch("reports_client.client.requests.get")
    def test_http_error_returns_none(self, mock_get, client):
        """Test that HTTP error statuses are reported as None."""
        response = make_response()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            "500 Server Error"
        )
        mock_get.return_value = response

        assert client.get_string("/api/reports/2/size") is None


class TestGetFile:
    """Test suite for RemoteReportClient.get_file."""

    @patch("reports_client.client.requests.get")
    def test_downloads_into_download_dir(self, mock_get, client, tmp_path):
        """Test that the streamed body is written to the destination file."""
        response = MagicMock()
        response.__enter__.return_value = response
        response.iter_content.return_value = [b"PK\x03\x04", b"", b"rest"]
        mock_get.return_value = response

        path = client.get_file("/api/reports/2", "execution_2.zip")

        assert path == tmp_path / "execution_2.zip"
        assert path.read_bytes() == b"PK\x03\x04rest"
        _, kwargs = mock_get.call_args
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == 5

    @patch("reports_client.client.requests.get")
    def test_failure_returns_none_and_removes_partial_file(
        self, mock_get, client, tmp_path
    ):
        """Test that a failed download leaves no file behind."""
        response = MagicMock()
        response.__enter__.return_value = response
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError(
            "Connection broken"
        )
        mock_get.return_value = response

        assert client.get_file("/api/reports/2", "execution_2.zip") is None
        assert not (tmp_path / "execution_2.zip").exists()

    @patch("reports_client.client.requests.get")
    def test_network_error_returns_none(self, mock_get, client):
        mock_get.side_effect = requests.exceptions.Timeout("timed out")

        assert client.get_file("/api/reports/2", "execution_2.zip") is None


class TestDelete:
    """Test suite for RemoteReportClient.delete."""

    @patch("reports_client.client.requests.delete")
    def test_successful_delete(self, mock_delete, client):
        mock_delete.return_value = make_response()

        assert client.delete("/api/executions/2?fromElastic=false") is True
        mock_delete.assert_called_once_with(
            "http://difido:9000/api/executions/2?fromElastic=false", timeout=5
        )

    @patch("reports_client.client.requests.delete")
    def test_failed_delete_returns_false(self, mock_delete, client):
        mock_delete.side_effect = requests.exceptions.ConnectionError("refused")

        assert client.delete("/api/executions/2?fromElastic=false") is False


def test_default_download_dir_is_temp_dir():
    """Test that downloads go to the system temp directory by default."""
    import tempfile

    client = RemoteReportClient("http://difido:9000")

    assert client.download_dir == Path(tempfile.gettempdir())
    assert client.base_url == "http://difido:9000"
