"""
Unit tests for document loading from files and URLs.
"""

from unittest import mock

import pytest
import requests

from component_forge import utils
from component_forge.codegen.core.errors import ConfigNotFound, ConfigParseError
from conftest import write_json


def _response(status=200, payload=None, content_type="application/json"):
    response = mock.Mock()
    response.status_code = status
    response.headers = {"content-type": content_type}
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


class TestIsUrl:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ("https://example.com/Button.json", True),
            ("http://localhost:8000/a.json", True),
            ("ftp://example.com/a.json", False),
            ("components/Button.json", False),
            ("https://", False),
        ],
    )
    def test_detection(self, source, expected):
        assert utils.is_url(source) is expected


class TestLoadFromFile:
    """Test cases for local documents."""

    def test_load_document(self, tmp_path):
        path = write_json(tmp_path, "Badge.json", {"name": "Badge"})
        source, data = utils.load_document(path)
        assert source == str(path)
        assert data == {"name": "Badge"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigNotFound):
            utils.load_document(tmp_path / "nope.json")

    def test_missing_file_logs_lazily(self, tmp_path):
        path = tmp_path / "nope.json"
        with mock.patch.object(utils, "logger") as logger:
            with pytest.raises(ConfigNotFound):
                utils.load_json_from_file(path)
        logger.error.assert_called_once_with("File not found: %s", path)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "Card.json"
        path.write_bytes(b'{"name": "Card", "baseComponent": "\xff\xfe"}')
        with pytest.raises(ConfigParseError) as exc_info:
            utils.load_document(path)
        assert "invalid encoding" in exc_info.value.reason

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigParseError) as exc_info:
            utils.load_document(path)
        assert "invalid JSON" in exc_info.value.reason

    def test_document_must_be_object(self, tmp_path):
        path = write_json(tmp_path, "list.json", [1, 2, 3])
        with pytest.raises(ConfigParseError):
            utils.load_document(path)


class TestLoadFromUrl:
    """Test cases for remote documents."""

    URL = "https://example.com/adapters/testlib.json"

    def test_success(self):
        with mock.patch("component_forge.utils.requests.get", return_value=_response(payload={"name": "x"})) as get:
            source, data = utils.load_document(self.URL, timeout=5)
        get.assert_called_once_with(self.URL, timeout=5)
        assert source == self.URL
        assert data == {"name": "x"}

    def test_not_found(self):
        with mock.patch("component_forge.utils.requests.get", return_value=_response(status=404)):
            with pytest.raises(ConfigNotFound):
                utils.load_document(self.URL)

    def test_server_error(self):
        with mock.patch("component_forge.utils.requests.get", return_value=_response(status=500)):
            with pytest.raises(ConfigParseError) as exc_info:
                utils.load_document(self.URL)
        assert "500" in exc_info.value.reason

    def test_connection_error(self):
        with mock.patch(
            "component_forge.utils.requests.get",
            side_effect=requests.exceptions.ConnectionError("refused"),
        ):
            with pytest.raises(ConfigParseError) as exc_info:
                utils.load_document(self.URL)
        assert exc_info.value.reason == "connection error"

    def test_timeout(self):
        with mock.patch(
            "component_forge.utils.requests.get", side_effect=requests.exceptions.Timeout()
        ):
            with pytest.raises(ConfigParseError):
                utils.load_document(self.URL)

    def test_undecodable_body(self):
        response = _response(content_type="text/html")
        response.json.side_effect = ValueError("Expecting value")
        with mock.patch("component_forge.utils.requests.get", return_value=response):
            with pytest.raises(ConfigParseError):
                utils.load_document(self.URL)
