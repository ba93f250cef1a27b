"""
Tests for the fetch-or-skip cache, existence probe and download.
"""

import os
from unittest.mock import MagicMock

import pytest
import requests

from depfetch import fetch
from depfetch.constants import MAX_REDIRECTS
from depfetch.exceptions import (
    DownloadError,
    DownloadIncompleteError,
    RemoteAssetNotFoundError,
)
from depfetch.fetch import (
    check_remote_asset,
    create_session,
    download_asset,
    fetch_asset,
)
from depfetch.locator import AssetReference

URL = "https://cdn.example.com/deps/onnxruntime/linux/x64/gnu/onnxruntime.tar.gz"


def _response(status_code=200, chunks=(b"data",), history=()):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = "OK" if status_code < 400 else "Not Found"
    response.history = list(history)
    response.iter_content.return_value = list(chunks)
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Client Error"
        )
    return response


@pytest.fixture
def mock_session():
    session = MagicMock(spec=requests.Session)
    session.head.return_value = _response(200)
    session.get.return_value = _response(200, chunks=(b"abc", b"", b"def"))
    return session


@pytest.mark.unit
def test_create_session_single_attempt():
    session = create_session()
    adapter = session.get_adapter("https://cdn.example.com")
    assert adapter.max_retries.total == 0
    assert session.max_redirects == MAX_REDIRECTS
    session.close()


class TestCheckRemoteAsset:
    @pytest.mark.unit
    def test_existing_asset(self, mock_session):
        assert check_remote_asset(URL, session=mock_session) == 200
        mock_session.head.assert_called_once_with(URL, allow_redirects=True, timeout=None)
        mock_session.get.assert_not_called()

    @pytest.mark.unit
    def test_redirected_asset(self, mock_session):
        mock_session.head.return_value = _response(
            200, history=[_response(302), _response(301)]
        )
        assert check_remote_asset(URL, session=mock_session, timeout=5) == 200
        mock_session.head.assert_called_once_with(URL, allow_redirects=True, timeout=5)

    @pytest.mark.unit
    def test_missing_asset(self, mock_session):
        mock_session.head.return_value = _response(404)
        with pytest.raises(RemoteAssetNotFoundError) as exc_info:
            check_remote_asset(URL, session=mock_session)
        assert exc_info.value.status_code == 404
        assert exc_info.value.url == URL
        assert "HTTP 404" in str(exc_info.value)

    @pytest.mark.unit
    def test_transport_error(self, mock_session):
        mock_session.head.side_effect = requests.exceptions.TooManyRedirects("loop")
        with pytest.raises(RemoteAssetNotFoundError) as exc_info:
            check_remote_asset(URL, session=mock_session)
        assert exc_info.value.status_code is None

    @pytest.mark.unit
    def test_creates_and_closes_own_session(self, mocker):
        session = MagicMock()
        session.head.return_value = _response(200)
        mocker.patch("depfetch.fetch.create_session", return_value=session)
        check_remote_asset(URL)
        session.close.assert_called_once()


class TestDownloadAsset:
    @pytest.mark.unit
    def test_writes_streamed_body(self, tmp_path, mock_session):
        path = tmp_path / "nested" / "onnxruntime.tar.gz"
        written = download_asset(URL, str(path), session=mock_session)
        assert written == 6
        assert path.read_bytes() == b"abcdef"
        assert [p.name for p in path.parent.iterdir()] == ["onnxruntime.tar.gz"]
        mock_session.get.assert_called_once_with(URL, stream=True, timeout=None)

    @pytest.mark.unit
    def test_http_error_leaves_nothing_behind(self, tmp_path, mock_session):
        mock_session.get.return_value = _response(500)
        path = tmp_path / "onnxruntime.tar.gz"
        with pytest.raises(DownloadError) as exc_info:
            download_asset(URL, str(path), session=mock_session)
        assert exc_info.value.url == URL
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.unit
    def test_connection_error_mid_stream(self, tmp_path, mock_session):
        response = _response(200)
        response.iter_content.side_effect = requests.exceptions.ConnectionError("reset")
        mock_session.get.return_value = response
        path = tmp_path / "onnxruntime.tar.gz"
        with pytest.raises(DownloadError):
            download_asset(URL, str(path), session=mock_session)
        assert not path.exists()
        assert list(tmp_path.iterdir()) == []


class TestFetchAsset:
    @pytest.mark.unit
    def test_cached_asset_skips_network(self, tmp_path, mocker):
        cache_path = tmp_path / "onnxruntime.tar.gz"
        cache_path.write_bytes(b"cached")
        create = mocker.patch("depfetch.fetch.create_session")
        session = MagicMock()

        assert fetch_asset(AssetReference(URL, str(cache_path)), session=session) is False
        create.assert_not_called()
        session.head.assert_not_called()
        session.get.assert_not_called()
        assert cache_path.read_bytes() == b"cached"

    @pytest.mark.unit
    def test_downloads_missing_asset(self, tmp_path, mock_session):
        cache_path = tmp_path / "cache" / "onnxruntime.tar.gz"
        assert fetch_asset(AssetReference(URL, str(cache_path)), session=mock_session) is True
        assert cache_path.read_bytes() == b"abcdef"
        mock_session.head.assert_called_once()
        mock_session.get.assert_called_once()

    @pytest.mark.unit
    def test_missing_remote_does_not_download(self, tmp_path, mock_session):
        mock_session.head.return_value = _response(404)
        cache_path = tmp_path / "onnxruntime.tar.gz"
        with pytest.raises(RemoteAssetNotFoundError):
            fetch_asset(AssetReference(URL, str(cache_path)), session=mock_session)
        mock_session.get.assert_not_called()
        assert not cache_path.exists()

    @pytest.mark.unit
    def test_transport_reporting_success_without_file(self, tmp_path, mock_session, mocker):
        mocker.patch.object(fetch, "download_asset", return_value=0)
        cache_path = tmp_path / "onnxruntime.tar.gz"
        with pytest.raises(DownloadIncompleteError) as exc_info:
            fetch_asset(AssetReference(URL, str(cache_path)), session=mock_session)
        assert exc_info.value.path == str(cache_path)
        assert "Missing asset" in str(exc_info.value)

    @pytest.mark.unit
    def test_directory_at_cache_path_is_not_a_cache_hit(self, tmp_path, mock_session):
        cache_path = tmp_path / "onnxruntime.tar.gz"
        cache_path.mkdir()
        with pytest.raises(DownloadError):
            fetch_asset(AssetReference(URL, str(cache_path)), session=mock_session)
        mock_session.head.assert_called_once()

    @pytest.mark.unit
    def test_real_session_is_blocked_in_tests(self, tmp_path):
        cache_path = tmp_path / "onnxruntime.tar.gz"
        with pytest.raises(RuntimeError, match="Network access is blocked"):
            fetch_asset(AssetReference(URL, os.fspath(cache_path)))
