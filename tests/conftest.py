import io
import tarfile
from pathlib import Path

import platformdirs
import pytest
import requests

from depfetch.matrix import BuildMatrix
from depfetch.variant import VariantProbe

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.Session or pass a mock session."
)

_DEPFETCH_ENV_VARS = (
    "DEPFETCH_LOG_LEVEL",
    "DEPFETCH_BUCKET_URL",
    "DEPFETCH_CACHE_PATH",
    "DEPFETCH_DIRECTORY_PATH",
    "DEPFETCH_TARGET_CONFIG",
    "DEPFETCH_ENV_CONFIG",
    "DEPFETCH_REQUEST_TIMEOUT",
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used across the test suite."""
    config.addinivalue_line("markers", "unit: fast isolated unit test")
    config.addinivalue_line("markers", "integration: exercises several stages together")
    config.addinivalue_line("markers", "user_interface: command-line behaviour")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs at a temporary directory, clear DEPFETCH_* variables and block real HTTP.
    """
    base = tmp_path_factory.mktemp("depfetch")
    config_dir = base / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    for name in _DEPFETCH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(requests.Session, "request", _block_network)
    monkeypatch.setattr(requests, "get", _block_network)
    monkeypatch.setattr(requests, "head", _block_network)


MATRIX_DATA = {
    "linux": {
        "build": [
            {
                "architecture": "x86_64",
                "environment": "gnu",
                "variant": "",
                "architecture_alias": "x64",
                "environment_alias": "gnu",
                "variant_alias": "",
            },
            {
                "architecture": "aarch64",
                "environment": "gnu",
                "variant": "35",
                "architecture_alias": "arm64",
                "environment_alias": "gnu",
                "variant_alias": "jp5",
            },
            {
                "architecture": "aarch64",
                "environment": "gnu",
                "variant": "36",
                "architecture_alias": "arm64",
                "environment_alias": "gnu",
                "variant_alias": "jp6",
            },
        ]
    },
    "android": {
        "build": [
            {
                "architecture": "armv7",
                "environment": "",
                "variant": "",
                "architecture_alias": "armeabi-v7a",
                "environment_alias": "",
                "variant_alias": "",
            },
        ]
    },
    "darwin": {
        "build": [
            {
                "architecture": "aarch64",
                "environment": "",
                "variant": "",
                "architecture_alias": "arm64",
                "environment_alias": "",
                "variant_alias": "",
            },
        ]
    },
}


@pytest.fixture
def matrix_data():
    """Return a fresh copy-safe build matrix mapping."""
    return {
        os_name: {"build": [dict(entry) for entry in entry_list["build"]]}
        for os_name, entry_list in MATRIX_DATA.items()
    }


@pytest.fixture
def matrix(matrix_data):
    """Typed build matrix with linux (x86_64, Jetson 35/36), android and darwin builds."""
    return BuildMatrix.from_mapping(matrix_data)


class StaticProbe(VariantProbe):
    """Variant probe returning a fixed version string and counting calls."""

    def __init__(self, version: str) -> None:
        self.version = version
        self.calls = 0

    def read_version(self) -> str:
        self.calls += 1
        return self.version


@pytest.fixture
def static_probe():
    """Factory for probes reporting a fixed local version."""
    return StaticProbe


@pytest.fixture
def make_tarball(tmp_path):
    """
    Provide a factory that writes a .tar.gz archive with the given members.

    The factory takes a mapping of member name to text content and an optional
    destination path, and returns the archive path.
    """

    def _make(members, path: Path = None) -> Path:
        path = path or tmp_path / "asset.tar.gz"
        path.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(path, "w:gz") as tar:
            for name, content in members.items():
                data = content.encode("utf-8")
                info = tarfile.TarInfo(name)
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        return path

    return _make
