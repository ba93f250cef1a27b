"""
Tests for environment-driven settings and configuration file discovery.
"""

import pytest

from depfetch import config as config_module
from depfetch.config import (
    Settings,
    bundled_config_path,
    find_environment_config,
    find_target_config,
    user_config_dir,
)
from depfetch.exceptions import ConfigFileError, ConfigurationError


class TestSettings:
    @pytest.mark.unit
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.bucket_url is None
        assert settings.cache_path == "cache"
        assert settings.directory_path == "assets/dependencies"
        assert settings.target_config is None
        assert settings.environment_config is None
        assert settings.request_timeout is None

    @pytest.mark.unit
    def test_reads_environment(self):
        settings = Settings.from_env(
            {
                "DEPFETCH_BUCKET_URL": "https://cdn.example.com",
                "DEPFETCH_CACHE_PATH": ".cache",
                "DEPFETCH_DIRECTORY_PATH": "deps",
                "DEPFETCH_TARGET_CONFIG": "/etc/depfetch/target.yaml",
                "DEPFETCH_ENV_CONFIG": "/etc/depfetch/environment.yaml",
                "DEPFETCH_REQUEST_TIMEOUT": "30",
            }
        )
        assert settings.require_bucket_url() == "https://cdn.example.com"
        assert settings.cache_path == ".cache"
        assert settings.directory_path == "deps"
        assert settings.target_config == "/etc/depfetch/target.yaml"
        assert settings.environment_config == "/etc/depfetch/environment.yaml"
        assert settings.request_timeout == 30.0

    @pytest.mark.unit
    def test_reads_process_environment_by_default(self, monkeypatch):
        monkeypatch.setenv("DEPFETCH_CACHE_PATH", ".cache")
        assert Settings.from_env().cache_path == ".cache"

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["soon", "0", "-5"])
    def test_invalid_timeout(self, value):
        with pytest.raises(ConfigurationError, match="DEPFETCH_REQUEST_TIMEOUT"):
            Settings.from_env({"DEPFETCH_REQUEST_TIMEOUT": value})

    @pytest.mark.unit
    def test_missing_bucket_url(self):
        with pytest.raises(ConfigurationError, match="DEPFETCH_BUCKET_URL"):
            Settings.from_env({}).require_bucket_url()


class TestConfigDiscovery:
    @pytest.mark.unit
    def test_explicit_path_wins(self, tmp_path):
        path = tmp_path / "matrix.json"
        path.write_text("{}")
        (user_config_dir() / "target.yaml").write_text("{}")
        assert find_target_config(str(path)) == path

    @pytest.mark.unit
    def test_explicit_path_must_exist(self, tmp_path):
        with pytest.raises(ConfigFileError, match="build matrix not found"):
            find_target_config(str(tmp_path / "missing.yaml"))

    @pytest.mark.unit
    def test_user_config_dir_before_bundled(self):
        user_file = user_config_dir() / "target.yaml"
        user_file.write_text("{}")
        assert find_target_config() == user_file

    @pytest.mark.unit
    def test_falls_back_to_bundled(self):
        assert find_target_config() == bundled_config_path("target.yaml")
        assert find_environment_config() == bundled_config_path("environment.yaml")
        assert bundled_config_path("target.yaml").is_file()

    @pytest.mark.unit
    def test_user_config_dir_uses_platformdirs(self, mocker):
        mock_dir = mocker.patch.object(
            config_module.platformdirs, "user_config_dir", return_value="/tmp/x"
        )
        assert str(user_config_dir()) == "/tmp/x"
        mock_dir.assert_called_once_with("depfetch")
