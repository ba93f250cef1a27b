"""
Runtime settings and configuration file discovery.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Mapping, Optional

import platformdirs

from depfetch.constants import (
    APP_NAME,
    BUCKET_URL_ENV_VAR,
    CACHE_PATH_ENV_VAR,
    DEFAULT_CACHE_PATH,
    DEFAULT_DIRECTORY_PATH,
    DIRECTORY_PATH_ENV_VAR,
    ENVIRONMENT_CONFIG_ENV_VAR,
    ENVIRONMENT_CONFIG_FILE_NAME,
    REQUEST_TIMEOUT_ENV_VAR,
    TARGET_CONFIG_ENV_VAR,
    TARGET_CONFIG_FILE_NAME,
)
from depfetch.exceptions import ConfigFileError, ConfigurationError
from depfetch.log_utils import logger


@dataclass(frozen=True)
class Settings:
    """Defaults taken from the process environment."""

    bucket_url: Optional[str] = None
    cache_path: str = DEFAULT_CACHE_PATH
    directory_path: str = DEFAULT_DIRECTORY_PATH
    target_config: Optional[str] = None
    environment_config: Optional[str] = None
    request_timeout: Optional[float] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Read settings from environment variables.

        Raises:
            ConfigurationError: If DEPFETCH_REQUEST_TIMEOUT is not a positive number.
        """
        environ = os.environ if environ is None else environ

        timeout = None
        raw_timeout = environ.get(REQUEST_TIMEOUT_ENV_VAR)
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                timeout = None
            if timeout is None or timeout <= 0:
                raise ConfigurationError(
                    f"Invalid {REQUEST_TIMEOUT_ENV_VAR}={raw_timeout}",
                    details="expected a positive number of seconds",
                )

        return cls(
            bucket_url=environ.get(BUCKET_URL_ENV_VAR) or None,
            cache_path=environ.get(CACHE_PATH_ENV_VAR) or DEFAULT_CACHE_PATH,
            directory_path=environ.get(DIRECTORY_PATH_ENV_VAR) or DEFAULT_DIRECTORY_PATH,
            target_config=environ.get(TARGET_CONFIG_ENV_VAR) or None,
            environment_config=environ.get(ENVIRONMENT_CONFIG_ENV_VAR) or None,
            request_timeout=timeout,
        )

    def require_bucket_url(self) -> str:
        if not self.bucket_url:
            raise ConfigurationError(
                f"environment variable error: {BUCKET_URL_ENV_VAR} is not set"
            )
        return self.bucket_url


def user_config_dir() -> Path:
    """Return the per-user configuration directory for depfetch."""
    return Path(platformdirs.user_config_dir(APP_NAME))


def bundled_config_path(file_name: str) -> Path:
    """Return the path of a configuration file shipped inside the package."""
    return Path(str(resources.files("depfetch").joinpath("data", file_name)))


def _find_config(explicit: Optional[str], file_name: str, description: str) -> Path:
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigFileError(f"{description} not found: {path}", path=str(path))
        logger.debug(f"Using {description} {path}")
        return path

    user_path = user_config_dir() / file_name
    if user_path.is_file():
        logger.debug(f"Using {description} from user config directory: {user_path}")
        return user_path

    path = bundled_config_path(file_name)
    logger.debug(f"Using bundled {description} {path}")
    return path


def find_target_config(explicit: Optional[str] = None) -> Path:
    """
    Locate the build matrix file.

    Looks at `explicit` (a command-line path or DEPFETCH_TARGET_CONFIG), then
    `target.yaml` in the user configuration directory, then the bundled matrix.

    Raises:
        ConfigFileError: If an explicit path does not exist.
    """
    return _find_config(explicit, TARGET_CONFIG_FILE_NAME, "build matrix")


def find_environment_config(explicit: Optional[str] = None) -> Path:
    """Locate the asset environment file, in the same order as find_target_config()."""
    return _find_config(explicit, ENVIRONMENT_CONFIG_FILE_NAME, "environment configuration")
