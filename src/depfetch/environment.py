"""
Environment variables describing extracted asset contents.

An environment file lists, per asset, the paths expected inside its extraction
directory and the variable each one is published under:

    onnxruntime:
      contents:
        - lib
        - include
      environment:
        lib: ORT_LIB_LOCATION
        include: ORT_INCLUDE_DIR

Exporting resolves these against an extraction directory. Importing reads them
back from `DEPFETCH_EXPORT_<VAR>` variables set by an earlier export.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Union

import yaml

from depfetch.constants import EXPORTED_ENV_PREFIX
from depfetch.exceptions import (
    ConfigFileError,
    ConfigurationError,
    ConfigValidationError,
)
from depfetch.log_utils import logger


@dataclass(frozen=True)
class AssetEnvironment:
    """Expected contents of an extracted asset and their variable names."""

    contents: List[str] = field(default_factory=list)
    environment: Dict[str, str] = field(default_factory=dict)

    def variable_for(self, content: str) -> str:
        """
        Return the variable name published for a content path.

        Raises:
            ConfigValidationError: If the content has no variable mapping.
        """
        try:
            return self.environment[content]
        except KeyError:
            raise ConfigValidationError(
                f"invalid environment key: {content}"
            ) from None


def parse_environment_config(data: Any) -> Dict[str, AssetEnvironment]:
    """
    Convert parsed environment configuration into typed entries.

    Raises:
        ConfigValidationError: If the data does not have the documented structure.
    """
    if not isinstance(data, Mapping):
        raise ConfigValidationError("Environment configuration must be a mapping of assets")

    config: Dict[str, AssetEnvironment] = {}
    for asset, entry in data.items():
        entry = entry or {}
        if not isinstance(entry, Mapping):
            raise ConfigValidationError(f"Environment entry for '{asset}' must be a mapping")
        contents = entry.get("contents") or []
        environment = entry.get("environment") or {}
        if not isinstance(contents, list) or not isinstance(environment, Mapping):
            raise ConfigValidationError(
                f"Environment entry for '{asset}' needs a 'contents' list and an 'environment' mapping"
            )
        config[str(asset)] = AssetEnvironment(
            contents=[str(item) for item in contents],
            environment={str(k): str(v) for k, v in environment.items()},
        )
    return config


def load_environment_config(path: Union[str, Path]) -> Dict[str, AssetEnvironment]:
    """
    Load an environment configuration file (YAML or JSON).

    Raises:
        ConfigFileError: If the file cannot be read or parsed.
        ConfigValidationError: If its content is malformed.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigFileError(
            f"Cannot read environment configuration {path}",
            path=str(path),
            details=str(exc),
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigFileError(
            f"Cannot parse environment configuration {path}",
            path=str(path),
            details=str(exc),
        ) from exc
    return parse_environment_config(data)


def _asset_entry(config: Mapping[str, AssetEnvironment], asset: str) -> AssetEnvironment:
    try:
        return config[asset]
    except KeyError:
        raise ConfigValidationError(f"invalid environment key: {asset}") from None


def export_environment(
    config: Mapping[str, AssetEnvironment], asset: str, directory: Union[str, Path]
) -> Dict[str, str]:
    """
    Map each variable of an asset to the absolute path of its extracted content.

    Contents that do not exist under `directory` are left out.

    Returns:
        Dict[str, str]: Variable name to absolute path.
    """
    entry = _asset_entry(config, asset)
    directory = Path(directory)
    variables: Dict[str, str] = {}
    for content in entry.contents:
        variable = entry.variable_for(content)
        content_path = directory / content
        if content_path.exists():
            variables[variable] = str(content_path.resolve())
        else:
            logger.debug(f"{asset}: {content_path} not found, {variable} not exported")
    return variables


def import_environment(
    config: Mapping[str, AssetEnvironment],
    asset: str,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Copy `DEPFETCH_EXPORT_<VAR>` values of an asset into `<VAR>`.

    Parameters:
        environ: Mapping to read from and write to; defaults to os.environ.

    Returns:
        Dict[str, str]: The variables that were set.

    Raises:
        ConfigurationError: If an exported variable is missing.
    """
    environ = os.environ if environ is None else environ
    entry = _asset_entry(config, asset)
    variables: Dict[str, str] = {}
    for content in entry.contents:
        variable = entry.variable_for(content)
        exported = f"{EXPORTED_ENV_PREFIX}{variable}"
        if exported not in environ:
            raise ConfigurationError(f"environment variable error: {exported} is not set")
        environ[variable] = environ[exported]
        variables[variable] = environ[exported]
    return variables


def format_exports(variables: Mapping[str, str], prefix: str = "") -> List[str]:
    """Render variables as sorted `NAME=value` lines."""
    return [f"{prefix}{name}={value}" for name, value in sorted(variables.items())]
