"""
Remote and local locations of a resolved asset archive.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from depfetch.constants import ARCHIVE_EXTENSION
from depfetch.exceptions import ConfigurationError
from depfetch.matrix import ResolvedTarget


@dataclass(frozen=True)
class AssetReference:
    """Where an asset archive lives remotely and where it is cached locally."""

    remote_url: str
    cache_path: str


def asset_suffix(asset: str, target: ResolvedTarget) -> str:
    """
    Return the `<asset>/<os>/<arch>[/<env>][/<variant>]` path shared by URL and cache.

    The order architecture, environment, variant is the layout the remote bucket
    uses, so it must not change.
    """
    parts = [asset, target.os, target.architecture_alias]
    if target.environment_alias:
        parts.append(target.environment_alias)
    if target.variant_alias:
        parts.append(target.variant_alias)
    return "/".join(parts)


def archive_name(asset: str) -> str:
    return f"{asset}{ARCHIVE_EXTENSION}"


def _relative_to_root(name: str, value: str) -> str:
    # os.path.join() drops everything before an absolute component
    if os.path.isabs(value) or os.path.splitdrive(value)[0]:
        raise ConfigurationError(
            f"Invalid {name} path: {value}", details="must be relative to root"
        )
    return value


def locate_asset(
    bucket_url: str,
    asset: str,
    root: str,
    cache: str,
    directory: str,
    target: ResolvedTarget,
) -> AssetReference:
    """
    Derive the remote URL and cache path of an asset archive.

    Parameters:
        bucket_url (str): Base URL of the asset bucket.
        asset (str): Asset name; the archive is `<asset>.tar.gz`.
        root (str): Base path holding the cache and extraction directories.
        cache (str): Cache directory, relative to `root`.
        directory (str): Directory segment used both in the bucket and under `root`.
        target (ResolvedTarget): The resolved build whose aliases name the folders.

    Returns:
        AssetReference: The remote URL and local cache path.

    Raises:
        ConfigurationError: If `cache` or `directory` is an absolute path.
    """
    _relative_to_root("cache", cache)
    _relative_to_root("directory", directory)
    suffix = f"{directory}/{asset_suffix(asset, target)}/{archive_name(asset)}"
    remote_url = f"{bucket_url.rstrip('/')}/{suffix}"
    cache_path = os.path.join(root, cache, *suffix.split("/"))
    return AssetReference(remote_url=remote_url, cache_path=cache_path)


def extract_directory(root: str, directory: str, asset: str) -> str:
    """
    Return the directory an asset is extracted into: `<root>/<directory>/<asset>`.

    Raises:
        ConfigurationError: If `directory` is an absolute path.
    """
    return os.path.join(root, _relative_to_root("directory", directory), asset)
