"""
Fetch-or-skip handling of the local archive cache.

Each network operation is a single attempt: no retries, no backoff.
"""

from __future__ import annotations

import os
import time
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from depfetch.constants import DEFAULT_CHUNK_SIZE, MAX_REDIRECTS
from depfetch.exceptions import (
    DownloadError,
    DownloadIncompleteError,
    RemoteAssetNotFoundError,
)
from depfetch.locator import AssetReference
from depfetch.log_utils import logger


def create_session() -> requests.Session:
    """
    Create an HTTP session that makes exactly one attempt per request.

    Redirects are followed up to MAX_REDIRECTS hops.
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.max_redirects = MAX_REDIRECTS
    return session


def check_remote_asset(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> int:
    """
    Check that a remote asset exists without downloading its body.

    Parameters:
        url (str): Asset URL.
        session: Session to use; a single-attempt session is created when omitted.
        timeout: Optional request timeout in seconds; None waits indefinitely.

    Returns:
        int: The final HTTP status code.

    Raises:
        RemoteAssetNotFoundError: If the request fails or returns an error status.
    """
    owns_session = session is None
    session = session or create_session()
    try:
        response = session.head(url, allow_redirects=True, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        raise RemoteAssetNotFoundError(url, details=str(exc)) from exc
    finally:
        if owns_session:
            session.close()

    for hop in response.history:
        logger.debug(f"Redirect {hop.status_code}: {hop.url}")
    logger.debug(f"HEAD {url} -> {response.status_code}")

    if not response.ok:
        raise RemoteAssetNotFoundError(
            url,
            status_code=response.status_code,
            details=f"HTTP {response.status_code} {response.reason}",
        )
    return response.status_code


def download_asset(
    url: str,
    path: str,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> int:
    """
    Stream a remote file to `path`.

    The body is written to a temporary sibling file which is moved into place once
    complete, so an interrupted download never leaves a truncated archive at `path`.

    Returns:
        int: Number of bytes written.

    Raises:
        DownloadError: If the request or the write fails.
    """
    parent_dir = os.path.dirname(path)
    if parent_dir:
        os.makedirs(parent_dir, exist_ok=True)

    temp_path = f"{path}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
    owns_session = session is None
    session = session or create_session()
    response = None
    downloaded_bytes = 0
    try:
        logger.debug(f"Downloading {url} to temp path: {temp_path}")
        response = session.get(url, stream=True, timeout=timeout)
        response.raise_for_status()

        with open(temp_path, "wb") as file:
            for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
                if chunk:
                    file.write(chunk)
                    downloaded_bytes += len(chunk)

        os.replace(temp_path, path)
    except requests.exceptions.RequestException as exc:
        raise DownloadError(f"Failed to download {url}", url=url, details=str(exc)) from exc
    except OSError as exc:
        raise DownloadError(
            f"Failed to write {path}", url=url, details=str(exc)
        ) from exc
    finally:
        if response is not None:
            response.close()
        if owns_session:
            session.close()
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError as e_rm:
                logger.debug(f"Could not remove temp file {temp_path}: {e_rm}")

    size_mb = downloaded_bytes / (1024 * 1024)
    if size_mb >= 1.0:
        logger.info(f"Downloaded: {os.path.basename(path)} ({size_mb:.1f} MB)")
    else:
        logger.info(f"Downloaded: {os.path.basename(path)} ({downloaded_bytes} bytes)")
    return downloaded_bytes


def fetch_asset(
    reference: AssetReference,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> bool:
    """
    Make sure the asset archive is present in the local cache.

    An archive already in the cache is used as-is without any network access.

    Returns:
        bool: True if the archive was downloaded, False if it was already cached.

    Raises:
        RemoteAssetNotFoundError: If the remote archive does not exist.
        DownloadError: If the download fails.
        DownloadIncompleteError: If no file is present after downloading.
    """
    if os.path.isfile(reference.cache_path):
        logger.info(f"Skipped: {reference.cache_path} (already cached)")
        return False

    owns_session = session is None
    session = session or create_session()
    try:
        check_remote_asset(reference.remote_url, session=session, timeout=timeout)
        logger.info(f"Asset url: {reference.remote_url}")
        download_asset(
            reference.remote_url, reference.cache_path, session=session, timeout=timeout
        )
    finally:
        if owns_session:
            session.close()

    if not os.path.isfile(reference.cache_path):
        raise DownloadIncompleteError(reference.cache_path, url=reference.remote_url)
    return True
