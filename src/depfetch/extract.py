"""
Extraction of cached asset archives.
"""

from __future__ import annotations

import os
import tarfile
from typing import List

from depfetch.exceptions import ExtractionError
from depfetch.log_utils import logger


def _is_within_base(real_base_dir: str, candidate: str) -> bool:
    try:
        return os.path.commonpath([real_base_dir, candidate]) == real_base_dir
    except ValueError:
        # Different drives on Windows
        return False


def safe_extract_path(extract_dir: str, member_name: str) -> str:
    """
    Resolve the absolute destination of an archive member.

    Raises:
        ValueError: If the member is absolute, contains a null byte, or resolves
            outside `extract_dir`.
    """
    if not member_name or "\x00" in member_name:
        raise ValueError(f"Invalid archive member name {member_name!r}")
    if member_name.startswith(("/", "\\")) or os.path.isabs(member_name):
        raise ValueError(f"Absolute archive member path '{member_name}'")

    real_extract_dir = os.path.realpath(extract_dir)
    normalized_path = os.path.realpath(os.path.join(real_extract_dir, member_name))
    if not _is_within_base(real_extract_dir, normalized_path):
        raise ValueError(
            f"Unsafe extraction path '{member_name}' is outside base '{extract_dir}'"
        )
    return normalized_path


def _check_member(extract_dir: str, member: tarfile.TarInfo) -> None:
    safe_extract_path(extract_dir, member.name)
    if member.issym():
        link_target = os.path.join(os.path.dirname(member.name), member.linkname)
        safe_extract_path(extract_dir, link_target)
    elif member.islnk():
        safe_extract_path(extract_dir, member.linkname)


def extract_archive(archive_path: str, extract_dir: str) -> List[str]:
    """
    Extract every member of a tar archive into `extract_dir`.

    The destination is created when missing. Nothing is rolled back on failure, so
    a failed extraction can leave the destination partially populated.

    Parameters:
        archive_path (str): Path to the `.tar.gz` archive.
        extract_dir (str): Destination directory.

    Returns:
        List[str]: Names of the extracted archive members.

    Raises:
        ExtractionError: If the archive is unreadable, corrupt, or has a member that
            would be written outside `extract_dir`.
    """
    logger.info(f"Archive: {archive_path}")
    logger.info(f"Extract: {extract_dir}")

    try:
        os.makedirs(extract_dir, exist_ok=True)
        with tarfile.open(archive_path, "r:*") as tar:
            members = tar.getmembers()
            for member in members:
                try:
                    _check_member(extract_dir, member)
                except ValueError as exc:
                    raise ExtractionError(
                        f"Unsafe archive member in {archive_path}",
                        archive_path=archive_path,
                        member=member.name,
                        details=str(exc),
                    ) from exc

            if hasattr(tarfile, "data_filter"):
                tar.extractall(extract_dir, members=members, filter="data")
            else:
                tar.extractall(extract_dir, members=members)
    except (tarfile.TarError, EOFError, OSError) as exc:
        raise ExtractionError(
            f"Error extracting archive {archive_path}",
            archive_path=archive_path,
            details=str(exc),
        ) from exc

    logger.debug(f"Extracted {len(members)} members from {archive_path}")
    return [member.name for member in members]
