"""
Target triplet parsing and operating system normalization.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass

from depfetch.constants import (
    HOST_MACHINE_ALIASES,
    HOST_SYSTEM_TRIPLETS,
    MIN_TRIPLET_SEPARATORS,
    OS_ALIASES,
    TRIPLET_SEPARATOR,
)
from depfetch.exceptions import MalformedTripletError, UnsupportedOSError


@dataclass(frozen=True)
class TargetTriplet:
    """A parsed `arch-vendor-os[-environment]` target triplet."""

    architecture: str
    vendor: str
    os: str
    environment: str = ""

    def __str__(self) -> str:
        parts = [self.architecture, self.vendor, self.os]
        if self.environment:
            parts.append(self.environment)
        return TRIPLET_SEPARATOR.join(parts)


def parse_triplet(text: str) -> TargetTriplet:
    """
    Split a target triplet string into its fields.

    Segment 0 is the architecture, 1 the vendor, 2 the operating system and 3,
    when present, the environment. Segment content is not checked against any
    known values; that happens when the build matrix is consulted.

    Parameters:
        text (str): Raw triplet such as "x86_64-unknown-linux-gnu".

    Returns:
        TargetTriplet: The parsed fields, with an empty environment for three-part triplets.

    Raises:
        MalformedTripletError: If the string has fewer than three segments or an empty
            architecture, vendor or OS segment.
    """
    if text.count(TRIPLET_SEPARATOR) < MIN_TRIPLET_SEPARATORS:
        raise MalformedTripletError(text, "expected at least arch-vendor-os")

    segments = text.split(TRIPLET_SEPARATOR)
    architecture, vendor, os_name = segments[0], segments[1], segments[2]
    if not (architecture and vendor and os_name):
        raise MalformedTripletError(text, "architecture, vendor and os must be non-empty")

    environment = segments[3] if len(segments) >= 4 else ""
    return TargetTriplet(architecture, vendor, os_name, environment)


def normalize_os(os_token: str) -> str:
    """Return the canonical OS name for a raw triplet OS token."""
    return OS_ALIASES.get(os_token, os_token)


def host_triplet() -> str:
    """
    Build the target triplet describing the running host.

    Returns:
        str: A triplet such as "x86_64-unknown-linux-gnu" or "aarch64-apple-darwin".

    Raises:
        UnsupportedOSError: If the host operating system has no triplet mapping.
    """
    system = platform.system().lower()
    machine = platform.machine().lower()
    architecture = HOST_MACHINE_ALIASES.get(machine, machine)

    parts = HOST_SYSTEM_TRIPLETS.get(system)
    if parts is None:
        raise UnsupportedOSError(system, tuple(HOST_SYSTEM_TRIPLETS))

    vendor, os_name, environment = parts
    return str(TargetTriplet(architecture, vendor, os_name, environment))
