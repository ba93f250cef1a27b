"""
Variant detection for targets whose binaries depend on a platform generation.

A variant policy is registered per (architecture, canonical OS) pair. Pairs with
no registered policy have no variant concept and always resolve to "".
"""

from __future__ import annotations

import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence, Tuple

from depfetch.constants import (
    DPKG_QUERY_COMMAND,
    JETSON_ARCHITECTURE,
    JETSON_L4T_PACKAGE,
    JETSON_OS,
    JETSON_SUPPORTED_VARIANTS,
    VARIANT_PATTERN,
)
from depfetch.exceptions import (
    InvalidVariantFormatError,
    ProbeUnavailableError,
    UnsupportedVariantError,
)
from depfetch.log_utils import logger


class VariantProbe(ABC):
    """Reads the raw platform runtime version string from the local system."""

    @abstractmethod
    def read_version(self) -> str:
        """
        Return the raw version string of the local platform runtime.

        Raises:
            ProbeUnavailableError: If the probing mechanism is absent on this host.
        """


class DpkgVariantProbe(VariantProbe):
    """
    Queries the installed L4T core package version through dpkg-query.

    A package dpkg does not know reads as an empty version, which the Jetson
    policy reports as an unsupported variant.
    """

    def __init__(self, package: str = JETSON_L4T_PACKAGE) -> None:
        self.package = package

    def read_version(self) -> str:
        dpkg_query = shutil.which(DPKG_QUERY_COMMAND)
        if dpkg_query is None:
            raise ProbeUnavailableError(f"command '{DPKG_QUERY_COMMAND}' not found")

        try:
            result = subprocess.run(
                [dpkg_query, "--showformat=${Version}", "--show", self.package],
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as exc:
            logger.debug(
                f"dpkg-query reported no version for {self.package}: {(exc.stderr or '').strip()}"
            )
            return ""
        except OSError as exc:
            raise ProbeUnavailableError(
                f"Failed to run '{dpkg_query}'", details=str(exc)
            ) from exc

        version = result.stdout.strip()
        logger.debug(f"{self.package} version reported by dpkg-query: {version}")
        return version


class VariantPolicy(ABC):
    """Decides the variant to filter builds on for one platform family."""

    @abstractmethod
    def resolve(self, requested: Optional[str]) -> str:
        """
        Return the variant for this platform.

        Parameters:
            requested: Variant supplied by the caller, or None/"" when not supplied.
        """


class NoVariantPolicy(VariantPolicy):
    """Platforms without a variant concept; any requested variant is ignored."""

    def resolve(self, requested: Optional[str]) -> str:
        if requested:
            logger.debug(f"Ignoring variant '{requested}' for a platform without variants")
        return ""


class JetsonVariantPolicy(VariantPolicy):
    """
    Jetson devices (aarch64 linux), partitioned by Jetpack major release.

    An explicit variant is used as given. Otherwise the local L4T version is probed
    and its major component must be one of the supported releases.
    """

    def __init__(
        self,
        probe: Optional[VariantProbe] = None,
        supported: Sequence[str] = JETSON_SUPPORTED_VARIANTS,
    ) -> None:
        self.probe = probe or DpkgVariantProbe()
        self.supported = tuple(supported)

    def resolve(self, requested: Optional[str]) -> str:
        if requested:
            return requested

        raw_version = self.probe.read_version()
        # Only the major release partitions builds; patch levels are dropped.
        detected = raw_version.split(".", 1)[0]
        if detected not in self.supported:
            raise UnsupportedVariantError(detected, self.supported)

        logger.info(f"Detected variant {detected} from local version {raw_version}")
        return detected


_DEFAULT_POLICY = NoVariantPolicy()

_POLICIES: Dict[Tuple[str, str], VariantPolicy] = {
    (JETSON_ARCHITECTURE, JETSON_OS): JetsonVariantPolicy(),
}


def register_variant_policy(architecture: str, os_name: str, policy: VariantPolicy) -> None:
    """Register the policy used for an (architecture, canonical OS) pair."""
    _POLICIES[(architecture, os_name)] = policy


def get_variant_policy(
    architecture: str,
    os_name: str,
    policies: Optional[Dict[Tuple[str, str], VariantPolicy]] = None,
) -> VariantPolicy:
    """
    Return the policy for an (architecture, canonical OS) pair.

    Parameters:
        policies: Optional policy table to consult instead of the module registry.
    """
    table = _POLICIES if policies is None else policies
    return table.get((architecture, os_name), _DEFAULT_POLICY)


def validate_variant(variant: str) -> str:
    """
    Check that a variant is empty or made only of digits and dots.

    Raises:
        InvalidVariantFormatError: If the variant has any other character.
    """
    if variant and not VARIANT_PATTERN.fullmatch(variant):
        raise InvalidVariantFormatError(variant)
    return variant


def detect_variant(
    architecture: str,
    os_name: str,
    requested: Optional[str] = None,
    probe: Optional[VariantProbe] = None,
    policies: Optional[Dict[Tuple[str, str], VariantPolicy]] = None,
) -> str:
    """
    Produce the variant to filter the build matrix on.

    Parameters:
        architecture (str): Target architecture from the triplet.
        os_name (str): Canonical OS name.
        requested (Optional[str]): Variant supplied by the caller.
        probe (Optional[VariantProbe]): Probe to use for the Jetson family instead of
            the registered one, mainly for tests and cross-builds.
        policies: Optional policy table to consult instead of the module registry.

    Returns:
        str: The validated variant, "" where no variant applies.
    """
    policy = get_variant_policy(architecture, os_name, policies)
    if probe is not None and isinstance(policy, JetsonVariantPolicy):
        policy = JetsonVariantPolicy(probe=probe, supported=policy.supported)

    variant = policy.resolve(requested)
    return validate_variant(variant)
