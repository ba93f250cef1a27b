"""
Build matrix loading and resolution.

The matrix file maps each canonical OS name to the builds available for it:

    linux:
      build:
        - architecture: x86_64
          environment: gnu
          variant: ""
          architecture_alias: x86_64
          environment_alias: gnu
          variant_alias: ""

JSON files with the same structure are accepted as well.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from depfetch.constants import BUILD_DESCRIPTOR_FIELDS, MATRIX_BUILDS_KEY
from depfetch.exceptions import (
    AmbiguousOrMissingBuildError,
    ConfigFileError,
    ConfigValidationError,
    UnsupportedOSError,
)
from depfetch.log_utils import logger
from depfetch.triplet import TargetTriplet, normalize_os
from depfetch.variant import VariantPolicy, VariantProbe, detect_variant


@dataclass(frozen=True)
class BuildDescriptor:
    """One buildable combination and the names used for it in asset paths."""

    architecture: str
    environment: str = ""
    variant: str = ""
    architecture_alias: str = ""
    environment_alias: str = ""
    variant_alias: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BuildDescriptor":
        """
        Create a descriptor from one matrix entry.

        Missing fields default to "" and scalar values are converted to strings, so
        an unquoted YAML `variant: 35` is read as "35".

        Raises:
            ConfigValidationError: If the entry has unknown keys or no architecture.
        """
        unknown = set(data) - set(BUILD_DESCRIPTOR_FIELDS)
        if unknown:
            raise ConfigValidationError(
                "Unknown build descriptor keys", details=", ".join(sorted(unknown))
            )

        values = {}
        for name in BUILD_DESCRIPTOR_FIELDS:
            value = data.get(name)
            values[name] = "" if value is None else str(value)

        if not values["architecture"]:
            raise ConfigValidationError(
                "Build descriptor is missing an architecture", details=str(dict(data))
            )
        return cls(**values)


class BuildMatrix:
    """Read-only mapping from canonical OS name to its build descriptors."""

    def __init__(self, builds: Mapping[str, Iterable[BuildDescriptor]]) -> None:
        self._builds: Mapping[str, Tuple[BuildDescriptor, ...]] = MappingProxyType(
            {os_name: tuple(entries) for os_name, entries in builds.items()}
        )

    @property
    def operating_systems(self) -> Tuple[str, ...]:
        """The OS keys declared by the matrix."""
        return tuple(self._builds)

    def builds(self, os_name: str) -> Tuple[BuildDescriptor, ...]:
        """
        Return the builds declared for a canonical OS.

        Raises:
            UnsupportedOSError: If the matrix does not declare the OS.
        """
        if os_name not in self._builds:
            raise UnsupportedOSError(os_name, self.operating_systems)
        return self._builds[os_name]

    def __contains__(self, os_name: object) -> bool:
        return os_name in self._builds

    def __len__(self) -> int:
        return len(self._builds)

    @classmethod
    def from_mapping(cls, data: Any) -> "BuildMatrix":
        """
        Build a matrix from parsed configuration data.

        Raises:
            ConfigValidationError: If the data does not have the documented structure.
        """
        if not isinstance(data, Mapping):
            raise ConfigValidationError(
                "Build matrix must be a mapping of operating systems"
            )

        builds: Dict[str, List[BuildDescriptor]] = {}
        for os_name, os_entry in data.items():
            if not isinstance(os_entry, Mapping) or MATRIX_BUILDS_KEY not in os_entry:
                raise ConfigValidationError(
                    f"Operating system '{os_name}' must define a '{MATRIX_BUILDS_KEY}' list"
                )
            entries = os_entry[MATRIX_BUILDS_KEY] or []
            if not isinstance(entries, list):
                raise ConfigValidationError(
                    f"'{os_name}.{MATRIX_BUILDS_KEY}' must be a list"
                )

            descriptors = []
            for entry in entries:
                if not isinstance(entry, Mapping):
                    raise ConfigValidationError(
                        f"Entries of '{os_name}.{MATRIX_BUILDS_KEY}' must be mappings",
                        details=repr(entry),
                    )
                descriptors.append(BuildDescriptor.from_mapping(entry))
            builds[str(os_name)] = descriptors

        return cls(builds)


def load_build_matrix(path: Union[str, Path]) -> BuildMatrix:
    """
    Load and validate a build matrix file.

    Parameters:
        path: YAML or JSON file describing the matrix.

    Returns:
        BuildMatrix: The typed matrix.

    Raises:
        ConfigFileError: If the file cannot be read or parsed.
        ConfigValidationError: If the content does not describe a matrix.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigFileError(
            f"Cannot read build matrix {path}", path=str(path), details=str(exc)
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigFileError(
            f"Cannot parse build matrix {path}", path=str(path), details=str(exc)
        ) from exc

    matrix = BuildMatrix.from_mapping(data)
    logger.debug(
        f"Loaded build matrix from {path} with operating systems: {', '.join(matrix.operating_systems)}"
    )
    return matrix


@dataclass(frozen=True)
class ResolvedTarget:
    """The single build matching a target, with the canonical OS and original inputs."""

    os: str
    architecture: str
    environment: str
    variant: str
    build: BuildDescriptor

    @property
    def architecture_alias(self) -> str:
        return self.build.architecture_alias

    @property
    def environment_alias(self) -> str:
        return self.build.environment_alias

    @property
    def variant_alias(self) -> str:
        return self.build.variant_alias


def _filter_builds(
    builds: Sequence[BuildDescriptor], field_name: str, value: str
) -> List[BuildDescriptor]:
    survivors = [build for build in builds if getattr(build, field_name) == value]
    logger.debug(f"Builds with {field_name}='{value}': {survivors}")
    return survivors


def resolve_build(
    matrix: BuildMatrix,
    os_name: str,
    architecture: str,
    environment: str,
    variant: str,
) -> ResolvedTarget:
    """
    Narrow the builds of an OS to the single one matching the target.

    Architecture, environment and variant are independent equality filters.

    Raises:
        UnsupportedOSError: If the matrix does not declare `os_name`.
        AmbiguousOrMissingBuildError: If zero or several builds match.
    """
    candidates: List[BuildDescriptor] = list(matrix.builds(os_name))
    remaining = [f"{os_name}: {len(candidates)}"]
    retained: List[BuildDescriptor] = candidates
    for field_name, value in (
        ("architecture", architecture),
        ("environment", environment),
        ("variant", variant),
    ):
        candidates = _filter_builds(candidates, field_name, value)
        remaining.append(f"{field_name}: {len(candidates)}")
        if candidates:
            retained = candidates

    target = f"os={os_name} architecture={architecture} environment={environment} variant={variant}"
    if not candidates:
        raise AmbiguousOrMissingBuildError(
            f"No matching build for {target} (remaining after each filter: {', '.join(remaining)})",
            retained=retained,
        )
    if len(candidates) > 1:
        raise AmbiguousOrMissingBuildError(
            f"More than one matching build for {target}", candidates
        )

    build = candidates[0]
    logger.debug(f"Resolved build: {build}")
    return ResolvedTarget(
        os=os_name,
        architecture=architecture,
        environment=environment,
        variant=variant,
        build=build,
    )


def resolve_target(
    triplet: TargetTriplet,
    matrix: BuildMatrix,
    variant: Optional[str] = None,
    probe: Optional[VariantProbe] = None,
    policies: Optional[Dict[Tuple[str, str], VariantPolicy]] = None,
) -> ResolvedTarget:
    """
    Resolve a parsed triplet against the matrix.

    The OS is normalized and checked against the matrix before any variant probing
    happens, so an unsupported OS never touches the local system.
    """
    os_name = normalize_os(triplet.os)
    if os_name not in matrix:
        raise UnsupportedOSError(os_name, matrix.operating_systems)

    target_variant = detect_variant(
        triplet.architecture, os_name, variant, probe=probe, policies=policies
    )
    return resolve_build(
        matrix, os_name, triplet.architecture, triplet.environment, target_variant
    )
