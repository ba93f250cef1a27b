"""
Provisioning of one asset: resolve, locate, fetch and extract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

import requests

from depfetch.config import Settings
from depfetch.environment import AssetEnvironment, export_environment
from depfetch.extract import extract_archive
from depfetch.fetch import fetch_asset
from depfetch.locator import AssetReference, extract_directory, locate_asset
from depfetch.log_utils import logger
from depfetch.matrix import BuildMatrix, ResolvedTarget, resolve_target
from depfetch.triplet import parse_triplet
from depfetch.variant import VariantPolicy, VariantProbe


@dataclass(frozen=True)
class AssetRequest:
    """Everything needed to provision one asset for one target."""

    bucket_url: str
    asset: str
    root: str
    cache: str
    directory: str
    triplet: str
    variant: Optional[str] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        asset: str,
        root: str,
        triplet: str,
        variant: Optional[str] = None,
    ) -> "AssetRequest":
        """
        Build a request for build scripts, taking bucket, cache and directory from settings.

        Raises:
            ConfigurationError: If no bucket URL is configured.
        """
        return cls(
            bucket_url=settings.require_bucket_url(),
            asset=asset,
            root=root,
            cache=settings.cache_path,
            directory=settings.directory_path,
            triplet=triplet,
            variant=variant,
        )


@dataclass(frozen=True)
class ProvisionResult:
    """Outcome of a provisioning run."""

    target: ResolvedTarget
    reference: AssetReference
    extract_dir: str
    downloaded: bool
    environment: Dict[str, str] = field(default_factory=dict)


def provision(
    request: AssetRequest,
    matrix: BuildMatrix,
    probe: Optional[VariantProbe] = None,
    policies: Optional[Dict[Tuple[str, str], VariantPolicy]] = None,
    environment_config: Optional[Mapping[str, AssetEnvironment]] = None,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> ProvisionResult:
    """
    Resolve the build for a target, make sure its archive is cached, and extract it.

    Parameters:
        request (AssetRequest): The asset and target to provision.
        matrix (BuildMatrix): Build matrix to resolve against.
        probe: Variant probe override for platforms that detect their variant.
        policies: Variant policy table override.
        environment_config: When given, variables for the asset's extracted contents
            are computed and returned in the result.
        session: HTTP session to use for the existence check and download.
        timeout: Optional HTTP timeout in seconds.

    Returns:
        ProvisionResult: The resolved target, asset locations and whether a download happened.

    Raises:
        DepfetchError: Any resolution, download or extraction failure.
    """
    triplet = parse_triplet(request.triplet)
    target = resolve_target(
        triplet, matrix, variant=request.variant, probe=probe, policies=policies
    )
    logger.info(
        f"Target {triplet}: os={target.os} architecture={target.architecture_alias} "
        f"environment={target.environment_alias or '-'} variant={target.variant_alias or '-'}"
    )

    reference = locate_asset(
        request.bucket_url,
        request.asset,
        request.root,
        request.cache,
        request.directory,
        target,
    )
    downloaded = fetch_asset(reference, session=session, timeout=timeout)

    destination = extract_directory(request.root, request.directory, request.asset)
    extract_archive(reference.cache_path, destination)

    variables: Dict[str, str] = {}
    if environment_config is not None:
        variables = export_environment(environment_config, request.asset, destination)

    return ProvisionResult(
        target=target,
        reference=reference,
        extract_dir=destination,
        downloaded=downloaded,
        environment=variables,
    )
