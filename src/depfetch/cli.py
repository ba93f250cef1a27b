# src/depfetch/cli.py

import argparse
import importlib.metadata
import sys
from pathlib import Path
from typing import List, Optional

from depfetch import log_utils
from depfetch.config import Settings, find_environment_config, find_target_config
from depfetch.constants import APP_NAME, EXPORTED_ENV_PREFIX
from depfetch.environment import format_exports, load_environment_config
from depfetch.exceptions import DepfetchError
from depfetch.matrix import load_build_matrix
from depfetch.provision import AssetRequest, provision
from depfetch.triplet import host_triplet

USAGE_EPILOG = """\
The asset archive is expected at
  <bucket-url>/<directory>/<asset>/<os>/<arch>[/<env>][/<variant>]/<asset>.tar.gz
and is cached under <root>/<cache>/<directory>/... before being extracted into
<root>/<directory>/<asset>.

aarch64-unknown-linux-gnu is treated as a Jetson device: the variant comes from
the argument or from the locally installed L4T version.
"""


def get_version() -> str:
    """Return the installed depfetch version, or "unknown"."""
    try:
        return importlib.metadata.version(APP_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Retrieve and extract a target-specific prebuilt dependency archive.",
        epilog=USAGE_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("bucket_url", metavar="bucket-url", help="base of the target-specific asset url")
    parser.add_argument(
        "asset",
        help="the asset to retrieve (e.g. 'opencv', 'onnxruntime'); the archive is <asset>.tar.gz",
    )
    parser.add_argument("root", help="the base path of <cache> and <directory>")
    parser.add_argument(
        "cache", help="the relative path for storing asset and target-specific archive files"
    )
    parser.add_argument(
        "directory",
        help="the relative path of the source url and destination extract location",
    )
    parser.add_argument(
        "target_triplet",
        metavar="target-triplet",
        nargs="?",
        default=None,
        help="aarch64-unknown-linux-gnu, x86_64-unknown-linux-gnu, aarch64-apple-darwin, etc. "
        "(defaults to the current system triplet)",
    )
    parser.add_argument(
        "variant",
        nargs="?",
        default=None,
        help="string of digits forcing a variant-specific build (e.g. '35' for Jetpack 5, '36' for Jetpack 6)",
    )
    parser.add_argument(
        "--config",
        dest="target_config",
        metavar="PATH",
        help="build matrix file (YAML or JSON)",
    )
    parser.add_argument(
        "--env-config",
        dest="environment_config",
        metavar="PATH",
        help="asset environment file; prints DEPFETCH_EXPORT_<VAR>=path lines for the extracted contents",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--log-dir",
        metavar="DIR",
        help="also write a rotating log file into this directory",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {get_version()}"
    )
    return parser


def run(args: argparse.Namespace, settings: Settings) -> None:
    """
    Provision the asset described by parsed command-line arguments.

    Raises:
        DepfetchError: On any configuration, resolution, download or extraction failure.
    """
    matrix = load_build_matrix(find_target_config(args.target_config or settings.target_config))

    environment_config = None
    env_config_path = args.environment_config or settings.environment_config
    if env_config_path:
        environment_config = load_environment_config(find_environment_config(env_config_path))

    triplet = args.target_triplet or host_triplet()
    request = AssetRequest(
        bucket_url=args.bucket_url,
        asset=args.asset,
        root=args.root,
        cache=args.cache,
        directory=args.directory,
        triplet=triplet,
        variant=args.variant,
    )
    result = provision(
        request,
        matrix,
        environment_config=environment_config,
        timeout=settings.request_timeout,
    )

    for line in format_exports(result.environment, prefix=EXPORTED_ENV_PREFIX):
        print(line)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the depfetch command-line interface.

    Parses arguments, provisions one asset and exits 0. Any DepfetchError is logged
    and the process exits with status 1.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        log_utils.set_log_level(args.log_level)
    if args.log_dir:
        log_utils.add_file_logging(Path(args.log_dir), args.log_level or "INFO")

    try:
        settings = Settings.from_env()
        run(args, settings)
    except DepfetchError as error:
        log_utils.logger.error(str(error))
        sys.exit(1)


if __name__ == "__main__":
    main()
