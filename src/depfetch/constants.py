"""
Constants and configuration values for depfetch.

This module contains the names, defaults, patterns and environment variable
names used throughout the application.
"""

import re

APP_NAME = "depfetch"

# Archive conventions
ARCHIVE_EXTENSION = ".tar.gz"

# Triplet parsing
TRIPLET_SEPARATOR = "-"
MIN_TRIPLET_SEPARATORS = 2

# Raw OS tokens that collapse onto a canonical OS name
OS_ALIASES = {
    "androideabi": "android",
}

# Host detection (platform.system() / platform.machine() -> triplet parts)
HOST_MACHINE_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
}
HOST_SYSTEM_TRIPLETS = {
    "linux": ("unknown", "linux", "gnu"),
    "darwin": ("apple", "darwin", ""),
    "windows": ("pc", "windows", "msvc"),
}

# Variant handling
VARIANT_PATTERN = re.compile(r"^[0-9.]+$")
JETSON_ARCHITECTURE = "aarch64"
JETSON_OS = "linux"
JETSON_SUPPORTED_VARIANTS = ("35", "36")  # Jetpack 5, Jetpack 6
DPKG_QUERY_COMMAND = "dpkg-query"
JETSON_L4T_PACKAGE = "nvidia-l4t-core"

# Build descriptor fields as they appear in the matrix file
BUILD_DESCRIPTOR_FIELDS = (
    "architecture",
    "environment",
    "variant",
    "architecture_alias",
    "environment_alias",
    "variant_alias",
)
MATRIX_BUILDS_KEY = "build"

# Default paths
DEFAULT_CACHE_PATH = "cache"
DEFAULT_DIRECTORY_PATH = "assets/dependencies"
TARGET_CONFIG_FILE_NAME = "target.yaml"
ENVIRONMENT_CONFIG_FILE_NAME = "environment.yaml"

# HTTP
MAX_REDIRECTS = 5
DEFAULT_CHUNK_SIZE = 8192

# Environment variable names
LOG_LEVEL_ENV_VAR = "DEPFETCH_LOG_LEVEL"
BUCKET_URL_ENV_VAR = "DEPFETCH_BUCKET_URL"
CACHE_PATH_ENV_VAR = "DEPFETCH_CACHE_PATH"
DIRECTORY_PATH_ENV_VAR = "DEPFETCH_DIRECTORY_PATH"
TARGET_CONFIG_ENV_VAR = "DEPFETCH_TARGET_CONFIG"
ENVIRONMENT_CONFIG_ENV_VAR = "DEPFETCH_ENV_CONFIG"
REQUEST_TIMEOUT_ENV_VAR = "DEPFETCH_REQUEST_TIMEOUT"

# Prefix under which exported asset variables are read back by dependents
EXPORTED_ENV_PREFIX = "DEPFETCH_EXPORT_"

# Logging configuration
LOGGER_NAME = "depfetch"
LOG_FILE_NAME = "depfetch.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
