"""
Custom exceptions for depfetch.

Every failure is fatal for a run: library code raises one of these and the
command-line entry point reports it and exits non-zero.
"""

from typing import Sequence


class DepfetchError(Exception):
    """
    Base exception for all depfetch errors.

    All custom exceptions in depfetch inherit from this class so callers can
    catch every application-specific failure at once.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(DepfetchError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Missing required settings or environment variables
    - Invalid configuration values
    - Configuration file parsing errors
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when a configuration file cannot be read or parsed."""

    def __init__(
        self, message: str, path: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.path = path


class ConfigValidationError(ConfigurationError):
    """Exception raised when configuration content has the wrong shape."""

    pass


# =============================================================================
# Target Resolution Errors
# =============================================================================


class TargetError(DepfetchError):
    """Base exception for failures while resolving a target triplet to a build."""

    pass


class MalformedTripletError(TargetError):
    """Exception raised when a target triplet does not have the arch-vendor-os shape."""

    def __init__(self, triplet: str, details: str | None = None) -> None:
        super().__init__(f"Invalid target triplet: {triplet}", details)
        self.triplet = triplet


class UnsupportedOSError(TargetError):
    """
    Exception raised when an operating system is not declared in the build matrix.

    Attributes:
        os_name: The canonical OS name that was looked up.
        supported: The OS keys the matrix does declare.
    """

    def __init__(self, os_name: str, supported: Sequence[str] = ()) -> None:
        details = None
        if supported:
            details = f"supported: {', '.join(sorted(supported))}"
        super().__init__(f"Invalid operating system: {os_name}", details)
        self.os_name = os_name
        self.supported = tuple(supported)


class AmbiguousOrMissingBuildError(TargetError):
    """
    Exception raised when the build matrix does not narrow to exactly one build.

    Attributes:
        candidates: The builds that survived every filter (zero, or more than one).
        retained: When nothing survived, the builds left just before the filter
            that removed the last of them.
    """

    def __init__(
        self, message: str, candidates: Sequence = (), retained: Sequence = ()
    ) -> None:
        self.candidates = tuple(candidates)
        self.retained = tuple(retained)
        details = None
        if self.candidates:
            details = f"candidates: {list(self.candidates)}"
        elif self.retained:
            details = f"retained: {list(self.retained)}"
        super().__init__(message, details)


# =============================================================================
# Variant Errors
# =============================================================================


class VariantError(TargetError):
    """Base exception for variant detection and validation failures."""

    pass


class InvalidVariantFormatError(VariantError):
    """Exception raised when a variant is neither empty nor digits and dots."""

    def __init__(self, variant: str) -> None:
        super().__init__(f"Failed to determine variant: {variant}")
        self.variant = variant


class ProbeUnavailableError(VariantError):
    """Exception raised when the local variant probe cannot run on this host."""

    pass


class UnsupportedVariantError(VariantError):
    """Exception raised when a detected variant is not a supported generation."""

    def __init__(self, variant: str, supported: Sequence[str] = ()) -> None:
        details = f"supported: {', '.join(supported)}" if supported else None
        super().__init__(f"Unknown variant: {variant}", details)
        self.variant = variant
        self.supported = tuple(supported)


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(DepfetchError):
    """
    Base exception for download-related errors.

    Attributes:
        url: The URL that was being downloaded when the error occurred.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


class RemoteAssetNotFoundError(DownloadError):
    """
    Exception raised when the remote existence probe fails.

    Attributes:
        status_code: The HTTP status code, or None when no response was received.
    """

    def __init__(
        self,
        url: str,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(f"Invalid url: {url}", url=url, details=details)
        self.status_code = status_code


class DownloadIncompleteError(DownloadError):
    """Exception raised when a download reported success but left no file behind."""

    def __init__(self, path: str, url: str | None = None) -> None:
        super().__init__(f"Missing asset: {path}", url=url)
        self.path = path


# =============================================================================
# Archive Errors
# =============================================================================


class ArchiveError(DepfetchError):
    """
    Base exception for archive-related errors.

    Attributes:
        archive_path: Path to the archive file.
    """

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.archive_path = archive_path


class ExtractionError(ArchiveError):
    """
    Exception raised when archive extraction fails.

    Attributes:
        member: The archive member that could not be extracted, if known.
    """

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        member: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, archive_path, details)
        self.member = member
