"""
Exception hierarchy for the asset preloader.

Every error carries a ``recoverable`` flag. Recoverable errors affect a single
resource: they are logged, reported to ``error`` listeners and the preload
carries on. Non-recoverable (critical) errors abort the whole ``preload`` call.
"""

from typing import Optional


class PreloadError(Exception):
    """Base exception for preloader errors."""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(message)
        self.recoverable = recoverable


class UnregisteredLoaderError(PreloadError):
    """Exception raised when a loader type name is not registered."""

    def __init__(self, type_name: str, available: Optional[list] = None):
        message = f"Loader type '{type_name}' is not registered"
        if available is not None:
            message += f". Available: {available}"
        super().__init__(message)
        self.type_name = type_name


class InvalidInputError(PreloadError):
    """Exception raised when a key or url is missing or blank."""


class InvalidLoaderContractError(PreloadError):
    """Exception raised when an upload function does not return an awaitable."""

    def __init__(self, type_name: str, key: str, returned: object):
        super().__init__(
            f"Upload function of loader '{type_name}' must return an awaitable "
            f"(key '{key}' returned {type(returned).__name__})"
        )
        self.type_name = type_name
        self.key = key


class UnsupportedFormatError(PreloadError):
    """Exception raised for a structured resource with an unknown file extension."""

    def __init__(self, url: str, kind: str, supported: tuple):
        super().__init__(
            f"Unsupported file extension for {kind} '{url}'. Supported: {', '.join(supported)}"
        )
        self.url = url
        self.kind = kind


class RecursionLimitError(PreloadError):
    """Exception raised when pending work remains after the last allowed upload pass."""

    def __init__(self, passes: int, pending: int):
        super().__init__(
            f"Upload passes limit reached ({passes}), {pending} file(s) still waiting for upload"
        )
        self.passes = passes
        self.pending = pending


class PreloadInProgressError(PreloadError):
    """Exception raised when preload() is called while another preload is running."""

    def __init__(self):
        super().__init__("preload() is already running on this manager")


class ResourceLoadError(PreloadError):
    """Base exception for failures scoped to a single resource."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, recoverable=True)
        self.url = url


class NetworkError(ResourceLoadError):
    """Exception raised for network-related errors."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(f"Network error: {message}", url)


class ResourceNotFoundError(ResourceLoadError):
    """Exception raised when a local resource does not exist."""

    def __init__(self, url: str):
        super().__init__(f"Resource '{url}' not found", url)


class DocumentDecodeError(ResourceLoadError):
    """Exception raised when a map, tileset or atlas document cannot be decoded."""


class ImageDecodeError(ResourceLoadError):
    """Exception raised when image bytes cannot be decoded."""


class AtlasMetadataError(ResourceLoadError):
    """Exception raised when atlas metadata lacks required attributes."""


class AtlasImageError(ResourceLoadError):
    """Exception raised when the image backing an atlas cannot be decoded."""


class DuplicateKeyError(ResourceLoadError):
    """Reported (not raised) when a key is added twice for the same loader type."""

    def __init__(self, type_name: str, key: str):
        super().__init__(f"{type_name} with key '{key}' is already added, keeping the first entry")
        self.type_name = type_name
        self.key = key
