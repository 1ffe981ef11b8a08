"""
Utility modules for image decoding and URL/path handling.
"""

from .image import ImageUtils
from .paths import (
    STRUCTURED_EXTENSIONS,
    url_extension,
    base_directory,
    resolve_reference,
    strip_extension,
    url_scheme,
)

__all__ = [
    "ImageUtils",
    "STRUCTURED_EXTENSIONS",
    "url_extension",
    "base_directory",
    "resolve_reference",
    "strip_extension",
    "url_scheme",
]
