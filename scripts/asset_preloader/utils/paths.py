"""
URL and path helpers shared by the normalizer and the fetcher.
"""

import posixpath
from typing import Iterable, Optional
from urllib.parse import urlsplit


# Every extension a structured resource may carry
STRUCTURED_EXTENSIONS = (".tmj", ".tmx", ".tsj", ".tsx", ".json", ".xml")


def url_extension(url: str) -> str:
    """
    Get the lowercase file extension of a URL path.

    Query strings and fragments are ignored, so ``map.tmj?v=2`` yields
    ``.tmj``. Returns an empty string when the last segment has no extension.
    """
    path = urlsplit(url).path if _has_scheme(url) else url.split("?", 1)[0].split("#", 1)[0]
    return posixpath.splitext(posixpath.basename(path))[1].lower()


def base_directory(url: str, extensions: Iterable[str] = STRUCTURED_EXTENSIONS) -> str:
    """
    Get the directory part of a resource URL, including the trailing ``/``.

    When the final segment carries one of ``extensions`` it is treated as the
    file name and stripped. Otherwise the whole URL is taken as the directory.
    """
    path = url.split("?", 1)[0].split("#", 1)[0]
    if not path:
        return ""

    if url_extension(path) in tuple(extensions):
        head, _, _ = path.rpartition("/")
        return head + "/" if head or path.startswith("/") else ""

    return path if path.endswith("/") else path + "/"


def is_absolute_reference(reference: str) -> bool:
    """Check whether a sibling reference must be used as-is."""
    return reference.startswith("/") or _has_scheme(reference)


def resolve_reference(base: str, reference: str) -> str:
    """Prefix a sibling reference (tileset source, image path) with its base directory."""
    if not base or is_absolute_reference(reference):
        return reference
    return base + reference


def strip_extension(name: str) -> str:
    """Remove the last ``.``-delimited suffix of a name, if any."""
    stem, ext = posixpath.splitext(name)
    return stem if ext else name


def url_scheme(url: str) -> Optional[str]:
    """Get the lowercase URL scheme, or ``None`` for plain paths."""
    if not _has_scheme(url):
        return None
    return urlsplit(url).scheme.lower()


def _has_scheme(url: str) -> bool:
    scheme, sep, _ = url.partition("://")
    # Windows drive letters look like one-letter schemes
    return bool(sep) and len(scheme) > 1 and scheme.replace("+", "").replace("-", "").replace(".", "").isalnum()
