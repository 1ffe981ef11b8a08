"""
Processing modules for format normalization, atlas slicing, upload scheduling and progress events.
"""

from .normalizer import (
    DocumentKind,
    DocumentFormat,
    sniff_format,
    decode_document,
    normalize_tilemap,
    normalize_tileset,
    normalize_atlas,
)
from .atlas import AtlasSlicer, SliceResult
from .progress import ProgressEmitter, ProgressEvent, EVENT_NAMES
from .scheduler import UploadScheduler

__all__ = [
    "DocumentKind",
    "DocumentFormat",
    "sniff_format",
    "decode_document",
    "normalize_tilemap",
    "normalize_tileset",
    "normalize_atlas",
    "AtlasSlicer",
    "SliceResult",
    "ProgressEmitter",
    "ProgressEvent",
    "EVENT_NAMES",
    "UploadScheduler",
]
