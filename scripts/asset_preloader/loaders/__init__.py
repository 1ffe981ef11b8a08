"""
Loader registry, built-in loader types and the resource fetcher.
"""

from .base import LoaderRegistry, LoaderType, LoaderHandle, ResourceRecord, UploadFunction
from .builtin import (
    BuiltinLoaders, TilesetSlot, BUILTIN_TYPES,
    AUDIO, IMAGE, TILEMAP, TILESET, ATLAS_IMAGE_MAP, ATLAS_XML,
)
from .fetch import ResourceFetcher

__all__ = [
    # Registry
    "LoaderRegistry",
    "LoaderType",
    "LoaderHandle",
    "ResourceRecord",
    "UploadFunction",

    # Built-in types
    "BuiltinLoaders",
    "TilesetSlot",
    "BUILTIN_TYPES",
    "AUDIO",
    "IMAGE",
    "TILEMAP",
    "TILESET",
    "ATLAS_IMAGE_MAP",
    "ATLAS_XML",

    # Fetching
    "ResourceFetcher",
]
