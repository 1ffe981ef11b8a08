"""
Asset Preloader

An asyncio engine that fetches typed resources (images, audio, Tiled maps and
tilesets, sprite atlases) by key, follows the dependencies discovered while
loading them and exposes the results through one lookup surface.
"""

__version__ = "0.1.0"
__author__ = "Asset Preloader Development Team"

from .config import PreloaderConfig, PreloadManifest
from .manager import AssetsManager
from .loaders.base import LoaderHandle, LoaderRegistry
from .processing.progress import ProgressEvent
from .schema import TileMap, Tileset, TilesetRef, AtlasDescriptor, AtlasEntry, AudioClip
from .errors import PreloadError, ResourceLoadError, RecursionLimitError

__all__ = [
    "AssetsManager",
    "PreloaderConfig",
    "PreloadManifest",
    "LoaderHandle",
    "LoaderRegistry",
    "ProgressEvent",
    "TileMap",
    "Tileset",
    "TilesetRef",
    "AtlasDescriptor",
    "AtlasEntry",
    "AudioClip",
    "PreloadError",
    "ResourceLoadError",
    "RecursionLimitError",
]
