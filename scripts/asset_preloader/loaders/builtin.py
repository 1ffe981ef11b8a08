"""
Built-in loader types and their upload functions.

Structured loaders fetch a document, normalize it and enqueue whatever it
references: a tile map enqueues its external tilesets, a tileset enqueues its
image, an atlas enqueues its backing image together with the rectangles to
cut out of it. The scheduler picks the new records up on its next pass.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

from PIL import Image

from ..errors import AtlasImageError, ImageDecodeError
from ..processing.atlas import AtlasSlicer
from ..processing.normalizer import DECODERS, DocumentKind, resolve_relative_path, sniff_format
from ..schema import AtlasDescriptor, AtlasEntry, AudioClip, TileMap, Tileset, TilesetRef
from ..utils.image import ImageUtils
from ..utils.paths import resolve_reference, url_extension
from .base import LoaderRegistry, UploadFunction
from .fetch import ResourceFetcher

logger = logging.getLogger(__name__)

AUDIO = "Audio"
IMAGE = "Image"
TILEMAP = "TileMap"
TILESET = "TileSet"
ATLAS_IMAGE_MAP = "AtlasImageMap"
ATLAS_XML = "AtlasXML"

BUILTIN_TYPES = (AUDIO, IMAGE, TILEMAP, TILESET, ATLAS_IMAGE_MAP, ATLAS_XML)


@dataclass(frozen=True)
class TilesetSlot:
    """Position of an external tileset stub inside the map that references it."""
    tilemap: TileMap
    index: int

    def attach(self, tileset: Tileset) -> None:
        """Replace the stub with the resolved tileset."""
        self.tilemap.tilesets[self.index] = tileset


class BuiltinLoaders:
    """Upload functions of the built-in loader types, bound to one registry."""

    def __init__(self, registry: LoaderRegistry, fetcher: ResourceFetcher,
                 slicer: Optional[AtlasSlicer] = None):
        self.registry = registry
        self.fetcher = fetcher
        self.slicer = slicer or AtlasSlicer()

    def upload_functions(self) -> Dict[str, UploadFunction]:
        return {
            AUDIO: self.load_audio,
            IMAGE: self.load_image,
            TILEMAP: self.load_tilemap,
            TILESET: self.load_tileset,
            ATLAS_IMAGE_MAP: self.load_atlas_image_map,
            ATLAS_XML: self.load_atlas_xml,
        }

    def register_all(self) -> None:
        for name, upload_function in self.upload_functions().items():
            self.registry.register_loader_type(name, upload_function)

    async def load_bytes(self, key: str, url: str, *args: Any) -> bytes:
        """Default upload function: the raw bytes of the resource."""
        return await self.fetcher.fetch_async(url)

    async def load_image(self, key: str, url: str, *args: Any) -> Image.Image:
        data = await self.fetcher.fetch_async(url)
        try:
            return await asyncio.to_thread(ImageUtils.load_image, data)
        except ValueError as e:
            raise ImageDecodeError(f"Cannot decode image '{key}' from {url}: {e}", url)

    async def load_audio(self, key: str, url: str, *args: Any) -> AudioClip:
        data = await self.fetcher.fetch_async(url)
        return AudioClip(url=url, data=data, format=url_extension(url).lstrip(".") or "unknown")

    async def load_tilemap(self, key: str, url: str, *args: Any) -> TileMap:
        """
        Load a tile map and enqueue its dependencies.

        External tilesets are enqueued as ``TileSet`` loads keyed
        ``"<map key>:<index>:<source>"``, one load per stub; their stubs are
        replaced once loaded.
        Images of inline tilesets are enqueued directly.
        """
        document_format = sniff_format(url, DocumentKind.TILEMAP)
        data = await self.fetcher.fetch_async(url)
        tilemap: TileMap = DECODERS[(DocumentKind.TILEMAP, document_format)](data)

        base = resolve_relative_path(url)
        for index, tileset in enumerate(tilemap.tilesets):
            if isinstance(tileset, TilesetRef):
                self.registry.add_file(
                    TILESET,
                    f"{key}:{index}:{tileset.source}",
                    resolve_reference(base, tileset.source),
                    tileset.firstgid,
                    TilesetSlot(tilemap, index),
                )
            else:
                self._enqueue_tileset_image(tileset, base)

        logger.debug(
            f"Tile map '{key}': {len(tilemap.layers)} layer(s), "
            f"{len(tilemap.unresolved_tilesets)} external tileset(s)"
        )
        return tilemap

    async def load_tileset(self, key: str, url: str, firstgid: Optional[int] = None,
                           slot: Optional[TilesetSlot] = None, *args: Any) -> Tileset:
        """Load a tileset, attach it to its map (if any) and enqueue its image."""
        document_format = sniff_format(url, DocumentKind.TILESET)
        data = await self.fetcher.fetch_async(url)
        tileset: Tileset = DECODERS[(DocumentKind.TILESET, document_format)](data)

        tileset.firstgid = firstgid
        tileset.source = url
        if slot is not None:
            slot.attach(tileset)

        self._enqueue_tileset_image(tileset, resolve_relative_path(url))
        return tileset

    async def load_atlas_xml(self, key: str, url: str, *args: Any) -> AtlasDescriptor:
        """Load atlas metadata and enqueue the ``AtlasImageMap`` load of its image."""
        document_format = sniff_format(url, DocumentKind.ATLAS)
        data = await self.fetcher.fetch_async(url)
        descriptor: AtlasDescriptor = DECODERS[(DocumentKind.ATLAS, document_format)](data)

        image_url = resolve_reference(resolve_relative_path(url), descriptor.image_path)
        self.registry.add_file(ATLAS_IMAGE_MAP, key, image_url, descriptor.entries)
        return descriptor

    async def load_atlas_image_map(self, key: str, url: str,
                                   entries: Iterable[Union[AtlasEntry, Dict[str, Any]]] = (),
                                   *args: Any) -> Dict[str, Image.Image]:
        """
        Load an atlas image and cut it into named pieces.

        Every piece is also stored in the ``Image`` store under its name.
        """
        data = await self.fetcher.fetch_async(url)
        try:
            sheet = await asyncio.to_thread(ImageUtils.load_image, data)
        except ValueError as e:
            raise AtlasImageError(f"Cannot decode atlas image '{key}' from {url}: {e}", url)

        atlas_entries = [e if isinstance(e, AtlasEntry) else AtlasEntry(**e) for e in entries]
        result = self.slicer.slice(sheet, atlas_entries)

        for name, piece in result.images.items():
            self.registry.store_result(IMAGE, name, piece)

        logger.info(f"Atlas '{key}': {len(result)} image(s), {len(result.skipped)} skipped")
        return dict(result.images)

    def _enqueue_tileset_image(self, tileset: Tileset, base: str) -> None:
        if not tileset.image:
            return
        if not tileset.name or not tileset.name.strip():
            logger.warning(f"Tileset with image '{tileset.image}' has no name, image not enqueued")
            return
        if self.registry.has_file(IMAGE, tileset.name):
            logger.debug(f"Image '{tileset.name}' already enqueued or loaded")
            return
        self.registry.add_file(IMAGE, tileset.name, resolve_reference(base, tileset.image))
