"""
AssetsManager: public facade of the asset preloader.

Owns one loader registry (with the built-in types registered), one progress
emitter and one fetcher. There is no process-wide instance; every manager
is independent.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from PIL import Image

from .config import PreloaderConfig
from .errors import DuplicateKeyError, PreloadInProgressError
from .loaders.base import LoaderHandle, LoaderRegistry, UploadFunction
from .loaders.builtin import (
    ATLAS_IMAGE_MAP, ATLAS_XML, AUDIO, IMAGE, TILEMAP, TILESET, BuiltinLoaders,
)
from .loaders.fetch import ResourceFetcher
from .processing.progress import Listener, ProgressEmitter
from .processing.scheduler import UploadScheduler
from .schema import AtlasDescriptor, AtlasEntry, AudioClip, TileMap, Tileset


class AssetsManager:
    """
    Registers loader types, queues files and preloads them.

    Typical use::

        manager = AssetsManager()
        manager.add_tilemap("level1", "maps/level1.tmj")
        manager.add_image("hero", "sprites/hero.png")
        await manager.preload()
        level = manager.get_tilemap("level1")

    Custom types are registered with ``register_loader_type`` and used
    through ``loader(name)`` or the generic ``add_file``/``get_file`` pair.
    """

    def __init__(self, config: Optional[PreloaderConfig] = None,
                 fetcher: Optional[ResourceFetcher] = None):
        """
        Initialize the manager.

        Args:
            config: Preloader configuration, defaults to ``PreloaderConfig()``
            fetcher: Byte fetcher, defaults to a ``ResourceFetcher`` built from ``config``
        """
        self.config = config or PreloaderConfig()
        self.logger = self._setup_logging()
        self.fetcher = fetcher or ResourceFetcher(self.config)

        self._emitter = ProgressEmitter()
        self._registry = LoaderRegistry(on_duplicate=self._report_duplicate)
        self._builtins = BuiltinLoaders(self._registry, self.fetcher)
        self._registry.default_upload_function = self._builtins.load_bytes
        self._builtins.register_all()

        self._handles: Dict[str, LoaderHandle] = {}
        self._preloading = False

    def _setup_logging(self) -> logging.Logger:
        """Set up logging for the preloader."""
        logger = logging.getLogger("asset_preloader")
        logger.setLevel(self.config.log_level.upper())

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    # ------------------------------------------------------------------
    # Loader types
    # ------------------------------------------------------------------

    def register_loader_type(self, name: str, upload_function: Optional[UploadFunction] = None) -> LoaderHandle:
        """
        Register a loader type and return its handle.

        Re-registering an existing name keeps the original upload function.
        Without ``upload_function`` the type resolves to the raw bytes of
        each file.
        """
        self._registry.register_loader_type(name, upload_function)
        return self.loader(name)

    def loader(self, name: str) -> LoaderHandle:
        """
        Get the ``add``/``get``/``is_in_queue`` handle of a registered type.

        Raises:
            UnregisteredLoaderError: If ``name`` is not registered
        """
        if name not in self._handles:
            self._handles[name] = LoaderHandle(self._registry, name)
        return self._handles[name]

    @property
    def loader_types(self) -> List[str]:
        return self._registry.loader_names

    def has_loader_type(self, name: str) -> bool:
        return self._registry.is_registered(name)

    # ------------------------------------------------------------------
    # Generic queue access
    # ------------------------------------------------------------------

    def add_file(self, type_name: str, key: str, url: str, *extra_args: Any) -> bool:
        """
        Enqueue a file of a registered type.

        Returns:
            False if ``key`` was already added for that type (the first entry is kept)
        """
        return self._registry.add_file(type_name, key, url, *extra_args)

    def get_file(self, type_name: str, key: str) -> Any:
        return self._registry.get_file(type_name, key)

    def is_file_in_queue(self, type_name: str, key: str) -> bool:
        return self._registry.is_file_in_queue(type_name, key)

    @property
    def files_waiting_for_upload(self) -> int:
        """Number of files pending across all loader types."""
        return self._registry.total_pending()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event_listener(self, name: str, listener: Listener) -> bool:
        return self._emitter.add_listener(name, listener)

    def remove_event_listener(self, name: str, listener: Listener) -> bool:
        return self._emitter.remove_listener(name, listener)

    def _report_duplicate(self, error: DuplicateKeyError) -> None:
        self._emitter.error(error, self._registry.total_pending(), error.key, error.type_name)

    # ------------------------------------------------------------------
    # Preload
    # ------------------------------------------------------------------

    async def preload(self) -> None:
        """
        Load every queued file, including files discovered while loading.

        Emits ``loadstart`` with the number of queued files, one ``progress``
        per settled file, one ``error`` per recoverable failure and finally
        ``load``, also when a critical error aborts the preload.

        Raises:
            PreloadInProgressError: If a preload is already running
            PreloadError: On the first critical failure; files loaded so far
                stay available
        """
        if self._preloading:
            raise PreloadInProgressError()

        self._preloading = True
        try:
            total = self._registry.total_pending()
            self.logger.info(f"Preloading {total} file(s)")
            self._emitter.loadstart(total)

            scheduler = UploadScheduler(self._registry, self._emitter, self.config.max_upload_passes)
            await scheduler.run()
        finally:
            self._preloading = False
            self._emitter.load(self._registry.total_pending())

        self.logger.info(f"Preload finished, {self._emitter.loaded} file(s) settled")

    def close(self) -> None:
        """Release the fetcher's network session."""
        self.fetcher.close()

    # ------------------------------------------------------------------
    # Built-in types
    # ------------------------------------------------------------------

    def add_image(self, key: str, url: str) -> bool:
        return self.add_file(IMAGE, key, url)

    def get_image(self, key: str) -> Optional[Image.Image]:
        return self.get_file(IMAGE, key)

    def is_image_in_queue(self, key: str) -> bool:
        return self.is_file_in_queue(IMAGE, key)

    def add_audio(self, key: str, url: str) -> bool:
        return self.add_file(AUDIO, key, url)

    def get_audio(self, key: str) -> Optional[AudioClip]:
        return self.get_file(AUDIO, key)

    def is_audio_in_queue(self, key: str) -> bool:
        return self.is_file_in_queue(AUDIO, key)

    def add_tilemap(self, key: str, url: str) -> bool:
        return self.add_file(TILEMAP, key, url)

    def get_tilemap(self, key: str) -> Optional[TileMap]:
        return self.get_file(TILEMAP, key)

    def is_tilemap_in_queue(self, key: str) -> bool:
        return self.is_file_in_queue(TILEMAP, key)

    def add_tileset(self, key: str, url: str, firstgid: Optional[int] = None) -> bool:
        return self.add_file(TILESET, key, url, firstgid)

    def get_tileset(self, key: str) -> Optional[Tileset]:
        return self.get_file(TILESET, key)

    def is_tileset_in_queue(self, key: str) -> bool:
        return self.is_file_in_queue(TILESET, key)

    def add_atlas_xml(self, key: str, url: str) -> bool:
        return self.add_file(ATLAS_XML, key, url)

    def get_atlas_xml(self, key: str) -> Optional[AtlasDescriptor]:
        return self.get_file(ATLAS_XML, key)

    def is_atlas_xml_in_queue(self, key: str) -> bool:
        return self.is_file_in_queue(ATLAS_XML, key)

    def add_atlas_image_map(self, key: str, url: str,
                            entries: Iterable[Union[AtlasEntry, Dict[str, Any]]]) -> bool:
        return self.add_file(ATLAS_IMAGE_MAP, key, url, list(entries))

    def get_atlas_image_map(self, key: str) -> Optional[Dict[str, Image.Image]]:
        return self.get_file(ATLAS_IMAGE_MAP, key)

    def is_atlas_image_map_in_queue(self, key: str) -> bool:
        return self.is_file_in_queue(ATLAS_IMAGE_MAP, key)
