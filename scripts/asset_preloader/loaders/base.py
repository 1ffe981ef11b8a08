"""
Loader registry: maps loader type names to upload functions and owns the
per-type pending queues and completed stores.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..errors import DuplicateKeyError, InvalidInputError, UnregisteredLoaderError

logger = logging.getLogger(__name__)

# (key, url, *extra_args) -> Awaitable[result | None]
UploadFunction = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class ResourceRecord:
    """One pending load request."""
    key: str
    url: str
    extra_args: Tuple[Any, ...] = ()


@dataclass
class LoaderType:
    """
    A registered loader type.

    A key lives either in ``pending`` (waiting for its upload) or in
    ``completed`` (upload settled successfully), never in both.
    """
    name: str
    upload_function: UploadFunction
    pending: Dict[str, ResourceRecord] = field(default_factory=dict)
    completed: Dict[str, Any] = field(default_factory=dict)

    def has_key(self, key: str) -> bool:
        return key in self.pending or key in self.completed


def _require_text(name: str, value: Any) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"'{name}' must be a non-empty string, got {value!r}")


class LoaderRegistry:
    """
    Registry of loader types and the sole owner of their queues and stores.

    Duplicate keys never replace the first entry. When a duplicate is added,
    ``on_duplicate`` (if given) is called with a ``DuplicateKeyError`` so the
    owner can surface it to listeners.
    """

    def __init__(self, default_upload_function: Optional[UploadFunction] = None,
                 on_duplicate: Optional[Callable[[DuplicateKeyError], None]] = None):
        """
        Initialize empty loader registry.

        Args:
            default_upload_function: Upload function used by types registered
                without one
            on_duplicate: Callback invoked for every rejected duplicate key
        """
        self._types: Dict[str, LoaderType] = {}
        self.default_upload_function = default_upload_function
        self._on_duplicate = on_duplicate

    def register_loader_type(self, name: str, upload_function: Optional[UploadFunction] = None) -> LoaderType:
        """
        Register a loader type.

        Registration is idempotent: if ``name`` is already registered the
        existing type, and its upload function, are kept.

        Args:
            name: Loader type name
            upload_function: Upload function, defaults to the registry's
                default (pass-through byte fetch)

        Returns:
            The registered (or already existing) loader type

        Raises:
            InvalidInputError: If ``name`` is empty
            ValueError: If no upload function is available or it is not callable
        """
        _require_text("name", name)

        existing = self._types.get(name)
        if existing is not None:
            if upload_function is not None and upload_function is not existing.upload_function:
                logger.warning(f"Loader type '{name}' is already registered, keeping the existing upload function")
            return existing

        upload_function = upload_function or self.default_upload_function
        if upload_function is None:
            raise ValueError(f"No upload function given for loader type '{name}' and no default is set")
        if not callable(upload_function):
            raise ValueError(f"Upload function for loader type '{name}' must be callable")

        loader_type = LoaderType(name=name, upload_function=upload_function)
        self._types[name] = loader_type
        logger.debug(f"Registered loader type '{name}'")
        return loader_type

    def get_loader_type(self, name: str) -> LoaderType:
        """
        Get a registered loader type by name.

        Raises:
            UnregisteredLoaderError: If ``name`` is not registered
        """
        if name not in self._types:
            raise UnregisteredLoaderError(name, list(self._types.keys()))
        return self._types[name]

    def is_registered(self, name: str) -> bool:
        return name in self._types

    @property
    def loader_names(self) -> List[str]:
        return list(self._types.keys())

    def add_file(self, type_name: str, key: str, url: str, *extra_args: Any) -> bool:
        """
        Enqueue a file for upload.

        Returns:
            True if the file was enqueued, False if the key was a duplicate

        Raises:
            UnregisteredLoaderError: If ``type_name`` is not registered
            InvalidInputError: If ``key`` or ``url`` is empty or blank
        """
        loader_type = self.get_loader_type(type_name)
        _require_text("key", key)
        _require_text("url", url)

        if loader_type.has_key(key):
            duplicate = DuplicateKeyError(type_name, key)
            logger.warning(str(duplicate))
            if self._on_duplicate is not None:
                self._on_duplicate(duplicate)
            return False

        loader_type.pending[key] = ResourceRecord(key=key, url=url, extra_args=tuple(extra_args))
        return True

    def is_file_in_queue(self, type_name: str, key: str) -> bool:
        return key in self.get_loader_type(type_name).pending

    def get_file(self, type_name: str, key: str) -> Any:
        """
        Get the loaded result for a key.

        Returns ``None`` (with a warning) when the key has not been loaded,
        e.g. because its upload failed.
        """
        loader_type = self.get_loader_type(type_name)
        if key not in loader_type.completed:
            logger.warning(f"{type_name} with key '{key}' is not loaded")
            return None
        return loader_type.completed[key]

    def has_file(self, type_name: str, key: str) -> bool:
        """Check whether a key is pending or loaded."""
        return self.get_loader_type(type_name).has_key(key)

    def has_result(self, type_name: str, key: str) -> bool:
        return key in self.get_loader_type(type_name).completed

    def store_result(self, type_name: str, key: str, result: Any) -> bool:
        """
        Insert a result directly into a completed store.

        Used when one upload produces results for another type (atlas pieces
        stored as images). An existing pending or loaded key is kept.
        """
        loader_type = self.get_loader_type(type_name)
        if loader_type.has_key(key):
            logger.warning(f"{type_name} with key '{key}' already exists, not overwriting it")
            return False
        loader_type.completed[key] = result
        return True

    def complete(self, type_name: str, key: str, result: Any) -> None:
        """Move a pending key to the completed store."""
        loader_type = self.get_loader_type(type_name)
        loader_type.pending.pop(key, None)
        loader_type.completed[key] = result

    def discard(self, type_name: str, key: str) -> None:
        """Remove a pending key without storing a result."""
        self.get_loader_type(type_name).pending.pop(key, None)

    def total_pending(self) -> int:
        return sum(len(loader_type.pending) for loader_type in self._types.values())

    def pending_snapshot(self) -> List[Tuple[LoaderType, ResourceRecord]]:
        """Copy of every currently pending record, in registration order."""
        return [
            (loader_type, record)
            for loader_type in self._types.values()
            for record in list(loader_type.pending.values())
        ]


class LoaderHandle:
    """Per-type view of the registry: ``add``, ``get`` and ``is_in_queue`` for one loader type."""

    def __init__(self, registry: LoaderRegistry, type_name: str):
        registry.get_loader_type(type_name)
        self._registry = registry
        self.type_name = type_name

    def add(self, key: str, url: str, *extra_args: Any) -> bool:
        return self._registry.add_file(self.type_name, key, url, *extra_args)

    def get(self, key: str) -> Any:
        return self._registry.get_file(self.type_name, key)

    def is_in_queue(self, key: str) -> bool:
        return self._registry.is_file_in_queue(self.type_name, key)

    @property
    def pending_count(self) -> int:
        return len(self._registry.get_loader_type(self.type_name).pending)

    @property
    def loaded_count(self) -> int:
        return len(self._registry.get_loader_type(self.type_name).completed)

    def __repr__(self) -> str:
        return f"LoaderHandle({self.type_name!r})"
