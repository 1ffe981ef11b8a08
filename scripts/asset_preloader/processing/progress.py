"""
Lifecycle and progress notifications for a preload.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

LOADSTART = "loadstart"
PROGRESS = "progress"
LOAD = "load"
ERROR = "error"
# Reserved, never emitted
ABORT = "abort"
TIMEOUT = "timeout"

EVENT_NAMES = (LOADSTART, PROGRESS, LOAD, ERROR, ABORT, TIMEOUT)


@dataclass(frozen=True)
class ProgressEvent:
    """
    Payload delivered to listeners.

    ``loaded`` counts resources settled since the last ``loadstart``;
    ``total`` is the number of resources still pending when the event fired.
    """
    type: str
    loaded: int = 0
    total: int = 0
    error: Optional[BaseException] = None
    key: Optional[str] = None
    loader_type: Optional[str] = None
    length_computable: bool = True


Listener = Callable[[ProgressEvent], Any]


class ProgressEmitter:
    """Dispatches lifecycle events to listeners and tracks the ``loaded`` counter."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {name: [] for name in EVENT_NAMES}
        self._loaded = 0

    @property
    def loaded(self) -> int:
        return self._loaded

    def add_listener(self, name: str, listener: Listener) -> bool:
        """
        Register a listener for an event name.

        Returns:
            False if the name is not a known lifecycle event (the listener is ignored)
        """
        if name not in self._listeners:
            logger.warning(f"Unknown event '{name}', expected one of {', '.join(EVENT_NAMES)}")
            return False
        if listener not in self._listeners[name]:
            self._listeners[name].append(listener)
        return True

    def remove_listener(self, name: str, listener: Listener) -> bool:
        listeners = self._listeners.get(name)
        if not listeners or listener not in listeners:
            return False
        listeners.remove(listener)
        return True

    def emit(self, event: ProgressEvent) -> None:
        # Iterate over a copy, listeners may unsubscribe themselves
        for listener in list(self._listeners[event.type]):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener for '{event.type}' event failed")

    def loadstart(self, total: int) -> None:
        self._loaded = 0
        self.emit(ProgressEvent(LOADSTART, loaded=0, total=total))

    def progress(self, total: int, key: Optional[str] = None, loader_type: Optional[str] = None) -> None:
        """Count one settled resource and notify ``progress`` listeners."""
        self._loaded += 1
        self.emit(ProgressEvent(PROGRESS, loaded=self._loaded, total=total, key=key, loader_type=loader_type))

    def error(self, error: BaseException, total: int = 0, key: Optional[str] = None,
              loader_type: Optional[str] = None) -> None:
        self.emit(ProgressEvent(
            ERROR, loaded=self._loaded, total=total, error=error, key=key, loader_type=loader_type,
        ))

    def load(self, total: int = 0) -> None:
        self.emit(ProgressEvent(LOAD, loaded=self._loaded, total=total))
