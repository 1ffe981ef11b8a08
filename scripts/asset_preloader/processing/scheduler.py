"""
Upload scheduler: drives every pending record to completion in bounded passes.

Each pass snapshots the pending records of every loader type, runs all of
their upload functions concurrently and waits for every one of them to
settle. Records enqueued while a pass runs (an external tileset found in a
map, an image found in a tileset) are not part of that pass's snapshot and
are picked up by the next one.
"""

import asyncio
import inspect
import logging
from typing import List

from ..errors import InvalidLoaderContractError, PreloadError, RecursionLimitError
from ..loaders.base import LoaderRegistry, LoaderType, ResourceRecord
from .progress import ProgressEmitter

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 5


class UploadScheduler:
    """Bounded fixpoint resolution over a ``LoaderRegistry``."""

    def __init__(self, registry: LoaderRegistry, emitter: ProgressEmitter,
                 max_passes: int = DEFAULT_MAX_PASSES):
        """
        Args:
            registry: Registry holding the pending queues and completed stores
            emitter: Receives one ``progress`` per settled record and one
                ``error`` per recoverable failure
            max_passes: Upload passes allowed before giving up
        """
        if max_passes < 1:
            raise ValueError(f"max_passes must be at least 1, got {max_passes}")
        self.registry = registry
        self.emitter = emitter
        self.max_passes = max_passes

    async def run(self) -> int:
        """
        Upload until nothing is pending.

        Returns:
            Number of passes run (at least 1, even with an empty queue)

        Raises:
            PreloadError: The first critical failure of a pass, after the
                whole pass has settled
            RecursionLimitError: If work is still pending after ``max_passes``
        """
        passes = 0
        while True:
            passes += 1
            snapshot = self.registry.pending_snapshot()
            logger.info(f"Upload pass {passes}/{self.max_passes}: {len(snapshot)} file(s)")

            critical: List[PreloadError] = []
            await asyncio.gather(*(
                self._upload(loader_type, record, critical) for loader_type, record in snapshot
            ))

            if critical:
                if len(critical) > 1:
                    logger.error(f"{len(critical)} critical failures in pass {passes}, raising the first one")
                raise critical[0]

            remaining = self.registry.total_pending()
            if remaining == 0:
                logger.info(f"All files uploaded after {passes} pass(es)")
                return passes

            if passes >= self.max_passes:
                raise RecursionLimitError(passes, remaining)

    async def _upload(self, loader_type: LoaderType, record: ResourceRecord,
                      critical: List[PreloadError]) -> None:
        """Run one upload and settle its record. Never raises."""
        try:
            pending_result = loader_type.upload_function(record.key, record.url, *record.extra_args)
            if not inspect.isawaitable(pending_result):
                raise InvalidLoaderContractError(loader_type.name, record.key, pending_result)
            result = await pending_result
        except PreloadError as e:
            if e.recoverable:
                self._fail(loader_type, record, e)
            else:
                logger.error(f"Critical failure loading {loader_type.name} '{record.key}': {e}")
                self.registry.discard(loader_type.name, record.key)
                critical.append(e)
            return
        except Exception as e:
            self._fail(loader_type, record, e)
            return

        if result is None:
            logger.info(f"{loader_type.name} '{record.key}' loaded with an empty result")

        self.registry.complete(loader_type.name, record.key, result)
        self.emitter.progress(self.registry.total_pending(), record.key, loader_type.name)

    def _fail(self, loader_type: LoaderType, record: ResourceRecord, error: Exception) -> None:
        logger.error(f"Failed to load {loader_type.name} '{record.key}' from {record.url}: {error}")
        self.registry.discard(loader_type.name, record.key)
        total = self.registry.total_pending()
        self.emitter.error(error, total, record.key, loader_type.name)
        self.emitter.progress(total, record.key, loader_type.name)
