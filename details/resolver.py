from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Protocol

from details.types import DetailRecord, ResultRef
from search.errors import DetailFetchFailed, RemoteCallFailed

logger = logging.getLogger(__name__)


class DetailSource(Protocol):
    """
    Fetches the detail payload of one result. Raises on failure.
    """

    async def fetch(self, ref: ResultRef) -> dict[str, Any]: ...


class DetailResolver:
    """
    Fetch-and-cache for detail records keyed by `(kind, id)`.

    - cached records are returned until explicitly invalidated (no expiry)
    - at most one request per ref is in flight; concurrent callers share its outcome
    - `silent=True` turns a failure into `None` (speculative fetches, hover previews)
    """

    def __init__(self, source: DetailSource, *, clock: Callable[[], float] = time.time):
        self._source = source
        self._clock = clock
        self._cache: dict[tuple[str, str], DetailRecord] = {}
        self._in_flight: dict[tuple[str, str], asyncio.Task[DetailRecord]] = {}
        # Bumped by invalidate(); a load only caches if its generation is still current.
        self._generations: dict[tuple[str, str], int] = {}
        self._epoch = 0

    async def fetch(self, ref: ResultRef, *, silent: bool = False) -> DetailRecord | None:
        cached = self._cache.get(ref.key)
        if cached is not None:
            return cached

        task = self._in_flight.get(ref.key)
        if task is None:
            task = asyncio.ensure_future(self._load(ref, self._generation(ref.key)))
            self._in_flight[ref.key] = task
            task.add_done_callback(lambda t, key=ref.key: self._forget(key, t))
        else:
            logger.debug("Joining in-flight detail fetch for %s:%s", ref.kind.value, ref.id)

        try:
            # Shielded: one caller giving up must not cancel the shared request.
            return await asyncio.shield(task)
        except DetailFetchFailed as e:
            if silent:
                logger.debug("Silent detail fetch failed: %s", e)
                return None
            raise

    def get(self, ref: ResultRef) -> DetailRecord | None:
        return self._cache.get(ref.key)

    def in_flight(self, ref: ResultRef) -> bool:
        return ref.key in self._in_flight

    def invalidate(self, ref: ResultRef) -> None:
        """
        Drop the cached record. A fetch already under way still answers its callers
        but no longer fills the cache; the next `fetch` issues a new request.
        """
        self._cache.pop(ref.key, None)
        self._in_flight.pop(ref.key, None)
        self._generations[ref.key] = self._generations.get(ref.key, 0) + 1

    def invalidate_all(self) -> None:
        self._cache.clear()
        self._in_flight.clear()
        self._generations.clear()
        self._epoch += 1

    def __len__(self) -> int:
        return len(self._cache)

    def _generation(self, key: tuple[str, str]) -> tuple[int, int]:
        return (self._epoch, self._generations.get(key, 0))

    async def _load(self, ref: ResultRef, generation: tuple[int, int]) -> DetailRecord:
        try:
            payload = await self._source.fetch(ref)
        except asyncio.CancelledError:
            raise
        except RemoteCallFailed as e:
            raise DetailFetchFailed(ref, e.description) from e
        except Exception as e:
            raise DetailFetchFailed(ref, str(e) or e.__class__.__name__) from e

        record = DetailRecord(ref=ref, payload=dict(payload or {}), fetched_at=self._clock())
        if generation == self._generation(ref.key):
            self._cache[ref.key] = record
        else:
            logger.debug("Not caching %s:%s: invalidated while loading", ref.kind.value, ref.id)
        return record

    def _forget(self, key: tuple[str, str], task: asyncio.Task[DetailRecord]) -> None:
        if self._in_flight.get(key) is task:
            self._in_flight.pop(key, None)
        # Mark the outcome as retrieved even if every caller went away.
        if not task.cancelled():
            task.exception()
