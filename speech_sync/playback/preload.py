"""Shared narration cache so players showing the same article fetch once.

WHY: A reading view and a reel, or the same view mounted twice, often
show the same commentary. Each player preloading on its own would
synthesize the same narration several times.

HOW: PreloadCache maps (commentary, title) to the asyncio task fetching
that narration. Players await the task through asyncio.shield, so one
player leaving does not cancel the fetch for the others. A finished
entry is served straight from the cache.

RULES:
- One in-flight fetch per key; later callers join it
- Failed or cancelled fetches are not cached; the next caller refetches
- When the last waiter of an unfinished fetch is cancelled, the fetch is
  cancelled too (which aborts its HTTP request) and the entry dropped
- Entries belong to the event loop that created them; a stale entry from
  a closed loop is replaced
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Dict, Optional, Tuple

from speech_sync.core.ir import AudioSource

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


class _Entry:
    def __init__(self, task: asyncio.Task) -> None:
        self.task = task
        self.waiters = 0

    @property
    def reusable(self) -> bool:
        task = self.task
        if not task.done():
            try:
                return task.get_loop() is asyncio.get_running_loop()
            except RuntimeError:
                return False
        return not task.cancelled() and task.exception() is None


class PreloadCache:
    """Registry of narration fetches keyed by (commentary, title)."""

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, _Entry] = {}

    async def fetch(
        self,
        key: CacheKey,
        factory: Callable[[], Awaitable[AudioSource]],
    ) -> AudioSource:
        """Return the narration for key, starting factory() if needed.

        Args:
            key: (commentary, title) of the narration.
            factory: Zero-argument coroutine function doing the real fetch.

        Returns:
            The AudioSource produced by the first successful factory call.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.reusable and entry.task.done():
            logger.debug("Preload cache hit (%d chars)", len(key[0]))
            return entry.task.result()

        if entry is None or not entry.reusable:
            entry = _Entry(asyncio.ensure_future(factory()))
            self._entries[key] = entry
        else:
            logger.debug("Joining in-flight preload (%d chars)", len(key[0]))

        entry.waiters += 1
        try:
            return await asyncio.shield(entry.task)
        except asyncio.CancelledError:
            if entry.waiters == 1 and not entry.task.done():
                entry.task.cancel()
                self._drop(key, entry)
            raise
        finally:
            entry.waiters -= 1

    def peek(self, key: CacheKey) -> Optional[AudioSource]:
        """The cached narration for key, or None if not (yet) available."""
        entry = self._entries.get(key)
        if entry is None or not entry.task.done() or not entry.reusable:
            return None
        return entry.task.result()

    def evict(self, key: CacheKey) -> None:
        """Forget key; an unwatched fetch on the running loop is cancelled."""
        entry = self._entries.pop(key, None)
        if entry is None or entry.task.done() or entry.waiters:
            return
        if entry.reusable:
            entry.task.cancel()

    def clear(self) -> None:
        for key in list(self._entries):
            self.evict(key)

    def _drop(self, key: CacheKey, entry: _Entry) -> None:
        if self._entries.get(key) is entry:
            del self._entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


shared_preload_cache = PreloadCache()
"""Process-wide default cache; inject a dedicated PreloadCache for isolation."""
