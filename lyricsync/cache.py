"""Tiered, expiring cache of parsed lyrics keyed by source signature."""

import json
import logging
import time
from typing import Any, Callable, List, Optional, Sequence

from .models import CacheEntry, Line
from .storage import StorageBackend, WriteStatus
from .exceptions import CacheError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "lyric_cache_"
DEFAULT_EXPIRATION_MS = 7 * 24 * 60 * 60 * 1000  # 7 days


def _now_ms() -> float:
    return time.time() * 1000


def cache_key_for(source: Any) -> str:
    """
    Builds the signature a lyric source is cached under.

    Markup text is used verbatim; a structured list is JSON-serialized.
    Two lists only share a key if they serialize identically.
    """
    if isinstance(source, str):
        return source
    items = [item.to_dict() if isinstance(item, Line) else item for item in source]
    return json.dumps(items, ensure_ascii=False, separators=(",", ":"))


class LyricCache:
    """
    Best-effort cache of parse results over an ordered list of backends.

    Writes go to the first backend that accepts them; reads take the first
    fresh entry found in backend order. Backend failures are logged and
    never reach the caller. Several caches can share a backend as long as
    neither prefix is a prefix of the other: ``clear()`` removes every key
    starting with this cache's prefix, so clearing ``"lyric_"`` would also
    empty a ``"lyric_v2_"`` cache.
    """

    def __init__(
        self,
        backends: Sequence[StorageBackend],
        prefix: str = DEFAULT_PREFIX,
        expiration_ms: float = DEFAULT_EXPIRATION_MS,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initializes the LyricCache.

        Args:
            backends: Stores to try, fastest first.
            prefix: Namespace prepended to every key.
            expiration_ms: Default time-to-live of an entry in milliseconds.
            clock: Returns the current epoch time in milliseconds.

        Raises:
            CacheError: If the prefix is empty or the expiration is not positive.
        """
        if not prefix:
            raise CacheError("Cache prefix cannot be empty.")
        if expiration_ms <= 0:
            raise CacheError(f"Cache expiration must be positive, got {expiration_ms}")
        self.backends: List[StorageBackend] = list(backends)
        self.prefix = prefix
        self.expiration_ms = expiration_ms
        self.clock = clock or _now_ms

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def set(self, key: str, lines: Sequence[Line]) -> None:
        """Stores ``lines`` under ``key``, silently giving up if no backend takes them."""
        full_key = self._full_key(key)
        entry = CacheEntry(key=full_key, payload=list(lines), stored_at=self.clock(), ttl=self.expiration_ms)
        try:
            blob = json.dumps(entry.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error(f"Could not serialize cache entry for '{full_key[:40]}': {e}", exc_info=True)
            return

        for backend in self.backends:
            try:
                status = await backend.set(full_key, blob)
            except Exception as e:
                logger.error(f"Backend '{backend.name}' raised while writing: {e}", exc_info=True)
                status = WriteStatus.ERROR
            if status is WriteStatus.OK:
                logger.debug(f"Cached {len(entry.payload)} lines in '{backend.name}'.")
                return
            logger.debug(f"Backend '{backend.name}' refused write ({status.value}), trying next.")

        logger.warning("Failed to cache lyrics in any storage backend.")

    async def _read(self, backend: StorageBackend, full_key: str) -> Optional[List[Line]]:
        try:
            blob = await backend.get(full_key)
        except Exception as e:
            logger.error(f"Backend '{backend.name}' raised while reading: {e}", exc_info=True)
            return None
        if blob is None:
            return None

        try:
            entry = CacheEntry.from_dict(json.loads(blob))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Dropping unreadable cache entry in '{backend.name}': {e}")
            await self._remove_from(backend, full_key)
            return None

        if entry.is_expired(self.clock(), self.expiration_ms):
            logger.debug(f"Cache entry in '{backend.name}' expired, removing.")
            await self._remove_from(backend, full_key)
            return None
        return entry.payload

    async def get(self, key: str) -> Optional[List[Line]]:
        """
        Returns the cached lines for ``key``.

        Returns:
            The lines, or None if no backend holds a fresh entry.
        """
        full_key = self._full_key(key)
        for backend in self.backends:
            lines = await self._read(backend, full_key)
            if lines is not None:
                return lines
        return None

    async def _remove_from(self, backend: StorageBackend, full_key: str) -> None:
        try:
            await backend.remove(full_key)
        except Exception as e:
            logger.error(f"Backend '{backend.name}' raised while removing: {e}", exc_info=True)

    async def remove(self, key: str) -> None:
        """Removes ``key`` from every backend."""
        full_key = self._full_key(key)
        for backend in self.backends:
            await self._remove_from(backend, full_key)

    async def clear(self) -> None:
        """Removes every entry carrying this cache's prefix, leaving other keys alone."""
        for backend in self.backends:
            try:
                keys = await backend.keys(self.prefix)
            except Exception as e:
                logger.error(f"Backend '{backend.name}' raised while listing keys: {e}", exc_info=True)
                continue
            for full_key in keys:
                await self._remove_from(backend, full_key)
            logger.debug(f"Cleared {len(keys)} entries from '{backend.name}'.")

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None
