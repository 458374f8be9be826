"""Storage backends the lyric cache writes through, tried in order."""

import asyncio
import enum
import errno
import hashlib
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .exceptions import FileSystemError
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)

_CAPACITY_ERRNOS = (errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC))


class WriteStatus(enum.Enum):
    """Outcome of a backend write."""
    OK = "ok"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class StorageBackend(ABC):
    """Abstract base class for key/value stores holding serialized cache entries."""

    name = "backend"

    @property
    def available(self) -> bool:
        """Whether this backend can be used in the current environment."""
        return True

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Reads the value stored under ``key``.

        Returns:
            The stored string, or None if absent.
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> WriteStatus:
        """
        Stores ``value`` under ``key``.

        Capacity and availability problems are reported through the
        returned WriteStatus rather than raised.
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Deletes ``key`` if present."""
        pass

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        """Lists stored keys starting with ``prefix``."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Deletes every key in the backend."""
        pass


class MemoryBackend(StorageBackend):
    """
    Fast in-process store with an optional byte quota.

    Never yields to the event loop. Writes that would push the UTF-8 size of
    all keys and values past ``quota_bytes`` are refused with
    WriteStatus.QUOTA_EXCEEDED and leave the store unchanged.
    """

    name = "memory"

    def __init__(self, quota_bytes: Optional[int] = None, available: bool = True):
        if quota_bytes is not None and quota_bytes < 0:
            raise ValueError(f"quota_bytes must not be negative, got {quota_bytes}")
        self.quota_bytes = quota_bytes
        self._available = available
        self._data: Dict[str, str] = {}

    @property
    def available(self) -> bool:
        return self._available

    @staticmethod
    def _size(key: str, value: str) -> int:
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))

    @property
    def used_bytes(self) -> int:
        return sum(self._size(k, v) for k, v in self._data.items())

    async def get(self, key: str) -> Optional[str]:
        if not self._available:
            return None
        return self._data.get(key)

    async def set(self, key: str, value: str) -> WriteStatus:
        if not self._available:
            return WriteStatus.UNAVAILABLE
        if self.quota_bytes is not None:
            used = self.used_bytes
            if key in self._data:
                used -= self._size(key, self._data[key])
            if used + self._size(key, value) > self.quota_bytes:
                logger.debug(f"Memory backend quota of {self.quota_bytes} bytes exceeded by '{key[:40]}'")
                return WriteStatus.QUOTA_EXCEEDED
        self._data[key] = value
        return WriteStatus.OK

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        if not self._available:
            return []
        return [k for k in self._data if k.startswith(prefix)]

    async def clear(self) -> None:
        self._data.clear()


class DirectoryBackend(StorageBackend):
    """
    Persistent store keeping one JSON file per key in a directory.

    File names are the SHA-256 of the key, the key itself is kept inside the
    file. Disk I/O runs in a worker thread so the event loop keeps ticking.
    """

    name = "directory"

    def __init__(self, directory: str):
        if not directory:
            raise ValueError("Directory path cannot be empty.")
        self.directory = directory
        self._available: Optional[bool] = None

    @property
    def available(self) -> bool:
        if self._available is None:
            self._available = self._probe()
        return self._available

    def _probe(self) -> bool:
        try:
            ensure_dir_exists(self.directory)
        except FileSystemError as e:
            logger.warning(f"Directory backend disabled, {self.directory} is unusable: {e}")
            return False
        if not os.access(self.directory, os.W_OK):
            logger.warning(f"Directory backend disabled, {self.directory} is not writable.")
            return False
        return True

    def _path_for(self, key: str) -> str:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return os.path.join(self.directory, f"{digest}.json")

    def _read_record(self, path: str) -> Optional[dict]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                record = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read cache file {path}: {e}")
            return None
        if not isinstance(record, dict) or "key" not in record or "value" not in record:
            logger.warning(f"Ignoring malformed cache file {path}")
            return None
        return record

    def _get_sync(self, key: str) -> Optional[str]:
        record = self._read_record(self._path_for(key))
        if record is None or record["key"] != key:
            return None
        return record["value"]

    def _set_sync(self, key: str, value: str) -> WriteStatus:
        path = self._path_for(key)
        tmp_path = None
        try:
            # each writer gets its own temp file; the last replace wins
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".json.tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"key": key, "value": value}, f, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None:
                self._discard(tmp_path)
            if e.errno in _CAPACITY_ERRNOS:
                logger.warning(f"No space left for cache file {path}: {e}")
                return WriteStatus.QUOTA_EXCEEDED
            logger.error(f"Failed to write cache file {path}: {e}", exc_info=True)
            return WriteStatus.ERROR
        return WriteStatus.OK

    @staticmethod
    def _discard(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove cache file {path}: {e}")

    def _keys_sync(self, prefix: str) -> List[str]:
        keys = []
        for name in sorted(os.listdir(self.directory)):
            if not name.endswith(".json"):
                continue
            record = self._read_record(os.path.join(self.directory, name))
            if record is not None and str(record["key"]).startswith(prefix):
                keys.append(record["key"])
        return keys

    def _clear_sync(self) -> None:
        for name in os.listdir(self.directory):
            if name.endswith(".json") or name.endswith(".json.tmp"):
                self._discard(os.path.join(self.directory, name))

    async def get(self, key: str) -> Optional[str]:
        if not self.available:
            return None
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, value: str) -> WriteStatus:
        if not self.available:
            return WriteStatus.UNAVAILABLE
        return await asyncio.to_thread(self._set_sync, key, value)

    async def remove(self, key: str) -> None:
        if not self.available:
            return
        await asyncio.to_thread(self._discard, self._path_for(key))

    async def keys(self, prefix: str = "") -> List[str]:
        if not self.available:
            return []
        return await asyncio.to_thread(self._keys_sync, prefix)

    async def clear(self) -> None:
        if not self.available:
            return
        await asyncio.to_thread(self._clear_sync)
