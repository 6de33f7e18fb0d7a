"""Key-value stores and the cache-aside accessor used by every resolver.

Values are stored serialized (a JSON document or plain text) so that both
stores behave the same way and a resolver never gets back an object another
request could mutate.
"""

from __future__ import annotations

import json
import logging
import math
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, Tuple, TypeVar
from urllib.parse import quote

from cachetools import TLRUCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...


def _entry_expiry(_key: str, value: Tuple[str, Optional[int]], now: float) -> float:
    _, ttl = value
    return now + ttl if ttl else math.inf


class MemoryStore:
    """In-process store with a per-entry TTL."""

    def __init__(self, maxsize: int = 4096, timer: Callable[[], float] = time.monotonic):
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_entry_expiry, timer=timer)

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        return entry[0] if entry is not None else None

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self._cache[key] = (value, ttl)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)


class FileStore:
    """
    One JSON file per key with an embedded expiry timestamp.

    Survives restarts; expired files are removed lazily on read.
    """

    def __init__(self, directory: Path, timer: Callable[[], float] = time.time):
        self.directory = directory
        self._timer = timer

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    async def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                entry = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Cache: unreadable entry %s: %s", key, e)
            return None

        expires_at = entry.get("expires_at")
        if expires_at is not None and self._timer() >= expires_at:
            path.unlink(missing_ok=True)
            return None
        return entry["value"]

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        entry = {
            "value": value,
            "expires_at": self._timer() + ttl if ttl else None,
        }
        with open(self._path(key), "w", encoding="utf-8") as f:
            json.dump(entry, f)

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def clear(self) -> None:
        if not self.directory.exists():
            return
        for path in self.directory.glob("*.json"):
            path.unlink(missing_ok=True)


async def cached(
    store: KeyValueStore,
    key: str,
    produce: Callable[[], Awaitable[Optional[T]]],
    *,
    type: str = "json",
    force_refresh: bool = False,
    ttl: Optional[int] = None,
) -> Any:
    """
    Return the value stored under ``key``, producing and storing it on a miss.

    ``type`` is ``"json"`` (value is JSON-serialized) or ``"text"`` (value is
    stored as ``str(value)`` and read back as a string). A ``None`` result
    from ``produce`` is returned but never stored, so failed upstream calls
    are retried by the next caller. ``force_refresh`` skips the read but
    still writes.
    """
    if type not in ("json", "text"):
        raise ValueError(f"unknown cache value type: {type!r}")

    if not force_refresh:
        raw = await store.get(key)
        if raw is not None:
            return json.loads(raw) if type == "json" else raw

    logger.debug("Cache: %s %s", "refresh" if force_refresh else "miss", key)
    data = await produce()

    if data is not None:
        await store.put(
            key,
            json.dumps(data) if type == "json" else str(data),
            ttl=ttl,
        )

    return data


def make_store(backend: str, directory: Optional[Path] = None) -> KeyValueStore:
    if backend == "memory":
        return MemoryStore()
    if backend == "file":
        if directory is None:
            from weit.paths import get_cache_dir

            directory = get_cache_dir()
        return FileStore(directory)
    raise ValueError(f"unknown cache backend: {backend!r}")
