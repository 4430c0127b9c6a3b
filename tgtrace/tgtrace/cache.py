"""Result caches: in-memory for a long-lived process, on disk for the CLI."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from tgtrace.models import AggregationResult, SearchOptions

logger = logging.getLogger(__name__)


def cache_key(identifier: str, options: SearchOptions) -> str:
    """Key on the lower-cased identifier and every option except ``use_cache``."""
    payload = options.model_dump(mode="json", exclude={"use_cache"})
    return f"{identifier.lower()}:{json.dumps(payload, sort_keys=True)}"


class ResultCache(ABC):
    """Store for finished results, keyed by :func:`cache_key`."""

    @abstractmethod
    def get(self, key: str) -> AggregationResult | None:
        ...

    @abstractmethod
    def set(self, key: str, result: AggregationResult) -> None:
        ...

    @abstractmethod
    def evict(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class InMemoryResultCache(ResultCache):
    """Bounded TTL cache. Over capacity, the oldest insertion goes first."""

    def __init__(
        self,
        ttl: float = 600.0,
        capacity: int = 100,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.capacity = capacity
        self._clock = clock
        self._entries: dict[str, tuple[float, AggregationResult]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> AggregationResult | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, result = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return result

    def set(self, key: str, result: AggregationResult) -> None:
        # Re-inserting moves the key to the back of the eviction order.
        self._entries.pop(key, None)
        self._entries[key] = (self._clock(), result)
        while len(self._entries) > self.capacity:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("Evicted cached result %s", oldest)

    def evict(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


class FileResultCache(ResultCache):
    """TTL cache persisted as one JSON file per key, so results survive between CLI runs.

    Over capacity, the least recently written files go first. Unreadable or
    stale files are deleted on read.
    """

    def __init__(
        self,
        directory: str | Path,
        ttl: float = 600.0,
        capacity: int = 100,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = Path(directory)
        self.ttl = ttl
        self.capacity = capacity
        self._clock = clock

    def __len__(self) -> int:
        return len(self._files())

    def _path(self, key: str) -> Path:
        return self.directory / f"{hashlib.sha256(key.encode('utf-8')).hexdigest()}.json"

    def _files(self) -> list[Path]:
        if not self.directory.is_dir():
            return []
        return list(self.directory.glob("*.json"))

    def get(self, key: str) -> AggregationResult | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            stored_at = float(data["storedAt"])
            result = AggregationResult.model_validate(data["result"])
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable cache file %s: %s", path.name, e)
            path.unlink(missing_ok=True)
            return None
        if self._clock() - stored_at >= self.ttl:
            path.unlink(missing_ok=True)
            return None
        return result

    def set(self, key: str, result: AggregationResult) -> None:
        now = self._clock()
        path = self._path(key)
        payload = {"storedAt": now, "key": key, "result": result.model_dump(mode="json")}
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload), encoding="utf-8")
            tmp.replace(path)
            os.utime(path, (now, now))
            self._enforce_capacity()
        except OSError:
            logger.warning("Could not write cache file for %s", key, exc_info=True)

    def _enforce_capacity(self) -> None:
        files = sorted(self._files(), key=lambda p: p.stat().st_mtime)
        for path in files[: max(0, len(files) - self.capacity)]:
            path.unlink(missing_ok=True)
            logger.debug("Evicted cached result %s", path.name)

    def evict(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        for path in self._files():
            path.unlink(missing_ok=True)
