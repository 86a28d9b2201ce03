from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, TypeVar

from ..core.constants import DEFAULT_CACHE_TTL_SECONDS
from ..core.enums import CachePrefix
from ..core.exceptions import CacheMiss

logger = logging.getLogger(__name__)

T = TypeVar("T")


def stream_key(stream: Optional[str]) -> str:
    return (stream or "").strip().lower()


def make_key(prefix: CachePrefix | str, stream: Optional[str], params: Optional[Mapping[str, Any]] = None) -> str:
    """Build `<prefix>:<stream>:<canonical params>`.

    Params are serialized with sorted keys so that equal queries always map to the
    same key whatever order the caller built them in.
    """

    prefix_value = prefix.value if isinstance(prefix, CachePrefix) else str(prefix)
    canonical = json.dumps(dict(params or {}), sort_keys=True, separators=(",", ":"), default=str)
    return f"{prefix_value}:{stream_key(stream)}:{canonical}"


@dataclass(frozen=True)
class _Entry:
    value: Any
    inserted_at: float


class ResultCache:
    """Process-local TTL cache for read-side results.

    Expired entries are dropped lazily when looked up. There is no cross-process
    invalidation: another instance may serve a stale value for up to `ttl_seconds`.

    Every invalidation bumps a generation counter. `get_or_compute` only stores its
    result when no invalidation touched the key while it was computing, so a read
    that raced a write never outlives that write in the cache.
    """

    def __init__(self, *, ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._epoch = 0  # bumped by clear() and raw prefix invalidation
        self._writes = 0  # bumped by every stream invalidation
        self._stream_generations: Dict[str, int] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _generation(self, key: str) -> tuple[int, int]:
        # keys read `<prefix>:<stream>:<params>`; stream-less keys follow every stream
        parts = key.split(":", 2)
        stream = parts[1] if len(parts) == 3 else ""
        if not stream:
            return self._epoch, self._writes
        return self._epoch, self._stream_generations.get(stream, 0)

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                raise CacheMiss(key)
            if self._clock() - entry.inserted_at > self._ttl:
                del self._entries[key]
                raise CacheMiss(key)
            return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = _Entry(value=value, inserted_at=self._clock())

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        try:
            return self.get(key)
        except CacheMiss:
            pass

        with self._lock:
            started = self._generation(key)

        # computed outside the lock; a failing compute leaves nothing behind
        value = compute()

        with self._lock:
            if self._generation(key) == started:
                self._entries[key] = _Entry(value=value, inserted_at=self._clock())
            else:
                logger.debug(f"[CACHE] {key} invalidated while computing, result not stored")
        return value

    def _drop_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._entries if k.startswith(prefix)]
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            self._epoch += 1
            return self._drop_prefix(prefix)

    def invalidate_stream(self, stream: str, prefixes: Iterable[CachePrefix] = tuple(CachePrefix)) -> int:
        """Drop every entry of `stream` under each prefix (coarse invalidation after writes).

        Entries cached without a stream (cross-stream listings) are dropped too.
        """
        name = stream_key(stream)
        removed = 0
        with self._lock:
            self._writes += 1
            self._stream_generations[name] = self._stream_generations.get(name, 0) + 1
            for prefix in prefixes:
                removed += self._drop_prefix(f"{prefix.value}:{name}:")
                removed += self._drop_prefix(f"{prefix.value}::")
        if removed:
            logger.debug(f"[CACHE] invalidated {removed} entries for stream {stream!r}")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()
