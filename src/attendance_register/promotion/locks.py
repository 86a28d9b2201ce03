from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from ..core.exceptions import Conflict


class StreamLocks:
    """One in-process mutex per stream, so a stream is promoted or restored by one caller at a time.

    A caller that finds the stream busy gets `Conflict` at once instead of queueing
    behind the running promotion.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, stream: str) -> threading.Lock:
        key = stream.strip().lower()
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, stream: str) -> Iterator[None]:
        lock = self._lock_for(stream)
        if not lock.acquire(blocking=False):
            raise Conflict(f"A promotion for stream {stream} is already running")
        try:
            yield
        finally:
            lock.release()

    def is_held(self, stream: str) -> bool:
        return self._lock_for(stream).locked()
