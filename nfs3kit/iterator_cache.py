"""Cache of partly consumed directory iterators, keyed by directory and cookie."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any

__all__ = ["CachedIteratorInfo", "IteratorCache", "IteratorCacheCleaner"]


def _release(read_dir: Any) -> None:
    close = getattr(read_dir, "close", None)
    if callable(close):
        close()


@dataclass
class CachedIteratorInfo:
    """A directory iterator saved at a cookie position."""

    cookie: int
    cached_at: float
    read_dir: Any


class IteratorCache:
    """Keeps directory iterators so that a listing can resume at a cookie.

    ``retention_period`` is in seconds; times are monotonic clock readings.
    """

    def __init__(self, retention_period: float, max_cached_per_dir: int) -> None:
        self.retention_period = retention_period
        self.max_cached_per_dir = max_cached_per_dir
        self._cache: dict[int, list[CachedIteratorInfo]] = {}
        self._cookie_counter = 0
        self._lock = threading.Lock()

    def generate_base_cookie(self) -> int:
        """Return a unique base cookie; the counter occupies the upper 32 bits."""
        with self._lock:
            counter = self._cookie_counter
            self._cookie_counter = (counter + 1) & 0xFFFF_FFFF
        return counter << 32

    def pop_state(self, dir_id: int, cookie: int) -> CachedIteratorInfo | None:
        """Remove and return the iterator cached for ``dir_id`` at ``cookie``, if any."""
        with self._lock:
            iterators = self._cache.get(dir_id)
            if not iterators:
                return None
            for index, info in enumerate(iterators):
                if info.cookie == cookie:
                    iterators[index] = iterators[-1]
                    iterators.pop()
                    return info
            return None

    def cache_state(self, dir_id: int, cookie: int, read_dir: Any, now: float) -> None:
        """Store ``read_dir`` for ``dir_id`` at ``cookie``, keeping the newest entries only."""
        info = CachedIteratorInfo(cookie=cookie, cached_at=now, read_dir=read_dir)
        with self._lock:
            iterators = self._cache.setdefault(dir_id, [])
            iterators.append(info)
            dropped = self._trim(iterators)
        for old in dropped:
            _release(old.read_dir)

    def cleanup(self, now: float) -> None:
        """Drop iterators older than the retention period."""
        dropped: list[CachedIteratorInfo] = []
        with self._lock:
            for dir_id in list(self._cache):
                kept = []
                for info in self._cache[dir_id]:
                    if now - info.cached_at <= self.retention_period:
                        kept.append(info)
                    else:
                        dropped.append(info)
                if kept:
                    self._cache[dir_id] = kept
                else:
                    del self._cache[dir_id]
        for old in dropped:
            _release(old.read_dir)

    def _trim(self, iterators: list[CachedIteratorInfo]) -> list[CachedIteratorInfo]:
        excess = len(iterators) - self.max_cached_per_dir
        if excess <= 0:
            return []
        iterators.sort(key=lambda info: info.cached_at)
        dropped = iterators[:excess]
        del iterators[:excess]
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return sum(len(iterators) for iterators in self._cache.values())


class IteratorCacheCleaner:
    """Background thread that periodically removes stale cached iterators."""

    def __init__(self, cache: IteratorCache, interval: float) -> None:
        self.cache = cache
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> threading.Thread:
        """Start the cleaning thread and return it."""
        if self._thread is not None:
            raise RuntimeError("cleaner already started")
        self._thread = threading.Thread(
            target=self._run, name="iterator-cache-cleaner", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        """Stop the cleaning thread and wait for it to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()

    def _run(self) -> None:
        while True:
            self.cache.cleanup(time.monotonic())
            if self._stop.wait(self.interval):
                break