import time

import pytest

from nfs3kit.iterator_cache import CachedIteratorInfo, IteratorCache, IteratorCacheCleaner


class _Closable:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def test_base_cookies_use_upper_bits():
    cache = IteratorCache(60, 20)
    first = cache.generate_base_cookie()
    second = cache.generate_base_cookie()
    assert first == 0
    assert second == 1 << 32
    assert second & 0xFFFF_FFFF == 0


def test_pop_state_returns_once():
    cache = IteratorCache(60, 20)
    cache.cache_state(7, 42, "reader", 1.0)
    info = cache.pop_state(7, 42)
    assert info == CachedIteratorInfo(cookie=42, cached_at=1.0, read_dir="reader")
    assert cache.pop_state(7, 42) is None


def test_pop_state_unknown_dir_or_cookie():
    cache = IteratorCache(60, 20)
    cache.cache_state(7, 42, "reader", 1.0)
    assert cache.pop_state(8, 42) is None
    assert cache.pop_state(7, 43) is None
    assert len(cache) == 1


def test_pop_keeps_other_entries():
    cache = IteratorCache(60, 20)
    for cookie in (10, 20, 30):
        cache.cache_state(1, cookie, f"r{cookie}", float(cookie))
    assert cache.pop_state(1, 10).read_dir == "r10"
    assert cache.pop_state(1, 30).read_dir == "r30"
    assert cache.pop_state(1, 20).read_dir == "r20"
    assert len(cache) == 0


def test_trim_drops_oldest_and_closes_it():
    cache = IteratorCache(60, 2)
    oldest = _Closable()
    cache.cache_state(1, 10, oldest, 1.0)
    cache.cache_state(1, 20, _Closable(), 2.0)
    cache.cache_state(1, 30, _Closable(), 3.0)
    assert len(cache) == 2
    assert oldest.closed
    assert cache.pop_state(1, 10) is None
    assert cache.pop_state(1, 20) is not None


def test_limit_is_per_directory():
    cache = IteratorCache(60, 1)
    cache.cache_state(1, 10, "a", 1.0)
    cache.cache_state(2, 10, "b", 2.0)
    assert cache.pop_state(1, 10).read_dir == "a"
    assert cache.pop_state(2, 10).read_dir == "b"


def test_cleanup_respects_retention():
    cache = IteratorCache(60, 20)
    stale = _Closable()
    cache.cache_state(1, 10, stale, 0.0)
    cache.cache_state(1, 20, "fresh", 50.0)
    cache.cleanup(100.0)
    assert stale.closed
    assert cache.pop_state(1, 10) is None
    assert cache.pop_state(1, 20).read_dir == "fresh"


def test_cleanup_keeps_entry_at_exact_retention():
    cache = IteratorCache(60, 20)
    cache.cache_state(1, 10, "edge", 40.0)
    cache.cleanup(100.0)
    assert cache.pop_state(1, 10).read_dir == "edge"


def test_cleaner_thread_removes_stale_entries():
    cache = IteratorCache(1, 20)
    cache.cache_state(1, 10, "old", time.monotonic() - 100)
    cleaner = IteratorCacheCleaner(cache, 0.01)
    thread = cleaner.start()
    deadline = time.monotonic() + 5
    while len(cache) and time.monotonic() < deadline:
        time.sleep(0.01)
    cleaner.stop()
    assert len(cache) == 0
    assert not thread.is_alive()


def test_cleaner_cannot_start_twice():
    cleaner = IteratorCacheCleaner(IteratorCache(1, 1), 10)
    cleaner.start()
    try:
        with pytest.raises(RuntimeError):
            cleaner.start()
    finally:
        cleaner.stop()