import threading
from negpos.kernel.caching.memory import BoundedCache


def _cache(max_items=3, max_bytes=1000):
    return BoundedCache(max_items, max_bytes, cost_fn=len, name="test")


def test_evicts_least_recently_used_by_count():
    cache = _cache(max_items=2)
    cache.put("a", b"1")
    cache.put("b", b"2")
    assert cache.get("a") == b"1"
    cache.put("c", b"3")

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache
    assert len(cache) == 2


def test_evicts_by_bytes():
    cache = _cache(max_items=10, max_bytes=10)
    cache.put("a", b"x" * 4)
    cache.put("b", b"x" * 4)
    cache.put("c", b"x" * 4)

    assert "a" not in cache
    assert cache.total_bytes == 8


def test_oversized_entry_is_kept_alone():
    cache = _cache(max_items=10, max_bytes=10)
    cache.put("a", b"x" * 4)
    cache.put("big", b"x" * 50)
    assert len(cache) == 1
    assert cache.get("big") is not None


def test_replace_updates_cost():
    cache = _cache()
    cache.put("a", b"x" * 10)
    cache.put("a", b"x" * 3)
    assert cache.total_bytes == 3
    assert len(cache) == 1


def test_pop_and_clear():
    cache = _cache()
    cache.put("a", b"12")
    assert cache.pop("a") == b"12"
    assert cache.pop("a") is None
    cache.put("b", b"1")
    cache.clear()
    assert len(cache) == 0
    assert cache.total_bytes == 0


def test_concurrent_puts_respect_bounds():
    cache = _cache(max_items=50, max_bytes=10_000)

    def _writer(prefix: str) -> None:
        for i in range(200):
            cache.put(f"{prefix}{i}", b"x" * 10)

    threads = [threading.Thread(target=_writer, args=(p,)) for p in "abcd"]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache) == 50
    assert cache.total_bytes == 500
