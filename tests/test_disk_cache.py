import os
import threading
import time
from unittest.mock import patch
from PIL import Image
from negpos.infrastructure.cache.disk_thumbnail_cache import DiskThumbnailCache


def _thumb(value: int = 128, size: int = 32) -> Image.Image:
    return Image.new("RGB", (size, size), (value, value // 2, 255 - value))


def _write_blob(cache_dir: str, name: str, size: int, mtime: float) -> str:
    path = os.path.join(cache_dir, name)
    with open(path, "wb") as f:
        f.write(b"\0" * size)
    os.utime(path, (mtime, mtime))
    return path


def test_save_load_remove(tmp_path):
    cache = DiskThumbnailCache(str(tmp_path / "thumbs"), 10 * 1024 * 1024)
    try:
        assert cache.load("/film/a.raw") is None
        assert cache.save("/film/a.raw", _thumb(200))
        cache.flush()

        loaded = cache.load("/film/a.raw")
        assert loaded is not None
        assert loaded.size == (32, 32)
        assert loaded.getpixel((0, 0)) == (200, 100, 55)

        cache.remove("/film/a.raw")
        assert cache.load("/film/a.raw") is None
        # Removing twice is harmless
        cache.remove("/film/a.raw")
    finally:
        cache.close()


def test_key_is_sha256_of_path(tmp_path):
    cache = DiskThumbnailCache(str(tmp_path), 1024)
    try:
        key = cache.key_for("/film/a.raw")
        assert key.endswith(".png")
        assert len(key) == 64 + 4
        assert key == cache.key_for("/film/a.raw")
        assert key != cache.key_for("/film/b.raw")
    finally:
        cache.close()


def test_prune_removes_oldest_first(tmp_path):
    cache_dir = tmp_path / "thumbs"
    cache_dir.mkdir()
    now = time.time()
    oldest = _write_blob(str(cache_dir), "a.png", 400, now - 300)
    middle = _write_blob(str(cache_dir), "b.png", 400, now - 200)
    newest = _write_blob(str(cache_dir), "c.png", 400, now - 100)

    cache = DiskThumbnailCache(str(cache_dir), 10_000)
    try:
        cache.flush()
        cache.limit_bytes = 850
        removed = cache.enforce_size_limit()

        assert removed == 400
        assert not os.path.exists(oldest)
        assert os.path.exists(middle)
        assert os.path.exists(newest)
        assert cache.total_bytes() <= 850
    finally:
        cache.close()


def test_prune_runs_at_startup(tmp_path):
    cache_dir = tmp_path / "thumbs"
    cache_dir.mkdir()
    now = time.time()
    for i in range(5):
        _write_blob(str(cache_dir), f"{i}.png", 1000, now - 100 + i)

    cache = DiskThumbnailCache(str(cache_dir), 2500)
    try:
        cache.flush()
        assert cache.total_bytes() <= 2500
        assert sorted(os.listdir(cache_dir)) == ["3.png", "4.png"]
    finally:
        cache.close()


def test_startup_prune_runs_off_the_calling_thread(tmp_path):
    threads = []

    def record():
        threads.append(threading.get_ident())

    with patch.object(DiskThumbnailCache, "enforce_size_limit", side_effect=record):
        cache = DiskThumbnailCache(str(tmp_path / "thumbs"), 2500)
        try:
            cache.flush()
        finally:
            cache.close()

    assert len(threads) == 1
    assert threads[0] != threading.get_ident()


def test_size_stays_bounded_after_saves(tmp_path):
    cache = DiskThumbnailCache(str(tmp_path / "thumbs"), 3000)
    try:
        for i in range(20):
            cache.save(f"/film/{i}.raw", _thumb(i * 10, size=48))
            cache.flush()
        cache.enforce_size_limit()
        assert cache.total_bytes() <= 3000
    finally:
        cache.close()


def test_prune_stops_on_delete_failure(tmp_path):
    cache_dir = tmp_path / "thumbs"
    cache_dir.mkdir()
    now = time.time()
    for i in range(3):
        _write_blob(str(cache_dir), f"{i}.png", 500, now - 100 + i)

    cache = DiskThumbnailCache(str(cache_dir), 10_000)
    try:
        cache.flush()
        cache.limit_bytes = 100
        with patch("os.remove", side_effect=PermissionError("locked")) as remove:
            removed = cache.enforce_size_limit()

        assert removed == 0
        assert remove.call_count == 1
        assert len(os.listdir(cache_dir)) == 3
    finally:
        cache.close()


def test_corrupt_entry_is_a_miss(tmp_path):
    cache = DiskThumbnailCache(str(tmp_path / "thumbs"), 10 * 1024 * 1024)
    try:
        with open(cache.path_for("/film/a.raw"), "wb") as f:
            f.write(b"not a png")
        assert cache.load("/film/a.raw") is None
        assert not os.path.exists(cache.path_for("/film/a.raw"))
    finally:
        cache.close()


def test_clear(tmp_path):
    cache = DiskThumbnailCache(str(tmp_path / "thumbs"), 10 * 1024 * 1024)
    try:
        cache.save("/film/a.raw", _thumb())
        cache.save("/film/b.raw", _thumb())
        cache.flush()
        cache.clear()
        assert cache.total_bytes() == 0
    finally:
        cache.close()


def test_disabled_cache_is_inert(tmp_path):
    cache = DiskThumbnailCache(str(tmp_path / "thumbs"), 1024, enabled=False)
    try:
        assert not cache.save("/film/a.raw", _thumb())
        assert cache.load("/film/a.raw") is None
        assert not (tmp_path / "thumbs").exists()
    finally:
        cache.close()
