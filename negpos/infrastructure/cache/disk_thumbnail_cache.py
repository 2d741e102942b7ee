import hashlib
import io
import os
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Tuple
from PIL import Image
from negpos.kernel.system.logging import get_logger

logger = get_logger(__name__)

THUMBNAIL_EXT = ".png"


class DiskThumbnailCache:
    """
    Thumbnails persisted as PNG files under a byte budget.
    Files are keyed by a hash of the source path, the oldest ones
    are pruned first once the directory grows past the limit.
    """

    def __init__(self, cache_dir: str, limit_bytes: int, enabled: bool = True) -> None:
        self.cache_dir = cache_dir
        self.limit_bytes = limit_bytes
        self.enabled = enabled
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="negpos-thumb-prune"
        )
        self._pending: Optional[Future] = None

        if self.enabled:
            try:
                os.makedirs(self.cache_dir, exist_ok=True)
                logger.info(f"Thumbnail cache at {self.cache_dir}")
            except OSError as e:
                logger.error(f"Failed to create thumbnail cache dir: {e}")
                self.enabled = False
            else:
                self._pending = self._executor.submit(self.enforce_size_limit)

    @staticmethod
    def key_for(file_id: str) -> str:
        return hashlib.sha256(file_id.encode("utf-8")).hexdigest() + THUMBNAIL_EXT

    def path_for(self, file_id: str) -> str:
        return os.path.join(self.cache_dir, self.key_for(file_id))

    def load_bytes(self, file_id: str) -> Optional[bytes]:
        if not self.enabled:
            return None
        try:
            with open(self.path_for(file_id), "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Failed to read cached thumbnail for {file_id}: {e}")
            return None

    def load(self, file_id: str) -> Optional[Image.Image]:
        data = self.load_bytes(file_id)
        if data is None:
            return None
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                return img.copy()
        except (OSError, ValueError) as e:
            logger.warning(f"Corrupt cached thumbnail for {file_id}: {e}")
            self.remove(file_id)
            return None

    def save_bytes(self, file_id: str, data: bytes) -> bool:
        if not self.enabled:
            return False
        path = self.path_for(file_id)
        tmp = path + ".tmp"
        try:
            with open(tmp, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except OSError as e:
            logger.warning(f"Failed to write thumbnail for {file_id}: {e}")
            return False

        self._pending = self._executor.submit(self.enforce_size_limit)
        return True

    def save(self, file_id: str, image: Image.Image) -> bool:
        buf = io.BytesIO()
        try:
            image.save(buf, format="PNG")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to encode thumbnail for {file_id}: {e}")
            return False
        return self.save_bytes(file_id, buf.getvalue())

    def remove(self, file_id: str) -> None:
        if not self.enabled:
            return
        try:
            os.remove(self.path_for(file_id))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove thumbnail for {file_id}: {e}")

    def clear(self) -> None:
        for path, _, _ in self._entries():
            try:
                os.remove(path)
            except OSError as e:
                logger.warning(f"Failed to remove {path}: {e}")
        logger.info("Thumbnail cache cleared")

    def _entries(self) -> List[Tuple[str, float, int]]:
        """
        (path, mtime, size) of every cached thumbnail.
        """
        res: List[Tuple[str, float, int]] = []
        if not self.enabled:
            return res
        try:
            with os.scandir(self.cache_dir) as it:
                for entry in it:
                    if not entry.is_file() or not entry.name.endswith(THUMBNAIL_EXT):
                        continue
                    try:
                        st = entry.stat()
                    except OSError:
                        continue
                    res.append((entry.path, st.st_mtime, st.st_size))
        except OSError as e:
            logger.warning(f"Failed to list thumbnail cache: {e}")
        return res

    def total_bytes(self) -> int:
        return sum(size for _, _, size in self._entries())

    def enforce_size_limit(self) -> int:
        """
        Deletes oldest thumbnails until the directory fits the budget.
        Stops at the first file that cannot be removed. Returns bytes freed.
        """
        entries = self._entries()
        total = sum(size for _, _, size in entries)
        if total <= self.limit_bytes:
            return 0

        removed = 0
        for path, _, size in sorted(entries, key=lambda e: e[1]):
            if total <= self.limit_bytes:
                break
            try:
                os.remove(path)
            except OSError as e:
                logger.warning(f"Stopped pruning thumbnail cache at {path}: {e}")
                break
            total -= size
            removed += size

        logger.info(
            f"Pruned {removed / 1024:.1f} KiB from thumbnail cache "
            f"({total / 1024:.1f} KiB remaining)"
        )
        return removed

    def flush(self) -> None:
        """
        Waits for the pending prune pass, if any.
        """
        pending = self._pending
        if pending is not None:
            pending.result()

    def close(self) -> None:
        self._executor.shutdown(wait=True)
