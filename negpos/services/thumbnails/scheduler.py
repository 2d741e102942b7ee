import asyncio
import collections
from typing import Callable, Dict, Mapping, Optional, Set, Tuple
from PIL import Image
from negpos.config import APP_CONFIG
from negpos.core.types import AppConfig
from negpos.domain.models import AdjustmentParameters
from negpos.infrastructure.cache.disk_thumbnail_cache import DiskThumbnailCache
from negpos.kernel.caching.memory import BoundedCache
from negpos.kernel.image.logic import to_pil
from negpos.kernel.system.logging import get_logger
from negpos.orchestration.engine import ProcessingEngine

logger = get_logger(__name__)

ReadyCallback = Callable[[str, Image.Image], None]


def _image_cost(img: Image.Image) -> int:
    return img.width * img.height * len(img.getbands())


class ThumbnailScheduler:
    """
    FIFO queue of thumbnail jobs with a small concurrency limit, so thumbnail
    decoding never starves the interactive full-resolution render.

    All bookkeeping (queue, in-flight set, caches) is mutated from the event
    loop thread only. Rendering, PIL conversion and disk writes run in
    worker threads.
    """

    def __init__(
        self,
        engine: ProcessingEngine,
        disk_cache: Optional[DiskThumbnailCache] = None,
        config: AppConfig = APP_CONFIG,
        on_ready: Optional[ReadyCallback] = None,
    ) -> None:
        self.engine = engine
        self.disk_cache = disk_cache
        self.config = config
        self.on_ready = on_ready
        self.concurrency = max(1, min(config.thumbnail_concurrency, config.max_workers))

        self._memory: BoundedCache[str, Image.Image] = BoundedCache(
            max_items=config.thumbnail_memory_items,
            max_bytes=config.thumbnail_memory_bytes,
            cost_fn=_image_cost,
            name="thumbnails",
        )
        self._queue: "collections.deque[str]" = collections.deque()
        self._params: Dict[str, AdjustmentParameters] = {}
        self._revisions: Dict[str, int] = {}
        self._in_flight: Set[str] = set()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._epoch = 0

    @property
    def queued(self) -> list[str]:
        return list(self._queue)

    @property
    def in_flight(self) -> Set[str]:
        return set(self._in_flight)

    def is_idle(self) -> bool:
        return not self._queue and not self._in_flight

    def is_cached(self, file_id: str) -> bool:
        return file_id in self._memory

    def schedule(self, items: Mapping[str, AdjustmentParameters]) -> None:
        """
        Queues files at the back. Work starts on the next `start` or
        `request_priority` call.
        """
        for file_id, params in items.items():
            self._params[file_id] = params
            if (
                file_id in self._memory
                or file_id in self._in_flight
                or file_id in self._queue
            ):
                continue
            self._queue.append(file_id)

    def request_priority(
        self, file_id: str, params: Optional[AdjustmentParameters] = None
    ) -> None:
        """
        Moves a file to the front of the queue and starts work immediately.
        """
        if params is not None:
            self._params[file_id] = params
        if file_id in self._memory or file_id in self._in_flight:
            return

        try:
            self._queue.remove(file_id)
        except ValueError:
            pass
        self._queue.appendleft(file_id)
        self._pump()

    def regenerate(self, file_id: str, params: AdjustmentParameters) -> None:
        """
        Drops every cached thumbnail of the file and renders it again with
        the new adjustments.
        """
        self._memory.pop(file_id)
        if self.disk_cache is not None:
            self.disk_cache.remove(file_id)
        self._params[file_id] = params
        self._revisions[file_id] = self._revisions.get(file_id, 0) + 1
        self.request_priority(file_id)

    def start(self) -> None:
        self._pump()

    def get_thumbnail(self, file_id: str) -> Optional[Image.Image]:
        cached = self._memory.get(file_id)
        if cached is not None:
            return cached
        if self.disk_cache is None:
            return None

        img = self.disk_cache.load(file_id)
        if img is not None:
            self._memory.put(file_id, img)
        return img

    def reset(self) -> None:
        """
        Drops pending and running jobs and empties the memory cache.
        """
        self._epoch += 1
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        self._in_flight.clear()
        self._queue.clear()
        self._params.clear()
        self._revisions.clear()
        self._memory.clear()

    def cancel_all(self) -> None:
        self.reset()

    async def wait_idle(self) -> None:
        """
        Drains the queue and waits until no job is running.
        """
        self._pump()
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def _pump(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Jobs stay queued until a pump runs on the event loop
            return

        while self._queue and len(self._in_flight) < self.concurrency:
            file_id = self._queue.popleft()
            # Entries may have gone stale between enqueue and dequeue
            if file_id in self._in_flight or file_id in self._memory:
                continue
            params = self._params.get(file_id)
            if params is None:
                logger.debug(f"No adjustments stored for {file_id}, skipping thumbnail")
                continue

            task = loop.create_task(
                self._run_job(file_id, params, self._revisions.get(file_id, 0), self._epoch)
            )
            self._in_flight.add(file_id)
            self._tasks[file_id] = task

    async def _run_job(
        self, file_id: str, params: AdjustmentParameters, revision: int, epoch: int
    ) -> None:
        try:
            thumb, from_disk = await self._generate(file_id, params, revision)
            if thumb is None or epoch != self._epoch:
                return
            if self.disk_cache is not None and not from_disk:
                await asyncio.to_thread(self.disk_cache.save, file_id, thumb)
            if epoch != self._epoch:
                return

            if self._revisions.get(file_id, 0) != revision:
                # Adjustments changed while rendering, the result is stale
                logger.debug(f"Discarding stale thumbnail for {file_id}")
                if self.disk_cache is not None:
                    self.disk_cache.remove(file_id)
                return

            self._memory.put(file_id, thumb)
            if self.on_ready is not None:
                try:
                    self.on_ready(file_id, thumb)
                except Exception as e:
                    logger.error(f"Thumbnail callback failed for {file_id}: {e}")
        except asyncio.CancelledError:
            logger.debug(f"Thumbnail job for {file_id} cancelled")
            raise
        except Exception as e:
            logger.error(f"Thumbnail generation failed for {file_id}: {e}")
        finally:
            if epoch == self._epoch:
                self._in_flight.discard(file_id)
                self._tasks.pop(file_id, None)
                # A regenerate that landed mid-job still needs its render
                if self._revisions.get(file_id, 0) != revision and file_id not in self._queue:
                    self._queue.appendleft(file_id)
                self._pump()

    async def _generate(
        self, file_id: str, params: AdjustmentParameters, revision: int
    ) -> Tuple[Optional[Image.Image], bool]:
        """
        Returns the thumbnail and whether it was read back from disk.
        """
        if self.disk_cache is not None and revision == 0:
            cached = await asyncio.to_thread(self.disk_cache.load, file_id)
            if cached is not None:
                return cached, True

        buffer = await self.engine.render(file_id, params, self.config.thumbnail_width)
        if buffer is None:
            logger.warning(f"Could not decode {file_id} for thumbnail")
            return None, False

        return await asyncio.to_thread(to_pil, buffer), False
