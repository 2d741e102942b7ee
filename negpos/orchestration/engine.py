import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
import numpy as np

from negpos.config import APP_CONFIG
from negpos.core.interfaces import IRawDecoder, PipelineContext
from negpos.core.types import AppConfig, ImageBuffer
from negpos.domain.models import AdjustmentParameters, HistogramData, ProcessingVersion
from negpos.features.levels.logic import compute_histogram
from negpos.kernel.caching.memory import BoundedCache
from negpos.kernel.image.logic import empty_image, is_empty
from negpos.kernel.system.logging import get_logger
from negpos.orchestration.cancellation import CancellationToken, ProcessingCancelled
from negpos.orchestration.pipeline import build_pipeline, run_pipeline

logger = get_logger(__name__)

# Decoded full-resolution buffers
DECODE_CACHE_BYTES = 1024 * 1024 * 1024

DecodeKey = Tuple[str, float, float, float, Optional[int]]


class EngineState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, eq=False)
class ProcessingResult:
    """
    Output of one completed request. The image buffer is read-only.
    """

    file_id: str
    image: ImageBuffer
    histogram: HistogramData
    generation: int
    decode_failed: bool = False


class ProcessingEngine:
    """
    Owns the pipeline and the decoder call. At most one full-resolution
    request is in flight, a new `process` call cancels the previous one.
    """

    def __init__(self, decoder: IRawDecoder, config: AppConfig = APP_CONFIG) -> None:
        self.decoder = decoder
        self.config = config
        self.version = ProcessingVersion.parse(config.processing_version)
        self.latest_result: Optional[ProcessingResult] = None

        self._decode_cache: BoundedCache[DecodeKey, ImageBuffer] = BoundedCache(
            max_items=config.decode_cache_items,
            max_bytes=DECODE_CACHE_BYTES,
            cost_fn=lambda arr: int(arr.nbytes),
            name="decode",
        )
        self._state = EngineState.IDLE
        self._generation = 0
        self._current_task: Optional[asyncio.Task] = None
        self._current_token: Optional[CancellationToken] = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._current_task is not None and not self._current_task.done()

    def _set_state(self, state: EngineState) -> None:
        if state != self._state:
            logger.debug(f"Engine state {self._state.value} -> {state.value}")
        self._state = state

    def clear_decode_cache(self) -> None:
        self._decode_cache.clear()

    def decode(
        self,
        file_id: str,
        params: AdjustmentParameters,
        target_width: Optional[int] = None,
    ) -> Optional[ImageBuffer]:
        """
        Decoded source for a file, served from the decode cache when the
        decoder inputs are unchanged. Never raises.
        """
        grade = params.grade
        key: DecodeKey = (
            file_id,
            grade.raw_exposure,
            grade.temperature,
            grade.tint,
            target_width,
        )
        cached = self._decode_cache.get(key)
        if cached is not None:
            return cached

        try:
            img = self.decoder.decode(
                file_id, grade.raw_exposure, grade.temperature, grade.tint, target_width
            )
        except Exception as e:
            logger.error(f"Decoder raised for {file_id}: {e}")
            return None

        if img is None or is_empty(img):
            return None

        img = np.ascontiguousarray(img, dtype=np.float32)
        self._decode_cache.put(key, img)
        return img

    def render_sync(
        self,
        file_id: str,
        params: AdjustmentParameters,
        target_width: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> Tuple[ImageBuffer, bool]:
        """
        Decode + pipeline on the calling thread.
        Returns (image, decode_failed). A failed decode yields an empty image.
        """
        source = self.decode(file_id, params, target_width)
        if token is not None:
            token.raise_if_cancelled()

        if source is None:
            logger.warning(f"Decode failed for {file_id}, using empty image")
            return empty_image(), True

        h, w = source.shape[:2]
        context = PipelineContext(
            original_size=(h, w),
            scale_factor=max(1.0, w / float(self.config.analysis_width)),
            processing_version=self.version.value,
            analysis_width=self.config.analysis_width,
            histogram_bins=self.config.histogram_bins,
        )
        processors = build_pipeline(params, self.version)
        return run_pipeline(source, processors, context, token), False

    async def render(
        self,
        file_id: str,
        params: AdjustmentParameters,
        target_width: Optional[int] = None,
    ) -> Optional[ImageBuffer]:
        """
        Pipeline run outside the single-flight slot (thumbnails).
        None when the file could not be decoded.
        """
        img, failed = await asyncio.to_thread(
            self.render_sync, file_id, params, target_width
        )
        return None if failed else img

    def cancel(self) -> None:
        """
        Cancels the in-flight request, if any.
        """
        if self._current_token is not None:
            self._current_token.cancel()
        if self._current_task is not None and not self._current_task.done():
            self._current_task.cancel()
            self._set_state(EngineState.CANCELLED)

    async def process(
        self,
        file_id: str,
        params: AdjustmentParameters,
        target_width: Optional[int] = None,
    ) -> Optional[ProcessingResult]:
        """
        Processes a file, superseding any earlier request.
        Returns None when this request is itself superseded or cancelled.
        """
        self.cancel()

        self._generation += 1
        token = CancellationToken()
        task = asyncio.create_task(
            self._run(file_id, params, target_width, token, self._generation)
        )
        self._current_task = task
        self._current_token = token
        self._set_state(EngineState.RUNNING)

        try:
            return await task
        except asyncio.CancelledError:
            if token.cancelled:
                return None
            raise

    async def _run(
        self,
        file_id: str,
        params: AdjustmentParameters,
        target_width: Optional[int],
        token: CancellationToken,
        generation: int,
    ) -> Optional[ProcessingResult]:
        try:
            image, decode_failed = await asyncio.to_thread(
                self.render_sync, file_id, params, target_width, token
            )
            token.raise_if_cancelled()

            histogram = await asyncio.to_thread(
                compute_histogram,
                image,
                self.config.histogram_bins,
                self.config.histogram_width,
            )
            token.raise_if_cancelled()
        except ProcessingCancelled:
            logger.debug(f"Request {generation} for {file_id} cancelled")
            self._finish(token, EngineState.CANCELLED)
            return None
        except asyncio.CancelledError:
            self._finish(token, EngineState.CANCELLED)
            raise
        except Exception:
            logger.exception(f"Processing failed for {file_id}")
            self._finish(token, EngineState.FAILED)
            raise

        # Published buffers are private copies, frozen for readers
        image = np.array(image, dtype=np.float32, copy=True)
        image.setflags(write=False)
        result = ProcessingResult(
            file_id=file_id,
            image=image,
            histogram=histogram,
            generation=generation,
            decode_failed=decode_failed,
        )
        self.latest_result = result
        self._finish(token, EngineState.COMPLETED)
        return result

    def _finish(self, token: CancellationToken, state: EngineState) -> None:
        # A superseded request must not overwrite the state of its successor
        if token is self._current_token:
            self._set_state(state)
