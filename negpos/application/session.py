import asyncio
from dataclasses import replace
from typing import Callable, List, Optional
from negpos.config import DEFAULT_ADJUSTMENTS
from negpos.core.interfaces import IAdjustmentRepository
from negpos.core.types import ImageBuffer, RGB
from negpos.domain.models import AdjustmentParameters, HistogramData, ImageState
from negpos.features.inversion.logic import sample_color
from negpos.kernel.system.logging import get_logger
from negpos.orchestration.engine import ProcessingEngine, ProcessingResult
from negpos.services.thumbnails.scheduler import ThumbnailScheduler

logger = get_logger(__name__)

AdjustmentListener = Callable[[str, AdjustmentParameters], None]


class EditingSession:
    """
    Active-file state for the presentation layer: owns the adjustments of
    the open file, persists every change and drives re-rendering.
    """

    def __init__(
        self,
        engine: ProcessingEngine,
        repository: IAdjustmentRepository,
        scheduler: Optional[ThumbnailScheduler] = None,
        preview_width: Optional[int] = None,
    ) -> None:
        self.engine = engine
        self.repository = repository
        self.scheduler = scheduler
        self.preview_width = preview_width

        self.files: List[str] = []
        self.active: Optional[ImageState] = None
        self.clipboard: Optional[AdjustmentParameters] = None
        self._listeners: List[AdjustmentListener] = []
        self._latest: Optional[ProcessingResult] = None

    @property
    def adjustments(self) -> AdjustmentParameters:
        if self.active is None:
            return DEFAULT_ADJUSTMENTS
        return self.active.adjustments

    @property
    def latest_image(self) -> Optional[ImageBuffer]:
        return self._latest.image if self._latest is not None else None

    @property
    def latest_histogram(self) -> Optional[HistogramData]:
        return self._latest.histogram if self._latest is not None else None

    @property
    def latest_result(self) -> Optional[ProcessingResult]:
        return self._latest

    def subscribe(self, listener: AdjustmentListener) -> Callable[[], None]:
        """
        Registers an adjustment-changed listener. Returns an unsubscribe hook.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _load(self, file_id: str) -> AdjustmentParameters:
        saved = self.repository.load(file_id)
        return saved if saved is not None else DEFAULT_ADJUSTMENTS

    def add_files(self, paths: List[str]) -> List[str]:
        """
        Adds files to the session and queues their thumbnails.
        """
        added = []
        for path in paths:
            file_id = ImageState.canonical_id(path)
            if file_id in self.files:
                continue
            self.files.append(file_id)
            added.append(file_id)

        if self.scheduler is not None and added:
            self.scheduler.schedule({f: self._load(f) for f in added})
        return added

    def open(self, path: str) -> ImageState:
        """
        Makes a file active, restoring its saved adjustments.
        """
        file_id = ImageState.canonical_id(path)
        if file_id not in self.files:
            self.files.append(file_id)

        self.active = ImageState(file_id=file_id, adjustments=self._load(file_id))
        self._latest = None
        logger.info(f"Opened {file_id}")

        if self.scheduler is not None:
            self.scheduler.request_priority(file_id, self.active.adjustments)
        return self.active

    def update_adjustments(self, params: AdjustmentParameters) -> None:
        if self.active is None:
            raise RuntimeError("No active file")

        file_id = self.active.file_id
        self.active = self.active.with_adjustments(params)
        if not self.repository.save(file_id, params):
            logger.warning(f"Adjustments for {file_id} were not persisted")

        for listener in list(self._listeners):
            try:
                listener(file_id, params)
            except Exception as e:
                logger.error(f"Adjustment listener failed: {e}")

        if self.scheduler is not None:
            self.scheduler.regenerate(file_id, params)

    def reset_group(self, group: str) -> None:
        self.update_adjustments(self.adjustments.reset_group(group))

    def reset_all(self) -> None:
        self.update_adjustments(self.adjustments.reset_all())

    def copy_adjustments(self) -> None:
        self.clipboard = self.adjustments

    def paste_adjustments(self) -> None:
        if self.clipboard is not None and self.active is not None:
            self.update_adjustments(self.clipboard)

    @property
    def active_index(self) -> Optional[int]:
        if self.active is None or self.active.file_id not in self.files:
            return None
        return self.files.index(self.active.file_id)

    def select_next(self) -> Optional[ImageState]:
        """
        Opens the file after the active one. Starts at the first file when
        nothing is open and stays put on the last one.
        """
        if not self.files:
            return None
        index = self.active_index
        if index is None:
            return self.open(self.files[0])
        if index + 1 >= len(self.files):
            logger.debug("Already at the last file")
            return None
        return self.open(self.files[index + 1])

    def select_previous(self) -> Optional[ImageState]:
        if not self.files:
            return None
        index = self.active_index
        if index is None:
            return self.open(self.files[-1])
        if index == 0:
            logger.debug("Already at the first file")
            return None
        return self.open(self.files[index - 1])

    async def sample_film_base(self, x: float, y: float) -> Optional[RGB]:
        """
        Reads the linear color of the unprocessed source around (x, y) and
        stores it as the film base of the active file.
        """
        if self.active is None:
            return None

        file_id = self.active.file_id
        source = await asyncio.to_thread(
            self.engine.decode, file_id, self.active.adjustments, self.preview_width
        )
        if source is None:
            logger.warning(f"Cannot sample film base, {file_id} failed to decode")
            return None
        if self.active is None or self.active.file_id != file_id:
            return None

        color = sample_color(source, x, y)
        if color is None:
            return None

        params = self.adjustments
        self.update_adjustments(
            replace(params, inversion=replace(params.inversion, film_base_color=color))
        )
        return color

    def sample_white_balance(self, x: float, y: float) -> Optional[RGB]:
        """
        Samples a neutral from the latest rendered positive and stores it as
        the white balance reference of the active file.
        """
        if self.active is None:
            return None
        if self._latest is None or self._latest.file_id != self.active.file_id:
            logger.warning("Cannot sample white balance before the file is rendered")
            return None

        color = sample_color(self._latest.image, x, y)
        if color is None:
            return None

        params = self.adjustments
        self.update_adjustments(
            replace(params, grade=replace(params.grade, white_balance_color=color))
        )
        return color

    async def refresh(self) -> Optional[ProcessingResult]:
        """
        Renders the active file. A result superseded by a newer refresh or by
        a file switch is dropped.
        """
        if self.active is None:
            return None

        state = self.active
        result = await self.engine.process(
            state.file_id, state.adjustments, self.preview_width
        )
        if result is None:
            return None
        if self.active is None or self.active.file_id != state.file_id:
            return None
        if self.engine.latest_result is not result:
            return None

        if result.decode_failed:
            logger.error(f"Failed to load {state.file_id}")
        self._latest = result
        return result
