from typing import List, Optional
import numpy as np

# Core
from negpos.core.types import ImageBuffer
from negpos.core.interfaces import IProcessor, PipelineContext
from negpos.core.validation import ensure_image
from negpos.domain.models import AdjustmentParameters, ProcessingVersion
from negpos.kernel.system.logging import get_logger
from negpos.orchestration.cancellation import CancellationToken, ProcessingCancelled

# Features
from negpos.features.geometry.processor import GeometryProcessor
from negpos.features.inversion.processor import (
    FilmBaseNeutralizationProcessor,
    InversionProcessor,
)
from negpos.features.levels.processor import AutoLevelsProcessor
from negpos.features.tone.processor import ToneProcessor, PerceptualToneMappingProcessor
from negpos.features.color.processor import ColorCastProcessor
from negpos.features.grade.processor import ColorGradeProcessor, MonochromeProcessor
from negpos.features.detail.processor import DetailProcessor

logger = get_logger(__name__)


def build_pipeline(
    params: AdjustmentParameters, version: ProcessingVersion = ProcessingVersion.V2
) -> List[IProcessor]:
    """
    Assembles the fixed processing order for one set of adjustments.
    """
    processors: List[IProcessor] = [GeometryProcessor(params.geometry)]

    # 1. Negative -> Positive
    if version == ProcessingVersion.V2:
        processors.append(FilmBaseNeutralizationProcessor(params.inversion))
    processors.append(InversionProcessor(params.inversion, version))

    # 2. Tone
    if params.tone.auto_levels:
        processors.append(AutoLevelsProcessor())
    processors.append(ToneProcessor(params.tone))
    processors.append(PerceptualToneMappingProcessor(params.tone))

    # 3. Color
    processors.append(ColorCastProcessor(params.color))
    processors.append(ColorGradeProcessor(params.grade))
    processors.append(MonochromeProcessor(params.monochrome))

    # 4. Detail
    processors.append(DetailProcessor(params.detail))
    return processors


def run_pipeline(
    img: ImageBuffer,
    processors: List[IProcessor],
    context: PipelineContext,
    token: Optional[CancellationToken] = None,
) -> ImageBuffer:
    """
    Runs each processor in sequence. A processor that raises is skipped and
    its input handed to the next one. Cancellation is polled between stages.
    """
    if img.dtype != np.float32:
        img = ensure_image(img)

    for processor in processors:
        try:
            img = processor.process(img, context)
        except ProcessingCancelled:
            raise
        except Exception as e:
            logger.error(f"{type(processor).__name__} failed, passing input through: {e}")
        if token is not None:
            token.raise_if_cancelled()

    return img
