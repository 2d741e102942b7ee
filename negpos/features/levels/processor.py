from negpos.core.interfaces import IProcessor, PipelineContext
from negpos.core.types import ImageBuffer
from negpos.features.levels.logic import compute_channel_bounds, apply_levels


class AutoLevelsProcessor(IProcessor):
    """
    Stretches each channel between its measured black and white points.
    Bounds come from the analysis copy, the remap hits the full buffer.
    """

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        bounds = compute_channel_bounds(
            image, context.analysis_width, context.histogram_bins
        )
        context.metrics["levels_bounds"] = bounds
        return apply_levels(image, bounds)
