from negpos.core.interfaces import IProcessor, PipelineContext
from negpos.core.types import ImageBuffer
from negpos.features.color.models import ColorCastConfig
from negpos.features.color.logic import (
    neutralize_midtones,
    apply_tints,
    apply_targeted_hue_adjustment,
)


class ColorCastProcessor(IProcessor):
    """
    Midtone neutralization -> shadow/highlight tints -> targeted hue range.
    """

    def __init__(self, config: ColorCastConfig):
        self.config = config

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        conf = self.config
        img = image

        if conf.midtone_neutralization:
            img = neutralize_midtones(img, conf.midtone_neutralization_strength)

        img = apply_tints(
            img,
            conf.shadow_tint_color,
            conf.shadow_tint_strength,
            conf.highlight_tint_color,
            conf.highlight_tint_strength,
        )

        return apply_targeted_hue_adjustment(
            img,
            conf.target_hue_center,
            conf.target_hue_width,
            conf.target_saturation_delta,
            conf.target_brightness_delta,
        )
