from negpos.core.interfaces import IProcessor, PipelineContext
from negpos.core.types import ImageBuffer
from negpos.features.detail.models import DetailConfig
from negpos.features.detail.logic import (
    apply_luminance_noise_reduction,
    apply_luminance_sharpening,
    apply_unsharp_mask,
)


class DetailProcessor(IProcessor):
    """
    Last stage: denoise, then sharpen, so upstream gain is not amplified twice.
    """

    def __init__(self, config: DetailConfig):
        self.config = config

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        conf = self.config
        img = image

        # 1. Luminance Noise
        if conf.luminance_noise > 0:
            img = apply_luminance_noise_reduction(
                img, conf.luminance_noise, context.scale_factor
            )

        # 2. Sharpness
        if conf.sharpness > 0:
            img = apply_luminance_sharpening(img, conf.sharpness)

        # 3. Unsharp Mask
        if conf.unsharp_intensity > 0:
            img = apply_unsharp_mask(img, conf.unsharp_radius, conf.unsharp_intensity)

        return img
