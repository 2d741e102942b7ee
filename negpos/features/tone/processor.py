from negpos.core.interfaces import IProcessor, PipelineContext
from negpos.core.types import ImageBuffer
from negpos.features.tone.models import ToneConfig
from negpos.features.tone.logic import (
    apply_exposure_contrast_brightness,
    apply_highlights_shadows,
    apply_black_white_points,
    apply_gamma,
    apply_s_curve,
)


class ToneProcessor(IProcessor):
    def __init__(self, config: ToneConfig):
        self.config = config

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        conf = self.config
        img = apply_exposure_contrast_brightness(
            image, conf.exposure, conf.contrast, conf.brightness
        )
        img = apply_highlights_shadows(img, conf.highlights, conf.shadows)
        return apply_black_white_points(img, conf.blacks, conf.whites)


class PerceptualToneMappingProcessor(IProcessor):
    """
    Gamma, then the 5-point S-curve.
    """

    def __init__(self, config: ToneConfig):
        self.config = config

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        img = apply_gamma(image, self.config.gamma)
        return apply_s_curve(
            img, self.config.s_curve_shadow_lift, self.config.s_curve_highlight_pull
        )
