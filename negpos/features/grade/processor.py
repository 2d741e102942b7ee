from negpos.core.interfaces import IProcessor, PipelineContext
from negpos.core.types import ImageBuffer
from negpos.features.grade.models import GradeConfig, MonochromeConfig
from negpos.features.grade.logic import (
    apply_polynomials,
    apply_sampled_white_balance,
    apply_temperature_tint,
    apply_vibrance,
    apply_saturation,
    apply_monochrome,
)


class ColorGradeProcessor(IProcessor):
    """
    Grading of the positive: polynomial curves, sampled white balance,
    temperature/tint, vibrance, saturation.
    """

    def __init__(self, config: GradeConfig):
        self.config = config

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        conf = self.config
        img = apply_polynomials(
            image, conf.red_polynomial, conf.green_polynomial, conf.blue_polynomial
        )
        img = apply_sampled_white_balance(img, conf.white_balance_color)
        img = apply_temperature_tint(img, conf.positive_temperature, conf.positive_tint)
        img = apply_vibrance(img, conf.vibrance)
        return apply_saturation(img, conf.saturation)


class MonochromeProcessor(IProcessor):
    def __init__(self, config: MonochromeConfig):
        self.config = config

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        if not self.config.black_and_white:
            return image
        conf = self.config
        return apply_monochrome(
            image, (conf.bw_red, conf.bw_green, conf.bw_blue), conf.sepia_intensity
        )
