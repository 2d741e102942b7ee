from negpos.core.interfaces import IProcessor, PipelineContext
from negpos.core.types import ImageBuffer
from negpos.domain.models import ProcessingVersion
from negpos.features.inversion.models import InversionConfig
from negpos.features.inversion.logic import (
    film_base_correction_factors,
    neutralize_film_base,
    invert_standard,
    invert_base_relative,
)


class FilmBaseNeutralizationProcessor(IProcessor):
    """
    Removes the substrate cast so the standard inversion maps the base to black.
    """

    def __init__(self, config: InversionConfig):
        self.config = config

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        base = self.config.film_base_color
        if base is None:
            return image

        context.metrics["film_base_factors"] = film_base_correction_factors(base)
        return neutralize_film_base(image, base)


class InversionProcessor(IProcessor):
    """
    Negative -> positive. The algorithm follows the processing version.
    """

    def __init__(self, config: InversionConfig, version: ProcessingVersion):
        self.config = config
        self.version = version

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        if self.version == ProcessingVersion.V1:
            return invert_base_relative(image, self.config.film_base_color)
        return invert_standard(image)
