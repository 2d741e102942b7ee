import numpy as np
from negpos.core.interfaces import IProcessor, PipelineContext
from negpos.core.types import ImageBuffer
from negpos.core.validation import ensure_image
from negpos.features.geometry.models import GeometryConfig
from negpos.features.geometry.logic import (
    apply_perspective_correction,
    crop_to_rect,
    apply_orientation,
    apply_fine_rotation,
    apply_scale,
)


class GeometryProcessor(IProcessor):
    """
    Keystone -> crop -> mirror/rotate -> straighten -> scale.
    Runs before any color work so analysis only sees frame content.
    """

    def __init__(self, config: GeometryConfig):
        self.config = config

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer:
        conf = self.config
        h, w = image.shape[:2]
        points = conf.clamped_to(w, h).perspective_points
        img = apply_perspective_correction(
            image, points, conf.perspective_reference_size
        )

        h, w = img.shape[:2]
        img = crop_to_rect(img, conf.clamped_to(w, h).crop_rect)

        img = apply_orientation(
            img, conf.rotation, conf.mirror_horizontal, conf.mirror_vertical
        )
        img = apply_fine_rotation(img, conf.straighten_angle)
        img = apply_scale(img, conf.scale)

        context.metrics["geometry_size"] = img.shape[:2]
        return ensure_image(np.ascontiguousarray(img))
