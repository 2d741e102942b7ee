from dataclasses import dataclass
from negpos.core.types import RGB

HUE_CUBE_SIZE = 32
HUE_DELTA_EPSILON = 0.001
NEUTRALIZATION_MIN_AVERAGE = 0.001


@dataclass(frozen=True)
class ColorCastConfig:
    """
    Residual cast removal after inversion.
    """

    midtone_neutralization: bool = False
    midtone_neutralization_strength: float = 1.0

    shadow_tint_color: RGB = (0.0, 0.0, 0.0)
    shadow_tint_strength: float = 0.0
    highlight_tint_color: RGB = (0.0, 0.0, 0.0)
    highlight_tint_strength: float = 0.0

    # Targeted hue range (degrees), defaults aimed at residual cyan
    target_hue_center: float = 180.0
    target_hue_width: float = 40.0
    target_saturation_delta: float = 0.0
    target_brightness_delta: float = 0.0
