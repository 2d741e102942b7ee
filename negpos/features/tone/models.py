from dataclasses import dataclass


@dataclass(frozen=True)
class ToneConfig:
    """
    Exposure, contrast and tone curve controls applied to the positive.
    """

    auto_levels: bool = True

    exposure: float = 0.0  # EV
    contrast: float = 1.0
    brightness: float = 0.0
    highlights: float = 0.0
    shadows: float = 0.0
    blacks: float = 0.0
    whites: float = 1.0

    # Perceptual mapping
    gamma: float = 1.0
    s_curve_shadow_lift: float = 0.0
    s_curve_highlight_pull: float = 0.0
