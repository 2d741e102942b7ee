from dataclasses import dataclass


@dataclass(frozen=True)
class DetailConfig:
    """
    Output sharpening and noise reduction.
    """

    sharpness: float = 0.0
    unsharp_radius: float = 2.5
    unsharp_intensity: float = 0.0
    luminance_noise: float = 0.0
