import numpy as np
from typing import Optional, Tuple
from negpos.core.types import ImageBuffer, RGB, LUMA_601
from negpos.core.validation import ensure_image
from negpos.core.performance import time_function
from negpos.kernel.image.logic import apply_color_matrix, split_alpha, merge_alpha
from negpos.features.inversion.models import (
    FILM_BASE_MIN,
    FILM_BASE_MAX,
    FILM_BASE_MAX_FACTOR,
    BORDER_STRIP_PX,
    BORDER_LUMA_THRESHOLD,
    INVERSION_EPSILON,
)


def film_base_correction_factors(base: RGB) -> Tuple[float, float, float]:
    """
    Per-channel gains that map the sampled film base to neutral white.
    Samples are trusted within [0.05, 1.0] and gains never exceed 10x.
    """
    clamped = np.clip(np.asarray(base, dtype=np.float64), FILM_BASE_MIN, FILM_BASE_MAX)
    factors = np.minimum(1.0 / clamped, FILM_BASE_MAX_FACTOR)
    return float(factors[0]), float(factors[1]), float(factors[2])


@time_function
def neutralize_film_base(img: ImageBuffer, base: Optional[RGB]) -> ImageBuffer:
    """
    Diagonal color matrix in linear space. No-op without a sample.
    """
    if base is None:
        return img
    return apply_color_matrix(img, film_base_correction_factors(base))


@time_function
def invert_standard(img: ImageBuffer) -> ImageBuffer:
    """
    out = 1 - in, clamped to [0, 1].
    """
    rgb, alpha = split_alpha(img)
    return merge_alpha(np.clip(1.0 - rgb, 0.0, 1.0), alpha)


def estimate_border_base(
    img: ImageBuffer,
    strip_px: int = BORDER_STRIP_PX,
    threshold: float = BORDER_LUMA_THRESHOLD,
) -> Optional[RGB]:
    """
    Averages the four border strips of the frame, keeping only strips dark
    enough to be unexposed film rather than a light leak or the scanner bed.
    Returns None when no strip qualifies.
    """
    rgb, _ = split_alpha(img)
    h, w = rgb.shape[:2]
    if h == 0 or w == 0:
        return None

    sh, sw = min(strip_px, h), min(strip_px, w)
    strips = (
        rgb[:sh, :],  # Top
        rgb[h - sh :, :],  # Bottom
        rgb[:, :sw],  # Left
        rgb[:, w - sw :],  # Right
    )

    accepted = []
    for strip in strips:
        mean = strip.reshape(-1, 3).mean(axis=0)
        if float(np.dot(LUMA_601, mean)) < threshold:
            accepted.append(mean)

    if not accepted:
        return None

    avg = np.mean(accepted, axis=0)
    return float(avg[0]), float(avg[1]), float(avg[2])


@time_function
def invert_base_relative(img: ImageBuffer, base: Optional[RGB]) -> ImageBuffer:
    """
    Legacy inversion: out = 1 - in / base, clamped.
    Falls back to the border estimate, then to standard inversion.
    """
    if base is None:
        base = estimate_border_base(img)
    if base is None:
        return invert_standard(img)

    scale = [-1.0 / max(c, INVERSION_EPSILON) for c in base]
    res = apply_color_matrix(img, scale, (1.0, 1.0, 1.0))
    rgb, alpha = split_alpha(res)
    return merge_alpha(np.clip(rgb, 0.0, 1.0), alpha)


def sample_color(img: ImageBuffer, x: float, y: float, radius: int = 2) -> Optional[RGB]:
    """
    Mean color of a (2r+1)^2 window around a pixel coordinate.
    Used to pick the film base or a white balance neutral.
    """
    rgb, _ = split_alpha(img)
    h, w = rgb.shape[:2]
    if h == 0 or w == 0:
        return None

    cx = int(min(max(round(x), 0), w - 1))
    cy = int(min(max(round(y), 0), h - 1))
    window = rgb[
        max(0, cy - radius) : cy + radius + 1, max(0, cx - radius) : cx + radius + 1
    ]
    mean = ensure_image(window).reshape(-1, 3).mean(axis=0)
    return float(mean[0]), float(mean[1]), float(mean[2])
