import math
import numpy as np
from typing import Optional, Sequence, Tuple
from negpos.core.types import ImageBuffer, RGB, LUMA_R, LUMA_G, LUMA_B
from negpos.core.validation import ensure_image
from negpos.core.performance import time_function
from negpos.kernel.image.logic import (
    apply_color_matrix,
    get_luminance,
    merge_alpha,
    split_alpha,
)
from negpos.features.grade.models import (
    IDENTITY_POLYNOMIAL,
    NEUTRAL_TEMPERATURE,
    NEUTRAL_TINT,
)

# Standard sepia matrix (rows produce R, G, B)
SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)

MIN_KELVIN = 1000.0
MAX_KELVIN = 40000.0
TINT_RANGE = 150.0


def kelvin_to_rgb(kelvin: float) -> Tuple[float, float, float]:
    """
    Approximate white point of a black body, 0-1 per channel.
    Curve fit by Tanner Helland, good from 1000K to 40000K.
    """
    temp = min(max(kelvin, MIN_KELVIN), MAX_KELVIN) / 100.0

    if temp <= 66.0:
        red = 255.0
        green = 99.4708025861 * math.log(temp) - 161.1195681661
    else:
        red = 329.698727446 * ((temp - 60.0) ** -0.1332047592)
        green = 288.1221695283 * ((temp - 60.0) ** -0.0755148492)

    if temp >= 66.0:
        blue = 255.0
    elif temp <= 19.0:
        blue = 0.0
    else:
        blue = 138.5177312231 * math.log(temp - 10.0) - 305.0447927307

    def _norm(v: float) -> float:
        return min(max(v, 0.0), 255.0) / 255.0

    return _norm(red), _norm(green), _norm(blue)


def temperature_tint_gains(
    temperature: float,
    tint: float,
    neutral_temperature: float = NEUTRAL_TEMPERATURE,
    neutral_tint: float = NEUTRAL_TINT,
) -> Tuple[float, float, float]:
    """
    Channel gains that re-balance from the neutral white point to the target.
    A higher target temperature warms the image, positive tint adds magenta.
    Normalized so green is driven only by tint.
    """
    src = np.array(kelvin_to_rgb(neutral_temperature), dtype=np.float64)
    dst = np.maximum(np.array(kelvin_to_rgb(temperature), dtype=np.float64), 1e-3)
    gains = src / dst
    gains = gains / gains[1]

    tint_shift = (tint - neutral_tint) / TINT_RANGE
    gains[1] *= max(1.0 - 0.5 * tint_shift, 0.05)
    return float(gains[0]), float(gains[1]), float(gains[2])


def apply_polynomials(
    img: ImageBuffer,
    red: Sequence[float],
    green: Sequence[float],
    blue: Sequence[float],
) -> ImageBuffer:
    """
    c0 + c1*x + c2*x^2 + c3*x^3 per channel.
    """
    if all(tuple(p) == IDENTITY_POLYNOMIAL for p in (red, green, blue)):
        return img

    rgb, alpha = split_alpha(img)
    res = np.empty_like(rgb, dtype=np.float32)
    for c, coeffs in enumerate((red, green, blue)):
        x = rgb[..., c]
        c0, c1, c2, c3 = (np.float32(v) for v in coeffs)
        res[..., c] = c0 + x * (c1 + x * (c2 + x * c3))
    return merge_alpha(res, alpha)


def apply_sampled_white_balance(img: ImageBuffer, neutral: Optional[RGB]) -> ImageBuffer:
    """
    Scales channels so the sampled neutral keeps its luminance but loses its cast.
    """
    if neutral is None or min(neutral) <= 0.0:
        return img

    r, g, b = neutral
    lum = LUMA_R * r + LUMA_G * g + LUMA_B * b
    if lum <= 0.0:
        return img
    return apply_color_matrix(img, (lum / r, lum / g, lum / b))


def apply_temperature_tint(img: ImageBuffer, temperature: float, tint: float) -> ImageBuffer:
    if temperature == NEUTRAL_TEMPERATURE and tint == NEUTRAL_TINT:
        return img
    return apply_color_matrix(img, temperature_tint_gains(temperature, tint))


def apply_vibrance(img: ImageBuffer, amount: float) -> ImageBuffer:
    """
    Saturation boost that favours muted colors.
    """
    if amount == 0.0:
        return img

    rgb, alpha = split_alpha(img)
    lum = get_luminance(rgb)[..., None]
    sat = np.clip(rgb.max(axis=-1) - rgb.min(axis=-1), 0.0, 1.0)[..., None]
    gain = 1.0 + np.float32(amount) * (1.0 - sat)
    return merge_alpha(ensure_image(lum + (rgb - lum) * gain), alpha)


def apply_saturation(img: ImageBuffer, saturation: float) -> ImageBuffer:
    if saturation == 1.0:
        return img

    rgb, alpha = split_alpha(img)
    lum = get_luminance(rgb)[..., None]
    return merge_alpha(lum + (rgb - lum) * np.float32(saturation), alpha)


@time_function
def apply_monochrome(
    img: ImageBuffer, weights: Tuple[float, float, float], sepia: float = 0.0
) -> ImageBuffer:
    """
    Channel mixer to gray, optionally toned with the sepia matrix.
    """
    rgb, alpha = split_alpha(img)
    w = np.asarray(weights, dtype=np.float32)
    gray = (rgb[..., 0] * w[0] + rgb[..., 1] * w[1] + rgb[..., 2] * w[2])[..., None]
    res = np.repeat(gray, 3, axis=-1)

    if sepia > 0.0:
        toned = gray * SEPIA_MATRIX.sum(axis=1).reshape(1, 1, 3)
        res = res + (toned - res) * np.float32(min(sepia, 1.0))

    return merge_alpha(ensure_image(res), alpha)
