import numpy as np
from scipy.interpolate import PchipInterpolator
from negpos.core.types import ImageBuffer
from negpos.core.validation import ensure_image
from negpos.core.performance import time_function
from negpos.kernel.image.logic import get_luminance, merge_alpha, split_alpha

MIN_GAMMA = 0.01
S_CURVE_X = np.array([0.0, 0.25, 0.5, 0.75, 1.0])


def apply_exposure_contrast_brightness(
    img: ImageBuffer, exposure: float, contrast: float, brightness: float
) -> ImageBuffer:
    """
    out = ((in * 2^ev) - 0.5) * contrast + 0.5 + brightness
    """
    if exposure == 0.0 and contrast == 1.0 and brightness == 0.0:
        return img

    rgb, alpha = split_alpha(img)
    res = rgb * np.float32(2.0**exposure)
    if contrast != 1.0:
        res = (res - 0.5) * np.float32(contrast) + 0.5
    if brightness != 0.0:
        res = res + np.float32(brightness)
    return merge_alpha(res, alpha)


@time_function
def apply_highlights_shadows(
    img: ImageBuffer, highlights: float, shadows: float
) -> ImageBuffer:
    """
    Luminance-masked recovery. Positive shadows lift dark areas into their
    headroom, negative highlights pull bright areas down.
    """
    if highlights == 0.0 and shadows == 0.0:
        return img

    rgb, alpha = split_alpha(img)
    lum = np.clip(get_luminance(rgb), 0.0, 1.0)[..., None]
    res = rgb
    if shadows != 0.0:
        shadow_mask = (1.0 - lum) ** 2
        res = res + (1.0 - np.clip(res, 0.0, 1.0)) * shadow_mask * (shadows * 0.5)
    if highlights != 0.0:
        highlight_mask = lum**2
        res = res * (1.0 + highlight_mask * (highlights * 0.5))
    return merge_alpha(ensure_image(res), alpha)


def apply_black_white_points(img: ImageBuffer, blacks: float, whites: float) -> ImageBuffer:
    if (blacks == 0.0 and whites == 1.0) or abs(whites - blacks) < 1e-5:
        return img

    rgb, alpha = split_alpha(img)
    return merge_alpha((rgb - np.float32(blacks)) / np.float32(whites - blacks), alpha)


def apply_gamma(img: ImageBuffer, gamma: float) -> ImageBuffer:
    """
    Power-law gamma on the non-negative part. A degenerate exponent means 1.0.
    """
    g = gamma if gamma > MIN_GAMMA else 1.0
    if g == 1.0:
        return img

    rgb, alpha = split_alpha(img)
    return merge_alpha(np.power(np.maximum(rgb, 0.0), np.float32(g)), alpha)


def build_s_curve(shadow_lift: float, highlight_pull: float) -> PchipInterpolator:
    """
    Monotone curve through (0,0), (.25, .25+lift), (.5,.5), (.75, .75-pull), (1,1).
    """
    y = np.array(
        [
            0.0,
            min(max(0.25 + shadow_lift, 0.0), 1.0),
            0.5,
            min(max(0.75 - highlight_pull, 0.0), 1.0),
            1.0,
        ]
    )
    return PchipInterpolator(S_CURVE_X, y)


@time_function
def apply_s_curve(img: ImageBuffer, shadow_lift: float, highlight_pull: float) -> ImageBuffer:
    if shadow_lift == 0.0 and highlight_pull == 0.0:
        return img

    curve = build_s_curve(shadow_lift, highlight_pull)
    rgb, alpha = split_alpha(img)
    res = curve(np.clip(rgb, 0.0, 1.0))
    return merge_alpha(ensure_image(res), alpha)
