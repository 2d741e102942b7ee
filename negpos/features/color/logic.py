import numpy as np
from numba import njit, prange  # type: ignore
from typing import Tuple
from negpos.core.types import ImageBuffer, RGB
from negpos.core.validation import ensure_image
from negpos.core.performance import time_function
from negpos.kernel.image.logic import apply_color_matrix, merge_alpha, split_alpha
from negpos.features.color.models import (
    HUE_CUBE_SIZE,
    HUE_DELTA_EPSILON,
    NEUTRALIZATION_MIN_AVERAGE,
)


@time_function
def neutralize_midtones(img: ImageBuffer, strength: float) -> ImageBuffer:
    """
    Gray-world correction: scales each channel so the frame average is neutral,
    then blends with the input by `strength`.
    """
    if strength <= 0.0:
        return img

    rgb, _ = split_alpha(img)
    if rgb.size == 0:
        return img

    means = rgb.reshape(-1, 3).mean(axis=0, dtype=np.float64)
    overall = float(means.mean())
    if overall <= NEUTRALIZATION_MIN_AVERAGE or np.any(means <= 0.0):
        return img

    neutral = apply_color_matrix(img, overall / means)
    if strength >= 1.0:
        return neutral

    blended = rgb + (neutral[..., :3] - rgb) * np.float32(strength)
    return merge_alpha(blended, split_alpha(img)[1])


def apply_tints(
    img: ImageBuffer,
    shadow_color: RGB,
    shadow_strength: float,
    highlight_color: RGB,
    highlight_strength: float,
) -> ImageBuffer:
    """
    Additive bias per tint, shadow first then highlight on top.
    """
    res = img
    if shadow_strength > 0.0:
        bias = [c * shadow_strength for c in shadow_color]
        res = apply_color_matrix(res, (1.0, 1.0, 1.0), bias)
    if highlight_strength > 0.0:
        bias = [c * highlight_strength for c in highlight_color]
        res = apply_color_matrix(res, (1.0, 1.0, 1.0), bias)
    return res


@njit
def _rgb_to_hsv(r: float, g: float, b: float) -> Tuple[float, float, float]:
    mx = max(r, g, b)
    mn = min(r, g, b)
    v = mx
    delta = mx - mn
    if mx <= 0.0 or delta <= 0.0:
        return 0.0, 0.0, v
    s = delta / mx
    if r == mx:
        h = (g - b) / delta
    elif g == mx:
        h = 2.0 + (b - r) / delta
    else:
        h = 4.0 + (r - g) / delta
    h = h / 6.0
    if h < 0.0:
        h += 1.0
    return h, s, v


@njit
def _hsv_to_rgb(h: float, s: float, v: float) -> Tuple[float, float, float]:
    if s <= 0.0:
        return v, v, v
    h6 = (h % 1.0) * 6.0
    i = int(h6)
    f = h6 - i
    p = v * (1.0 - s)
    q = v * (1.0 - s * f)
    t = v * (1.0 - s * (1.0 - f))
    if i == 0:
        return v, t, p
    if i == 1:
        return q, v, p
    if i == 2:
        return p, v, t
    if i == 3:
        return p, q, v
    if i == 4:
        return t, p, v
    return v, p, q


@njit
def _hue_in_range(hue: float, lower: float, upper: float) -> bool:
    if lower < 0.0:
        return hue >= 1.0 + lower or hue <= upper
    if upper > 1.0:
        return hue >= lower or hue <= upper - 1.0
    return lower <= hue <= upper


@njit
def _build_hue_cube_jit(
    size: int, lower: float, upper: float, sat_delta: float, bright_delta: float
) -> np.ndarray:
    cube = np.empty((size, size, size, 3), dtype=np.float32)
    step = 1.0 / (size - 1)
    for ri in range(size):
        for gi in range(size):
            for bi in range(size):
                r = ri * step
                g = gi * step
                b = bi * step
                h, s, v = _rgb_to_hsv(r, g, b)
                if _hue_in_range(h, lower, upper):
                    s = min(max(s + sat_delta, 0.0), 1.0)
                    v = min(max(v + bright_delta, 0.0), 1.0)
                    r, g, b = _hsv_to_rgb(h, s, v)
                cube[ri, gi, bi, 0] = r
                cube[ri, gi, bi, 1] = g
                cube[ri, gi, bi, 2] = b
    return cube


def build_hue_cube(
    center_deg: float,
    width_deg: float,
    saturation_delta: float,
    brightness_delta: float,
    size: int = HUE_CUBE_SIZE,
) -> np.ndarray:
    """
    (size, size, size, 3) lookup cube indexed [r, g, b]. Cells whose hue falls
    in center +- width/2 (wrapping past 0/360) get the saturation and
    brightness deltas, every other cell maps to itself.
    """
    center = center_deg / 360.0
    half = (width_deg / 360.0) / 2.0
    return _build_hue_cube_jit(
        size,
        center - half,
        center + half,
        float(saturation_delta),
        float(brightness_delta),
    )


@njit(parallel=True)
def _apply_cube_jit(rgb: np.ndarray, cube: np.ndarray) -> np.ndarray:
    """
    Trilinear lookup of an RGB image through a 3D cube.
    """
    h, w, _ = rgb.shape
    n = cube.shape[0]
    res = np.empty((h, w, 3), dtype=np.float32)
    for y in prange(h):
        for x in range(w):
            pr = min(max(rgb[y, x, 0], 0.0), 1.0) * (n - 1)
            pg = min(max(rgb[y, x, 1], 0.0), 1.0) * (n - 1)
            pb = min(max(rgb[y, x, 2], 0.0), 1.0) * (n - 1)
            r0 = min(int(pr), n - 2)
            g0 = min(int(pg), n - 2)
            b0 = min(int(pb), n - 2)
            tr = pr - r0
            tg = pg - g0
            tb = pb - b0
            for c in range(3):
                c00 = cube[r0, g0, b0, c] * (1 - tr) + cube[r0 + 1, g0, b0, c] * tr
                c10 = cube[r0, g0 + 1, b0, c] * (1 - tr) + cube[r0 + 1, g0 + 1, b0, c] * tr
                c01 = cube[r0, g0, b0 + 1, c] * (1 - tr) + cube[r0 + 1, g0, b0 + 1, c] * tr
                c11 = (
                    cube[r0, g0 + 1, b0 + 1, c] * (1 - tr)
                    + cube[r0 + 1, g0 + 1, b0 + 1, c] * tr
                )
                c0 = c00 * (1 - tg) + c10 * tg
                c1 = c01 * (1 - tg) + c11 * tg
                res[y, x, c] = c0 * (1 - tb) + c1 * tb
    return res


def apply_cube(img: ImageBuffer, cube: np.ndarray) -> ImageBuffer:
    rgb, alpha = split_alpha(img)
    if rgb.size == 0:
        return img
    res = _apply_cube_jit(
        np.ascontiguousarray(rgb, dtype=np.float32), cube.astype(np.float32)
    )
    return merge_alpha(ensure_image(res), alpha)


@time_function
def apply_targeted_hue_adjustment(
    img: ImageBuffer,
    center_deg: float,
    width_deg: float,
    saturation_delta: float,
    brightness_delta: float,
) -> ImageBuffer:
    if abs(saturation_delta) <= HUE_DELTA_EPSILON and abs(brightness_delta) <= HUE_DELTA_EPSILON:
        return img
    if width_deg <= 0.0:
        return img

    cube = build_hue_cube(center_deg, width_deg, saturation_delta, brightness_delta)
    return apply_cube(img, cube)
