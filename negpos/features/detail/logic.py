import numpy as np
import cv2
from negpos.core.types import ImageBuffer
from negpos.core.validation import ensure_image
from negpos.core.performance import time_function
from negpos.kernel.image.logic import get_luminance, merge_alpha, split_alpha


@time_function
def apply_luminance_noise_reduction(
    img: ImageBuffer, level: float, scale_factor: float = 1.0
) -> ImageBuffer:
    """
    Edge-preserving smoothing of luminance only; chroma is left alone.
    """
    if level <= 0:
        return img

    rgb, alpha = split_alpha(img)
    lum = np.ascontiguousarray(get_luminance(rgb))

    d_val = int(5 * max(scale_factor, 1.0)) | 1
    sigma_color = float(min(level, 1.0)) * 0.15
    sigma_space = 3.0 * max(scale_factor, 1.0)
    denoised = cv2.bilateralFilter(lum, d_val, sigma_color, sigma_space)

    res = rgb + (denoised - lum)[..., None]
    return merge_alpha(ensure_image(res), alpha)


@time_function
def apply_luminance_sharpening(img: ImageBuffer, amount: float) -> ImageBuffer:
    """
    Adds back the fine luminance detail (sigma 1px high-pass) scaled by `amount`.
    """
    if amount <= 0:
        return img

    rgb, alpha = split_alpha(img)
    lum = np.ascontiguousarray(get_luminance(rgb))
    blurred = cv2.GaussianBlur(lum, (0, 0), 1.0)
    detail = (lum - blurred) * np.float32(amount)
    return merge_alpha(ensure_image(rgb + detail[..., None]), alpha)


@time_function
def apply_unsharp_mask(img: ImageBuffer, radius: float, intensity: float) -> ImageBuffer:
    """
    Classic unsharp mask: in + (in - blur(radius)) * intensity.
    """
    if intensity <= 0 or radius <= 0:
        return img

    rgb, alpha = split_alpha(img)
    src = np.ascontiguousarray(rgb, dtype=np.float32)
    blurred = cv2.GaussianBlur(src, (0, 0), float(radius))
    res = src + (src - blurred) * np.float32(intensity)
    return merge_alpha(ensure_image(res), alpha)
