from typing import Optional, Sequence, Tuple
import cv2
import numpy as np
from PIL import Image
from negpos.core.types import ImageBuffer, LUMA_COEFFS
from negpos.core.validation import ensure_image


def empty_image() -> ImageBuffer:
    """
    The defined stand-in for an image that could not be decoded.
    """
    return np.zeros((0, 0, 3), dtype=np.float32)


def is_empty(img: ImageBuffer) -> bool:
    return img.ndim < 2 or img.shape[0] == 0 or img.shape[1] == 0


def ensure_rgb(img: np.ndarray) -> np.ndarray:
    """
    Ensures the input image has at least 3 channels.
    """
    if img.ndim == 2:
        return np.stack([img] * 3, axis=-1)
    if img.ndim == 3 and img.shape[2] == 1:
        return np.concatenate([img] * 3, axis=-1)
    return img


def split_alpha(img: ImageBuffer) -> Tuple[ImageBuffer, Optional[ImageBuffer]]:
    """
    Separates color from an optional alpha channel. Alpha is never processed.
    """
    if img.ndim == 3 and img.shape[2] == 4:
        return img[..., :3], img[..., 3:]
    return img, None


def merge_alpha(rgb: ImageBuffer, alpha: Optional[ImageBuffer]) -> ImageBuffer:
    if alpha is None:
        return ensure_image(rgb)
    return ensure_image(np.concatenate([rgb, alpha.astype(np.float32)], axis=-1))


def get_luminance(img: ImageBuffer) -> ImageBuffer:
    """
    Relative luminance using Rec. 709 coefficients.
    """
    res = (
        LUMA_COEFFS[0] * img[..., 0]
        + LUMA_COEFFS[1] * img[..., 1]
        + LUMA_COEFFS[2] * img[..., 2]
    )
    return ensure_image(res)


def apply_color_matrix(
    img: ImageBuffer,
    scale: Sequence[float],
    bias: Sequence[float] = (0.0, 0.0, 0.0),
) -> ImageBuffer:
    """
    Per-channel affine transform `out = in * scale + bias` on RGB.
    Alpha, when present, is passed through unchanged.
    """
    rgb, alpha = split_alpha(img)
    s = np.asarray(scale, dtype=np.float32).reshape(1, 1, 3)
    b = np.asarray(bias, dtype=np.float32).reshape(1, 1, 3)
    return merge_alpha(rgb * s + b, alpha)


def resize_to_width(img: ImageBuffer, width: int) -> ImageBuffer:
    """
    Downsamples to the given width preserving aspect. Never upsamples.
    """
    h, w = img.shape[:2]
    if width <= 0 or w <= width or h == 0:
        return img
    new_h = max(1, int(round(h * width / float(w))))
    return ensure_image(cv2.resize(img, (width, new_h), interpolation=cv2.INTER_AREA))


def float_to_uint8(img: ImageBuffer) -> np.ndarray:
    return (np.clip(np.nan_to_num(img), 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


def uint8_to_float32(img: np.ndarray) -> ImageBuffer:
    return ensure_image(img.astype(np.float32) / 255.0)


def uint16_to_float32(img: np.ndarray) -> ImageBuffer:
    return ensure_image(img.astype(np.float32) / 65535.0)


def to_pil(img: ImageBuffer) -> Image.Image:
    """
    Rasterizes a float buffer into an 8-bit PIL image (RGB or RGBA).
    """
    data = float_to_uint8(ensure_rgb(img))
    return Image.fromarray(np.ascontiguousarray(data[..., :4]))
