import numpy as np
import cv2
from typing import Optional, Sequence, Tuple
from negpos.core.types import ImageBuffer, Point, Rect
from negpos.core.validation import ensure_image
from negpos.core.performance import time_function


def _quad_area(quad: np.ndarray) -> float:
    x, y = quad[:, 0], quad[:, 1]
    return float(0.5 * abs(np.dot(x, np.roll(y, 1)) - np.dot(y, np.roll(x, 1))))


@time_function
def apply_perspective_correction(
    img: ImageBuffer,
    points: Optional[Sequence[Point]],
    reference_size: Optional[Tuple[float, float]] = None,
) -> ImageBuffer:
    """
    Warps the quadrilateral TL, TR, BR, BL onto an upright rectangle.

    Points are given in pixels of `reference_size` (usually the preview the
    user dragged the handles on) and rescaled to the working buffer.
    """
    if points is None or len(points) != 4:
        return img

    h, w = img.shape[:2]
    ref_w, ref_h = reference_size or (w, h)
    if ref_w <= 0 or ref_h <= 0:
        return img

    src = np.array(points, dtype=np.float32) * np.array(
        [w / float(ref_w), h / float(ref_h)], dtype=np.float32
    )
    if _quad_area(src) < 1.0:
        return img

    tl, tr, br, bl = src
    out_w = int(round(max(np.linalg.norm(tr - tl), np.linalg.norm(br - bl))))
    out_h = int(round(max(np.linalg.norm(bl - tl), np.linalg.norm(br - tr))))
    if out_w < 1 or out_h < 1:
        return img

    dst = np.array(
        [[0, 0], [out_w - 1, 0], [out_w - 1, out_h - 1], [0, out_h - 1]],
        dtype=np.float32,
    )
    m_mat = cv2.getPerspectiveTransform(src, dst)
    res = cv2.warpPerspective(
        img,
        m_mat,
        (out_w, out_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_REPLICATE,
    )
    return ensure_image(res)


def crop_to_rect(img: ImageBuffer, rect: Optional[Rect]) -> ImageBuffer:
    """
    Crops to (x, y, w, h) after clamping the rectangle to the image bounds.
    """
    if rect is None:
        return img

    h, w = img.shape[:2]
    x, y, cw, ch = rect
    x1, y1 = int(max(0, round(x))), int(max(0, round(y)))
    x2, y2 = int(min(w, round(x + cw))), int(min(h, round(y + ch)))
    if x2 <= x1 or y2 <= y1:
        return img
    return img[y1:y2, x1:x2]


def apply_orientation(
    img: ImageBuffer,
    rotation: int = 0,
    mirror_horizontal: bool = False,
    mirror_vertical: bool = False,
) -> ImageBuffer:
    """
    Mirrors (vertical first), then rotates in quarter turns (np.rot90, CCW).
    """
    res = img
    if mirror_vertical:
        res = np.flip(res, axis=0)
    if mirror_horizontal:
        res = np.flip(res, axis=1)
    k = rotation % 4
    if k:
        res = np.rot90(res, k=k)
    return res


@time_function
def apply_fine_rotation(img: ImageBuffer, angle: float) -> ImageBuffer:
    """
    Rotates the image by a specific angle (in degrees) about its center.

    Used for horizon leveling. Bilinear interpolation, black border.
    """
    if angle == 0.0:
        return img

    h, w = img.shape[:2]
    center = (w / 2.0, h / 2.0)
    m_mat = cv2.getRotationMatrix2D(center, angle, 1.0)

    res = cv2.warpAffine(
        np.ascontiguousarray(img),
        m_mat,
        (w, h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )
    return ensure_image(res)


def apply_scale(img: ImageBuffer, scale: float) -> ImageBuffer:
    if scale <= 0.0 or scale == 1.0:
        return img

    h, w = img.shape[:2]
    new_w, new_h = max(1, int(round(w * scale))), max(1, int(round(h * scale)))
    interp = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR
    return ensure_image(
        cv2.resize(np.ascontiguousarray(img), (new_w, new_h), interpolation=interp)
    )
