import numpy as np
import numpy.typing as npt
from typing import Tuple
from negpos.core.types import ImageBuffer
from negpos.core.validation import ensure_image
from negpos.core.performance import time_function
from negpos.domain.models import HistogramData
from negpos.kernel.image.logic import (
    get_luminance,
    merge_alpha,
    resize_to_width,
    split_alpha,
)

HISTOGRAM_EPSILON = 1e-6
FLAT_RANGE_EPSILON = 1e-5


def _bin_edges(bins: int) -> npt.NDArray[np.float64]:
    # Bin i is centered on i / (bins - 1)
    half = 0.5 / (bins - 1)
    return np.linspace(-half, 1.0 + half, bins + 1)


def channel_histogram(channel: np.ndarray, bins: int = 256) -> npt.NDArray[np.float64]:
    """
    Counts of a single channel, values clipped into [0, 1] first.
    """
    data = np.clip(np.nan_to_num(channel.ravel()), 0.0, 1.0)
    counts, _ = np.histogram(data, bins=_bin_edges(bins))
    return counts.astype(np.float64)


def find_histogram_bounds(
    counts: npt.NDArray[np.float64], epsilon: float = HISTOGRAM_EPSILON
) -> Tuple[float, float]:
    """
    First populated bin from each end, as a normalized position.
    An empty channel is reported as the identity range [0, 1].
    """
    populated = np.nonzero(counts > epsilon)[0]
    if populated.size == 0:
        return 0.0, 1.0

    last = float(len(counts) - 1)
    black = populated[0] / last
    white = populated[-1] / last
    if black > white:
        white = black
    return float(black), float(white)


@time_function
def compute_channel_bounds(
    img: ImageBuffer, analysis_width: int = 1024, bins: int = 256
) -> npt.NDArray[np.float64]:
    """
    Black/white point per RGB channel, measured on a downsampled copy.
    Returns an array of shape (3, 2).
    """
    rgb, _ = split_alpha(img)
    analysis = resize_to_width(rgb, analysis_width)

    bounds = np.zeros((3, 2), dtype=np.float64)
    for c in range(3):
        bounds[c] = find_histogram_bounds(channel_histogram(analysis[..., c], bins))
    return bounds


@time_function
def apply_levels(img: ImageBuffer, bounds: npt.NDArray[np.float64]) -> ImageBuffer:
    """
    Per-channel linear remap (in - black) / (white - black).
    A flat channel collapses to the constant `black`.
    """
    rgb, alpha = split_alpha(img)
    res = np.empty_like(rgb, dtype=np.float32)
    for c in range(3):
        black, white = float(bounds[c, 0]), float(bounds[c, 1])
        span = white - black
        if abs(span) < FLAT_RANGE_EPSILON:
            res[..., c] = black
        else:
            res[..., c] = (rgb[..., c] - black) / span
    return merge_alpha(res, alpha)


def compute_histogram(
    img: ImageBuffer, bins: int = 256, analysis_width: int = 512
) -> HistogramData:
    """
    RGB and luminance counts for display.
    """
    rgb, _ = split_alpha(img)
    if rgb.ndim < 3 or rgb.shape[0] == 0 or rgb.shape[1] == 0:
        return HistogramData.empty(bins)

    small = ensure_image(resize_to_width(rgb, analysis_width))
    return HistogramData(
        red=channel_histogram(small[..., 0], bins),
        green=channel_histogram(small[..., 1], bins),
        blue=channel_histogram(small[..., 2], bins),
        luminance=channel_histogram(get_luminance(small), bins),
    )
