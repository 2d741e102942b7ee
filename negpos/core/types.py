from typing import TypeAlias, Tuple
import numpy as np
import numpy.typing as npt
from dataclasses import dataclass


# Image Types
# Floating point image 0.0 - 1.0 (Height, Width, Channels), RGB or RGBA
ImageBuffer: TypeAlias = npt.NDArray[np.float32]

# Geometry Types
# (Height, Width)
Dimensions: TypeAlias = Tuple[int, int]
# (x, y, width, height) in pixels
Rect: TypeAlias = Tuple[float, float, float, float]
Point: TypeAlias = Tuple[float, float]

# Color Types
# Device independent components, 0.0 - 1.0
RGB: TypeAlias = Tuple[float, float, float]

# https://en.wikipedia.org/wiki/Luma_(video)
LUMA_COEFFS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)
LUMA_R = 0.2126
LUMA_G = 0.7152
LUMA_B = 0.0722

# Rec.601 weights, used by the legacy border sampling heuristic
LUMA_601 = np.array([0.299, 0.587, 0.114], dtype=np.float32)


@dataclass(frozen=True)
class AppConfig:
    """
    Session-wide settings shared by the engine, scheduler and caches.
    """

    cache_dir: str
    thumbnail_cache_dir: str
    adjustments_dir: str
    thumbnail_width: int = 300
    thumbnail_concurrency: int = 1
    thumbnail_memory_items: int = 200
    thumbnail_memory_bytes: int = 256 * 1024 * 1024
    disk_cache_enabled: bool = True
    disk_cache_limit_bytes: int = 500 * 1024 * 1024
    analysis_width: int = 1024
    histogram_bins: int = 256
    histogram_width: int = 512
    decode_cache_items: int = 4
    max_workers: int = 1
    processing_version: str = "v2"
    perf_log_enabled: bool = False
