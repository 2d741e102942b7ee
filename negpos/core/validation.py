from typing import Any, Optional, Sequence, Tuple, TypeVar, cast
import numpy as np
from negpos.core.types import ImageBuffer, RGB

T = TypeVar("T")


def ensure_image(arr: Any) -> ImageBuffer:
    """
    Ensures the input is a float32 numpy array and returns it as an ImageBuffer.
    """
    if not isinstance(arr, np.ndarray):
        raise TypeError(f"Expected numpy.ndarray, got {type(arr)}")

    if arr.dtype != np.float32:
        arr = arr.astype(np.float32)

    return cast(ImageBuffer, arr)


def validate_float(val: Any, default: float = 0.0) -> float:
    """Ensures a value is a float, providing a default if None."""
    if val is None:
        return default
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


def validate_int(val: Any, default: int = 0) -> int:
    """Ensures a value is an int, providing a default if None."""
    if val is None:
        return default
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


def validate_bool(val: Any, default: bool = False) -> bool:
    """Ensures a value is a bool."""
    if val is None:
        return default
    return bool(val)


def validate_floats(val: Any, length: int) -> Optional[Tuple[float, ...]]:
    """
    Coerces a JSON list into a fixed-length float tuple, None if malformed.
    """
    if not isinstance(val, (list, tuple)) or len(val) != length:
        return None
    try:
        return tuple(float(v) for v in val)
    except (TypeError, ValueError):
        return None


def validate_rgb(val: Any) -> Optional[RGB]:
    """Coerces a color triple, clamping components to [0, 1]."""
    res = validate_floats(val, 3)
    if res is None:
        return None
    r, g, b = (min(1.0, max(0.0, c)) for c in res)
    return r, g, b


def validate_points(val: Any, count: int) -> Optional[Tuple[Tuple[float, float], ...]]:
    """Coerces a list of (x, y) pairs of exactly `count` entries."""
    if not isinstance(val, (list, tuple)) or len(val) != count:
        return None
    points = []
    for p in cast(Sequence[Any], val):
        pt = validate_floats(p, 2)
        if pt is None:
            return None
        points.append((pt[0], pt[1]))
    return tuple(points)
