import os
from dataclasses import dataclass, field, asdict, fields, replace, MISSING
from enum import Enum
from typing import Any, Callable, Dict
import numpy as np
import numpy.typing as npt
import scipy.ndimage as ndimage
from negpos.core.validation import (
    validate_bool,
    validate_float,
    validate_floats,
    validate_int,
    validate_points,
    validate_rgb,
)
from negpos.features.color.models import ColorCastConfig
from negpos.features.detail.models import DetailConfig
from negpos.features.geometry.models import GeometryConfig
from negpos.features.grade.models import GradeConfig, MonochromeConfig
from negpos.features.inversion.models import InversionConfig
from negpos.features.tone.models import ToneConfig


class ProcessingVersion(Enum):
    V1 = "v1"  # Base-relative inversion
    V2 = "v2"  # Film base neutralization + standard inversion

    @classmethod
    def parse(cls, value: Any) -> "ProcessingVersion":
        if isinstance(value, ProcessingVersion):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.V2


# Fields whose default is None, with the coercer that restores them from JSON
_OPTIONAL_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "crop_rect": lambda v: validate_floats(v, 4),
    "perspective_points": lambda v: validate_points(v, 4),
    "perspective_reference_size": lambda v: validate_floats(v, 2),
    "film_base_color": validate_rgb,
    "white_balance_color": validate_rgb,
}


def _coerce_field(name: str, default: Any, value: Any) -> Any:
    if name in _OPTIONAL_COERCERS:
        return _OPTIONAL_COERCERS[name](value)
    if isinstance(default, bool):
        return validate_bool(value, default)
    if isinstance(default, int):
        return validate_int(value, default)
    if isinstance(default, float):
        return validate_float(value, default)
    if isinstance(default, tuple):
        if len(default) == 3:
            return validate_rgb(value) or default
        return validate_floats(value, len(default)) or default
    return value


def _build(config_cls: Any, data: Dict[str, Any]) -> Any:
    """
    Builds a feature config from a flat dict, keeping defaults for
    missing, unknown or malformed entries.
    """
    kwargs = {}
    for f in fields(config_cls):
        if f.name not in data or data[f.name] is None:
            continue
        default = f.default if f.default is not MISSING else None
        kwargs[f.name] = _coerce_field(f.name, default, data[f.name])
    return config_cls(**kwargs)


GROUPS = ("geometry", "inversion", "tone", "color", "grade", "monochrome", "detail")


@dataclass(frozen=True)
class AdjustmentParameters:
    """
    Complete state for a single image edit. Defaults are neutral.
    """

    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    inversion: InversionConfig = field(default_factory=InversionConfig)
    tone: ToneConfig = field(default_factory=ToneConfig)
    color: ColorCastConfig = field(default_factory=ColorCastConfig)
    grade: GradeConfig = field(default_factory=GradeConfig)
    monochrome: MonochromeConfig = field(default_factory=MonochromeConfig)
    detail: DetailConfig = field(default_factory=DetailConfig)

    def to_dict(self) -> Dict[str, Any]:
        """
        Flattens for serialization.
        """
        res: Dict[str, Any] = {}
        for group in GROUPS:
            res.update(asdict(getattr(self, group)))
        return res

    @classmethod
    def from_flat_dict(cls, data: Dict[str, Any]) -> "AdjustmentParameters":
        """
        from JSON. Missing fields take their defaults.
        """
        return cls(
            geometry=_build(GeometryConfig, data),
            inversion=_build(InversionConfig, data),
            tone=_build(ToneConfig, data),
            color=_build(ColorCastConfig, data),
            grade=_build(GradeConfig, data),
            monochrome=_build(MonochromeConfig, data),
            detail=_build(DetailConfig, data),
        )

    def reset_group(self, group: str) -> "AdjustmentParameters":
        if group not in GROUPS:
            raise ValueError(f"Unknown adjustment group: {group}")
        return replace(self, **{group: type(getattr(self, group))()})

    def reset_all(self) -> "AdjustmentParameters":
        return AdjustmentParameters()


@dataclass(frozen=True)
class ImageState:
    """
    One open file and its adjustments. Identity is the absolute path string.
    """

    file_id: str
    adjustments: AdjustmentParameters = field(default_factory=AdjustmentParameters)

    @staticmethod
    def canonical_id(path: str) -> str:
        return os.path.abspath(os.path.expanduser(path))

    @classmethod
    def for_path(cls, path: str) -> "ImageState":
        return cls(file_id=cls.canonical_id(path))

    def with_adjustments(self, adjustments: AdjustmentParameters) -> "ImageState":
        return replace(self, adjustments=adjustments)


@dataclass(frozen=True, eq=False)
class HistogramData:
    """
    Per-channel bin counts of a (downsampled) image.
    """

    red: npt.NDArray[np.float64]
    green: npt.NDArray[np.float64]
    blue: npt.NDArray[np.float64]
    luminance: npt.NDArray[np.float64]

    @property
    def bins(self) -> int:
        return int(self.red.shape[0])

    def smoothed_luminance(self, sigma: float = 1.0) -> npt.NDArray[np.float64]:
        return np.asarray(ndimage.gaussian_filter1d(self.luminance, sigma=sigma))

    @classmethod
    def empty(cls, bins: int = 256) -> "HistogramData":
        zeros = np.zeros(bins, dtype=np.float64)
        return cls(zeros, zeros.copy(), zeros.copy(), zeros.copy())

