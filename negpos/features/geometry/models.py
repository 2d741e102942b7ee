from dataclasses import dataclass, replace
from typing import Optional, Tuple
from negpos.core.types import Point, Rect


@dataclass(frozen=True)
class GeometryConfig:
    """
    Orientation, crop and keystone parameters.
    """

    rotation: int = 0  # Quarter turns, counter-clockwise
    mirror_horizontal: bool = False
    mirror_vertical: bool = False
    straighten_angle: float = 0.0  # Degrees
    scale: float = 1.0

    # (x, y, w, h) in pixels of the source after perspective correction
    crop_rect: Optional[Rect] = None

    # TL, TR, BR, BL in pixels of `perspective_reference_size`
    perspective_points: Optional[Tuple[Point, Point, Point, Point]] = None
    perspective_reference_size: Optional[Tuple[float, float]] = None

    def clamped_to(self, width: int, height: int) -> "GeometryConfig":
        """
        Returns a copy whose crop and perspective lie inside a width x height frame.
        """
        crop = self.crop_rect
        if crop is not None:
            x, y, w, h = crop
            x1, y1 = max(0.0, x), max(0.0, y)
            x2, y2 = min(float(width), x + w), min(float(height), y + h)
            crop = (x1, y1, x2 - x1, y2 - y1) if x2 > x1 and y2 > y1 else None

        points = self.perspective_points
        if points is not None:
            ref_w, ref_h = self.perspective_reference_size or (width, height)
            points = tuple(  # type: ignore[assignment]
                (min(max(px, 0.0), float(ref_w)), min(max(py, 0.0), float(ref_h)))
                for px, py in points
            )

        return replace(self, crop_rect=crop, perspective_points=points)
