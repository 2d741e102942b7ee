import os
from typing import Optional
import imageio.v3 as iio
import numpy as np
import rawpy
import tifffile
from negpos.core.types import ImageBuffer
from negpos.features.grade.logic import temperature_tint_gains
from negpos.kernel.image.logic import (
    ensure_rgb,
    resize_to_width,
    uint8_to_float32,
    uint16_to_float32,
)
from negpos.kernel.system.logging import get_logger

logger = get_logger(__name__)

TIFF_EXTENSIONS = {".tif", ".tiff"}
RASTER_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}

# rawpy accepts exp_shift in linear scale, 0.25 (-2EV) to 8.0 (+3EV)
EXP_SHIFT_MIN = 0.25
EXP_SHIFT_MAX = 8.0


def _to_float(arr: np.ndarray) -> ImageBuffer:
    if arr.dtype == np.uint8:
        return uint8_to_float32(arr)
    if arr.dtype == np.uint16:
        return uint16_to_float32(arr)
    f32 = arr.astype(np.float32)
    peak = float(f32.max()) if f32.size else 0.0
    if peak > 1.0:
        f32 = f32 / peak
    return np.clip(f32, 0.0, 1.0).astype(np.float32)


class RawpyDecoder:
    """
    Decodes camera RAW files with rawpy (LibRaw) into a linear float RGB
    buffer. TIFF and common raster scans are read directly.
    """

    def decode(
        self,
        file_id: str,
        exposure: float,
        temperature: float,
        tint: float,
        target_width: Optional[int] = None,
    ) -> Optional[ImageBuffer]:
        ext = os.path.splitext(file_id)[1].lower()
        try:
            if ext in TIFF_EXTENSIONS or ext in RASTER_EXTENSIONS:
                img = self._decode_scan(file_id, ext, exposure, temperature, tint)
            else:
                img = self._decode_raw(file_id, exposure, temperature, tint, target_width)
        except Exception as e:
            logger.error(f"Failed to decode {file_id}: {e}")
            return None

        if target_width:
            img = resize_to_width(img, target_width)
        return np.ascontiguousarray(img, dtype=np.float32)

    def _decode_raw(
        self,
        file_id: str,
        exposure: float,
        temperature: float,
        tint: float,
        target_width: Optional[int],
    ) -> ImageBuffer:
        r, g, b = temperature_tint_gains(temperature, tint)
        exp_shift = float(np.clip(2.0**exposure, EXP_SHIFT_MIN, EXP_SHIFT_MAX))

        with rawpy.imread(file_id) as raw:
            sensor_width = int(raw.sizes.width)
            half = bool(target_width) and target_width * 2 <= sensor_width
            rgb = raw.postprocess(
                gamma=(1, 1),
                no_auto_bright=True,
                use_camera_wb=False,
                user_wb=[r, g, b, g],
                output_bps=16,
                exp_shift=exp_shift,
                half_size=half,
            )
        return uint16_to_float32(np.ascontiguousarray(ensure_rgb(rgb)))

    def _decode_scan(
        self, file_id: str, ext: str, exposure: float, temperature: float, tint: float
    ) -> ImageBuffer:
        if ext in TIFF_EXTENSIONS:
            arr = tifffile.imread(file_id)
        else:
            arr = iio.imread(file_id)

        arr = ensure_rgb(np.asarray(arr))
        if arr.ndim != 3:
            raise ValueError(f"Unsupported image shape {arr.shape}")
        f32 = _to_float(arr[..., :3])

        gains = np.array(temperature_tint_gains(temperature, tint), dtype=np.float32)
        gains *= np.float32(2.0**exposure)
        return np.clip(f32 * gains.reshape(1, 1, 3), 0.0, 1.0).astype(np.float32)
