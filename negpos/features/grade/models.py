from dataclasses import dataclass
from typing import Optional, Tuple
from negpos.core.types import RGB

NEUTRAL_TEMPERATURE = 6500.0
NEUTRAL_TINT = 0.0
IDENTITY_POLYNOMIAL: Tuple[float, float, float, float] = (0.0, 1.0, 0.0, 0.0)


@dataclass(frozen=True)
class GradeConfig:
    """
    White balance and color grading.
    The `raw_*`, `temperature` and `tint` fields drive the decoder, the
    `positive_*` pair grades the inverted image.
    """

    # Handed to the RAW decoder
    raw_exposure: float = 0.0
    temperature: float = NEUTRAL_TEMPERATURE
    tint: float = NEUTRAL_TINT

    positive_temperature: float = NEUTRAL_TEMPERATURE
    positive_tint: float = NEUTRAL_TINT
    vibrance: float = 0.0
    saturation: float = 1.0

    # Neutral sampled from the positive
    white_balance_color: Optional[RGB] = None

    # c0 + c1*x + c2*x^2 + c3*x^3 per channel
    red_polynomial: Tuple[float, float, float, float] = IDENTITY_POLYNOMIAL
    green_polynomial: Tuple[float, float, float, float] = IDENTITY_POLYNOMIAL
    blue_polynomial: Tuple[float, float, float, float] = IDENTITY_POLYNOMIAL


@dataclass(frozen=True)
class MonochromeConfig:
    """
    Black and white conversion.
    """

    black_and_white: bool = False
    bw_red: float = 0.2126
    bw_green: float = 0.7152
    bw_blue: float = 0.0722
    sepia_intensity: float = 0.0
