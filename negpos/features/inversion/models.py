from dataclasses import dataclass
from typing import Optional
from negpos.core.types import RGB

# Sampled film base is trusted down to 5% per channel
FILM_BASE_MIN = 0.05
FILM_BASE_MAX = 1.0
# Upper bound on the neutralization gain of a single channel
FILM_BASE_MAX_FACTOR = 10.0

# Legacy border heuristic
BORDER_STRIP_PX = 20
BORDER_LUMA_THRESHOLD = 0.5
INVERSION_EPSILON = 1e-5


@dataclass(frozen=True)
class InversionConfig:
    """
    Negative to positive conversion inputs.
    """

    # Substrate color of unexposed film, linear RGB
    film_base_color: Optional[RGB] = None
