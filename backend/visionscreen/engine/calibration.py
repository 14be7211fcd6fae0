"""Screen density calibration from a measured reference object."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from .errors import NotCalibratedError, OutOfRangeError

logger = logging.getLogger(__name__)

MIN_PPI = 72.0
MAX_PPI = 600.0

# ID-1 card (credit card) held vertically: 85.6 mm
CARD_HEIGHT_MM = 85.6
CARD_HEIGHT_INCHES = 3.37


class CalibrationProfile(BaseModel):
    pixels_per_inch: Optional[float] = None

    @property
    def is_calibrated(self) -> bool:
        # stored values are re-checked; a density outside the band needs recalibration
        return self.pixels_per_inch is not None and MIN_PPI <= self.pixels_per_inch <= MAX_PPI

    def require_density(self) -> float:
        if not self.is_calibrated:
            raise NotCalibratedError()
        return float(self.pixels_per_inch)


def compute_density(
    reference_pixel_length: float,
    reference_physical_length_inches: float,
    *,
    min_ppi: float = MIN_PPI,
    max_ppi: float = MAX_PPI,
) -> float:
    if reference_pixel_length <= 0:
        raise ValueError("reference_pixel_length must be positive")
    if reference_physical_length_inches <= 0:
        raise ValueError("reference_physical_length_inches must be positive")
    density = reference_pixel_length / reference_physical_length_inches
    if density < min_ppi or density > max_ppi:
        logger.info("Rejected calibration: %.2f ppi outside [%g, %g]", density, min_ppi, max_ppi)
        raise OutOfRangeError(density, min_ppi, max_ppi)
    return density


def calibrate_from_card(pixel_height: float, **bounds: float) -> CalibrationProfile:
    density = compute_density(pixel_height, CARD_HEIGHT_INCHES, **bounds)
    return CalibrationProfile(pixels_per_inch=density)
