"""Optotype geometry.

A standard optotype subtends ``REFERENCE_ANGLE_ARCMIN`` at the 20/20 line; a
20/X optotype is X/20 times larger. Sizes are computed for a subject sitting
``VIEWING_DISTANCE_INCHES`` from the screen.
"""

from __future__ import annotations

import math
from typing import Optional

VIEWING_DISTANCE_INCHES = 18.0
REFERENCE_ANGLE_ARCMIN = 5.0

_ARCMIN_PER_RADIAN = 180 * 60 / math.pi


def size_in_pixels(
    denominator: float,
    density: Optional[float],
    *,
    viewing_distance_inches: float = VIEWING_DISTANCE_INCHES,
    reference_angle_arcmin: float = REFERENCE_ANGLE_ARCMIN,
) -> int:
    """Pixel height of a 20/``denominator`` optotype, or 0 when density is unknown."""
    if not density or density <= 0:
        return 0
    angle_rad = reference_angle_arcmin / _ARCMIN_PER_RADIAN
    size_inches = viewing_distance_inches * math.tan(angle_rad) * (denominator / 20)
    return int(round(size_inches * density))


def denominator_from_pixels(
    pixel_size: int,
    density: Optional[float],
    *,
    viewing_distance_inches: float = VIEWING_DISTANCE_INCHES,
    reference_angle_arcmin: float = REFERENCE_ANGLE_ARCMIN,
) -> float:
    """Snellen denominator that a rendered optotype of ``pixel_size`` actually shows.

    Differs from the nominal denominator by up to half a pixel's worth of size.
    """
    if not density or density <= 0:
        return 0.0
    size_inches = pixel_size / density
    angle_arcmin = math.atan(size_inches / viewing_distance_inches) * _ARCMIN_PER_RADIAN
    return angle_arcmin / reference_angle_arcmin * 20
