"""Error taxonomy for the vision test engine."""

from __future__ import annotations

from typing import Optional


class VisionTestError(Exception):
    """Base class for every error raised by the test engine."""


class OutOfRangeError(VisionTestError):
    def __init__(self, density: float, minimum: float, maximum: float) -> None:
        self.density = density
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Calculated density {density:.1f} ppi is outside the plausible range "
            f"[{minimum:g}, {maximum:g}]; please recalibrate"
        )


class NotCalibratedError(VisionTestError):
    def __init__(self, message: str = "Please calibrate your screen before starting the test") -> None:
        super().__init__(message)


class EmptyInputError(VisionTestError):
    def __init__(self, message: str = "Cannot aggregate metrics from zero trials") -> None:
        super().__init__(message)


class SessionStateError(VisionTestError):
    """Raised when an event arrives in a state that cannot accept it."""


class PersistenceError(VisionTestError):
    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)
