from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class TestKind(str, Enum):
    __test__ = False

    LETTER_ACUITY = "letter_acuity"
    CONTRAST_LIGHT = "contrast_sensitivity_light"
    CONTRAST_DARK = "contrast_sensitivity_dark"
    COLOR_BLINDNESS = "color_blindness"

    @property
    def is_contrast(self) -> bool:
        return self in (TestKind.CONTRAST_LIGHT, TestKind.CONTRAST_DARK)


class SessionStatus(str, Enum):
    READY = "ready"
    RUNNING = "running"
    COMPLETE = "complete"


class DeficiencyKind(str, Enum):
    PROTANOPIA = "protanopia"
    DEUTERANOPIA = "deuteranopia"
    TRITANOPIA = "tritanopia"


class StimulusLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    value: float


class Trial(BaseModel):
    """One presented stimulus and the captured answer.

    Acuity trials also record the rendered pixel size and the denominator that
    size actually corresponds to; colour trials record which plate was shown.
    """

    model_config = ConfigDict(frozen=True)

    expected: str
    response: Optional[str] = None
    level: StimulusLevel
    response_time_ms: int = Field(ge=0)
    pixel_size: Optional[int] = None
    realized_value: Optional[float] = None
    plate_id: Optional[int] = None
    plate_type: Optional[str] = None

    @property
    def correct(self) -> bool:
        return self.response is not None and self.response == self.expected


class Stimulus(BaseModel):
    """What the caller needs to render the next trial."""

    model_config = ConfigDict(frozen=True)

    kind: TestKind
    trial_number: int
    symbol: str
    level: StimulusLevel
    attempts_remaining: Optional[int] = None
    pixel_size: Optional[int] = None
    contrast_percent: Optional[float] = None
    foreground_luminance: Optional[int] = None
    background_luminance: Optional[int] = None
    plate_id: Optional[int] = None
    plate_type: Optional[str] = None


class AcuityMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["letter_acuity"] = "letter_acuity"
    accuracy: float
    mean_response_time_ms: float
    best_denominator: float
    acuity_index: float


class ContrastMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["contrast_sensitivity"] = "contrast_sensitivity"
    accuracy: float
    mean_response_time_ms: float
    lowest_contrast_sustained: float
    reversals: int


class ColorMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["color_blindness"] = "color_blindness"
    accuracy: float
    mean_response_time_ms: float
    deficiency_counts: Dict[DeficiencyKind, int]
    deficiency_flags: List[DeficiencyKind]


Metrics = Annotated[
    Union[AcuityMetrics, ContrastMetrics, ColorMetrics],
    Field(discriminator="kind"),
]


class TestResult(BaseModel):
    __test__ = False

    model_config = ConfigDict(frozen=True)

    test_type: TestKind
    trials: Tuple[Trial, ...]
    metrics: Metrics
    created_at: datetime
