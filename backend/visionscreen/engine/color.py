"""Single pass through the colour plate battery."""

from __future__ import annotations

from typing import Any, Dict, Sequence

from .plates import DEFAULT_BATTERY, DEFICIENCY_THRESHOLD_RATIO, Plate
from .session import TestSession
from .types import Stimulus, StimulusLevel, TestKind, Trial


class ColorVisionSession(TestSession):
    kind = TestKind.COLOR_BLINDNESS

    def __init__(
        self,
        *,
        battery: Sequence[Plate] = DEFAULT_BATTERY,
        threshold_ratio: float = DEFICIENCY_THRESHOLD_RATIO,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if not battery:
            raise ValueError("battery must contain at least one plate")
        self.battery = tuple(battery)
        self.threshold_ratio = threshold_ratio
        self.plate_index = 0

    @property
    def plate(self) -> Plate:
        return self.battery[self.plate_index]

    def _on_start(self) -> None:
        self.plate_index = 0

    def _record(self, answer: str, response_time_ms: int) -> Trial:
        plate = self.plate
        return Trial(
            expected=plate.expected_answer,
            response=answer,
            level=StimulusLevel(index=self.plate_index, value=plate.id),
            response_time_ms=response_time_ms,
            plate_id=plate.id,
            plate_type=plate.type,
        )

    def _advance(self, correct: bool) -> bool:
        if self.plate_index < len(self.battery) - 1:
            self.plate_index += 1
            return False
        return True

    def _stimulus(self) -> Stimulus:
        plate = self.plate
        return Stimulus(
            kind=self.kind,
            trial_number=self.plate_index + 1,
            symbol=plate.digit,
            level=StimulusLevel(index=self.plate_index, value=plate.id),
            plate_id=plate.id,
            plate_type=plate.type,
        )

    def _metric_options(self) -> Dict[str, Any]:
        return {"battery": self.battery, "threshold_ratio": self.threshold_ratio}
