"""Letter acuity staircase: one step harder per correct letter, one retry per level."""

from __future__ import annotations

from itertools import takewhile
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from .errors import NotCalibratedError
from .levels import ACUITY_RETRIES, SLOAN_LETTERS, SNELLEN_STEPS
from .optotype import REFERENCE_ANGLE_ARCMIN, VIEWING_DISTANCE_INCHES, denominator_from_pixels, size_in_pixels
from .session import TestSession
from .types import Stimulus, StimulusLevel, TestKind, Trial


class AcuityState(BaseModel):
    model_config = ConfigDict(frozen=True)

    level_index: int = 0
    attempts_remaining: int = ACUITY_RETRIES
    complete: bool = False


def advance_acuity(state: AcuityState, correct: bool, *, num_levels: int, retries: int = ACUITY_RETRIES) -> AcuityState:
    if state.complete:
        return state
    if correct:
        if state.level_index < num_levels - 1:
            return AcuityState(level_index=state.level_index + 1, attempts_remaining=retries)
        return state.model_copy(update={"complete": True})
    if state.attempts_remaining > 0:
        return state.model_copy(update={"attempts_remaining": state.attempts_remaining - 1})
    # first uncorrected miss ends the test
    return state.model_copy(update={"complete": True})


class AcuitySession(TestSession):
    kind = TestKind.LETTER_ACUITY

    def __init__(
        self,
        density: Optional[float],
        *,
        levels: Sequence[float] = SNELLEN_STEPS,
        letters: Sequence[str] = SLOAN_LETTERS,
        viewing_distance_inches: float = VIEWING_DISTANCE_INCHES,
        reference_angle_arcmin: float = REFERENCE_ANGLE_ARCMIN,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.density = density
        self.levels = tuple(levels)
        self.letters = tuple(letters)
        self.geometry = {
            "viewing_distance_inches": viewing_distance_inches,
            "reference_angle_arcmin": reference_angle_arcmin,
        }
        self.state = AcuityState()
        self.letter = ""
        self.num_levels = len(self.levels)

    def _on_start(self) -> None:
        if not self.density or self.density <= 0:
            raise NotCalibratedError()
        # the staircase stops at the last level that still renders to at least one pixel
        self.num_levels = sum(
            1 for _ in takewhile(lambda value: size_in_pixels(value, self.density, **self.geometry) > 0, self.levels)
        )
        if not self.num_levels:
            raise NotCalibratedError("Screen density is too low to draw any test letter")
        self.state = AcuityState()
        self.letter = self.choice(self.letters)

    def _normalize(self, text: str) -> str:
        return text.strip().upper()

    @property
    def level(self) -> StimulusLevel:
        return StimulusLevel(index=self.state.level_index, value=self.levels[self.state.level_index])

    def _record(self, answer: str, response_time_ms: int) -> Trial:
        level = self.level
        pixel_size = size_in_pixels(level.value, self.density, **self.geometry)
        realized = denominator_from_pixels(pixel_size, self.density, **self.geometry)
        return Trial(
            expected=self.letter,
            response=answer,
            level=level,
            response_time_ms=response_time_ms,
            pixel_size=pixel_size,
            realized_value=float(round(realized)),
        )

    def _advance(self, correct: bool) -> bool:
        previous = self.state
        self.state = advance_acuity(previous, correct, num_levels=self.num_levels)
        if self.state.complete:
            return True
        if self.state.level_index == previous.level_index:
            # retry at the same size with a different letter
            others = [letter for letter in self.letters if letter != self.letter] or list(self.letters)
            self.letter = self.choice(others)
        else:
            self.letter = self.choice(self.letters)
        return False

    def _stimulus(self) -> Stimulus:
        level = self.level
        return Stimulus(
            kind=self.kind,
            trial_number=len(self.trials) + 1,
            symbol=self.letter,
            level=level,
            attempts_remaining=self.state.attempts_remaining,
            pixel_size=size_in_pixels(level.value, self.density, **self.geometry),
        )

    def _metric_options(self) -> Dict[str, Any]:
        return {"easiest_denominator": self.levels[0]}
