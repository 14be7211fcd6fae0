"""Contrast sensitivity staircase with reversal counting."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .levels import CONTRAST_LEVELS, MAX_REVERSALS, NUM_TEST_LETTERS, SLOAN_LETTERS, STEP_SIZE
from .session import TestSession
from .types import Stimulus, StimulusLevel, TestKind, Trial

LIGHT_BACKGROUND_LUMINANCE = 240
DARK_BACKGROUND_LUMINANCE = 20


class ContrastState(BaseModel):
    model_config = ConfigDict(frozen=True)

    level_index: int = 0
    trial_index: int = 0
    reversal_count: int = 0
    last_outcome_correct: Optional[bool] = None
    complete: bool = False


def advance_contrast(
    state: ContrastState,
    correct: bool,
    *,
    num_levels: int,
    num_trials: int = NUM_TEST_LETTERS,
    max_reversals: int = MAX_REVERSALS,
    step: int = STEP_SIZE,
) -> ContrastState:
    """Fold one outcome into the staircase.

    The reversal ceiling is checked against the count as it stood before this
    response, so a session may run one trial past ``max_reversals``.
    """
    if state.complete:
        return state
    reversals_before = state.reversal_count
    flipped = state.last_outcome_correct is not None and state.last_outcome_correct != correct
    folded = {
        "reversal_count": reversals_before + (1 if flipped else 0),
        "last_outcome_correct": correct,
    }
    if reversals_before >= max_reversals:
        return state.model_copy(update={**folded, "complete": True})

    level = state.level_index
    if correct:
        if level < num_levels - step:
            level += step
    elif level >= step:
        level -= step

    if state.trial_index < num_trials - 1:
        return ContrastState(level_index=level, trial_index=state.trial_index + 1, **folded)
    return ContrastState(level_index=level, trial_index=state.trial_index, complete=True, **folded)


def letter_luminance(contrast_percent: float, dark_background: bool) -> Tuple[int, int]:
    """Foreground and background grey levels (0-255) for a letter at the given contrast."""
    contrast = contrast_percent / 100
    if dark_background:
        bg = DARK_BACKGROUND_LUMINANCE
        return int(round(bg + (255 - bg) * contrast)), bg
    bg = LIGHT_BACKGROUND_LUMINANCE
    return int(round(bg - bg * contrast)), bg


class ContrastSession(TestSession):
    def __init__(
        self,
        kind: TestKind = TestKind.CONTRAST_LIGHT,
        *,
        levels: Sequence[float] = CONTRAST_LEVELS,
        letters: Sequence[str] = SLOAN_LETTERS,
        num_trials: int = NUM_TEST_LETTERS,
        max_reversals: int = MAX_REVERSALS,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        kind = TestKind(kind)
        if not kind.is_contrast:
            raise ValueError(f"{kind.value} is not a contrast test")
        self.kind = kind
        self.levels = tuple(levels)
        self.alphabet = tuple(letters)
        self.num_trials = num_trials
        self.max_reversals = max_reversals
        self.letters: List[str] = []
        self.state = ContrastState()

    def _on_start(self) -> None:
        self.letters = [self.choice(self.alphabet) for _ in range(self.num_trials)]
        self.state = ContrastState()

    def _normalize(self, text: str) -> str:
        return text.strip().upper()

    @property
    def level(self) -> StimulusLevel:
        return StimulusLevel(index=self.state.level_index, value=self.levels[self.state.level_index])

    def _record(self, answer: str, response_time_ms: int) -> Trial:
        return Trial(
            expected=self.letters[self.state.trial_index],
            response=answer,
            level=self.level,
            response_time_ms=response_time_ms,
        )

    def _advance(self, correct: bool) -> bool:
        self.state = advance_contrast(
            self.state,
            correct,
            num_levels=len(self.levels),
            num_trials=self.num_trials,
            max_reversals=self.max_reversals,
        )
        return self.state.complete

    def _stimulus(self) -> Stimulus:
        level = self.level
        fg, bg = letter_luminance(level.value, self.kind is TestKind.CONTRAST_DARK)
        return Stimulus(
            kind=self.kind,
            trial_number=self.state.trial_index + 1,
            symbol=self.letters[self.state.trial_index],
            level=level,
            contrast_percent=level.value,
            foreground_luminance=fg,
            background_luminance=bg,
        )

    def _metric_options(self) -> Dict[str, Any]:
        return {"easiest_contrast": self.levels[0]}
