"""Finalization of a completed trial list into summary metrics."""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

from .errors import EmptyInputError
from .levels import CONTRAST_LEVELS, SNELLEN_STEPS
from .plates import DEFAULT_BATTERY, DEFICIENCY_THRESHOLD_RATIO, Plate, deficiency_counts, deficiency_flags
from .types import AcuityMetrics, ColorMetrics, ContrastMetrics, TestKind, Trial


def count_reversals(outcomes: Sequence[bool]) -> int:
    """Number of correct/incorrect flips between consecutive outcomes."""
    reversals = 0
    previous: Optional[bool] = None
    for outcome in outcomes:
        if previous is not None and outcome != previous:
            reversals += 1
        previous = outcome
    return reversals


def accuracy_and_mean_time(trials: Sequence[Trial]) -> Tuple[float, float]:
    if not trials:
        raise EmptyInputError()
    total = len(trials)
    correct = sum(1 for t in trials if t.correct)
    return 100 * correct / total, sum(t.response_time_ms for t in trials) / total


def aggregate_acuity(trials: Sequence[Trial], *, easiest_denominator: float = SNELLEN_STEPS[0]) -> AcuityMetrics:
    accuracy, mean_ms = accuracy_and_mean_time(trials)
    # realized denominator is what the subject actually read after pixel rounding;
    # a letter that rounded to 0 px was never drawn and earns nothing
    scores = [
        t.realized_value if t.realized_value is not None else t.level.value
        for t in trials
        if t.correct and t.pixel_size != 0
    ]
    best = min(scores) if scores else easiest_denominator
    return AcuityMetrics(
        accuracy=accuracy,
        mean_response_time_ms=mean_ms,
        best_denominator=best,
        acuity_index=20 / best,
    )


def aggregate_contrast(trials: Sequence[Trial], *, easiest_contrast: float = CONTRAST_LEVELS[0]) -> ContrastMetrics:
    accuracy, mean_ms = accuracy_and_mean_time(trials)
    sustained = [t.level.value for t in trials if t.correct]
    return ContrastMetrics(
        accuracy=accuracy,
        mean_response_time_ms=mean_ms,
        lowest_contrast_sustained=min(sustained) if sustained else easiest_contrast,
        reversals=count_reversals([t.correct for t in trials]),
    )


def aggregate_color(
    trials: Sequence[Trial],
    *,
    battery: Sequence[Plate] = DEFAULT_BATTERY,
    threshold_ratio: float = DEFICIENCY_THRESHOLD_RATIO,
) -> ColorMetrics:
    accuracy, mean_ms = accuracy_and_mean_time(trials)
    counts = deficiency_counts(trials, battery)
    return ColorMetrics(
        accuracy=accuracy,
        mean_response_time_ms=mean_ms,
        deficiency_counts=counts,
        deficiency_flags=deficiency_flags(counts, len(battery), threshold_ratio=threshold_ratio),
    )


def aggregate_metrics(kind: TestKind, trials: Sequence[Trial], **options: Any):
    kind = TestKind(kind)
    if kind is TestKind.LETTER_ACUITY:
        return aggregate_acuity(trials, **options)
    if kind.is_contrast:
        return aggregate_contrast(trials, **options)
    return aggregate_color(trials, **options)
