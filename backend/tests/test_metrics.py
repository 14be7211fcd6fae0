import pytest

from visionscreen.engine.errors import EmptyInputError
from visionscreen.engine.metrics import (
    aggregate_acuity,
    aggregate_color,
    aggregate_contrast,
    aggregate_metrics,
    count_reversals,
)
from visionscreen.engine.types import AcuityMetrics, ColorMetrics, ContrastMetrics, StimulusLevel, TestKind, Trial


def _trial(expected, response, value, ms=400, index=0, **extra):
    return Trial(
        expected=expected,
        response=response,
        level=StimulusLevel(index=index, value=value),
        response_time_ms=ms,
        **extra,
    )


@pytest.mark.parametrize("aggregate", [aggregate_acuity, aggregate_contrast, aggregate_color])
def test_zero_trials_is_a_contract_violation(aggregate):
    with pytest.raises(EmptyInputError):
        aggregate([])


def test_accuracy_and_mean_time():
    trials = [_trial("C", "C", 200, ms=300), _trial("D", "K", 100, ms=500), _trial("H", None, 100, ms=1000)]
    metrics = aggregate_acuity(trials)
    assert metrics.accuracy == pytest.approx(100 / 3)
    assert metrics.mean_response_time_ms == pytest.approx(600)


def test_acuity_without_correct_trials_falls_back_to_easiest_level():
    metrics = aggregate_acuity([_trial("C", "D", 200), _trial("K", "D", 200)])
    assert metrics.best_denominator == 200
    assert metrics.acuity_index == pytest.approx(0.1)


def test_acuity_uses_realized_denominator_when_known():
    trials = [
        _trial("C", "C", 60, realized_value=64.0),
        _trial("D", "D", 40, realized_value=40.0),
        _trial("H", "K", 30, realized_value=30.0),
    ]
    metrics = aggregate_acuity(trials)
    assert metrics.best_denominator == 40
    assert metrics.acuity_index == pytest.approx(0.5)


def test_contrast_lowest_sustained_and_fallback():
    trials = [_trial("C", "C", 100), _trial("D", "D", 75), _trial("H", "O", 50), _trial("K", "K", 75)]
    metrics = aggregate_contrast(trials)
    assert metrics.lowest_contrast_sustained == 75
    assert metrics.reversals == 2
    assert aggregate_contrast([_trial("C", "D", 100)]).lowest_contrast_sustained == 100


def test_dispatch_by_kind():
    trial = _trial("12", "12", 1, plate_id=1, plate_type="demonstration")
    assert isinstance(aggregate_metrics(TestKind.LETTER_ACUITY, [trial]), AcuityMetrics)
    assert isinstance(aggregate_metrics("contrast_sensitivity_dark", [trial]), ContrastMetrics)
    assert isinstance(aggregate_metrics(TestKind.COLOR_BLINDNESS, [trial]), ColorMetrics)


@pytest.mark.parametrize(
    "outcomes, expected",
    [([], 0), ([True], 0), ([True, True, True], 0), ([True, False, True, False], 3)],
)
def test_count_reversals(outcomes, expected):
    assert count_reversals(outcomes) == expected


def test_trials_are_frozen():
    trial = _trial("C", "C", 200)
    with pytest.raises(Exception):
        trial.response = "D"


def test_acuity_never_credits_a_letter_rendered_at_zero_pixels():
    trials = [
        _trial("C", "C", 10, pixel_size=1, realized_value=11.0),
        _trial("D", "D", 5, index=1, pixel_size=0, realized_value=0.0),
    ]
    metrics = aggregate_acuity(trials)
    assert metrics.best_denominator == 11
    assert metrics.accuracy == 100
