"""Ishihara-style plate battery and deficiency scoring."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .types import DeficiencyKind, Trial

DEFICIENCY_THRESHOLD_RATIO = 0.30


class Plate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    digit: str
    type: str
    expected_answer: str
    # answer a subject with the given deficiency typically reads; None = no reading
    deficient_answers: Dict[DeficiencyKind, Optional[str]] = Field(default_factory=dict)
    description: str = ""


DEFAULT_BATTERY: Sequence[Plate] = (
    Plate(
        id=1,
        digit="12",
        type="demonstration",
        expected_answer="12",
        description="Control plate - should be visible to everyone",
    ),
    Plate(
        id=2,
        digit="8",
        type="protanopia",
        expected_answer="8",
        deficient_answers={DeficiencyKind.PROTANOPIA: "3", DeficiencyKind.DEUTERANOPIA: "3"},
        description="Tests for red-green color blindness",
    ),
    Plate(
        id=3,
        digit="6",
        type="deuteranopia",
        expected_answer="6",
        deficient_answers={DeficiencyKind.PROTANOPIA: "5", DeficiencyKind.DEUTERANOPIA: "5"},
        description="Tests for green color blindness",
    ),
    Plate(
        id=4,
        digit="29",
        type="tritanopia",
        expected_answer="29",
        deficient_answers={DeficiencyKind.TRITANOPIA: "70"},
        description="Tests for blue-yellow color blindness",
    ),
    Plate(
        id=5,
        digit="15",
        type="hidden",
        expected_answer="15",
        deficient_answers={DeficiencyKind.PROTANOPIA: None, DeficiencyKind.DEUTERANOPIA: None},
        description="Hidden digit plate - only visible to normal vision",
    ),
)

DEFICIENCY_LABELS: Mapping[DeficiencyKind, str] = {
    DeficiencyKind.PROTANOPIA: "Red-blindness (Protanopia)",
    DeficiencyKind.DEUTERANOPIA: "Green-blindness (Deuteranopia)",
    DeficiencyKind.TRITANOPIA: "Blue-yellow-blindness (Tritanopia)",
}


def deficiency_counts(trials: Iterable[Trial], battery: Sequence[Plate] = DEFAULT_BATTERY) -> Dict[DeficiencyKind, int]:
    """Count, per deficiency kind, the answers that match that kind's decoy."""
    plates = {plate.id: plate for plate in battery}
    counts = {kind: 0 for kind in DeficiencyKind}
    for trial in trials:
        plate = plates.get(trial.plate_id)
        if plate is None or trial.response is None:
            continue
        for kind, decoy in plate.deficient_answers.items():
            if decoy is not None and trial.response == decoy:
                counts[kind] += 1
    return counts


def deficiency_flags(
    counts: Mapping[DeficiencyKind, int],
    battery_size: int,
    *,
    threshold_ratio: float = DEFICIENCY_THRESHOLD_RATIO,
) -> List[DeficiencyKind]:
    threshold = battery_size * threshold_ratio
    return [kind for kind in DeficiencyKind if counts.get(kind, 0) > threshold]


def describe_deficiencies(flags: Iterable[DeficiencyKind]) -> str:
    labels = [DEFICIENCY_LABELS[kind] for kind in flags]
    if not labels:
        return "No significant color vision deficiency detected"
    return f"Potential {' and '.join(labels)} detected"
