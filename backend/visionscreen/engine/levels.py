"""Fixed difficulty ladders, easiest first."""

from __future__ import annotations

from typing import Tuple

# Snellen denominators: 20/200 down to 20/5
SNELLEN_STEPS: Tuple[float, ...] = (200, 100, 80, 60, 40, 30, 25, 20, 15, 10, 5)

# Michelson-style contrast in percent, halving after 25%
CONTRAST_LEVELS: Tuple[float, ...] = (100, 75, 50, 25, 12.5, 6.25, 3.125, 1.5625)

SLOAN_LETTERS: Tuple[str, ...] = ("C", "D", "H", "K", "N", "O", "R", "S", "V", "Z")

NUM_TEST_LETTERS = 10
MAX_REVERSALS = 6
STEP_SIZE = 1
ACUITY_RETRIES = 1
