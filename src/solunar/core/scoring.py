# src/solunar/core/scoring.py
from __future__ import annotations

from typing import Sequence, Tuple

from solunar.features.moon_phase import NEW_MOON

from .periods import Period

NEW_MOON_BONUS = 3

# open intervals around full moon; the +0.5 shifted phase folds new moon onto them
WIDE_BAND: Tuple[float, float] = (0.39, 0.61)
NARROW_BAND: Tuple[float, float] = (0.42, 0.55)


def _in_band(phase: float, band: Tuple[float, float]) -> bool:
    lo, hi = band
    shifted = (phase + 0.5) % 1.0
    return lo < phase < hi or lo < shifted < hi


def phase_bonus(name: str, phase: float) -> int:
    """
    Bonus in {0, 1, 2, 3} from the moon phase.

    "New Moon" earns 3 outright. Otherwise each of the two bands around
    full/new moon adds 1 independently.
    """
    if name == NEW_MOON:
        return NEW_MOON_BONUS

    bonus = 0
    if _in_band(phase, WIDE_BAND):
        bonus += 1
    if _in_band(phase, NARROW_BAND):
        bonus += 1
    return bonus


def day_score(periods: Sequence[Period], name: str, phase: float) -> int:
    """Sum of period weights plus the phase bonus."""
    return sum(p.weight for p in periods) + phase_bonus(name, phase)
