# src/solunar/features/moon_phase.py
from __future__ import annotations

"""
Moon phase naming.

- phase: synodic fraction in [0, 1) (0 = new moon, 0.5 = full moon)
- name : one of eight labels by fixed fraction bins
- illumination: integer percent of the lit disc

The bin edges are a fixed table; First/Last Quarter are narrower than the
other bins (0.075 wide).
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from solunar.core.errors import UnclassifiablePhase

NEW_MOON = "New Moon"
FULL_MOON = "Full Moon"

# (lower bound inclusive, name); each bin ends at the next lower bound, the last at 1.0
MOON_PHASES: List[Tuple[float, str]] = [
    (0.0,   NEW_MOON),
    (0.125, "Waxing Crescent"),
    (0.25,  "First Quarter"),
    (0.325, "Waxing Gibbous"),
    (0.5,   FULL_MOON),
    (0.625, "Waning Gibbous"),
    (0.75,  "Last Quarter"),
    (0.825, "Waning Crescent"),
]

MOON_PHASE_NAMES: List[str] = [name for _, name in MOON_PHASES]


def phase_name(phase: float) -> str:
    """
    Label for a synodic phase fraction.

    Raises UnclassifiablePhase outside [0, 1) (NaN included).
    """
    p = float(phase)
    if not (0.0 <= p < 1.0):
        raise UnclassifiablePhase(f"moon phase fraction out of range [0, 1): {phase!r}")

    name = MOON_PHASES[0][1]
    for lower, label in MOON_PHASES:
        if p < lower:
            break
        name = label
    return name


def illumination_percent(fraction: float) -> int:
    """Illuminated fraction -> integer percent, rounded half up and clamped to 0..100."""
    pct = int(math.floor(float(fraction) * 100.0 + 0.5))
    return max(0, min(100, pct))


@dataclass(frozen=True)
class MoonPhaseInfo:
    phase: float
    illumination_percent: int
    phase_name: str


def moon_phase_info(phase: float, fraction: float) -> MoonPhaseInfo:
    return MoonPhaseInfo(
        phase=float(phase),
        illumination_percent=illumination_percent(fraction),
        phase_name=phase_name(phase),
    )
