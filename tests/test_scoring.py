from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from solunar.core.periods import Period
from solunar.core.scoring import day_score, phase_bonus

UTC = timezone.utc


def _periods(*weights: int):
    t = datetime(2024, 6, 1, tzinfo=UTC)
    return [
        Period(kind="major", start=t + timedelta(hours=i), end=t + timedelta(hours=i + 2), weight=w)
        for i, w in enumerate(weights)
    ]


def test_full_moon_exact_gets_both_bands():
    assert phase_bonus("Full Moon", 0.50) == 2


def test_new_moon_is_three_regardless_of_bands():
    assert phase_bonus("New Moon", 0.02) == 3
    assert phase_bonus("New Moon", 0.45) == 3


@pytest.mark.parametrize(
    "name, phase, bonus",
    [
        ("Waxing Gibbous", 0.40, 1),   # wide band only
        ("Waxing Gibbous", 0.43, 2),
        ("Full Moon", 0.56, 1),
        ("Full Moon", 0.60, 1),
        ("Waning Gibbous", 0.61, 0),   # open interval
        ("Waxing Gibbous", 0.39, 0),
        ("First Quarter", 0.27, 0),
        ("Waning Crescent", 0.90, 1),  # shifted 0.40
        ("Waning Crescent", 0.95, 2),  # shifted 0.45, near new moon
        ("Waxing Crescent", 0.13, 0),  # shifted 0.63
    ],
)
def test_phase_bonus_bands(name, phase, bonus):
    assert phase_bonus(name, phase) == bonus


def test_no_full_moon_name_bonus():
    # only the phase fraction matters outside "New Moon"
    assert phase_bonus("Full Moon", 0.62) == 0


def test_day_score_is_weights_plus_bonus():
    periods = _periods(1, 0, 1, 0)
    assert day_score(periods, "Full Moon", 0.5) == 2 + 2
    assert day_score(periods, "New Moon", 0.01) == 2 + 3
    assert day_score([], "First Quarter", 0.27) == 0
