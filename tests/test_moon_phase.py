from __future__ import annotations

import pytest

from solunar.core.errors import UnclassifiablePhase
from solunar.features.moon_phase import (
    MOON_PHASE_NAMES,
    illumination_percent,
    moon_phase_info,
    phase_name,
)


@pytest.mark.parametrize(
    "phase, name",
    [
        (0.0, "New Moon"),
        (0.124, "New Moon"),
        (0.125, "Waxing Crescent"),
        (0.25, "First Quarter"),
        (0.324, "First Quarter"),
        (0.325, "Waxing Gibbous"),
        (0.5, "Full Moon"),
        (0.624, "Full Moon"),
        (0.625, "Waning Gibbous"),
        (0.75, "Last Quarter"),
        (0.825, "Waning Crescent"),
        (0.999, "Waning Crescent"),
    ],
)
def test_phase_name_bins(phase, name):
    assert phase_name(phase) == name


@pytest.mark.parametrize("phase", [1.0, 1.2, -0.01, float("nan")])
def test_phase_name_out_of_range(phase):
    with pytest.raises(UnclassifiablePhase):
        phase_name(phase)


def test_eight_names():
    assert len(MOON_PHASE_NAMES) == 8
    assert len(set(MOON_PHASE_NAMES)) == 8


@pytest.mark.parametrize(
    "fraction, pct",
    [(0.0, 0), (0.004, 0), (0.125, 13), (0.994, 99), (1.0, 100), (1.0000001, 100)],
)
def test_illumination_percent(fraction, pct):
    assert illumination_percent(fraction) == pct


def test_moon_phase_info():
    info = moon_phase_info(0.5, 0.998)
    assert info.phase_name == "Full Moon"
    assert info.illumination_percent == 100
    assert info.phase == 0.5
