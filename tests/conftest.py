from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import pytest

from solunar.core.astronomy import (
    MoonIllumination,
    MoonPosition,
    MoonRiseSet,
    SunTimes,
    angdiff180,
)

UTC = timezone.utc


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


@dataclass
class FixtureFeed:
    """
    Deterministic feed: the moon circles the sky once per lunar_day_minutes,
    crossing the south meridian (azimuth 0) at transit_epoch.
    """
    sunrise: datetime = utc(2024, 6, 1, 5, 30)
    sunset: datetime = utc(2024, 6, 1, 19, 0)
    moonrise: Optional[datetime] = utc(2024, 6, 1, 12, 10)
    moonset: Optional[datetime] = utc(2024, 6, 1, 23, 50)
    phase: float = 0.27
    fraction: float = 0.43
    transit_epoch: datetime = utc(2024, 6, 1, 6, 0, 30)
    lunar_day_minutes: float = 1490.0
    calls: List[str] = field(default_factory=list)

    def _hour_angle(self, t: datetime) -> float:
        minutes = (t - self.transit_epoch).total_seconds() / 60.0
        return 360.0 * minutes / self.lunar_day_minutes

    def sun_times(self, t_utc, lat, lon) -> SunTimes:
        self.calls.append("sun_times")
        return SunTimes(rise=self.sunrise, set=self.sunset)

    def moon_position(self, t_utc, lat, lon) -> MoonPosition:
        self.calls.append("moon_position")
        ha = self._hour_angle(t_utc)
        return MoonPosition(azimuth=angdiff180(ha), altitude=40.0 * math.cos(math.radians(ha)))

    def moon_rise_set(self, t_utc, lat, lon) -> MoonRiseSet:
        self.calls.append("moon_rise_set")
        return MoonRiseSet(rise=self.moonrise, set=self.moonset)

    def moon_illumination(self, t_utc) -> MoonIllumination:
        self.calls.append("moon_illumination")
        return MoonIllumination(phase=self.phase, fraction=self.fraction)


@dataclass
class BatchFixtureFeed(FixtureFeed):
    def moon_positions(self, ts_utc, lat, lon) -> List[MoonPosition]:
        self.calls.append("moon_positions")
        out = []
        for t in ts_utc:
            ha = self._hour_angle(t)
            out.append(MoonPosition(azimuth=angdiff180(ha), altitude=40.0 * math.cos(math.radians(ha))))
        return out


@pytest.fixture
def feed() -> FixtureFeed:
    return FixtureFeed()


@pytest.fixture
def batch_feed() -> BatchFixtureFeed:
    return BatchFixtureFeed()


@pytest.fixture
def make_feed():
    """FixtureFeed factory for tests that override sun/moon events."""
    return FixtureFeed


def find_ephemeris_path() -> Path | None:
    env = os.environ.get("SOLUNAR_EPHEMERIS_PATH")
    if env:
        p = Path(env).expanduser()
        if p.exists():
            return p

    repo = Path(__file__).resolve().parents[1]
    for name in ("de440s.bsp", "de421.bsp"):
        p = repo / "data" / name
        if p.exists():
            return p
    return None


@pytest.fixture
def ephemeris_path() -> Path:
    p = find_ephemeris_path()
    if p is None:
        pytest.skip("ephemeris not found (set SOLUNAR_EPHEMERIS_PATH or place data/de421.bsp)")
    return p
