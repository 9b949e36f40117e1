# src/solunar/core/solunar.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Union

from solunar.features.moon_phase import moon_phase_info

from .astronomy import CelestialEventFeed, EphemerisEngine, SunTimes
from .config import SolunarConfig
from .errors import InvalidCalendarDate, InvalidLocation
from .periods import Period, build_periods, enhance_periods
from .scoring import day_score
from .timeutil import TimeWindow, day_window, iter_dates, parse_iso_date
from .transit import TransitEvent, find_transits

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0):
            raise InvalidLocation(f"latitude out of range: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise InvalidLocation(f"longitude out of range: {self.lon}")


@dataclass(frozen=True)
class CivilDay:
    year: int
    month: int
    day: int
    tz: str

    @classmethod
    def from_date(cls, d: date, tz: str) -> "CivilDay":
        return cls(year=d.year, month=d.month, day=d.day, tz=tz)


@dataclass(frozen=True)
class MoonSummary:
    phase_name: str
    phase: float
    illumination: int
    rise: Optional[datetime] = None
    set: Optional[datetime] = None
    overhead: Optional[datetime] = None
    underfoot: Optional[datetime] = None


@dataclass(frozen=True)
class DaySolunarResult:
    day: TimeWindow
    day_score: int
    sun: SunTimes
    moon: MoonSummary
    major_periods: List[Period] = field(default_factory=list)
    minor_periods: List[Period] = field(default_factory=list)
    transits: List[TransitEvent] = field(default_factory=list)


FeedLike = Union[CelestialEventFeed, EphemerisEngine]


def _engine(feed: FeedLike) -> EphemerisEngine:
    return feed if isinstance(feed, EphemerisEngine) else EphemerisEngine(feed=feed)


def _first(transits: List[TransitEvent], kind: str) -> Optional[datetime]:
    return next((t.timestamp for t in transits if t.kind == kind), None)


def solunar_day(
    day: CivilDay,
    point: GeoPoint,
    feed: FeedLike,
    *,
    config: SolunarConfig | None = None,
) -> DaySolunarResult:
    """
    Solunar periods and score for one civil day at one location.

    Sun times, moon rise/set and illumination are taken for the 24 hours
    starting at local midnight. Moon rise/set outside that window are
    dropped, so a day may have no minor periods.
    """
    if config is None:
        config = SolunarConfig()
    eng = _engine(feed)

    window = day_window(day.year, day.month, day.day, day.tz)

    sun = eng.sun_times(window.start, point.lat, point.lon)
    illum = eng.moon_illumination(window.start)
    phase = moon_phase_info(illum.phase, illum.fraction)

    rs = eng.moon_rise_set(window.start, point.lat, point.lon)
    moonrise = rs.rise if rs.rise is not None and window.contains(rs.rise) else None
    moonset = rs.set if rs.set is not None and window.contains(rs.set) else None

    transits = find_transits(eng, window, point.lat, point.lon, config=config.scan)

    periods = enhance_periods(build_periods(transits, moonrise, moonset), sun.rise, sun.set)
    score = day_score(periods, phase.phase_name, phase.phase)

    log.debug(
        "solunar day: %04d-%02d-%02d tz=%s score=%d transits=%d moonrise=%s moonset=%s",
        day.year,
        day.month,
        day.day,
        day.tz,
        score,
        len(transits),
        moonrise,
        moonset,
    )

    return DaySolunarResult(
        day=window,
        day_score=score,
        sun=sun,
        moon=MoonSummary(
            phase_name=phase.phase_name,
            phase=phase.phase,
            illumination=phase.illumination_percent,
            rise=moonrise,
            set=moonset,
            overhead=_first(transits, "upper"),
            underfoot=_first(transits, "lower"),
        ),
        major_periods=[p for p in periods if p.kind == "major"],
        minor_periods=[p for p in periods if p.kind == "minor"],
        transits=transits,
    )


def solunar_range(
    start: str | date,
    end: str | date,
    tz: str,
    point: GeoPoint,
    feed: FeedLike,
    *,
    config: SolunarConfig | None = None,
) -> List[DaySolunarResult]:
    """One result per civil day in [start, end] (inclusive)."""
    s = parse_iso_date(start)
    e = parse_iso_date(end)
    if e < s:
        raise InvalidCalendarDate("end must be >= start")

    eng = _engine(feed)
    return [solunar_day(CivilDay.from_date(d, tz), point, eng, config=config) for d in iter_dates(s, e)]
