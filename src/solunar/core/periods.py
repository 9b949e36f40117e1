# src/solunar/core/periods.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Literal, Optional, Sequence

from .transit import TransitEvent

log = logging.getLogger(__name__)

PeriodKind = Literal["major", "minor"]

MAJOR_HALF_WIDTH = timedelta(minutes=60)
MINOR_HALF_WIDTH = timedelta(minutes=30)
SUN_EVENT_HALF_WIDTH = timedelta(minutes=60)


@dataclass(frozen=True)
class Period:
    kind: PeriodKind
    start: datetime
    end: datetime
    weight: int = 0

    def __post_init__(self) -> None:
        if not (self.start < self.end):
            raise ValueError("period start must be before end")
        if self.weight < 0:
            raise ValueError("period weight must be non-negative")


def _around(kind: PeriodKind, t: datetime, half_width: timedelta) -> Period:
    return Period(kind=kind, start=t - half_width, end=t + half_width)


def build_periods(
    transits: Sequence[TransitEvent],
    moonrise: Optional[datetime] = None,
    moonset: Optional[datetime] = None,
) -> List[Period]:
    """
    Candidate periods with zero weight.

    One major period per transit (+/-60 min) and one minor period each for
    moonrise and moonset when present (+/-30 min). Overlaps are kept as is.
    """
    out: List[Period] = [_around("major", t.timestamp, MAJOR_HALF_WIDTH) for t in transits]
    if moonrise is not None:
        out.append(_around("minor", moonrise, MINOR_HALF_WIDTH))
    if moonset is not None:
        out.append(_around("minor", moonset, MINOR_HALF_WIDTH))
    return out


def _within(t: datetime, center: datetime, half_width: timedelta) -> bool:
    return center - half_width <= t <= center + half_width


def near_sun_event(period: Period, sunrise: datetime, sunset: datetime) -> bool:
    """True if either edge of the period lies within 60 min of sunrise or sunset."""
    return any(
        _within(edge, center, SUN_EVENT_HALF_WIDTH)
        for center in (sunrise, sunset)
        for edge in (period.start, period.end)
    )


def enhance_periods(
    periods: Sequence[Period],
    sunrise: datetime,
    sunset: datetime,
) -> List[Period]:
    """
    Boost periods touching sunrise/sunset and order them by start.

    The boost is +1 at most, even if both sun windows match.
    """
    out: List[Period] = []
    boosted = 0
    for p in periods:
        if near_sun_event(p, sunrise, sunset):
            p = replace(p, weight=p.weight + 1)
            boosted += 1
        out.append(p)

    # list.sort is stable
    out.sort(key=lambda p: p.start)

    log.debug("periods: total=%d boosted=%d", len(out), boosted)
    return out
