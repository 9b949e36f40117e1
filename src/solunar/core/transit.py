# src/solunar/core/transit.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import reduce
from typing import Iterable, List, Literal, Optional, Tuple

from .astronomy import EphemerisEngine, MoonPosition
from .config import TransitScanConfig
from .timeutil import TimeWindow

log = logging.getLogger(__name__)

TransitKind = Literal[
    "upper",  # culmination above the horizon ("overhead")
    "lower",  # anti-culmination below the horizon ("underfoot")
]


@dataclass(frozen=True)
class TransitEvent:
    timestamp: datetime
    kind: TransitKind
    altitude: float


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


@dataclass(frozen=True)
class _ScanState:
    sign: Optional[int]
    events: Tuple[TransitEvent, ...] = ()


def _step(state: _ScanState, sample: Tuple[datetime, MoonPosition]) -> _ScanState:
    t, pos = sample
    s = _sign(pos.azimuth)

    # no baseline yet (first sample, or sitting exactly on the meridian)
    if not state.sign:
        return _ScanState(s, state.events)
    if s == state.sign:
        return state

    kind: TransitKind = "upper" if pos.altitude > 0 else "lower"
    return _ScanState(s, state.events + (TransitEvent(t, kind, pos.altitude),))


def detect_transits(samples: Iterable[Tuple[datetime, MoonPosition]]) -> List[TransitEvent]:
    """
    Fold an ordered azimuth series into meridian crossings.

    Each change of azimuth sign between consecutive samples is reported at
    the later sample, without interpolation. The kind follows that sample's
    altitude: above the horizon -> "upper", otherwise "lower".
    """
    final = reduce(_step, samples, _ScanState(sign=None))
    return list(final.events)


def scan_instants(window: TimeWindow, config: TransitScanConfig | None = None) -> List[datetime]:
    """
    Sample instants for the transit scan, padded around the day window.

    The moon's day is ~24h50m, so a transit belonging to this day can sit
    slightly before local midnight or after the next one.
    """
    if config is None:
        config = TransitScanConfig()

    step = timedelta(minutes=config.step_minutes)
    t = window.start - timedelta(minutes=config.pad_before_minutes)
    end = window.start + timedelta(minutes=config.span_minutes)

    out: List[datetime] = []
    while t < end:
        out.append(t)
        t += step
    return out


def find_transits(
    eng: EphemerisEngine,
    window: TimeWindow,
    lat: float,
    lon: float,
    *,
    config: TransitScanConfig | None = None,
) -> List[TransitEvent]:
    """Upper/lower lunar transits around the day window, ascending by timestamp."""
    ts = scan_instants(window, config)
    positions = eng.moon_positions(ts, lat, lon)

    events = detect_transits(zip(ts, positions))
    events.sort(key=lambda e: e.timestamp)

    log.debug(
        "transit scan: start=%s samples=%d transits=%d lat=%.6f lon=%.6f",
        window.start.isoformat(),
        len(ts),
        len(events),
        lat,
        lon,
    )
    return events
