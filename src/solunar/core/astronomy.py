# src/solunar/core/astronomy.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol, Sequence, runtime_checkable

from .errors import EphemerisUnavailable, SolunarError
from .timeutil import as_utc


def norm360(deg: float) -> float:
    x = deg % 360.0
    return x + 360.0 if x < 0 else x


def angdiff180(deg: float) -> float:
    """Map angle to (-180, 180]."""
    x = (deg + 180.0) % 360.0 - 180.0
    return 180.0 if x == -180.0 else x


# ============================================================
# Feed value types
# ============================================================
@dataclass(frozen=True)
class SunTimes:
    rise: datetime
    set: datetime


@dataclass(frozen=True)
class MoonPosition:
    """
    Topocentric moon position in degrees.

    azimuth is measured from south, positive towards west, in (-180, 180];
    the local meridian sits at 0 (south) and 180 (north).
    """
    azimuth: float
    altitude: float


@dataclass(frozen=True)
class MoonRiseSet:
    rise: Optional[datetime] = None
    set: Optional[datetime] = None


@dataclass(frozen=True)
class MoonIllumination:
    phase: float     # synodic fraction in [0, 1): 0 new, 0.5 full
    fraction: float  # illuminated fraction of the disc in [0, 1]


@runtime_checkable
class CelestialEventFeed(Protocol):
    """
    Ephemeris capability consumed by the solunar core.

    sun_times / moon_rise_set report the first events in [t, t + 24h).
    A feed may also offer a batch
    ``moon_positions(ts, lat, lon) -> list[MoonPosition]``.
    """

    def sun_times(self, t_utc: datetime, lat: float, lon: float) -> SunTimes: ...
    def moon_position(self, t_utc: datetime, lat: float, lon: float) -> MoonPosition: ...
    def moon_rise_set(self, t_utc: datetime, lat: float, lon: float) -> MoonRiseSet: ...
    def moon_illumination(self, t_utc: datetime) -> MoonIllumination: ...


def _finite(name: str, value: Any) -> float:
    try:
        x = float(value)
    except (TypeError, ValueError) as e:
        raise EphemerisUnavailable(f"{name} is not a number: {value!r}") from e
    if not math.isfinite(x):
        raise EphemerisUnavailable(f"{name} is not finite: {x!r}")
    return x


def _instant(name: str, value: Any) -> datetime:
    if not isinstance(value, datetime):
        raise EphemerisUnavailable(f"{name} is not a datetime: {value!r}")
    try:
        return as_utc(value, name)
    except ValueError as e:
        raise EphemerisUnavailable(str(e)) from e


def _optional_instant(name: str, value: Any) -> Optional[datetime]:
    return None if value is None else _instant(name, value)


@dataclass(frozen=True)
class EphemerisEngine:
    """
    Guard around a CelestialEventFeed.

    Normalizes every instant to UTC and turns feed failures or non-finite
    values into EphemerisUnavailable. Nothing is retried.
    """
    feed: CelestialEventFeed

    def _call(self, what: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except SolunarError:
            raise
        except Exception as e:
            raise EphemerisUnavailable(f"{what} failed: {e}") from e

    def sun_times(self, t_utc: datetime, lat: float, lon: float) -> SunTimes:
        res = self._call("sun_times", self.feed.sun_times, as_utc(t_utc), lat, lon)
        return SunTimes(
            rise=_instant("sunrise", getattr(res, "rise", None)),
            set=_instant("sunset", getattr(res, "set", None)),
        )

    def moon_position(self, t_utc: datetime, lat: float, lon: float) -> MoonPosition:
        res = self._call("moon_position", self.feed.moon_position, as_utc(t_utc), lat, lon)
        return MoonPosition(
            azimuth=_finite("moon azimuth", getattr(res, "azimuth", None)),
            altitude=_finite("moon altitude", getattr(res, "altitude", None)),
        )

    def moon_positions(self, ts_utc: Sequence[datetime], lat: float, lon: float) -> List[MoonPosition]:
        """
        Batch positions if the feed supports it; otherwise fall back to a loop.
        """
        if not ts_utc:
            return []
        ts = [as_utc(t) for t in ts_utc]
        f = getattr(self.feed, "moon_positions", None)
        if not callable(f):
            return [self.moon_position(t, lat, lon) for t in ts]

        xs = list(self._call("moon_positions", f, ts, lat, lon))
        if len(xs) != len(ts):
            raise EphemerisUnavailable(
                f"moon_positions returned {len(xs)} samples for {len(ts)} instants"
            )
        return [
            MoonPosition(
                azimuth=_finite("moon azimuth", getattr(p, "azimuth", None)),
                altitude=_finite("moon altitude", getattr(p, "altitude", None)),
            )
            for p in xs
        ]

    def moon_rise_set(self, t_utc: datetime, lat: float, lon: float) -> MoonRiseSet:
        res = self._call("moon_rise_set", self.feed.moon_rise_set, as_utc(t_utc), lat, lon)
        return MoonRiseSet(
            rise=_optional_instant("moonrise", getattr(res, "rise", None)),
            set=_optional_instant("moonset", getattr(res, "set", None)),
        )

    def moon_illumination(self, t_utc: datetime) -> MoonIllumination:
        res = self._call("moon_illumination", self.feed.moon_illumination, as_utc(t_utc))
        return MoonIllumination(
            phase=_finite("moon phase", getattr(res, "phase", None)),
            fraction=_finite("moon illuminated fraction", getattr(res, "fraction", None)),
        )
