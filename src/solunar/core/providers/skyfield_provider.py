from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Sequence, List, Tuple, Optional, Union
from functools import lru_cache
import logging

from skyfield.api import Loader, wgs84
from skyfield import almanac
from skyfield.framelib import ecliptic_frame

from ..astronomy import MoonIllumination, MoonPosition, MoonRiseSet, SunTimes, angdiff180, norm360
from ..errors import EphemerisUnavailable

log = logging.getLogger(__name__)

DAY = timedelta(days=1)


# ----------------------------
# Ephemeris path resolution
# ----------------------------
def _project_data_dir() -> Path:
    return Path(__file__).resolve().parents[4] / "data"


def _default_ephemeris_path() -> Path:
    """
    Prefer de440s (longer coverage) if present; otherwise fall back to de421.
    """
    data_dir = _project_data_dir()
    p440s = data_dir / "de440s.bsp"
    p421 = data_dir / "de421.bsp"
    return p440s if p440s.exists() else p421


def _resolve_ephemeris_path(
    *,
    ephemeris_path: Optional[Path],
    ephemeris: Optional[Union[str, Path]],
) -> Path:
    """
    Resolution priority:
      1) ephemeris_path (Path) if provided
      2) ephemeris (str|Path) if provided:
         - absolute path -> use as is
         - relative path / filename -> resolve under project data dir
      3) default: prefer de440s if present else de421
    """
    if ephemeris_path is not None:
        return ephemeris_path

    if ephemeris is not None:
        p = ephemeris if isinstance(ephemeris, Path) else Path(ephemeris)
        if p.is_absolute():
            return p
        return _project_data_dir() / p

    return _default_ephemeris_path()


@lru_cache(maxsize=32)
def _topos_for_latlon(lat: float, lon: float):
    return wgs84.latlon(latitude_degrees=lat, longitude_degrees=lon)


def _utc_datetime(t) -> datetime:
    dt = t.utc_datetime()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class SkyfieldFeed:
    """
    CelestialEventFeed backed by a JPL ephemeris through Skyfield.

    Azimuths are reported from south, positive towards west, in (-180, 180].
    """

    ephemeris_path: Optional[Path] = None
    ephemeris: Optional[Union[str, Path]] = None

    def __post_init__(self) -> None:
        resolved = _resolve_ephemeris_path(
            ephemeris_path=self.ephemeris_path,
            ephemeris=self.ephemeris,
        )
        object.__setattr__(self, "ephemeris_path", resolved)

        if not self.ephemeris_path.exists():
            data_dir = _project_data_dir()
            candidates = [
                data_dir / "de440s.bsp",
                data_dir / "de421.bsp",
            ]
            cand_str = "\n".join(f"  - {p}" for p in candidates)
            raise EphemerisUnavailable(
                f"Ephemeris not found: {self.ephemeris_path}\n"
                f"Place one of the following files under {data_dir}:\n"
                f"{cand_str}\n"
                "Or pass ephemeris='de421.bsp' / ephemeris_path=Path(...)."
            )

        loader = Loader(str(self.ephemeris_path.parent))
        eph = loader(self.ephemeris_path.name)
        ts = loader.timescale()

        object.__setattr__(self, "_eph", eph)
        object.__setattr__(self, "_ts", ts)

        # bodies cache
        object.__setattr__(self, "_earth", eph["earth"])
        object.__setattr__(self, "_sun", eph["sun"])
        object.__setattr__(self, "_moon", eph["moon"])

        start_utc, end_utc = self._compute_ephemeris_utc_range()
        object.__setattr__(self, "_ephem_start_utc", start_utc)
        object.__setattr__(self, "_ephem_end_utc", end_utc)

    def _compute_ephemeris_utc_range(self) -> Tuple[datetime, datetime]:
        """
        Compute coverage from SPK segments.
        Skyfield throws EphemerisRangeError deep inside; we surface a clearer error earlier.
        """
        segments = getattr(self._eph, "spk", None)
        if segments is None or not getattr(segments, "segments", None):
            return (
                datetime.min.replace(tzinfo=timezone.utc),
                datetime.max.replace(tzinfo=timezone.utc),
            )

        segs = segments.segments
        start_jd = max(s.start_jd for s in segs)
        end_jd = min(s.end_jd for s in segs)

        start_utc = _utc_datetime(self._ts.tt_jd(start_jd))
        end_utc = _utc_datetime(self._ts.tt_jd(end_jd))
        return start_utc, end_utc

    # ---- time helpers ----
    def _as_utc(self, dt_utc: datetime) -> datetime:
        if dt_utc.tzinfo is None:
            raise ValueError("dt_utc must be timezone-aware")
        return dt_utc.astimezone(timezone.utc)

    def _check_ephemeris_range(self, dt_utc: datetime) -> None:
        """
        Raise a friendly error if requested datetime is outside ephemeris coverage.
        """
        dt = self._as_utc(dt_utc)
        start = self._ephem_start_utc
        end = self._ephem_end_utc

        if dt < start or dt > end:
            raise EphemerisUnavailable(
                "Requested datetime is outside ephemeris coverage.\n"
                f"  requested: {dt.isoformat()}\n"
                f"  ephemeris: {self.ephemeris_path}\n"
                f"  coverage : {start.isoformat()} .. {end.isoformat()}\n"
                "Hint: use de440s.bsp (place it under ./data or pass ephemeris='de440s.bsp')."
            )

    def _t(self, dt_utc: datetime):
        self._check_ephemeris_range(dt_utc)
        return self._ts.from_datetime(self._as_utc(dt_utc))

    def _t_many(self, dts_utc: Sequence[datetime]):
        xs = [self._as_utc(dt) for dt in dts_utc]

        # Fail fast using min/max (avoid checking every point)
        self._check_ephemeris_range(min(xs))
        self._check_ephemeris_range(max(xs))

        return self._ts.from_datetimes(xs)

    def _discrete_events(self, fn, dt_utc: datetime) -> List[Tuple[datetime, int]]:
        t0 = self._t(dt_utc)
        t1 = self._t(self._as_utc(dt_utc) + DAY)
        times, events = almanac.find_discrete(t0, t1, fn)
        return [(_utc_datetime(t), int(ev)) for t, ev in zip(times, events)]

    # ---- sun ----
    def sun_times(self, dt_utc: datetime, lat: float, lon: float) -> SunTimes:
        topos = _topos_for_latlon(lat, lon)
        fn = almanac.sunrise_sunset(self._eph, topos)

        sunrise_utc: Optional[datetime] = None
        sunset_utc: Optional[datetime] = None
        for dt, ev in self._discrete_events(fn, dt_utc):
            if ev == 1 and sunrise_utc is None:
                sunrise_utc = dt
            elif ev == 0 and sunset_utc is None:
                sunset_utc = dt

        if sunrise_utc is None or sunset_utc is None:
            log.warning(
                "sunrise/sunset not found: start_utc=%s lat=%.6f lon=%.6f",
                self._as_utc(dt_utc).isoformat(),
                lat,
                lon,
            )
            raise EphemerisUnavailable(
                f"sunrise/sunset not found within 24h of {self._as_utc(dt_utc).isoformat()} "
                f"at lat={lat:.6f} lon={lon:.6f}"
            )

        return SunTimes(rise=sunrise_utc, set=sunset_utc)

    # ---- moon ----
    def _moon_altaz(self, t, lat: float, lon: float):
        observer = self._earth + _topos_for_latlon(lat, lon)
        alt, az, _dist = observer.at(t).observe(self._moon).apparent().altaz()
        return alt.degrees, az.degrees

    def moon_position(self, dt_utc: datetime, lat: float, lon: float) -> MoonPosition:
        alt, az = self._moon_altaz(self._t(dt_utc), lat, lon)
        # skyfield azimuth runs north->east; shift the origin to south
        return MoonPosition(azimuth=angdiff180(float(az) - 180.0), altitude=float(alt))

    def moon_positions(self, dts_utc: Sequence[datetime], lat: float, lon: float) -> List[MoonPosition]:
        if not dts_utc:
            return []
        alt, az = self._moon_altaz(self._t_many(dts_utc), lat, lon)
        return [
            MoonPosition(azimuth=angdiff180(float(a) - 180.0), altitude=float(h))
            for a, h in zip(az, alt)
        ]

    def moon_rise_set(self, dt_utc: datetime, lat: float, lon: float) -> MoonRiseSet:
        topos = _topos_for_latlon(lat, lon)
        fn = almanac.risings_and_settings(self._eph, self._moon, topos)

        rise: Optional[datetime] = None
        set_: Optional[datetime] = None
        for dt, ev in self._discrete_events(fn, dt_utc):
            if ev == 1 and rise is None:
                rise = dt
            elif ev == 0 and set_ is None:
                set_ = dt
        return MoonRiseSet(rise=rise, set=set_)

    def moon_illumination(self, dt_utc: datetime) -> MoonIllumination:
        t = self._t(dt_utc)
        earth = self._earth.at(t)
        _lat, sun_lon, _dist = earth.observe(self._sun).apparent().frame_latlon(ecliptic_frame)
        _lat, moon_lon, _dist = earth.observe(self._moon).apparent().frame_latlon(ecliptic_frame)

        phase = norm360(moon_lon.degrees - sun_lon.degrees) / 360.0
        if phase >= 1.0:
            phase = 0.0
        fraction = float(almanac.fraction_illuminated(self._eph, "moon", t))
        return MoonIllumination(phase=float(phase), fraction=fraction)
