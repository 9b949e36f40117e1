from __future__ import annotations

import logging
import os
import time
from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from zoneinfo import ZoneInfo

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from solunar.core.astronomy import CelestialEventFeed
from solunar.core.errors import EphemerisUnavailable, SolunarError
from solunar.core.periods import Period
from solunar.core.providers.skyfield_provider import SkyfieldFeed
from solunar.core.solunar import CivilDay, DaySolunarResult, GeoPoint, solunar_day, solunar_range
from solunar.core.timeutil import get_tzinfo, iter_dates, parse_iso_date

router = APIRouter(prefix="/api/v1", tags=["solunar"])

log = logging.getLogger("solunar.api.public")


# ============================================================
# Response Models
# ============================================================
class PeriodOut(BaseModel):
    kind: str
    start: str
    end: str
    weight: int = Field(ge=0)


class DayWindowOut(BaseModel):
    start: str = Field(description="local midnight (ISO-8601, tz offset)")
    end: str = Field(description="start + 24h")


class SunOut(BaseModel):
    rise: str
    set: str


class MoonOut(BaseModel):
    phase_name: str
    phase: float
    illumination: int = Field(ge=0, le=100, description="illuminated percent")
    rise: Optional[str] = None
    set: Optional[str] = None
    overhead: Optional[str] = Field(default=None, description="first upper transit")
    underfoot: Optional[str] = Field(default=None, description="first lower transit")


class SolunarDayResponse(BaseModel):
    date: str
    tz: str
    lat: float
    lon: float
    day: DayWindowOut
    day_score: int = Field(ge=0)
    sun: SunOut
    moon: MoonOut
    major_periods: List[PeriodOut] = Field(default_factory=list)
    minor_periods: List[PeriodOut] = Field(default_factory=list)


class SolunarRangeResponse(BaseModel):
    start: str
    end: str
    tz: str
    days: List[SolunarDayResponse]


# =========================================================
# Public JSON API (function-style, HTTP-ready)
# =========================================================
SOLUNAR_EPHEMERIS_ENV = "SOLUNAR_EPHEMERIS"
SOLUNAR_EPHEMERIS_PATH_ENV = "SOLUNAR_EPHEMERIS_PATH"
DEFAULT_EPHEMERIS = "de421.bsp"
DEFAULT_TZ = "UTC"
DEFAULT_LIMIT_DAYS = 370


def _resolve_ephemeris(
    ephemeris: Optional[str],
    ephemeris_path: Optional[str | Path],
) -> Tuple[str, Optional[Path]]:
    ephem = (ephemeris or "").strip()
    if not ephem:
        ephem = os.environ.get(SOLUNAR_EPHEMERIS_ENV, DEFAULT_EPHEMERIS).strip() or DEFAULT_EPHEMERIS

    path_raw: Optional[str] = None
    if isinstance(ephemeris_path, Path):
        path_raw = str(ephemeris_path)
    elif isinstance(ephemeris_path, str):
        path_raw = ephemeris_path.strip()

    if not path_raw:
        path_raw = os.environ.get(SOLUNAR_EPHEMERIS_PATH_ENV, "").strip() or None

    if path_raw:
        p = Path(path_raw).expanduser()
        if not p.exists():
            raise EphemerisUnavailable(f"ephemeris_path not found: {p}")
        return ephem, p

    return ephem, None


@lru_cache(maxsize=4)
def _feed_cached(ephemeris: str, ephemeris_path: str) -> SkyfieldFeed:
    ephem = ephemeris.strip() or None
    ep_path = Path(ephemeris_path).expanduser() if ephemeris_path else None
    return SkyfieldFeed(ephemeris=ephem, ephemeris_path=ep_path)


def _feed_for_ephemeris(
    ephemeris: Optional[str],
    ephemeris_path: Optional[str | Path],
) -> CelestialEventFeed:
    """
    SkyfieldFeed loads the kernel once; keep it around while the API is up.
    """
    ephem, ep_path = _resolve_ephemeris(ephemeris, ephemeris_path)
    return _feed_cached(ephem, str(ep_path) if ep_path else "")


def _format_iso_local(dt_utc: Optional[datetime], tzinfo: ZoneInfo) -> Optional[str]:
    if dt_utc is None:
        return None
    return dt_utc.astimezone(tzinfo).replace(microsecond=0).isoformat()


def _period_dict(p: Period, tzinfo: ZoneInfo) -> dict:
    return {
        "kind": p.kind,
        "start": _format_iso_local(p.start, tzinfo),
        "end": _format_iso_local(p.end, tzinfo),
        "weight": int(p.weight),
    }


def day_result_dict(d: date, tz: str, point: GeoPoint, res: DaySolunarResult) -> dict:
    tzinfo = get_tzinfo(tz)

    def fmt(dt: Optional[datetime]) -> Optional[str]:
        return _format_iso_local(dt, tzinfo)

    return {
        "date": d.isoformat(),
        "tz": tz,
        "lat": point.lat,
        "lon": point.lon,
        "day": {"start": fmt(res.day.start), "end": fmt(res.day.end)},
        "day_score": int(res.day_score),
        "sun": {"rise": fmt(res.sun.rise), "set": fmt(res.sun.set)},
        "moon": {
            "phase_name": res.moon.phase_name,
            "phase": round(float(res.moon.phase), 6),
            "illumination": int(res.moon.illumination),
            "rise": fmt(res.moon.rise),
            "set": fmt(res.moon.set),
            "overhead": fmt(res.moon.overhead),
            "underfoot": fmt(res.moon.underfoot),
        },
        "major_periods": [_period_dict(p, tzinfo) for p in res.major_periods],
        "minor_periods": [_period_dict(p, tzinfo) for p in res.minor_periods],
    }


def get_solunar_day(
    date_: str | date,
    *,
    lat: float,
    lon: float,
    tz: str = DEFAULT_TZ,
    ephemeris: Optional[str] = None,
    ephemeris_path: Optional[str | Path] = None,
    feed: Optional[CelestialEventFeed] = None,
) -> dict:
    d = parse_iso_date(date_)
    get_tzinfo(tz)
    point = GeoPoint(lat=float(lat), lon=float(lon))
    if feed is None:
        feed = _feed_for_ephemeris(ephemeris, ephemeris_path)

    res = solunar_day(CivilDay.from_date(d, tz), point, feed)
    return day_result_dict(d, tz, point, res)


def get_solunar_range(
    start: str | date,
    end: str | date,
    *,
    lat: float,
    lon: float,
    tz: str = DEFAULT_TZ,
    ephemeris: Optional[str] = None,
    ephemeris_path: Optional[str | Path] = None,
    feed: Optional[CelestialEventFeed] = None,
) -> dict:
    s = parse_iso_date(start)
    e = parse_iso_date(end)
    get_tzinfo(tz)
    point = GeoPoint(lat=float(lat), lon=float(lon))
    if feed is None:
        feed = _feed_for_ephemeris(ephemeris, ephemeris_path)

    results = solunar_range(s, e, tz, point, feed)
    days = [day_result_dict(cur, tz, point, res) for cur, res in zip(iter_dates(s, e), results)]

    return {
        "start": s.isoformat(),
        "end": e.isoformat(),
        "tz": tz,
        "days": days,
    }


# ============================================================
# Helpers: error mapping
# ============================================================
def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, EphemerisUnavailable):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=422, detail=str(e))


def _call_api(fn, *args: Any, **kwargs: Any) -> Dict[str, Any]:
    try:
        return fn(*args, **kwargs)
    except EphemerisUnavailable as e:
        log.exception("ephemeris feed failed: %s", e)
        raise _http_error(e) from e
    except SolunarError as e:
        raise _http_error(e) from e


# ============================================================
# Endpoints
# ============================================================
@router.get("/solunar/day", response_model=SolunarDayResponse)
def get_solunar_day_endpoint(
    date_str: str = Query(..., alias="date", description="YYYY-MM-DD"),
    tz: str = Query(DEFAULT_TZ),
    lat: float = Query(..., description="observer latitude (deg)"),
    lon: float = Query(..., description="observer longitude (deg)"),
    timing: bool = Query(False, description="log timing (diagnostics)"),
) -> Dict[str, Any]:
    t0 = time.perf_counter()
    out = _call_api(get_solunar_day, date_str, lat=lat, lon=lon, tz=tz)
    if timing:
        log.warning("timing /solunar/day date=%s tz=%s total=%.3fs", date_str, tz, time.perf_counter() - t0)
    return out


@router.get("/solunar/range", response_model=SolunarRangeResponse)
def get_solunar_range_endpoint(
    start_str: str = Query(..., alias="start", description="YYYY-MM-DD"),
    end_str: str = Query(..., alias="end", description="YYYY-MM-DD"),
    tz: str = Query(DEFAULT_TZ),
    lat: float = Query(..., description="observer latitude (deg)"),
    lon: float = Query(..., description="observer longitude (deg)"),
    limit_days: int = Query(DEFAULT_LIMIT_DAYS, ge=1, le=2000, description="max number of days"),
    timing: bool = Query(False, description="log timing (diagnostics)"),
) -> Dict[str, Any]:
    try:
        start = parse_iso_date(start_str)
        end = parse_iso_date(end_str)
    except SolunarError as e:
        raise _http_error(e) from e
    if end < start:
        raise HTTPException(status_code=422, detail="end must be >= start")

    days_count = (end - start).days + 1
    if days_count > limit_days:
        raise HTTPException(status_code=422, detail=f"range too large: {days_count} days (limit_days={limit_days})")

    t0 = time.perf_counter()
    out = _call_api(get_solunar_range, start, end, lat=lat, lon=lon, tz=tz)
    if timing:
        log.warning(
            "timing /solunar/range start=%s end=%s tz=%s days=%d total=%.3fs",
            start, end, tz, days_count,
            time.perf_counter() - t0,
        )
    return out
