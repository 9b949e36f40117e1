from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from solunar.core.astronomy import EphemerisEngine, MoonPosition
from solunar.core.config import TransitScanConfig
from solunar.core.errors import EphemerisUnavailable
from solunar.core.timeutil import day_window
from solunar.core.transit import detect_transits, find_transits, scan_instants

UTC = timezone.utc
T0 = datetime(2024, 6, 1, tzinfo=UTC)


def _series(*samples):
    """[(azimuth, altitude), ...] at one-minute spacing from T0."""
    return [(T0 + timedelta(minutes=i), MoonPosition(az, alt)) for i, (az, alt) in enumerate(samples)]


def test_no_flip_no_event():
    assert detect_transits(_series((-10, 5), (-5, 6), (-1, 7))) == []


def test_flip_reported_at_later_sample():
    events = detect_transits(_series((-1.0, 30.0), (-0.2, 30.1), (0.3, 30.1), (1.0, 30.0)))
    assert len(events) == 1
    ev = events[0]
    assert ev.timestamp == T0 + timedelta(minutes=2)
    assert ev.kind == "upper"
    assert ev.altitude == pytest.approx(30.1)


def test_flip_below_horizon_is_lower():
    events = detect_transits(_series((179.8, -20.0), (-179.9, -20.0)))
    assert [e.kind for e in events] == ["lower"]


def test_zero_altitude_counts_as_lower():
    events = detect_transits(_series((-0.5, 1.0), (0.5, 0.0)))
    assert events[0].kind == "lower"


def test_first_sample_exactly_zero_emits_nothing():
    assert detect_transits(_series((0.0, 10.0), (0.4, 10.0), (0.8, 10.0))) == []


def test_exact_zero_crossing_yields_one_event():
    events = detect_transits(_series((-0.4, 10.0), (0.0, 10.0), (0.4, 10.0)))
    assert len(events) == 1
    assert events[0].timestamp == T0 + timedelta(minutes=1)


def test_flip_between_last_two_samples_detected():
    samples = [(-5.0, 10.0)] * 9 + [(5.0, 10.0)]
    events = detect_transits(_series(*samples))
    assert len(events) == 1
    assert events[0].timestamp == T0 + timedelta(minutes=9)


def test_multiple_flips_ascending():
    events = detect_transits(_series((-1, 10), (1, 10), (179, -10), (-179, -10), (-1, 10)))
    assert [e.kind for e in events] == ["upper", "lower"]
    assert events[0].timestamp < events[1].timestamp


def test_scan_instants_cover_padded_window():
    w = day_window(2024, 6, 1, "UTC")
    ts = scan_instants(w)
    assert len(ts) == 60 + 25 * 60
    assert ts[0] == w.start - timedelta(minutes=60)
    assert ts[-1] == w.start + timedelta(minutes=25 * 60 - 1)
    assert all(b - a == timedelta(minutes=1) for a, b in zip(ts, ts[1:]))


def test_scan_instants_custom_config():
    w = day_window(2024, 6, 1, "UTC")
    ts = scan_instants(w, TransitScanConfig(step_minutes=10, pad_before_minutes=0, span_minutes=60))
    assert ts == [w.start + timedelta(minutes=m) for m in range(0, 60, 10)]


def test_scan_config_rejects_non_positive_step():
    with pytest.raises(ValueError):
        TransitScanConfig(step_minutes=0)


def test_find_transits_fixture_feed(feed):
    w = day_window(2024, 6, 1, "UTC")
    events = find_transits(EphemerisEngine(feed=feed), w, 40.0, -75.0)

    assert [(e.timestamp, e.kind) for e in events] == [
        (datetime(2024, 6, 1, 6, 1, tzinfo=UTC), "upper"),
        (datetime(2024, 6, 1, 18, 26, tzinfo=UTC), "lower"),
    ]
    assert events[0].altitude > 0
    assert events[1].altitude < 0


def test_find_transits_uses_batch_when_available(batch_feed):
    w = day_window(2024, 6, 1, "UTC")
    events = find_transits(EphemerisEngine(feed=batch_feed), w, 40.0, -75.0)
    assert len(events) == 2
    assert batch_feed.calls == ["moon_positions"]


def test_find_transits_scalar_fallback(feed):
    w = day_window(2024, 6, 1, "UTC")
    find_transits(EphemerisEngine(feed=feed), w, 40.0, -75.0)
    assert feed.calls.count("moon_position") == 60 + 25 * 60


def test_non_finite_azimuth_is_ephemeris_unavailable(feed):
    feed.moon_position = lambda t, lat, lon: MoonPosition(azimuth=float("nan"), altitude=0.0)
    w = day_window(2024, 6, 1, "UTC")
    with pytest.raises(EphemerisUnavailable):
        find_transits(EphemerisEngine(feed=feed), w, 40.0, -75.0)


def test_feed_exception_is_wrapped(feed):
    def boom(t, lat, lon):
        raise RuntimeError("kernel gone")

    feed.moon_position = boom
    w = day_window(2024, 6, 1, "UTC")
    with pytest.raises(EphemerisUnavailable) as exc:
        find_transits(EphemerisEngine(feed=feed), w, 40.0, -75.0)
    assert isinstance(exc.value.__cause__, RuntimeError)
