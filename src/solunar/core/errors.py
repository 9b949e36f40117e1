# src/solunar/core/errors.py
from __future__ import annotations


class SolunarError(Exception):
    """Base exception for solunar errors."""


class InvalidCalendarDate(SolunarError, ValueError):
    """Raised for impossible or unparsable civil dates."""


class InvalidTimeZone(SolunarError, ValueError):
    """Raised when an IANA time zone identifier is not recognized."""


class EphemerisUnavailable(SolunarError, RuntimeError):
    """Raised when the celestial event feed fails or returns non-finite data."""


class UnclassifiablePhase(SolunarError, ValueError):
    """Raised for a moon phase fraction outside [0, 1)."""


class InvalidLocation(SolunarError, ValueError):
    """Raised for latitude/longitude outside the valid ranges."""
