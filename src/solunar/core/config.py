# src/solunar/core/config.py
from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TransitScanConfig:
    """
    Moon azimuth scan used for transit detection.

    The scan covers [day_start - pad_before, day_start + span) in fixed steps.
    All time units are minutes.
    """
    step_minutes: int = 1
    pad_before_minutes: int = 60
    span_minutes: int = 25 * 60

    def __post_init__(self) -> None:
        if self.step_minutes <= 0:
            raise ValueError("step_minutes must be positive")
        if self.span_minutes <= 0:
            raise ValueError("span_minutes must be positive")


@dataclass(frozen=True)
class SolunarConfig:
    """
    Per-query configuration.

    Only the scan is tunable; period widths and the scoring rules are fixed.
    """
    scan: TransitScanConfig = field(default_factory=TransitScanConfig)
