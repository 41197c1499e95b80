"""
Active-time threshold evaluation for a single unit.

Bounds express "must have been active for at least N seconds": a bound is
breached while the unit's active duration is still below it, which catches
services that keep restarting.
"""

import time

from pydantic import BaseModel, ConfigDict, Field

from sysprobe.domain.models import Metric, Severity, UnitTimingInfo

ACTIVE_TIME_LABEL = "activeTime"


class ThresholdFinding(BaseModel):
    """Sub-verdict of the threshold check plus its duration metric."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    duration_seconds: int
    metric: Metric

    def describe(self) -> str:
        ago = format_duration(self.duration_seconds)
        return f" ActiveEnterTime {self.severity.name}, {ago} ago."


class ActiveTimeThresholds(BaseModel):
    """Warning/critical lower bounds in seconds; either may be omitted."""

    model_config = ConfigDict(frozen=True)

    warning: int | None = Field(default=None, ge=0)
    critical: int | None = Field(default=None, ge=0)

    @property
    def requested(self) -> bool:
        return self.warning is not None or self.critical is not None


def monotonic_micros() -> int:
    """Current CLOCK_MONOTONIC reading, the clock systemd stamps transitions with."""
    return time.clock_gettime_ns(time.CLOCK_MONOTONIC) // 1_000


def format_duration(seconds: int) -> str:
    hours, rest = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}h{minutes:02d}m{secs:02d}s"


def classify_active_time(duration_seconds: int, thresholds: ActiveTimeThresholds) -> Severity:
    severity = Severity.OK
    if thresholds.critical is not None and thresholds.critical > duration_seconds:
        severity = Severity.worst(severity, Severity.CRITICAL)
    if thresholds.warning is not None and thresholds.warning > duration_seconds:
        severity = Severity.worst(severity, Severity.WARNING)
    return severity


def evaluate_active_time(
    timing: UnitTimingInfo, thresholds: ActiveTimeThresholds, now_monotonic_us: int
) -> ThresholdFinding:
    duration = timing.active_duration_seconds(now_monotonic_us)
    return ThresholdFinding(
        severity=classify_active_time(duration, thresholds),
        duration_seconds=duration,
        metric=Metric(label=ACTIVE_TIME_LABEL, value=duration, unit="s", min=0),
    )
