"""
Verdict aggregation for the unit and mount checks.

Every evaluation starts from an OK verdict and folds findings into it with
worst-wins escalation. Nothing here touches the outside world: text sources
and clocks are passed in, so each mode is a pure function of its inputs.
"""

import re
from collections.abc import Callable, Sequence

from sysprobe.domain.errors import UnitTimingError
from sysprobe.domain.models import (
    Metric,
    MountRecord,
    Severity,
    UnitBuckets,
    UnitRecord,
    UnitTimingInfo,
    Verdict,
)
from sysprobe.services.matching import MountQuery, is_excluded
from sysprobe.services.probe_source import Result, logger
from sysprobe.services.thresholds import (
    ActiveTimeThresholds,
    evaluate_active_time,
    monotonic_micros,
)
from sysprobe.services.unit_parser import find_unit

TimingFetcher = Callable[[str], Result[UnitTimingInfo, UnitTimingError]]

FLEET_METRIC_LABELS = (
    "count_units",
    "units_active",
    "units_inactive",
    "units_failed",
    "units_unknown",
    "units_excluded",
)


def unknown_verdict(message: str) -> Verdict:
    return Verdict(severity=Severity.UNKNOWN, message=message)


def partition_units(
    records: Sequence[UnitRecord], exclusions: Sequence[re.Pattern[str]] = ()
) -> UnitBuckets:
    """Split records into disjoint state buckets; exclusion is decided first."""
    buckets: dict[str, list[UnitRecord]] = {
        "active": [],
        "inactive": [],
        "failed": [],
        "unknown": [],
        "excluded": [],
    }
    for record in records:
        if is_excluded(record.name, exclusions):
            buckets["excluded"].append(record)
        elif record.active_state in ("active", "inactive", "failed"):
            buckets[record.active_state].append(record)
        else:
            buckets["unknown"].append(record)

    return UnitBuckets(**{key: tuple(value) for key, value in buckets.items()})


def evaluate_fleet(
    records: Sequence[UnitRecord], exclusions: Sequence[re.Pattern[str]] = ()
) -> Verdict:
    """
    Fleet mode: CRITICAL when any non-excluded unit has failed, OK otherwise.

    Bucket contents never produce WARNING or UNKNOWN here.
    """
    buckets = partition_units(records, exclusions)
    verdict = Verdict(message=f"{len(buckets.failed)} failed units!")
    if buckets.failed:
        verdict = verdict.escalate(Severity.CRITICAL)
    for unit in buckets.failed:
        verdict = verdict.append(f"\n{unit.name}: failed")

    counts = (
        len(records),
        len(buckets.active),
        len(buckets.inactive),
        len(buckets.failed),
        len(buckets.unknown),
        len(buckets.excluded),
    )
    labelled = list(zip(FLEET_METRIC_LABELS, counts, strict=True))
    logger.info("fleet_evaluated", **dict(labelled))
    return verdict.with_metrics(*(Metric.counter(label, count) for label, count in labelled))


def evaluate_single_unit(
    records: Sequence[UnitRecord],
    unit_name: str,
    thresholds: ActiveTimeThresholds | None = None,
    fetch_timing: TimingFetcher | None = None,
    clock: Callable[[], int] = monotonic_micros,
) -> Verdict:
    """
    Single-unit mode.

    The timing query only runs when the unit is active and a bound was given.
    """
    unit = find_unit(list(records), unit_name)
    if unit is None:
        return unknown_verdict(f"{unit_name} could not be found!")

    verdict = Verdict(message=f"{unit_name} is {unit.active_state}!")
    if unit.active_state == "failed":
        verdict = verdict.escalate(Severity.CRITICAL)

    if (
        unit.active_state != "active"
        or thresholds is None
        or not thresholds.requested
        or fetch_timing is None
    ):
        return verdict

    timing = fetch_timing(unit_name)
    if timing.is_err():
        logger.warning("unit_timing_unavailable", unit=unit_name, error=str(timing.unwrap_err()))
        return verdict.escalate(Severity.UNKNOWN).append(f" {timing.unwrap_err()}")

    finding = evaluate_active_time(timing.unwrap(), thresholds, clock())
    logger.debug(
        "active_time_evaluated",
        unit=unit_name,
        duration_seconds=finding.duration_seconds,
        severity=finding.severity.name,
    )
    return (
        verdict.escalate(finding.severity).append(finding.describe()).with_metrics(finding.metric)
    )


def _mount_subject(query: MountQuery, status: str) -> str:
    if query.device is not None and query.mountpoint is not None:
        return f"{query.device}{status} on {query.mountpoint}"
    return f"{query.device or query.mountpoint}{status}"


def evaluate_mount(
    records: Sequence[MountRecord], query: MountQuery, expected_fstype: str | None = None
) -> Verdict:
    """
    Mount mode: exactly one match is OK, none is CRITICAL, several is WARNING.

    With exactly one match, a filesystem type other than the expected one is
    CRITICAL whatever the count said.
    """
    matches = query.select(records)

    if len(matches) == 1:
        verdict = Verdict(message=_mount_subject(query, " is mounted"))
    elif not matches:
        verdict = Verdict(message=_mount_subject(query, " is not mounted"))
        verdict = verdict.escalate(Severity.CRITICAL)
    else:
        verdict = Verdict(message=_mount_subject(query, f" is mounted {len(matches)} times"))
        verdict = verdict.escalate(Severity.WARNING)

    if len(matches) == 1 and expected_fstype is not None:
        actual = matches[0].fstype
        if actual == expected_fstype:
            verdict = verdict.append(f" as {expected_fstype}")
        else:
            verdict = verdict.append(f" as {actual} (not {expected_fstype})")
            verdict = verdict.escalate(Severity.CRITICAL)

    for record in matches:
        verdict = verdict.append(f"\n* {record.describe()}")

    logger.info("mount_evaluated", matches=len(matches), severity=verdict.severity.name)
    return verdict


def render_verdict(prefix: str, verdict: Verdict) -> str:
    """
    Render the plugin output line.

    ``<PREFIX> <SEVERITY>: <message> |<metric> <metric> ...``; the metrics
    segment is left out when there are none.
    """
    line = f"{prefix} {verdict.severity.name}: {verdict.message}"
    if verdict.metrics:
        line += " |" + " ".join(metric.render() for metric in verdict.metrics)
    return line
