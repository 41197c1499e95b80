"""
Tests for verdict aggregation in `sysprobe/services/verdicts.py`.

Covers:
- Worst-wins folding and metric rendering on the domain models
- Fleet mode bucketing, message and counters
- Single-unit mode with and without active-time bounds
- Mount mode count and filesystem verdicts
- Plugin line rendering
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sysprobe.domain.errors import UnitTimingError
from sysprobe.domain.models import (
    Metric,
    MountRecord,
    Severity,
    UnitRecord,
    UnitTimingInfo,
    Verdict,
)
from sysprobe.services.matching import MountQuery, compile_exclusions
from sysprobe.services.mount_parser import parse_mount_table
from sysprobe.services.probe_source import Result
from sysprobe.services.thresholds import ActiveTimeThresholds
from sysprobe.services.verdicts import (
    evaluate_fleet,
    evaluate_mount,
    evaluate_single_unit,
    partition_units,
    render_verdict,
)


def _unit(name: str, active_state: str) -> UnitRecord:
    return UnitRecord(
        name=name, load_state="loaded", active_state=active_state, sub_state="running"
    )


class TestDomainModels:
    def test_severity_order_puts_unknown_last(self) -> None:
        assert Severity.OK < Severity.WARNING < Severity.CRITICAL < Severity.UNKNOWN
        assert Severity.worst(Severity.CRITICAL, Severity.UNKNOWN) is Severity.UNKNOWN
        assert Severity.worst() is Severity.OK

    def test_verdict_escalation_never_lowers(self) -> None:
        verdict = Verdict().escalate(Severity.CRITICAL).escalate(Severity.WARNING)

        assert verdict.severity is Severity.CRITICAL

    def test_verdict_is_immutable(self) -> None:
        verdict = Verdict()

        with pytest.raises(ValueError, match="frozen"):
            verdict.severity = Severity.CRITICAL  # type: ignore

    def test_counter_metric_rendering(self) -> None:
        assert Metric.counter("units_failed", 1).render() == "'units_failed'=1;;;;0"


class TestFleetMode:
    def test_reference_fleet(self) -> None:
        records = [
            _unit("a.service", "active"),
            _unit("b.service", "active"),
            _unit("c.service", "active"),
            _unit("d.service", "inactive"),
            _unit("broken.service", "failed"),
        ]

        verdict = evaluate_fleet(records)

        assert verdict.severity is Severity.CRITICAL
        assert verdict.message == "1 failed units!\nbroken.service: failed"
        assert {m.label: m.value for m in verdict.metrics} == {
            "count_units": 5,
            "units_active": 3,
            "units_inactive": 1,
            "units_failed": 1,
            "units_unknown": 0,
            "units_excluded": 0,
        }
        assert [m.label for m in verdict.metrics] == [
            "count_units",
            "units_active",
            "units_inactive",
            "units_failed",
            "units_unknown",
            "units_excluded",
        ]

    def test_no_failures_is_ok_even_with_unknown_states(self) -> None:
        records = [_unit("a.service", "activating"), _unit("b.service", "reloading")]

        verdict = evaluate_fleet(records)

        assert verdict.severity is Severity.OK
        assert verdict.message == "0 failed units!"

    def test_excluded_failures_do_not_count(self) -> None:
        records = [_unit("a.service", "active"), _unit("flaky.service", "failed")]

        verdict = evaluate_fleet(records, compile_exclusions(["FLAKY"]))

        assert verdict.severity is Severity.OK
        counters = {m.label: m.value for m in verdict.metrics}
        assert counters["units_failed"] == 0
        assert counters["units_excluded"] == 1
        assert counters["count_units"] == 2

    def test_empty_inventory(self) -> None:
        verdict = evaluate_fleet([])

        assert verdict.severity is Severity.OK
        assert all(m.value == 0 for m in verdict.metrics)

    @given(
        states=st.lists(
            st.tuples(
                st.sampled_from(["active", "inactive", "failed", "activating", "deactivating"]),
                st.booleans(),
            ),
            max_size=40,
        )
    )
    def test_partition_is_exhaustive_and_disjoint(self, states: list[tuple[str, bool]]) -> None:
        """Property-based test: every record lands in exactly one bucket."""
        records = [
            _unit(f"{'skip-' if skip else ''}unit{i}.service", state)
            for i, (state, skip) in enumerate(states)
        ]

        buckets = partition_units(records, compile_exclusions(["^skip-"]))

        assert buckets.total == len(records)
        state_buckets = buckets.active + buckets.inactive + buckets.failed + buckets.unknown
        assert not {r.name for r in state_buckets} & {r.name for r in buckets.excluded}
        assert all(r.name.startswith("skip-") for r in buckets.excluded)
        assert len(buckets.excluded) == sum(1 for _, skip in states if skip)


class TestSingleUnitMode:
    RECORDS = [
        _unit("app.service", "active"),
        _unit("broken.service", "failed"),
        _unit("idle.service", "inactive"),
    ]

    @staticmethod
    def _fetcher(monotonic_us: int):
        calls: list[str] = []

        def fetch(name: str) -> Result[UnitTimingInfo, UnitTimingError]:
            calls.append(name)
            return Result.ok(
                UnitTimingInfo(name=name, active_enter_timestamp_monotonic=monotonic_us)
            )

        return fetch, calls

    def test_missing_unit_is_unknown(self) -> None:
        verdict = evaluate_single_unit(self.RECORDS, "ghost.service")

        assert verdict.severity is Severity.UNKNOWN
        assert verdict.message == "ghost.service could not be found!"

    @pytest.mark.parametrize(
        "name,severity,message",
        [
            ("app.service", Severity.OK, "app.service is active!"),
            ("broken.service", Severity.CRITICAL, "broken.service is failed!"),
            ("idle.service", Severity.OK, "idle.service is inactive!"),
        ],
    )
    def test_state_verdicts(self, name: str, severity: Severity, message: str) -> None:
        verdict = evaluate_single_unit(self.RECORDS, name)

        assert verdict.severity is severity
        assert verdict.message == message
        assert verdict.metrics == ()

    @pytest.mark.parametrize("critical,expected", [(120, Severity.CRITICAL), (60, Severity.OK)])
    def test_active_time_bounds(self, critical: int, expected: Severity) -> None:
        fetch, calls = self._fetcher(1_000_000)

        verdict = evaluate_single_unit(
            self.RECORDS,
            "app.service",
            thresholds=ActiveTimeThresholds(critical=critical),
            fetch_timing=fetch,
            clock=lambda: 91_000_000,
        )

        assert calls == ["app.service"]
        assert verdict.severity is expected
        assert verdict.message == (
            f"app.service is active! ActiveEnterTime {expected.name}, 00h01m30s ago."
        )
        assert [m.render() for m in verdict.metrics] == ["'activeTime'=90s;;;0;"]

    def test_timing_is_not_fetched_for_inactive_unit(self) -> None:
        fetch, calls = self._fetcher(1_000_000)

        verdict = evaluate_single_unit(
            self.RECORDS,
            "broken.service",
            thresholds=ActiveTimeThresholds(warning=10),
            fetch_timing=fetch,
        )

        assert calls == []
        assert verdict.severity is Severity.CRITICAL

    def test_timing_is_not_fetched_without_bounds(self) -> None:
        fetch, calls = self._fetcher(1_000_000)

        evaluate_single_unit(
            self.RECORDS, "app.service", thresholds=ActiveTimeThresholds(), fetch_timing=fetch
        )

        assert calls == []

    def test_timing_failure_is_unknown(self) -> None:
        def fetch(name: str) -> Result[UnitTimingInfo, UnitTimingError]:
            return Result.err(UnitTimingError(f"{name} has no ActiveEnterTimestampMonotonic"))

        verdict = evaluate_single_unit(
            self.RECORDS,
            "app.service",
            thresholds=ActiveTimeThresholds(warning=10),
            fetch_timing=fetch,
        )

        assert verdict.severity is Severity.UNKNOWN
        assert "has no ActiveEnterTimestampMonotonic" in verdict.message


class TestMountMode:
    @pytest.fixture
    def records(self, mount_table: str) -> list[MountRecord]:
        return parse_mount_table(mount_table).unwrap()

    def test_single_match_is_ok(self, records: list[MountRecord]) -> None:
        verdict = evaluate_mount(records, MountQuery(mountpoint="/srv/data"))

        assert verdict.severity is Severity.OK
        assert verdict.message == "/srv/data is mounted\n* /dev/sdb1 on /srv/data as xfs"

    def test_no_match_is_critical(self, records: list[MountRecord]) -> None:
        verdict = evaluate_mount(records, MountQuery(mountpoint="/backup"))

        assert verdict.severity is Severity.CRITICAL
        assert "is not mounted" in verdict.message

    def test_repeated_mount_is_warning(self, records: list[MountRecord]) -> None:
        verdict = evaluate_mount(records, MountQuery(mountpoint="/mnt/bind"))

        assert verdict.severity is Severity.WARNING
        assert verdict.message.startswith("/mnt/bind is mounted 3 times\n")
        assert verdict.message.count("\n* /dev/sdc1 on /mnt/bind as ext4") == 3

    def test_matching_fstype_is_ok(self, records: list[MountRecord]) -> None:
        verdict = evaluate_mount(records, MountQuery(mountpoint="/"), expected_fstype="ext4")

        assert verdict.severity is Severity.OK
        assert verdict.message.startswith("/ is mounted as ext4\n")

    def test_mismatched_fstype_is_critical(self, records: list[MountRecord]) -> None:
        verdict = evaluate_mount(
            records, MountQuery(device="/dev/sdb1"), expected_fstype="ext4"
        )

        assert verdict.severity is Severity.CRITICAL
        assert verdict.message.startswith("/dev/sdb1 is mounted as xfs (not ext4)")

    def test_fstype_is_ignored_when_mounted_several_times(
        self, records: list[MountRecord]
    ) -> None:
        verdict = evaluate_mount(
            records, MountQuery(mountpoint="/mnt/bind"), expected_fstype="xfs"
        )

        assert verdict.severity is Severity.WARNING

    def test_source_and_mountpoint_phrasing(self, records: list[MountRecord]) -> None:
        verdict = evaluate_mount(
            records, MountQuery(device="//192.168.163.25/share", mountpoint="/mnt/share")
        )

        assert verdict.severity is Severity.OK
        assert verdict.message.startswith("//192.168.163.25/share is mounted on /mnt/share\n")

    def test_mount_verdict_has_no_metrics(self, records: list[MountRecord]) -> None:
        assert evaluate_mount(records, MountQuery(mountpoint="/")).metrics == ()


class TestRenderVerdict:
    def test_without_metrics(self) -> None:
        verdict = Verdict(severity=Severity.CRITICAL, message="/x is not mounted")

        assert render_verdict("MOUNT", verdict) == "MOUNT CRITICAL: /x is not mounted"

    def test_metrics_follow_the_last_message_line(self) -> None:
        verdict = evaluate_fleet([_unit("a.service", "active"), _unit("b.service", "failed")])

        assert render_verdict("SYSTEMD", verdict) == (
            "SYSTEMD CRITICAL: 1 failed units!\nb.service: failed |"
            "'count_units'=2;;;;0 'units_active'=1;;;;0 'units_inactive'=0;;;;0 "
            "'units_failed'=1;;;;0 'units_unknown'=0;;;;0 'units_excluded'=0;;;;0"
        )
