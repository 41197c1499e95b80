"""
Nagios / Icinga compatible plugin checking systemd units.

Without --unit every unit is bucketed by active state and any failed unit is
CRITICAL. With --unit the named unit is checked alone, optionally against
minimum active-time bounds.
"""

import argparse
import sys
from collections.abc import Callable

from pydantic import ValidationError

from sysprobe.config import AppConfig, configure_logging, get_config
from sysprobe.domain.errors import ProbeError, UnitTimingError, UsageError
from sysprobe.domain.models import Severity, UnitRecord, UnitTimingInfo, Verdict
from sysprobe.plugins.common import PluginArgumentParser, emit, show_records
from sysprobe.services.matching import compile_exclusions
from sysprobe.services.probe_source import CommandTextSource, RawTextSource, Result, logger
from sysprobe.services.thresholds import ActiveTimeThresholds, monotonic_micros
from sysprobe.services.unit_parser import parse_unit_listing, parse_unit_timing
from sysprobe.services.verdicts import (
    TimingFetcher,
    evaluate_fleet,
    evaluate_single_unit,
    unknown_verdict,
)

DEFAULT_PREFIX = "SYSTEMD"

PropertySourceFactory = Callable[[str], RawTextSource]


def build_parser() -> PluginArgumentParser:
    parser = PluginArgumentParser(
        prog="check_systemd",
        description="Nagios / Icinga compatible monitoring plugin to check systemd "
        "for failed units",
    )
    parser.add_argument("-u", "--unit", help="Specific full unit name to be checked")
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=[],
        metavar="REGEX",
        help="Exclude units using regex. May be specified multiple times. "
        "Does not apply if --unit is being used.",
    )
    parser.add_argument(
        "-l", "--legacy", action="store_true", help="[Unused] Kept for backwards compatibility"
    )
    parser.add_argument(
        "-w",
        "--warning",
        type=int,
        metavar="SECONDS",
        help="Minimum seconds since the unit's ActiveEnterTimestamp; requires --unit",
    )
    parser.add_argument(
        "-c",
        "--critical",
        type=int,
        metavar="SECONDS",
        help="Minimum seconds since the unit's ActiveEnterTimestamp; requires --unit",
    )
    return parser


def _timing_fetcher(factory: PropertySourceFactory) -> TimingFetcher:
    def fetch(unit_name: str) -> Result[UnitTimingInfo, UnitTimingError]:
        raw = factory(unit_name).fetch()
        if raw.is_err():
            return Result.err(UnitTimingError(str(raw.unwrap_err())))
        return parse_unit_timing(unit_name, raw.unwrap())

    return fetch


def _show_units(records: list[UnitRecord]) -> None:
    show_records(
        "systemd units",
        ("UNIT", "LOAD", "ACTIVE", "SUB", "DESCRIPTION"),
        (
            (r.name, r.load_state, r.active_state, r.sub_state, r.description)
            for r in records
        ),
    )


def run(
    args: argparse.Namespace,
    config: AppConfig,
    listing_source: RawTextSource | None = None,
    property_source_factory: PropertySourceFactory | None = None,
    clock: Callable[[], int] = monotonic_micros,
) -> Verdict:
    """
    Evaluate one probe run and return its verdict.

    Raises:
        UsageError: for invalid flags, before anything is probed.
    """
    configure_logging(config.logging, verbose=args.verbose)

    try:
        thresholds = ActiveTimeThresholds(warning=args.warning, critical=args.critical)
    except ValidationError as e:
        raise UsageError("--warning and --critical take a non-negative number of seconds") from e
    if thresholds.requested and not args.unit:
        raise UsageError("--warning and --critical are only available together with --unit")
    exclusions = compile_exclusions(args.exclude)

    source = listing_source or CommandTextSource(
        config.probe.list_units_command(), source_name="systemctl list-units"
    )
    listing = source.fetch()
    if listing.is_err():
        # an unreadable inventory degrades to an empty one
        logger.warning("unit_listing_unavailable", error=str(listing.unwrap_err()))
    records = parse_unit_listing(listing.unwrap_or(""))

    if args.verbose:
        _show_units(records)

    if not args.unit:
        return evaluate_fleet(records, exclusions)

    factory = property_source_factory or (
        lambda unit: CommandTextSource(
            config.probe.show_unit_command(unit), source_name="systemctl show"
        )
    )
    return evaluate_single_unit(
        records,
        args.unit,
        thresholds=thresholds,
        fetch_timing=_timing_fetcher(factory),
        clock=clock,
    )


def main(
    argv: list[str] | None = None,
    listing_source: RawTextSource | None = None,
    property_source_factory: PropertySourceFactory | None = None,
    clock: Callable[[], int] = monotonic_micros,
) -> int:
    try:
        config = get_config()
    except ValidationError as e:
        return emit(DEFAULT_PREFIX, unknown_verdict(f"invalid configuration: {e}"))
    prefix = config.probe.unit_check_prefix

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        if args.help:
            parser.print_help()
            return int(Severity.UNKNOWN)
        verdict = run(args, config, listing_source, property_source_factory, clock)
    except ProbeError as e:
        logger.error("unit_check_aborted", error=str(e))
        verdict = unknown_verdict(str(e))
    return emit(prefix, verdict)


if __name__ == "__main__":
    sys.exit(main())
