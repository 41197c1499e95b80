"""
Nagios / Icinga compatible plugin checking a mount.

Select the mount by mountpoint, by mounted source, or both; optionally
require a filesystem type. Only util-linux ``mount`` output is understood.
"""

import argparse
import sys

from pydantic import ValidationError

from sysprobe.config import AppConfig, configure_logging, get_config
from sysprobe.domain.errors import ProbeError, UsageError
from sysprobe.domain.models import MountRecord, Severity, Verdict
from sysprobe.plugins.common import PluginArgumentParser, emit, show_records
from sysprobe.services.matching import MountQuery
from sysprobe.services.mount_parser import MountGrammar, parse_mount_table, select_line_parser
from sysprobe.services.probe_source import CommandTextSource, RawTextSource, logger
from sysprobe.services.verdicts import evaluate_mount, unknown_verdict

DEFAULT_PREFIX = "MOUNT"


def build_parser() -> PluginArgumentParser:
    parser = PluginArgumentParser(
        prog="check_mount",
        description="Check a mount by mountpoint, mounted source or both, "
        "optionally verifying the filesystem type. Either -m or -s has to be given.",
    )
    parser.add_argument("-m", "--mountpoint", help="Mountpoint (e.g. /mnt/datashare)")
    parser.add_argument(
        "-s", "--source", help="Mounted source (e.g. /dev/sdb or //192.168.163.25/share)"
    )
    parser.add_argument("-f", "--fs", help="Filesystem (e.g. ext4, nfs, cifs, ...)")
    parser.add_argument(
        "--bsd", action="store_true", help="Evaluate bsd mount output instead of linux"
    )
    return parser


def _build_query(args: argparse.Namespace) -> MountQuery:
    try:
        return MountQuery(device=args.source, mountpoint=args.mountpoint)
    except ValidationError as e:
        raise UsageError("Please specify either mountpoint or source to check!") from e


def _show_mounts(records: list[MountRecord]) -> None:
    show_records(
        "mount table",
        ("DEVICE", "MOUNTPOINT", "TYPE", "OPTIONS"),
        ((r.device, r.mountpoint, r.fstype, ",".join(sorted(r.options))) for r in records),
    )


def run(
    args: argparse.Namespace, config: AppConfig, source: RawTextSource | None = None
) -> Verdict:
    """
    Evaluate one probe run and return its verdict.

    Raises:
        UsageError: when neither --mountpoint nor --source was given.
        UnsupportedGrammarError: for --bsd, before mount is run.
        MountParseError: when any mount line does not fit the grammar.
    """
    configure_logging(config.logging, verbose=args.verbose)

    query = _build_query(args)
    grammar = MountGrammar.BSD if args.bsd else MountGrammar.LINUX
    select_line_parser(grammar)

    source = source or CommandTextSource(config.probe.mount_command(), source_name="mount")
    output = source.fetch()
    if output.is_err():
        return unknown_verdict(f"mount output unavailable: {output.unwrap_err()}")
    text = output.unwrap()
    if not text.strip():
        return unknown_verdict("mount returned no output")

    records = parse_mount_table(text, grammar).unwrap()
    if args.verbose:
        _show_mounts(records)

    return evaluate_mount(records, query, expected_fstype=args.fs)


def main(argv: list[str] | None = None, source: RawTextSource | None = None) -> int:
    try:
        config = get_config()
    except ValidationError as e:
        return emit(DEFAULT_PREFIX, unknown_verdict(f"invalid configuration: {e}"))
    prefix = config.probe.mount_check_prefix

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        if args.help:
            parser.print_help()
            return int(Severity.UNKNOWN)
        verdict = run(args, config, source)
    except ProbeError as e:
        logger.error("mount_check_aborted", error=str(e))
        verdict = unknown_verdict(str(e))
    return emit(prefix, verdict)


if __name__ == "__main__":
    sys.exit(main())
