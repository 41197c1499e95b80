"""
Parsing of the mount table as printed by util-linux ``mount``.

Each line has the shape ``<device> on <mountpoint> type <fstype> (<options>)``.
Device and mountpoint are free-form paths that may themselves contain the
words ``on`` and ``type``, so extraction anchors on the keywords instead of
splitting fields:

- device:     everything before the first `` on ``
- mountpoint: everything between the first `` on `` and the last `` type ``
- fstype:     the single token between `` type `` and `` (``
- options:    the comma separated text inside the trailing parentheses

Unlike the unit listing, a line that does not fit is fatal for the whole
table: it means the platform or output format is not the one this parser
understands.
"""

import re
from collections.abc import Callable
from enum import Enum

from sysprobe.domain.errors import MountParseError, UnsupportedGrammarError
from sysprobe.domain.models import MountRecord
from sysprobe.services.probe_source import Result, logger
from sysprobe.services.unit_parser import normalize_line

ON = " on "
TYPE = " type "
OPTIONS_OPEN = " ("
OPTIONS_CLOSE = ")"

_LINUX_SHAPE = re.compile(r"^.+ on .+ type .+ \(.*\)$")

LineParser = Callable[[str], Result[MountRecord, MountParseError]]


class MountGrammar(str, Enum):
    """Mount output variants; only LINUX has a parser."""

    LINUX = "linux"
    BSD = "bsd"


def validate_shape(line: str) -> Result[str, MountParseError]:
    if not _LINUX_SHAPE.match(line):
        return Result.err(MountParseError("unexpected line shape", line))
    return Result.ok(line)


def extract_device(line: str) -> Result[str, MountParseError]:
    device, sep, _ = line.partition(ON)
    if not sep or not device:
        return Result.err(MountParseError("no device before 'on'", line))
    return Result.ok(device)


def extract_mountpoint(line: str) -> Result[str, MountParseError]:
    start = line.find(ON)
    end = line.rfind(TYPE)
    mountpoint = line[start + len(ON) : end] if 0 <= start < end else ""
    if not mountpoint:
        return Result.err(MountParseError("no mountpoint between 'on' and 'type'", line))
    return Result.ok(mountpoint)


def extract_fstype(line: str) -> Result[str, MountParseError]:
    end = line.rfind(TYPE)
    if end < 0:
        return Result.err(MountParseError("no 'type' keyword", line))
    fstype, sep, _ = line[end + len(TYPE) :].partition(OPTIONS_OPEN)
    if not sep or not fstype or " " in fstype:
        return Result.err(MountParseError("no single filesystem token after 'type'", line))
    return Result.ok(fstype)


def extract_options(line: str) -> Result[frozenset[str], MountParseError]:
    end = line.rfind(TYPE)
    start = line.find(OPTIONS_OPEN, end if end >= 0 else 0)
    if start < 0 or not line.endswith(OPTIONS_CLOSE):
        return Result.err(MountParseError("no parenthesized option list", line))
    inner = line[start + len(OPTIONS_OPEN) : -len(OPTIONS_CLOSE)]
    return Result.ok(frozenset(opt for opt in inner.split(",") if opt))


def parse_linux_mount_line(line: str) -> Result[MountRecord, MountParseError]:
    """Parse one normalized line; every extraction must succeed."""
    shape = validate_shape(line)
    if shape.is_err():
        return Result.err(shape.unwrap_err())

    device = extract_device(line)
    mountpoint = extract_mountpoint(line)
    fstype = extract_fstype(line)
    options = extract_options(line)
    for step in (device, mountpoint, fstype, options):
        if step.is_err():
            return Result.err(step.unwrap_err())

    return Result.ok(
        MountRecord(
            device=device.unwrap(),
            mountpoint=mountpoint.unwrap(),
            fstype=fstype.unwrap(),
            options=options.unwrap(),
        )
    )


def select_line_parser(grammar: MountGrammar) -> LineParser:
    """
    Resolve the line parser for a grammar variant once per run.

    Raises:
        UnsupportedGrammarError: for every variant without a parser.
    """
    if grammar is MountGrammar.LINUX:
        return parse_linux_mount_line
    raise UnsupportedGrammarError(grammar.value)


def parse_mount_table(
    text: str, grammar: MountGrammar = MountGrammar.LINUX
) -> Result[list[MountRecord], MountParseError]:
    """
    Parse a whole mount table, preserving line order.

    The first line that does not fit the grammar fails the whole table; its
    1-based line number and text are carried on the error.
    """
    parse_line = select_line_parser(grammar)
    records: list[MountRecord] = []

    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = normalize_line(raw)
        if not line:
            continue
        result = parse_line(line)
        if result.is_err():
            error = result.unwrap_err()
            logger.error("mount_line_rejected", line_number=line_number, reason=error.reason)
            return Result.err(MountParseError(error.reason, line, line_number))
        records.append(result.unwrap())

    logger.debug("mount_table_parsed", records=len(records), grammar=grammar.value)
    return Result.ok(records)
