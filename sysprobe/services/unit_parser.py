"""
Parsing of service-manager unit listings.

The listing is loosely tabular text (``systemctl list-units --all --full``):
a column header, one row per unit, then a legend and a summary footer. Rows
are extracted leniently; anything that does not look like a unit row is
dropped without complaint.
"""

import re

from sysprobe.domain.errors import UnitTimingError
from sysprobe.domain.models import UnitRecord, UnitTimingInfo
from sysprobe.services.probe_source import Result, logger

_WHITESPACE_RUN = re.compile(r"\s+")
# status glyphs; "*" and "x" replace them on non-UTF-8 terminals
_LEADING_MARKERS = re.compile(r"^[\u25cf\u25cb\u00d7\u21bb*x]+\s+|^[\u25cf\u25cb\u00d7\u21bb*]+")
_UNIT_NAME = re.compile(r"^\S*[^.\s]\.[a-z]+$")
_PROPERTY_LINE = re.compile(r"^(\S+?)=(.*)$")

UNIT_FIELD_COUNT = 5


def normalize_line(line: str) -> str:
    """Drop non-printable characters, collapse whitespace runs, trim both ends."""
    line = "".join(c for c in line if c.isprintable() or c.isspace())
    return _WHITESPACE_RUN.sub(" ", line).strip()


def _strip_markers(line: str) -> str:
    return _LEADING_MARKERS.sub("", line).lstrip()


def parse_unit_line(line: str) -> UnitRecord | None:
    """
    Parse one listing row into a UnitRecord.

    Returns None for header, legend, footer and blank lines.
    """
    line = _strip_markers(normalize_line(line))
    tokens = line.split(" ", UNIT_FIELD_COUNT - 1)
    if len(tokens) < UNIT_FIELD_COUNT - 1 or not all(tokens[: UNIT_FIELD_COUNT - 1]):
        return None

    name, load_state, active_state, sub_state = tokens[:4]
    if not _UNIT_NAME.match(name):
        return None

    return UnitRecord(
        name=name,
        load_state=load_state,
        active_state=active_state,
        sub_state=sub_state,
        description=tokens[4] if len(tokens) == UNIT_FIELD_COUNT else "",
    )


def parse_unit_listing(text: str) -> list[UnitRecord]:
    """Parse a whole listing, preserving row order. Never fails."""
    records = []
    dropped = 0
    for line in text.splitlines():
        record = parse_unit_line(line)
        if record is None:
            dropped += int(bool(line.strip()))
            continue
        records.append(record)

    logger.debug("unit_listing_parsed", records=len(records), dropped_lines=dropped)
    return records


def find_unit(records: list[UnitRecord], name: str) -> UnitRecord | None:
    """First record with exactly this name."""
    return next((r for r in records if r.name == name), None)


def parse_unit_properties(text: str) -> dict[str, str]:
    """Parse ``Key=Value`` lines of a property query; later keys win."""
    properties: dict[str, str] = {}
    for line in text.splitlines():
        match = _PROPERTY_LINE.match(normalize_line(line))
        if match and match.group(2):
            properties[match.group(1)] = match.group(2)
    return properties


def parse_unit_timing(name: str, text: str) -> Result[UnitTimingInfo, UnitTimingError]:
    """Build UnitTimingInfo from a property query, or explain why it cannot be built."""
    properties = parse_unit_properties(text)
    raw = properties.get("ActiveEnterTimestampMonotonic")
    if raw is None:
        return Result.err(UnitTimingError(f"{name} has no ActiveEnterTimestampMonotonic"))

    try:
        monotonic = int(raw)
    except ValueError:
        return Result.err(
            UnitTimingError(f"{name} has a malformed ActiveEnterTimestampMonotonic: {raw}")
        )
    if monotonic <= 0:
        return Result.err(UnitTimingError(f"{name} has never entered the active state"))

    return Result.ok(
        UnitTimingInfo(
            name=name,
            active_state=properties.get("ActiveState"),
            active_enter_timestamp=properties.get("ActiveEnterTimestamp"),
            active_enter_timestamp_monotonic=monotonic,
        )
    )
