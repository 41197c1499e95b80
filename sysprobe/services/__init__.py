"""
Core services for the probes.

This package contains the text sources, the two listing parsers, the record
predicates, the active-time thresholds and the verdict aggregation.
"""

from .mount_parser import MountGrammar, parse_mount_table, select_line_parser
from .probe_source import CommandTextSource, RawTextSource, Result, StaticTextSource
from .unit_parser import parse_unit_listing, parse_unit_timing
from .verdicts import (
    evaluate_fleet,
    evaluate_mount,
    evaluate_single_unit,
    partition_units,
    render_verdict,
)

__all__ = [
    "RawTextSource",
    "CommandTextSource",
    "StaticTextSource",
    "Result",
    "MountGrammar",
    "parse_mount_table",
    "select_line_parser",
    "parse_unit_listing",
    "parse_unit_timing",
    "evaluate_fleet",
    "evaluate_mount",
    "evaluate_single_unit",
    "partition_units",
    "render_verdict",
]
