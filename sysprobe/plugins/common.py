"""
Pieces shared by the plugin entry points: argument parsing that never exits
with argparse's own status, output of the plugin line, and verbose record
tables on stderr.
"""

import argparse
from collections.abc import Iterable, Sequence
from typing import NoReturn

from rich.console import Console
from rich.table import Table
from rich.text import Text

from sysprobe.domain.errors import UsageError
from sysprobe.domain.models import Verdict
from sysprobe.services.verdicts import render_verdict

stderr_console = Console(stderr=True)


class PluginArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose errors become UsageError (exit 3) instead of exit 2."""

    def __init__(self, *args, **kwargs) -> None:
        kwargs.setdefault("add_help", False)
        super().__init__(*args, **kwargs)
        self.add_argument("-h", "--help", action="store_true", help="Print this message")
        self.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def emit(prefix: str, verdict: Verdict) -> int:
    """Print the plugin line to stdout and return the exit code."""
    print(render_verdict(prefix, verdict))
    return int(verdict.severity)


def show_records(title: str, columns: Sequence[str], rows: Iterable[Sequence[str]]) -> None:
    table = Table(title=title, show_lines=False)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(Text(cell) for cell in row))
    stderr_console.print(table)
