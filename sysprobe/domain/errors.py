"""
Error taxonomy for probe runs.

Every error here ends a run as UNKNOWN (exit code 3) once it reaches a plugin
entry point. Lookup failures are not errors; they are ordinary verdicts.
"""


class ProbeError(Exception):
    """Base class for all probe failures."""


class ProbeSourceError(ProbeError):
    """The external state-listing process could not produce output."""


class UsageError(ProbeError):
    """Invalid invocation, reported before any probing happens."""


class UnitTimingError(ProbeError):
    """The timing property query returned nothing usable."""


class UnsupportedGrammarError(ProbeError):
    """A mount grammar variant was requested that has no parser."""

    def __init__(self, grammar: str) -> None:
        super().__init__(f"{grammar} mount output is not supported")
        self.grammar = grammar


class MountParseError(ProbeError):
    """A mount line does not fit the expected shape."""

    def __init__(self, reason: str, line: str, line_number: int | None = None) -> None:
        location = f"line {line_number}" if line_number is not None else "line"
        super().__init__(f"invalid mount output ({reason}) at {location}: {line}")
        self.reason = reason
        self.line = line
        self.line_number = line_number
