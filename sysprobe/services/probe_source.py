"""
Raw text sources feeding the probe parsers.

Key patterns:
- Protocol-based dependency injection (parsers never know where text came from)
- Generic Result type for expected failures of the external process
- Structured logging of every collaborator call
"""

import subprocess
from collections.abc import Sequence
from typing import Generic, Protocol, TypeVar

import structlog

from sysprobe.domain.errors import ProbeSourceError

# Configure structured logging; plugin entry points reconfigure from AppConfig
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=False,
)

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Used where failure is part of normal operation: a missing binary, a mount
    line that does not fit the grammar, a unit without timing properties.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class RawTextSource(Protocol):
    """
    Protocol for anything that yields one multi-line text blob per probe run.

    Why Protocol over ABC: structural typing, trivial fakes in tests.
    """

    source_name: str

    def fetch(self) -> Result[str, ProbeSourceError]:
        """
        Produce the raw listing text.

        Returns:
            Result[str, ProbeSourceError]: the text (possibly empty) or the failure.
        """
        ...


class CommandTextSource:
    """
    Runs an external listing command once and returns its stdout.

    No retries and no timeout: the caller's scheduler owns both.
    """

    def __init__(self, command: Sequence[str], source_name: str | None = None) -> None:
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.source_name = source_name or self.command[0]
        self.logger = logger.bind(source=self.source_name)

    def fetch(self) -> Result[str, ProbeSourceError]:
        try:
            completed = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as e:
            self.logger.error("probe_source_failed", command=self.command, error=str(e))
            return Result.err(ProbeSourceError(f"could not run {self.source_name}: {e}"))

        if completed.returncode != 0:
            stderr = completed.stderr.strip()
            self.logger.error(
                "probe_source_failed",
                command=self.command,
                returncode=completed.returncode,
                stderr=stderr,
            )
            return Result.err(
                ProbeSourceError(
                    f"{self.source_name} exited with status {completed.returncode}"
                    + (f": {stderr}" if stderr else "")
                )
            )

        self.logger.debug(
            "probe_source_fetched", command=self.command, lines=completed.stdout.count("\n")
        )
        return Result.ok(completed.stdout)


class StaticTextSource:
    """Serves a fixed text blob, or a fixed failure; used for replays and tests."""

    def __init__(
        self, text: str = "", source_name: str = "static", error: ProbeSourceError | None = None
    ) -> None:
        self.text = text
        self.source_name = source_name
        self.error = error
        self.call_count = 0

    def fetch(self) -> Result[str, ProbeSourceError]:
        self.call_count += 1
        if self.error is not None:
            return Result.err(self.error)
        return Result.ok(self.text)
