"""
Predicates applied to parsed records: name exclusion and mount field match.
"""

import re
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, model_validator

from sysprobe.domain.errors import UsageError
from sysprobe.domain.models import MountRecord


def compile_exclusions(patterns: Iterable[str] | None) -> list[re.Pattern[str]]:
    """Compile user-supplied exclusion regexes, case-insensitive."""
    compiled = []
    for pattern in patterns or ():
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as e:
            raise UsageError(f"invalid exclude pattern {pattern!r}: {e}") from e
    return compiled


def is_excluded(name: str, exclusions: Sequence[re.Pattern[str]]) -> bool:
    """True if any pattern matches anywhere in the name."""
    return any(pattern.search(name) for pattern in exclusions)


class MountQuery(BaseModel):
    """
    Field-equality query over mount records.

    Unset fields are wildcards; set fields must match exactly (case-sensitive).
    A query must pin down at least the device or the mountpoint.
    """

    model_config = ConfigDict(frozen=True)

    device: str | None = None
    mountpoint: str | None = None
    fstype: str | None = None

    @model_validator(mode="after")
    def require_selector(self) -> "MountQuery":
        if self.device is None and self.mountpoint is None:
            raise ValueError("either a mountpoint or a source has to be given")
        return self

    def matches(self, record: MountRecord) -> bool:
        return (
            (self.device is None or record.device == self.device)
            and (self.mountpoint is None or record.mountpoint == self.mountpoint)
            and (self.fstype is None or record.fstype == self.fstype)
        )

    def select(self, records: Iterable[MountRecord]) -> list[MountRecord]:
        return [record for record in records if self.matches(record)]
