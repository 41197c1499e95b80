"""
Domain models for state probes and their verdicts.

These models represent the core concepts shared by the unit and mount checks.
They use Pydantic for validation and are frozen: a probe run builds them once
from fresh input and throws them away after rendering.
"""

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class Severity(IntEnum):
    """Plugin severity levels; the numeric value is the process exit code."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3

    @classmethod
    def worst(cls, *severities: "Severity") -> "Severity":
        """Worst-wins combination (UNKNOWN ranks above CRITICAL)."""
        return cls(max(severities, default=cls.OK))


class Metric(BaseModel):
    """One performance-data entry: 'label'=value[unit];warn;crit;min;max"""

    model_config = ConfigDict(frozen=True)

    label: str = Field(min_length=1)
    value: int | float
    unit: str = ""
    warn: str = ""
    crit: str = ""
    min: int | float | None = None
    max: int | float | None = None

    @classmethod
    def counter(cls, label: str, value: int) -> "Metric":
        return cls(label=label, value=value, max=0)

    def render(self) -> str:
        bounds = ["" if b is None else str(b) for b in (self.min, self.max)]
        fields = [f"{self.value}{self.unit}", self.warn, self.crit, *bounds]
        return f"'{self.label}'=" + ";".join(fields)


class Verdict(BaseModel):
    """
    Aggregated outcome of one probe run.

    Evaluation steps never mutate a verdict; each returns a new one, so the
    value can be threaded through a fold of findings.
    """

    model_config = ConfigDict(frozen=True)

    severity: Severity = Severity.OK
    message: str = ""
    metrics: tuple[Metric, ...] = ()

    def escalate(self, severity: Severity) -> "Verdict":
        return self.model_copy(update={"severity": Severity.worst(self.severity, severity)})

    def append(self, text: str) -> "Verdict":
        return self.model_copy(update={"message": self.message + text})

    def with_metrics(self, *metrics: Metric) -> "Verdict":
        return self.model_copy(update={"metrics": self.metrics + metrics})


class UnitRecord(BaseModel):
    """One row of the service-manager unit inventory."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    load_state: str = Field(min_length=1)
    active_state: str = Field(min_length=1)
    sub_state: str = Field(min_length=1)
    description: str = ""


class UnitTimingInfo(BaseModel):
    """Timing properties of a single unit, read from a targeted property query."""

    model_config = ConfigDict(frozen=True)

    name: str
    active_state: str | None = None
    active_enter_timestamp: str | None = None
    active_enter_timestamp_monotonic: int = Field(ge=0)

    def active_duration_seconds(self, now_monotonic_us: int) -> int:
        """Whole seconds since the unit last entered the active state."""
        return int((now_monotonic_us - self.active_enter_timestamp_monotonic) / 1_000_000)


class MountRecord(BaseModel):
    """One row of the mount table; only ever built fully populated."""

    model_config = ConfigDict(frozen=True)

    device: str = Field(min_length=1)
    mountpoint: str = Field(min_length=1)
    fstype: str = Field(min_length=1, pattern=r"^\S+$")
    options: frozenset[str]

    def describe(self) -> str:
        return f"{self.device} on {self.mountpoint} as {self.fstype}"


class UnitBuckets(BaseModel):
    """Disjoint partition of a unit inventory by active state."""

    model_config = ConfigDict(frozen=True)

    active: tuple[UnitRecord, ...] = ()
    inactive: tuple[UnitRecord, ...] = ()
    failed: tuple[UnitRecord, ...] = ()
    unknown: tuple[UnitRecord, ...] = ()
    excluded: tuple[UnitRecord, ...] = ()

    @property
    def total(self) -> int:
        return (
            len(self.active)
            + len(self.inactive)
            + len(self.failed)
            + len(self.unknown)
            + len(self.excluded)
        )
