"""
Configuration management with environment variable support and validation.

Design principles:
- Validation at startup (fail fast, before any probe runs)
- Type safety with Pydantic
- Defaults that reproduce the stock plugin behavior on a Linux host
"""

import logging
import os
import sys
from functools import lru_cache
from typing import Any, Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

TIMING_PROPERTIES = ("ActiveState", "ActiveEnterTimestamp", "ActiveEnterTimestampMonotonic")


class ProbeConfig(BaseModel):
    """External commands and output prefixes for the two checks."""

    systemctl_path: str = Field(default="systemctl", min_length=1, description="systemctl binary")
    mount_path: str = Field(default="mount", min_length=1, description="mount binary")
    unit_check_prefix: str = Field(default="SYSTEMD", description="Prefix of the unit check line")
    mount_check_prefix: str = Field(default="MOUNT", description="Prefix of the mount check line")

    @field_validator("unit_check_prefix", "mount_check_prefix")
    def validate_prefix(cls, v):
        if not v or any(c.isspace() for c in v):
            raise ValueError("check prefix must be a single non-empty token")
        return v

    def list_units_command(self) -> list[str]:
        return [self.systemctl_path, "list-units", "--all", "--full", "--no-pager"]

    def show_unit_command(self, unit: str) -> list[str]:
        return [self.systemctl_path, "show", unit, f"--property={','.join(TIMING_PROPERTIES)}"]

    def mount_command(self) -> list[str]:
        return [self.mount_path]


class LoggingConfig(BaseModel):
    """Logging configuration. Logs always go to stderr."""

    level: LogLevel = Field(default="WARNING", description="Logging level")
    format: Literal["json", "console"] = Field(default="console", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    probe: ProbeConfig
    logging: LoggingConfig


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(
            LogLevel,
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "WARNING",
        )

    def _format_to_literal(val: str) -> Literal["json", "console"]:
        return "json" if val.strip().lower() == "json" else "console"

    probe_config = ProbeConfig(
        systemctl_path=os.getenv("SYSPROBE_SYSTEMCTL", "systemctl"),
        mount_path=os.getenv("SYSPROBE_MOUNT", "mount"),
        unit_check_prefix=os.getenv("SYSPROBE_UNIT_PREFIX", "SYSTEMD"),
        mount_check_prefix=os.getenv("SYSPROBE_MOUNT_PREFIX", "MOUNT"),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("SYSPROBE_LOG_LEVEL", "WARNING")),
        format=_format_to_literal(os.getenv("SYSPROBE_LOG_FORMAT", "console")),
    )

    return AppConfig(probe=probe_config, logging=logging_config)


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def configure_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Route structlog through stdlib logging on stderr at the configured level."""
    level = logging.DEBUG if verbose else getattr(logging, config.level)
    logging.basicConfig(stream=sys.stderr, level=level, format="%(message)s", force=True)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if config.format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        # ConsoleRenderer formats exceptions itself
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
