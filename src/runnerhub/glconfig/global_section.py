"""Top-level keys of ``config.toml``."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Optional

from pydantic import NonNegativeInt, PositiveInt

from .scalars import Duration, Url
from .section import ConfigSection, Emit


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"
    PANIC = "panic"


class LogFormat(str, Enum):
    RUNNER = "runner"
    TEXT = "text"
    JSON = "json"


class GlobalSection(ConfigSection):
    """Process-wide settings that gitlab-runner reads from the top of the file.

    ``check_interval`` and ``shutdown_timeout`` are seconds. ``connection_max_age``
    is a Golang duration.
    """

    concurrent: PositiveInt = 1
    log_level: LogLevel = LogLevel.ERROR
    log_format: LogFormat = LogFormat.JSON
    check_interval: NonNegativeInt = 3
    sentry_dsn: Annotated[Optional[Url], Emit.IF_SET] = None
    connection_max_age: Duration = Duration("15m")
    listen_address: Annotated[Optional[Url], Emit.IF_SET] = None
    shutdown_timeout: NonNegativeInt = 30
