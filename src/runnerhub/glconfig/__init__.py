"""Typed model of the GitLab Runner ``config.toml`` file.

Runner entries are built from stored registrations, collected into a
:class:`ConfigDocument` and rendered to the TOML that ``gitlab-runner`` reads on
startup.
"""

from .docker import DockerSettings, PullPolicy, PullPolicyValue, Service
from .document import ConfigBuilder, ConfigDocument
from .errors import (
    DurationParseError,
    GlconfigError,
    GrammarViolation,
    IncompatibleUpdate,
    SecurityOptionParseError,
    SerializationError,
    TimestampParseError,
    TokenParseError,
    UrlParseError,
)
from .executors import DockerExecutor, Executor, KubernetesExecutor, ShellExecutor, SshExecutor
from .global_section import GlobalSection, LogFormat, LogLevel
from .runner import RunnerEntity, RunnerRecord, generate_runner_name
from .scalars import Duration, SecurityOption, Timestamp, Token, Url
from .section import ConfigSection, Emit
from .session_server import SessionServer

__all__ = [
    "ConfigBuilder",
    "ConfigDocument",
    "ConfigSection",
    "DockerExecutor",
    "DockerSettings",
    "Duration",
    "DurationParseError",
    "Emit",
    "Executor",
    "GlconfigError",
    "GlobalSection",
    "GrammarViolation",
    "IncompatibleUpdate",
    "KubernetesExecutor",
    "LogFormat",
    "LogLevel",
    "PullPolicy",
    "PullPolicyValue",
    "RunnerEntity",
    "RunnerRecord",
    "SecurityOption",
    "SecurityOptionParseError",
    "SerializationError",
    "Service",
    "SessionServer",
    "ShellExecutor",
    "SshExecutor",
    "Timestamp",
    "TimestampParseError",
    "Token",
    "TokenParseError",
    "Url",
    "UrlParseError",
    "generate_runner_name",
]
