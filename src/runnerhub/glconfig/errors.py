"""Error types raised by the GitLab Runner configuration model."""

from __future__ import annotations


class GlconfigError(Exception):
    """Base class for configuration model errors."""


class GrammarViolation(GlconfigError, ValueError):
    """Raised when a scalar value does not match its grammar."""

    grammar = "value"

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"invalid {self.grammar}: {value!r}")


class DurationParseError(GrammarViolation):
    """Raised for strings that are not Golang durations (15m, 1h, 1h15m, ...)."""

    grammar = "Golang duration"


class TokenParseError(GrammarViolation):
    """Raised for strings that are not runner authentication tokens."""

    grammar = "runner token"


class UrlParseError(GrammarViolation):
    """Raised for strings that are not absolute URLs."""

    grammar = "URL"


class SecurityOptionParseError(GrammarViolation):
    """Raised for strings that are not key:value security options."""

    grammar = "security option"


class TimestampParseError(GrammarViolation):
    """Raised for strings that are not RFC 3339 timestamps."""

    grammar = "RFC 3339 timestamp"


class IncompatibleUpdate(GlconfigError):
    """Raised when an update targets a runner with a different identity."""

    def __init__(self, current: object, update: object) -> None:
        self.current = current
        self.update = update
        super().__init__(f"cannot update runner {current!r} with runner {update!r}")


class SerializationError(GlconfigError, RuntimeError):
    """Raised when a configuration document cannot be rendered to TOML."""
