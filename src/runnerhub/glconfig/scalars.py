"""Validated scalar types used throughout the runner configuration file.

Every scalar wraps a single value that is checked once, when it enters the system,
and cannot be changed afterwards. Each type exposes ``parse`` (raising a typed
:class:`~runnerhub.glconfig.errors.GrammarViolation`) and ``format``, which always
round-trips: ``T.parse(value.format()) == value``.

The types are pydantic root models, so they can be used directly as field types in
request bodies and configuration sections; they validate from and serialize to
plain strings.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import ClassVar, Self

import structlog
from pydantic import AnyUrl, ConfigDict, RootModel, TypeAdapter, ValidationError, field_serializer, field_validator

from .errors import (
    DurationParseError,
    GrammarViolation,
    SecurityOptionParseError,
    TimestampParseError,
    TokenParseError,
    UrlParseError,
)

LOGGER = structlog.get_logger("runnerhub.glconfig")

# Golang's time.ParseDuration accepts both the micro sign and the greek mu.
DURATION_PATTERN = r"[+-]?([0-9]+(h|m|s|ms|us|µs|μs|ns))+|0"
TOKEN_PREFIX = "glrt-"
TOKEN_PATTERN = rf"{TOKEN_PREFIX}[A-Za-z0-9_-]{{16,32}}"
SECURITY_OPTION_PATTERN = r"(?P<key>[^:\s]+):(?P<value>\S+)"

_ANY_URL = TypeAdapter(AnyUrl)


class GrammarScalar(RootModel[str]):
    """String wrapper whose value must fully match ``pattern``."""

    model_config = ConfigDict(frozen=True)

    pattern: ClassVar[re.Pattern[str]]
    error: ClassVar[type[GrammarViolation]] = GrammarViolation

    @field_validator("root")
    @classmethod
    def _check_grammar(cls, value: str) -> str:
        if cls.pattern.fullmatch(value) is None:
            LOGGER.debug("rejected scalar value", kind=cls.__name__, value=value)
            raise cls.error(value)
        return value

    @classmethod
    def parse(cls, value: str) -> Self:
        try:
            return cls(value)
        except ValidationError as exc:
            raise cls.error(value) from exc

    def format(self) -> str:
        return self.root

    def as_str(self) -> str:
        return self.root

    def __str__(self) -> str:
        return self.root


class Duration(GrammarScalar):
    """A duration in the format accepted by Golang's ``time.ParseDuration``.

    Examples are ``15m``, ``1h`` and ``1h15m``, plus the literal ``0``. The text is
    stored as given; it is never converted to a number of seconds.
    """

    pattern = re.compile(DURATION_PATTERN)
    error = DurationParseError


class Token(GrammarScalar):
    """Runner authentication token as handed out by GitLab (``glrt-...``)."""

    pattern = re.compile(TOKEN_PATTERN)
    error = TokenParseError


class SecurityOption(GrammarScalar):
    """A Docker ``--security-opt`` entry in ``key:value`` form.

    The first colon separates key from value; the value keeps any further colons,
    e.g. ``seccomp:/etc/docker/seccomp:strict.json`` has key ``seccomp``.
    """

    pattern = re.compile(SECURITY_OPTION_PATTERN)
    error = SecurityOptionParseError

    @property
    def key(self) -> str:
        return self.root.split(":", 1)[0]

    @property
    def value(self) -> str:
        return self.root.split(":", 1)[1]

    @classmethod
    def from_parts(cls, key: str, value: str) -> Self:
        return cls.parse(f"{key}:{value}")


class Url(RootModel[str]):
    """An absolute URL, stored in its normalized serialization."""

    model_config = ConfigDict(frozen=True)

    @field_validator("root")
    @classmethod
    def _normalize(cls, value: str) -> str:
        try:
            return str(_ANY_URL.validate_python(value))
        except ValidationError as exc:
            LOGGER.debug("rejected scalar value", kind=cls.__name__, value=value)
            raise UrlParseError(value) from exc

    @classmethod
    def parse(cls, value: str) -> Self:
        try:
            return cls(value)
        except ValidationError as exc:
            raise UrlParseError(value) from exc

    @property
    def host(self) -> str | None:
        return _ANY_URL.validate_python(self.root).host

    def format(self) -> str:
        return self.root

    def as_str(self) -> str:
        return self.root

    def __str__(self) -> str:
        return self.root


class Timestamp(RootModel[datetime]):
    """UTC timestamp with whole-second precision, written as ``2024-01-01T00:00:00Z``.

    Used for ``token_obtained_at`` and ``token_expires_at``. These keys are missing
    from the GitLab Runner documentation, but ``gitlab-runner register`` writes both.
    """

    model_config = ConfigDict(frozen=True)

    @field_validator("root")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        try:
            return value.astimezone(UTC).replace(microsecond=0)
        except OverflowError as exc:
            # Offsets that push the instant outside years 1..9999.
            LOGGER.debug("rejected scalar value", kind=cls.__name__, value=value.isoformat())
            raise TimestampParseError(value.isoformat()) from exc

    @field_serializer("root")
    def _serialize(self, value: datetime) -> str:
        return _format_timestamp(value)

    @classmethod
    def now(cls) -> Self:
        return cls(datetime.now(UTC))

    @classmethod
    def zero(cls) -> Self:
        """Golang's zero time, which gitlab-runner uses for tokens that never expire."""
        return cls(datetime(1, 1, 1, tzinfo=UTC))

    @classmethod
    def parse(cls, value: str) -> Self:
        try:
            parsed = datetime.fromisoformat(value)
        except (TypeError, ValueError) as exc:
            LOGGER.debug("rejected scalar value", kind=cls.__name__, value=value)
            raise TimestampParseError(value) from exc
        try:
            return cls(parsed)
        except ValidationError as exc:
            raise TimestampParseError(value) from exc

    def format(self) -> str:
        return _format_timestamp(self.root)

    def as_str(self) -> str:
        return self.format()

    def __str__(self) -> str:
        return self.format()


def _format_timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds").replace("+00:00", "Z")
