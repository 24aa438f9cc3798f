from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from runnerhub.glconfig import (
    Duration,
    DurationParseError,
    GlobalSection,
    GrammarViolation,
    SecurityOption,
    SecurityOptionParseError,
    SessionServer,
    Timestamp,
    TimestampParseError,
    Token,
    TokenParseError,
    Url,
    UrlParseError,
)


@pytest.mark.parametrize("value", ["0", "15m", "1h", "1h15m", "300ms", "-1h", "+2h45m10s", "10us", "10µs", "3ns"])
def test_duration_keeps_literal_text(value: str) -> None:
    duration = Duration.parse(value)
    assert duration.format() == value
    assert str(duration) == value
    assert duration.as_str() == value


@pytest.mark.parametrize("value", ["", "15", "m", "1.5h", "15 m", "1h\n", "1d", "00", "١٥m"])
def test_duration_rejects_invalid_input(value: str) -> None:
    with pytest.raises(DurationParseError) as exc_info:
        Duration.parse(value)
    assert exc_info.value.value == value
    assert isinstance(exc_info.value, ValueError)


def test_token_length_bounds_are_inclusive() -> None:
    assert Token.parse("glrt-" + "a" * 16).format() == "glrt-" + "a" * 16
    assert Token.parse("glrt-" + "Z" * 32).format() == "glrt-" + "Z" * 32
    for length in (15, 33):
        with pytest.raises(TokenParseError):
            Token.parse("glrt-" + "a" * length)


@pytest.mark.parametrize(
    "value",
    ["", "glrt-", "GLRT-0123456789abcdef", "glpat-0123456789abcdef", "glrt-0123456789abcde!", " glrt-0123456789abcdef"],
)
def test_token_rejects_invalid_input(value: str) -> None:
    with pytest.raises(TokenParseError):
        Token.parse(value)


def test_url_is_stored_normalized() -> None:
    url = Url.parse("https://gitlab.example.com")
    assert url.format() == "https://gitlab.example.com/"
    assert Url.parse(url.format()) == url
    assert url.host == "gitlab.example.com"


@pytest.mark.parametrize("value", ["", "gitlab.example.com", "not a url", "https://"])
def test_url_rejects_invalid_input(value: str) -> None:
    with pytest.raises(UrlParseError):
        Url.parse(value)


def test_security_option_splits_on_first_colon() -> None:
    option = SecurityOption.parse("seccomp:/etc/docker/seccomp:strict.json")
    assert option.key == "seccomp"
    assert option.value == "/etc/docker/seccomp:strict.json"
    assert option.format() == "seccomp:/etc/docker/seccomp:strict.json"
    assert SecurityOption.from_parts("label", "level:s0:c100") == SecurityOption.parse("label:level:s0:c100")


@pytest.mark.parametrize("value", ["", "seccomp", ":unconfined", "seccomp:", "seccomp: unconfined", "sec comp:x"])
def test_security_option_rejects_invalid_input(value: str) -> None:
    with pytest.raises(SecurityOptionParseError):
        SecurityOption.parse(value)


def test_grammar_errors_share_a_base_class() -> None:
    for scalar in (Duration, Token, Url, SecurityOption):
        with pytest.raises(GrammarViolation):
            scalar.parse("")


def test_timestamp_formats_in_utc_with_whole_seconds() -> None:
    stamp = Timestamp.parse("2024-01-01T02:00:00.750+02:00")
    assert stamp.format() == "2024-01-01T00:00:00Z"
    assert Timestamp.parse(stamp.format()) == stamp


def test_timestamp_treats_naive_input_as_utc() -> None:
    assert Timestamp(datetime(2024, 5, 6, 7, 8, 9)).format() == "2024-05-06T07:08:09Z"


def test_timestamp_zero_is_golang_zero_time() -> None:
    assert Timestamp.zero().format() == "0001-01-01T00:00:00Z"
    assert Timestamp.parse("0001-01-01T00:00:00Z") == Timestamp.zero()


def test_timestamp_now_is_current() -> None:
    before = datetime.now(timezone.utc).replace(microsecond=0)
    stamp = Timestamp.now()
    assert before <= stamp.root <= before + timedelta(seconds=5)


@pytest.mark.parametrize(
    "value",
    ["", "yesterday", "2024-13-01T00:00:00Z", "0001-01-01T00:00:00+01:00", "9999-12-31T23:59:59-01:00"],
)
def test_timestamp_rejects_invalid_input(value: str) -> None:
    with pytest.raises(TimestampParseError):
        Timestamp.parse(value)


def test_scalars_validate_as_model_fields() -> None:
    section = GlobalSection(connection_max_age="1h", sentry_dsn="https://sentry.example.com/1")
    assert section.connection_max_age == Duration("1h")
    assert section.to_toml_dict()["sentry_dsn"] == "https://sentry.example.com/1"

    with pytest.raises(ValidationError) as exc_info:
        GlobalSection(connection_max_age="soon")
    assert "invalid Golang duration" in str(exc_info.value)


def test_scalars_are_immutable() -> None:
    duration = Duration.parse("15m")
    with pytest.raises(ValidationError):
        duration.root = "1h"  # type: ignore[misc]


def test_out_of_range_timestamp_is_a_validation_error(make_runner) -> None:
    with pytest.raises(ValidationError) as exc_info:
        make_runner(token_obtained_at="9999-12-31T23:59:59-01:00")
    assert "invalid RFC 3339 timestamp" in str(exc_info.value)


@pytest.mark.parametrize(
    ("section", "field"),
    [
        (GlobalSection, "check_interval"),
        (GlobalSection, "shutdown_timeout"),
        (SessionServer, "session_timeout"),
    ],
)
def test_second_counts_cannot_be_negative(section, field: str) -> None:
    assert section(**{field: 0}).to_toml_dict()[field] == 0
    with pytest.raises(ValidationError):
        section(**{field: -1})
