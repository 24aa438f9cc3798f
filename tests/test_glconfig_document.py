from __future__ import annotations

import os
import stat
import tomllib

import pytest

from runnerhub.glconfig import (
    ConfigDocument,
    GlobalSection,
    LogLevel,
    RunnerRecord,
    SerializationError,
    SessionServer,
)
from runnerhub.glconfig import document as document_module
from runnerhub.glconfig.runner import DOCKER_SOCKET_VOLUME

DEFAULT_CONFIG = """\
concurrent = 1
log_level = "error"
log_format = "json"
check_interval = 3
connection_max_age = "15m"
shutdown_timeout = 30

[session_server]
session_timeout = 1800
"""


@pytest.fixture
def example_document(make_runner) -> ConfigDocument:
    entity = make_runner(
        id=42,
        url="https://gitlab.example.com/",
        token="glrt-0123456789abcdef____",
        docker_image="alpine:latest",
    )
    return ConfigDocument.builder().with_runners([RunnerRecord.from_entity(entity)]).build()


def test_default_document_renders_only_global_and_session_server() -> None:
    rendered = ConfigDocument.builder().with_runners([]).build().render()
    assert rendered.decode("utf-8") == DEFAULT_CONFIG
    assert b"[[runners]]" not in rendered


def test_single_runner_end_to_end(example_document: ConfigDocument) -> None:
    rendered = example_document.render().decode("utf-8")
    assert rendered.count("[[runners]]") == 1
    assert "[runners.docker]" in rendered

    parsed = tomllib.loads(rendered)
    (runner,) = parsed["runners"]
    assert runner["id"] == 42
    assert runner["url"] == "https://gitlab.example.com/"
    assert runner["token"] == "glrt-0123456789abcdef____"
    assert runner["token_expires_at"] == "0001-01-01T00:00:00Z"
    assert runner["executor"] == "docker"
    assert runner["docker"]["image"] == "alpine:latest"
    assert runner["docker"]["volumes"] == [DOCKER_SOCKET_VOLUME, "/cache"]
    assert runner["docker"]["cpu_shares"] == 1024
    assert runner["docker"]["pull_policy"] == "always"
    assert "cpus" not in runner["docker"]


def test_sections_are_rendered_in_file_order(example_document: ConfigDocument) -> None:
    rendered = example_document.render().decode("utf-8")
    assert rendered.index("concurrent = 1") < rendered.index("[session_server]")
    assert rendered.index("shutdown_timeout = 30") < rendered.index("[session_server]")
    assert rendered.index("[session_server]") < rendered.index("[[runners]]")
    assert rendered.index("[[runners]]") < rendered.index("[runners.docker]")


def test_rendering_round_trips_through_a_toml_parser(make_runner) -> None:
    records = [RunnerRecord.from_entity(make_runner()) for _ in range(3)]
    document = ConfigDocument.builder().with_runners(records).build()
    assert tomllib.loads(document.render().decode("utf-8")) == document.to_toml_dict()


def test_runner_order_is_preserved(make_runner) -> None:
    records = [RunnerRecord.from_entity(make_runner(id=runner_id)) for runner_id in (9, 3, 5)]
    parsed = tomllib.loads(ConfigDocument.builder().with_runners(records).build().render().decode("utf-8"))
    assert [runner["id"] for runner in parsed["runners"]] == [9, 3, 5]


def test_rendering_is_idempotent(example_document: ConfigDocument) -> None:
    assert example_document.render() == example_document.render()
    rebuilt = ConfigDocument.builder().with_runners(example_document.runners).build()
    assert rebuilt.render() == example_document.render()


def test_builder_accepts_custom_sections() -> None:
    document = (
        ConfigDocument.builder()
        .with_global_section(GlobalSection(concurrent=4, log_level=LogLevel.INFO, listen_address="http://0.0.0.0:9252"))
        .with_session_server(SessionServer(listen_address="http://0.0.0.0:8093", session_timeout=600))
        .build()
    )
    parsed = tomllib.loads(document.render().decode("utf-8"))
    assert parsed["concurrent"] == 4
    assert parsed["log_level"] == "info"
    assert parsed["listen_address"] == "http://0.0.0.0:9252/"
    assert parsed["session_server"] == {"listen_address": "http://0.0.0.0:8093/", "session_timeout": 600}
    assert "sentry_dsn" not in parsed


def test_write_creates_parent_directories(tmp_path, example_document: ConfigDocument) -> None:
    target = tmp_path / "etc" / "gitlab-runner" / "config.toml"
    written = example_document.write(target)
    assert written == target
    assert target.read_bytes() == example_document.render()
    assert sorted(os.listdir(target.parent)) == ["config.toml"]


def test_write_replaces_existing_file(tmp_path, example_document: ConfigDocument) -> None:
    target = tmp_path / "config.toml"
    target.write_text("stale = true\n")
    example_document.write(target)
    assert "stale" not in target.read_text()


def test_write_gives_new_file_default_mode(tmp_path, example_document: ConfigDocument) -> None:
    target = tmp_path / "config.toml"
    example_document.write(target)
    assert stat.S_IMODE(target.stat().st_mode) == document_module.DEFAULT_FILE_MODE


def test_write_keeps_mode_of_existing_file(tmp_path, example_document: ConfigDocument) -> None:
    target = tmp_path / "config.toml"
    target.write_text("")
    target.chmod(0o640)
    example_document.write(target)
    assert stat.S_IMODE(target.stat().st_mode) == 0o640


def test_write_to_unwritable_path_raises_os_error(tmp_path, example_document: ConfigDocument) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("")
    with pytest.raises(OSError):
        example_document.write(blocker / "config.toml")


def test_failed_write_removes_temporary_file(tmp_path, monkeypatch, example_document: ConfigDocument) -> None:
    def fail_replace(src, dst):  # noqa: ANN001
        raise OSError("disk full")

    monkeypatch.setattr(document_module.os, "replace", fail_replace)
    with pytest.raises(OSError):
        example_document.write(tmp_path / "config.toml")
    assert os.listdir(tmp_path) == []


def test_writer_failure_is_reported_as_serialization_error(monkeypatch, example_document: ConfigDocument) -> None:
    def broken_dumps(obj, **kwargs):  # noqa: ANN001
        raise TypeError("unsupported value")

    monkeypatch.setattr(document_module.tomli_w, "dumps", broken_dumps)
    with pytest.raises(SerializationError):
        example_document.render()
