"""Application configuration shared by the runnerhub service and CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import structlog
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = structlog.get_logger("runnerhub.settings")

DEFAULT_DATABASE_PATH = "/etc/runrs/database.sqlite"
DEFAULT_CONFIG_PATH = Path("/etc/gitlab-runner/config.toml")


def env_field(default, env_name: str):
    return Field(default, validation_alias=env_name)


class ServiceSettings(BaseSettings):
    """Runtime settings for the runner registration API."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = env_field(f"sqlite+aiosqlite:///{DEFAULT_DATABASE_PATH}", "RUNNERHUB_DATABASE_URL")
    config_path: Path = env_field(DEFAULT_CONFIG_PATH, "RUNNERHUB_CONFIG_PATH")
    jwt_secret: SecretStr = env_field(..., "RUNNERHUB_JWT_SECRET")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = env_field("WARNING", "RUNNERHUB_LOG_LEVEL")
    log_format: Literal["json", "plain"] = env_field("json", "RUNNERHUB_LOG_FORMAT")
    request_timeout_seconds: float = env_field(15.0, "RUNNERHUB_REQUEST_TIMEOUT")
    bind_host: str = env_field("0.0.0.0", "RUNNERHUB_BIND_HOST")
    bind_port: int = env_field(3000, "RUNNERHUB_BIND_PORT")
    otel_exporter_endpoint: Optional[str] = env_field(None, "RUNNERHUB_OTEL_EXPORTER_ENDPOINT")
    otel_exporter_headers: Optional[str] = env_field(None, "RUNNERHUB_OTEL_EXPORTER_HEADERS")
    otel_sampler_ratio: float = env_field(0.1, "RUNNERHUB_OTEL_SAMPLER_RATIO")

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalise_database_url(cls, value):
        # Plain paths such as /var/lib/runnerhub/db.sqlite mean a local SQLite file.
        if isinstance(value, str) and "://" not in value:
            return f"sqlite+aiosqlite:///{value}"
        return value

    @field_validator("log_format", mode="before")
    @classmethod
    def _lowercase_log_format(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _uppercase_log_level(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


def init_config_path(path: Path) -> Path:
    """Make sure ``path`` exists so gitlab-runner can start before any runner is registered."""

    parent = path.parent
    if not parent.exists():
        LOGGER.warning("creating runner config directory", path=str(parent))
        parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        LOGGER.warning("creating empty runner config file", path=str(path))
        path.touch()
    return path
