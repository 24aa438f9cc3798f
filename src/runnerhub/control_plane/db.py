"""Async database helpers for the runner registration store."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..common.schemas import GitLabRunner

LOGGER = structlog.get_logger("runnerhub.db")

metadata = MetaData()


gitlab_runners_table = Table(
    "gitlab_runners",
    metadata,
    # Keeps listings in insertion order.
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("uuid", String(length=36), nullable=False, unique=True),
    Column("id", BigInteger, nullable=False),
    Column("name", String(length=255), nullable=False),
    Column("url", Text, nullable=False),
    Column("token", String(length=64), nullable=False, unique=True),
    Column("token_obtained_at", DateTime(timezone=True), nullable=False),
    Column("docker_image", String(length=512), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class RunnerAlreadyExists(Exception):
    """Raised when a runner with the same uuid or token is already stored."""


def create_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    engine_kwargs: dict[str, object] = {
        "echo": False,
        "pool_pre_ping": True,
    }
    if url.get_backend_name() != "sqlite":
        engine_kwargs.update({"pool_size": 5, "max_overflow": 10, "pool_recycle": 1800})
    return create_async_engine(database_url, **engine_kwargs)


def ensure_sqlite_directory(database_url: str) -> None:
    """Create the directory of a file-backed SQLite database if it is missing."""

    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    directory = Path(url.database).parent
    if not directory.exists():
        LOGGER.warning("creating database directory", path=str(directory))
        directory.mkdir(parents=True, exist_ok=True)


async def ensure_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


def _runner_values(runner: GitLabRunner) -> dict:
    return {
        "uuid": str(runner.uuid),
        "id": runner.id,
        "name": runner.name,
        "url": runner.url.format(),
        "token": runner.token.format(),
        "token_obtained_at": runner.token_obtained_at.root,
        "docker_image": runner.docker_image,
        "updated_at": datetime.now(timezone.utc),
    }


def _row_to_runner(row) -> GitLabRunner:
    return GitLabRunner(
        uuid=UUID(row.uuid),
        id=row.id,
        name=row.name,
        url=row.url,
        token=row.token,
        token_obtained_at=row.token_obtained_at,
        docker_image=row.docker_image,
    )


async def insert_runner(session: AsyncSession, runner: GitLabRunner) -> None:
    try:
        await session.execute(insert(gitlab_runners_table).values(**_runner_values(runner)))
    except IntegrityError as exc:
        LOGGER.info("duplicate runner rejected", uuid=str(runner.uuid), runner_id=runner.id)
        raise RunnerAlreadyExists(str(runner.uuid)) from exc


async def get_runner(session: AsyncSession, runner_uuid: UUID) -> Optional[GitLabRunner]:
    result = await session.execute(
        select(gitlab_runners_table).where(gitlab_runners_table.c.uuid == str(runner_uuid))
    )
    row = result.first()
    return _row_to_runner(row) if row else None


async def list_runners(session: AsyncSession) -> list[GitLabRunner]:
    result = await session.execute(select(gitlab_runners_table).order_by(gitlab_runners_table.c.seq))
    return [_row_to_runner(row) for row in result]


async def update_runner(session: AsyncSession, runner: GitLabRunner) -> bool:
    """Overwrite the stored runner with the same uuid. Returns False when there is none."""

    values = _runner_values(runner)
    values.pop("uuid")
    try:
        result = await session.execute(
            update(gitlab_runners_table)
            .where(gitlab_runners_table.c.uuid == str(runner.uuid))
            .values(**values)
        )
    except IntegrityError as exc:
        raise RunnerAlreadyExists(str(runner.uuid)) from exc
    return result.rowcount > 0


async def delete_runner(session: AsyncSession, runner_uuid: UUID) -> bool:
    result = await session.execute(
        delete(gitlab_runners_table).where(gitlab_runners_table.c.uuid == str(runner_uuid))
    )
    return result.rowcount > 0
