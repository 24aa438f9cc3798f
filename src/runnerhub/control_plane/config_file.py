"""Regenerates ``config.toml`` from the stored runners."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..glconfig import ConfigDocument, RunnerRecord
from . import db

LOGGER = structlog.get_logger("runnerhub.config_file")


class ConfigWriter:
    """Rewrites the runner configuration file after every change to the store.

    Rebuilds are serialized so two concurrent requests never interleave writes to
    the same file. The file is written from a worker thread; a cancelled
    caller still holds the lock until that write has finished.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    async def rebuild(self, session: AsyncSession) -> ConfigDocument:
        async with self._lock:
            runners = await db.list_runners(session)
            document = ConfigDocument.builder().with_runners(
                RunnerRecord.from_entity(runner) for runner in runners
            ).build()
            write = asyncio.ensure_future(asyncio.to_thread(self._write, document))
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                # The thread keeps writing; release the lock only once it is done.
                await write
                raise
        LOGGER.info("runner configuration rebuilt", path=str(self.path), runners=len(document.runners))
        return document

    def _write(self, document: ConfigDocument) -> Path:
        return document.write(self.path)
