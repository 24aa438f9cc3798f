"""Uvicorn entrypoint for the runnerhub API."""

from __future__ import annotations

import uvicorn

from ..common.settings import ServiceSettings
from .app import create_app

app = create_app()


def run() -> None:
    settings = ServiceSettings()
    uvicorn.run(
        app,
        host=settings.bind_host,
        port=settings.bind_port,
        log_config=None,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
