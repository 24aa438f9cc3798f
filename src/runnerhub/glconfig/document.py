"""The whole ``config.toml`` document and its TOML rendering."""

from __future__ import annotations

import contextlib
import os
import stat
import tempfile
from pathlib import Path
from typing import Annotated, ClassVar, Iterable

import structlog
import tomli_w
from pydantic import Field

from .errors import SerializationError
from .global_section import GlobalSection
from .runner import RunnerRecord
from .section import ConfigSection, Emit
from .session_server import SessionServer

LOGGER = structlog.get_logger("runnerhub.glconfig")

# Mode of newly created files; mkstemp alone would give 0600.
DEFAULT_FILE_MODE = 0o644


class ConfigDocument(ConfigSection):
    """Global settings at the top level, then ``[session_server]``, then ``[[runners]]``."""

    flatten: ClassVar[tuple[str, ...]] = ("global_section",)

    global_section: GlobalSection = Field(default_factory=GlobalSection)
    session_server: SessionServer = Field(default_factory=SessionServer)
    runners: Annotated[tuple[RunnerRecord, ...], Emit.IF_NOT_EMPTY] = ()

    @staticmethod
    def builder() -> ConfigBuilder:
        return ConfigBuilder()

    def render(self) -> bytes:
        """Serialize the document to UTF-8 TOML.

        The output only depends on the document, so rendering the same document
        twice gives identical bytes.
        """

        try:
            text = tomli_w.dumps(self.to_toml_dict())
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"cannot render runner configuration: {exc}") from exc
        data = text.encode("utf-8")
        LOGGER.debug("rendered runner configuration", runners=len(self.runners), size=len(data))
        return data

    def write(self, path: str | os.PathLike[str]) -> Path:
        """Render the document and atomically replace ``path`` with it.

        Missing parent directories are created. The bytes go to a temporary file
        next to the target, which is then renamed over it, so readers never see a
        partially written file. An existing file keeps its permission bits; a new one
        gets ``DEFAULT_FILE_MODE``. Failures propagate as :class:`OSError`.
        """

        target = Path(path)
        data = self.render()
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = stat.S_IMODE(target.stat().st_mode) if target.exists() else DEFAULT_FILE_MODE
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, target)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise
        LOGGER.info("wrote runner configuration", path=str(target), runners=len(self.runners))
        return target


class ConfigBuilder:
    """Collects the parts of a :class:`ConfigDocument`; unset parts keep their defaults."""

    def __init__(self) -> None:
        self._runners: tuple[RunnerRecord, ...] = ()
        self._global_section = GlobalSection()
        self._session_server = SessionServer()

    def with_runners(self, runners: Iterable[RunnerRecord]) -> ConfigBuilder:
        self._runners = tuple(runners)
        return self

    def with_global_section(self, section: GlobalSection) -> ConfigBuilder:
        self._global_section = section
        return self

    def with_session_server(self, section: SessionServer) -> ConfigBuilder:
        self._session_server = section
        return self

    def build(self) -> ConfigDocument:
        return ConfigDocument(
            global_section=self._global_section,
            session_server=self._session_server,
            runners=self._runners,
        )
