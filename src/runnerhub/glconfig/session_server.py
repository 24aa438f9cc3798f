"""The ``[session_server]`` table used for interactive web terminals."""

from __future__ import annotations

from typing import Annotated, Optional

from pydantic import NonNegativeInt

from .scalars import Url
from .section import ConfigSection, Emit


class SessionServer(ConfigSection):
    listen_address: Annotated[Optional[Url], Emit.IF_SET] = None
    advertise_address: Annotated[Optional[Url], Emit.IF_SET] = None
    # Seconds an idle terminal session stays open.
    session_timeout: NonNegativeInt = 1800
