"""A single ``[[runners]]`` entry and its mapping from stored registrations."""

from __future__ import annotations

from typing import Annotated, ClassVar, Optional, Protocol

import coolname
import structlog
from pydantic import Field, PositiveInt

from .docker import CACHE_VOLUME, DockerSettings
from .errors import IncompatibleUpdate
from .executors import DockerExecutor, Executor
from .scalars import Timestamp, Token, Url
from .section import ConfigSection, Emit

LOGGER = structlog.get_logger("runnerhub.glconfig")

# Lets jobs talk to the host's Docker daemon (docker-in-docker without dind).
DOCKER_SOCKET_VOLUME = "/var/run/docker.sock:/var/run/docker.sock"


def generate_runner_name() -> str:
    """Return a random ``adjective-noun`` name such as ``brave-otter``."""
    return coolname.generate_slug(2)


class RunnerEntity(Protocol):
    """What a stored registration must expose to be turned into a runner entry."""

    id: int
    name: str
    url: Url
    token: Token
    token_obtained_at: Optional[Timestamp]
    docker_image: str


class RunnerRecord(ConfigSection):
    """One runner registration as gitlab-runner expects it in ``config.toml``."""

    flatten: ClassVar[tuple[str, ...]] = ("executor",)

    name: str = Field(default_factory=generate_runner_name, min_length=1)
    url: Url
    id: PositiveInt
    token: Token
    token_obtained_at: Timestamp = Field(default_factory=Timestamp.now)
    token_expires_at: Timestamp = Field(default_factory=Timestamp.zero)
    limit: Annotated[int, Emit.IF_NOT_DEFAULT] = 0
    request_concurrency: Annotated[PositiveInt, Emit.IF_NOT_DEFAULT] = 1
    output_limit: Annotated[PositiveInt, Emit.IF_NOT_DEFAULT] = 4096
    shell: Annotated[Optional[str], Emit.IF_SET] = None
    builds_dir: Annotated[Optional[str], Emit.IF_SET] = None
    cache_dir: Annotated[Optional[str], Emit.IF_SET] = None
    clone_url: Annotated[Optional[Url], Emit.IF_SET] = None
    pre_build_script: Annotated[Optional[str], Emit.IF_SET] = None
    post_build_script: Annotated[Optional[str], Emit.IF_SET] = None
    environment: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    executor: Executor = Field(default_factory=DockerExecutor)

    @classmethod
    def from_entity(cls, entity: RunnerEntity) -> RunnerRecord:
        """Build the entry for a stored registration.

        The job image comes from the entity. Every job container also gets the
        host Docker socket mounted next to the cache volume.
        """

        docker = DockerSettings().replace(
            image=entity.docker_image,
            volumes=(DOCKER_SOCKET_VOLUME, CACHE_VOLUME),
        )
        values = {
            "id": entity.id,
            "name": entity.name,
            "url": entity.url,
            "token": entity.token,
            "executor": DockerExecutor(docker=docker),
        }
        if entity.token_obtained_at is not None:
            values["token_obtained_at"] = entity.token_obtained_at
        return cls(**values)

    def compatible_with(self, other: RunnerRecord) -> bool:
        return self.id == other.id

    def ensure_compatible(self, other: RunnerRecord) -> None:
        if not self.compatible_with(other):
            LOGGER.info("rejected runner update", current_id=self.id, update_id=other.id)
            raise IncompatibleUpdate(self.id, other.id)
