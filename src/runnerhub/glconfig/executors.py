"""Executor variants a runner can use, discriminated by the ``executor`` key.

Only Docker carries settings. The other variants render just their tag; their
tables are not modelled.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field

from .docker import DockerSettings
from .section import ConfigSection


class ShellExecutor(ConfigSection):
    executor: Literal["shell"] = "shell"


class DockerExecutor(ConfigSection):
    executor: Literal["docker"] = "docker"
    docker: DockerSettings = Field(default_factory=DockerSettings)


class SshExecutor(ConfigSection):
    executor: Literal["ssh"] = "ssh"


class KubernetesExecutor(ConfigSection):
    executor: Literal["kubernetes"] = "kubernetes"


Executor = Annotated[
    Union[ShellExecutor, DockerExecutor, SshExecutor, KubernetesExecutor],
    Field(discriminator="executor"),
]
