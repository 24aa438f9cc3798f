"""Settings of the Docker executor, rendered as ``[runners.docker]``.

Defaults follow what ``gitlab-runner register`` writes, which is not always what
the GitLab Runner documentation lists. The CLI also writes some keys even when
they hold their default (``tls_verify``, ``cpu_shares``, ``volumes``...) while
leaving others out until they are set, so every field states its own
:class:`~runnerhub.glconfig.section.Emit` rule below.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Iterable, Optional, Union

from pydantic import ConfigDict, Field, NonNegativeInt, RootModel

from .scalars import SecurityOption
from .section import ConfigSection, Emit

DEFAULT_IMAGE = "alpine:latest"
CACHE_VOLUME = "/cache"


class PullPolicyValue(str, Enum):
    ALWAYS = "always"
    NEVER = "never"
    IF_NOT_PRESENT = "if-not-present"


class PullPolicy(RootModel[Optional[Union[PullPolicyValue, tuple[PullPolicyValue, ...]]]]):
    """Image pull policy: unset, a single policy, or a list tried in order.

    The three shapes render differently (no key, a string, an array), so they are
    kept apart instead of being folded into an optional list.
    """

    model_config = ConfigDict(frozen=True)

    @classmethod
    def none(cls) -> PullPolicy:
        return cls(None)

    @classmethod
    def one(cls, value: PullPolicyValue | str) -> PullPolicy:
        return cls(PullPolicyValue(value))

    @classmethod
    def many(cls, values: Iterable[PullPolicyValue | str]) -> PullPolicy:
        return cls(tuple(PullPolicyValue(value) for value in values))

    @property
    def is_none(self) -> bool:
        return self.root is None

    @property
    def values(self) -> tuple[PullPolicyValue, ...]:
        if self.root is None:
            return ()
        if isinstance(self.root, tuple):
            return self.root
        return (self.root,)


class Service(ConfigSection):
    """An additional container started next to the job (``[[runners.docker.services]]``)."""

    name: str = Field(min_length=1)
    alias: Annotated[Optional[str], Emit.IF_SET] = None
    entrypoint: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    command: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    environment: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()


class DockerSettings(ConfigSection):
    # Written by the CLI even at their defaults.
    tls_verify: bool = False
    image: str = Field(default=DEFAULT_IMAGE, min_length=1)
    privileged: bool = False
    disable_entrypoint_overwrite: bool = False
    oom_kill_disable: bool = False
    disable_cache: bool = False
    volumes: tuple[str, ...] = (CACHE_VOLUME,)
    shm_size: NonNegativeInt = 0
    network_mtu: NonNegativeInt = 0
    cpu_shares: NonNegativeInt = 1024
    # -1 disables waiting for services.
    wait_for_services_timeout: Annotated[int, Field(ge=-1)] = 30
    # Only the none variant is left out.
    pull_policy: Annotated[PullPolicy, Emit.IF_SET] = PullPolicy.one(PullPolicyValue.ALWAYS)

    host: Annotated[Optional[str], Emit.IF_SET] = None
    hostname: Annotated[Optional[str], Emit.IF_SET] = None
    tls_cert_path: Annotated[Optional[str], Emit.IF_SET] = None
    cpuset_cpus: Annotated[Optional[str], Emit.IF_SET] = None
    cpuset_mems: Annotated[Optional[str], Emit.IF_SET] = None
    cpus: Annotated[Optional[str], Emit.IF_SET] = None
    memory: Annotated[Optional[str], Emit.IF_SET] = None
    memory_swap: Annotated[Optional[str], Emit.IF_SET] = None
    memory_reservation: Annotated[Optional[str], Emit.IF_SET] = None
    cache_dir: Annotated[Optional[str], Emit.IF_SET] = None
    network_mode: Annotated[Optional[str], Emit.IF_SET] = None
    mac_address: Annotated[Optional[str], Emit.IF_SET] = None
    userns_mode: Annotated[Optional[str], Emit.IF_SET] = None
    user: Annotated[Optional[str], Emit.IF_SET] = None
    gpus: Annotated[Optional[str], Emit.IF_SET] = None
    helper_image: Annotated[Optional[str], Emit.IF_SET] = None
    helper_image_flavor: Annotated[Optional[str], Emit.IF_SET] = None
    runtime: Annotated[Optional[str], Emit.IF_SET] = None
    isolation: Annotated[Optional[str], Emit.IF_SET] = None
    volume_driver: Annotated[Optional[str], Emit.IF_SET] = None
    services_privileged: Annotated[Optional[bool], Emit.IF_SET] = None
    services_limit: Annotated[Optional[int], Emit.IF_SET] = None
    service_memory: Annotated[Optional[str], Emit.IF_SET] = None
    service_memory_swap: Annotated[Optional[str], Emit.IF_SET] = None
    service_memory_reservation: Annotated[Optional[str], Emit.IF_SET] = None
    service_cpuset_cpus: Annotated[Optional[str], Emit.IF_SET] = None
    service_cpu_shares: Annotated[Optional[int], Emit.IF_SET] = None
    service_cpus: Annotated[Optional[str], Emit.IF_SET] = None

    oom_score_adjust: Annotated[int, Emit.IF_NOT_DEFAULT] = 0
    enable_ipv6: Annotated[bool, Emit.IF_NOT_DEFAULT] = False

    allowed_images: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    allowed_privileged_images: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    allowed_pull_policies: Annotated[tuple[PullPolicyValue, ...], Emit.IF_NOT_EMPTY] = ()
    allowed_services: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    allowed_privileged_services: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    cap_add: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    cap_drop: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    devices: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    device_cgroup_rules: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    dns: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    dns_search: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    extra_hosts: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    group_add: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    links: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    security_opt: Annotated[tuple[SecurityOption, ...], Emit.IF_NOT_EMPTY] = ()
    volumes_from: Annotated[tuple[str, ...], Emit.IF_NOT_EMPTY] = ()
    sysctls: Annotated[dict[str, str], Emit.IF_NOT_EMPTY] = Field(default_factory=dict)
    ulimit: Annotated[dict[str, str], Emit.IF_NOT_EMPTY] = Field(default_factory=dict)
    container_labels: Annotated[dict[str, str], Emit.IF_NOT_EMPTY] = Field(default_factory=dict)
    tmpfs: Annotated[dict[str, str], Emit.IF_NOT_EMPTY] = Field(default_factory=dict)
    services_tmpfs: Annotated[dict[str, str], Emit.IF_NOT_EMPTY] = Field(default_factory=dict)
    services: Annotated[tuple[Service, ...], Emit.IF_NOT_EMPTY] = ()
