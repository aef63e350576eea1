# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Models for defining services: ports, mounts, environment, health checks,
resource limits and the many optional container knobs Compose exposes.

All models are frozen. Edits replace whole values through ``model_copy``.
"""
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class RestartPolicy(str, Enum):
    """
    Restart policies a service may declare. ``NONE`` means "not set".
    """
    NONE = "none"
    NO = "no"
    ALWAYS = "always"
    ON_FAILURE = "on-failure"
    UNLESS_STOPPED = "unless-stopped"


class Protocol(str, Enum):
    """Transport protocol suffix of a port mapping."""
    NONE = "none"
    TCP = "tcp"
    UDP = "udp"


class SyntaxFlag(str, Enum):
    """
    Which of the two equivalent Compose shapes a list-like field renders as.
    Only affects output, never content.
    """
    ARRAY = "array"
    DICT = "dict"


class TriState(str, Enum):
    """
    Optional boolean where "absent" differs from ``false``.
    """
    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def from_value(cls, value) -> "TriState":
        """
        Builds a TriState from a parsed document value.

        :param value: ``None`` for absent, anything else is coerced to bool.
        :return: The matching TriState.
        """
        if value is None:
            return cls.UNSET
        if isinstance(value, str):
            return cls.TRUE if value.strip().lower() in ("true", "yes", "1", "on") else cls.FALSE
        return cls.TRUE if value else cls.FALSE

    def as_bool(self) -> Optional[bool]:
        if self is TriState.UNSET:
            return None
        return self is TriState.TRUE


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class KeyValue(_Frozen):
    key: str = ""
    value: str = ""


class PortMapping(_Frozen):
    """
    A published port. ``host`` may be empty for container-only ports and may
    carry an interface address (``127.0.0.1:8080``).
    """
    host: str = ""
    container: str = ""
    protocol: Protocol = Protocol.NONE


class VolumeMapping(_Frozen):
    """
    A mount. ``host`` is a path or a named volume; empty for anonymous volumes.
    """
    host: str = ""
    container: str = ""
    read_only: bool = False


class Ulimit(_Frozen):
    name: str = ""
    soft: str = ""
    hard: str = ""


class Healthcheck(_Frozen):
    """
    Health check settings. ``test`` is kept in its internal string form: a
    JSON array or free text that the assembler re-tokenizes.
    """
    test: str = ""
    interval: str = ""
    timeout: str = ""
    retries: str = ""
    start_period: str = ""
    start_interval: str = ""


class ResourceSpec(_Frozen):
    cpus: str = ""
    memory: str = ""


class DeployResources(_Frozen):
    limits: ResourceSpec = Field(default_factory=ResourceSpec)
    reservations: ResourceSpec = Field(default_factory=ResourceSpec)


class DeployConfig(_Frozen):
    resources: DeployResources = Field(default_factory=DeployResources)


class ServiceConfig(_Frozen):
    """
    The full definition of a single service as edited in the builder.
    """
    # Identity
    name: str = ""
    image: str = ""
    container_name: str = ""

    # Process
    command: str = ""
    entrypoint: str = ""
    restart: RestartPolicy = RestartPolicy.NONE
    user: str = ""
    working_dir: str = ""

    # Networking
    ports: List[PortMapping] = []
    expose: List[str] = []
    networks: List[str] = []
    network_mode: str = ""
    extra_hosts: List[str] = []
    dns: List[str] = []

    # Storage
    volumes: List[VolumeMapping] = []
    volumes_syntax: SyntaxFlag = SyntaxFlag.ARRAY
    tmpfs: List[str] = []

    # Environment
    environment: List[KeyValue] = []
    environment_syntax: SyntaxFlag = SyntaxFlag.ARRAY
    env_file: str = ""

    # Metadata
    labels: List[KeyValue] = []
    labels_syntax: SyntaxFlag = SyntaxFlag.ARRAY

    # Security and kernel knobs
    privileged: TriState = TriState.UNSET
    read_only: TriState = TriState.UNSET
    cap_add: List[str] = []
    cap_drop: List[str] = []
    security_opt: List[str] = []
    sysctls: List[KeyValue] = []
    sysctls_syntax: SyntaxFlag = SyntaxFlag.DICT
    devices: List[str] = []
    ulimits: List[Ulimit] = []
    shm_size: str = ""

    # Lifecycle
    depends_on: List[str] = []
    healthcheck: Optional[Healthcheck] = None
    init: TriState = TriState.UNSET
    stop_grace_period: str = ""
    stop_signal: str = ""

    # Terminal
    tty: TriState = TriState.UNSET
    stdin_open: TriState = TriState.UNSET

    # Namespaces
    hostname: str = ""
    domainname: str = ""
    mac_address: str = ""
    ipc_mode: str = ""
    pid: str = ""
    uts: str = ""
    cgroup_parent: str = ""
    isolation: str = ""

    # Resources
    deploy: Optional[DeployConfig] = None


def default_service() -> ServiceConfig:
    """
    Returns a fully populated, empty service.
    """
    return ServiceConfig()
