"""
Converts a service into an equivalent ``docker run`` command line.
"""
import shlex
from typing import List

from ..MODELS.service_config import RestartPolicy, ServiceConfig, TriState
from ..UTILS.command_tokenizer import tokenize_command


def _shell_token(token: str) -> str:
    return shlex.quote(token) if any(ch.isspace() for ch in token) else token


def convert_to_docker_run(service: ServiceConfig) -> str:
    """
    Builds the ``docker run`` command for a single service.

    Flags follow a fixed order. Only ports and mounts with both sides set are
    published. Only the first network is passed since ``docker run`` accepts
    a single ``--network``.

    :param service: The service to convert.
    :return: The command on one line.
    """
    parts: List[str] = ["docker", "run"]
    name = service.container_name or service.name
    if name:
        parts += ["--name", name]
    if service.restart != RestartPolicy.NONE:
        parts += ["--restart", service.restart.value]

    for port in service.ports:
        if port.host and port.container:
            suffix = "" if port.protocol.value == "none" else f"/{port.protocol.value}"
            parts += ["-p", f"{port.host}:{port.container}{suffix}"]

    for volume in service.volumes:
        if volume.host and volume.container:
            suffix = ":ro" if volume.read_only else ""
            parts += ["-v", f"{volume.host}:{volume.container}{suffix}"]

    for kv in service.environment:
        if kv.key:
            parts += ["-e", _shell_token(f"{kv.key}={kv.value}")]

    if service.user:
        parts += ["--user", service.user]
    if service.working_dir:
        parts += ["-w", service.working_dir]
    if service.privileged == TriState.TRUE:
        parts.append("--privileged")
    if service.read_only == TriState.TRUE:
        parts.append("--read-only")
    if service.shm_size:
        parts += ["--shm-size", service.shm_size]
    for opt in service.security_opt:
        if opt:
            parts += ["--security-opt", opt]
    for host in service.extra_hosts:
        if host:
            parts += ["--add-host", host]
    for server in service.dns:
        if server:
            parts += ["--dns", server]
    networks = [n for n in service.networks if n]
    if networks:
        parts += ["--network", networks[0]]

    if service.image:
        parts.append(service.image)
    parts += [_shell_token(token) for token in tokenize_command(service.command)]
    return " ".join(parts)
