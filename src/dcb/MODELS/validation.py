"""
Validation utilities for the canonical service list.

Every check returns a message (or ``None``); nothing here raises. The caller
decides whether errors block an action.
"""
import re
from typing import List, Optional

from .service_config import ServiceConfig

SERVICE_NAME_RE = re.compile(r"^[a-z0-9_-]+$", re.IGNORECASE)
ENV_KEY_RE = re.compile(r"^[A-Z_][A-Z0-9_]*$", re.IGNORECASE)
CPU_RE = re.compile(r"^\d+(\.\d+)?$")
MEMORY_RE = re.compile(r"^\d+[kmgKMG]?[bB]?$")


def validate_service_name(name: str) -> Optional[str]:
    if not name:
        return "Service name is required"
    if not SERVICE_NAME_RE.match(name):
        return "Service name must contain only alphanumeric characters, hyphens, and underscores"
    return None


def validate_port(port: str) -> Optional[str]:
    """
    Checks a port number. Values carrying an interface address
    (``127.0.0.1:8080``) are checked on the part after the last colon.
    """
    if not port:
        return None
    value = port.rsplit(":", 1)[-1].strip()
    if not value.isdigit() or not 1 <= int(value) <= 65535:
        return "Port must be between 1 and 65535"
    return None


def validate_env_key(key: str) -> Optional[str]:
    if not key:
        return None
    if not ENV_KEY_RE.match(key):
        return (
            "Environment variable key should start with a letter or underscore "
            "and contain only alphanumeric characters and underscores"
        )
    return None


def validate_cpu_value(cpu: str) -> Optional[str]:
    if not cpu:
        return None
    if not CPU_RE.match(cpu):
        return "CPU value must be a number (e.g., 0.5, 1, 2)"
    return None


def validate_memory_value(memory: str) -> Optional[str]:
    if not memory:
        return None
    if not MEMORY_RE.match(memory):
        return "Memory value must be a number with optional unit (e.g., 512m, 2g, 1024)"
    return None


def validate_services(services: List[ServiceConfig]) -> List[str]:
    """
    Collects every problem found across ``services``.

    :param services: The canonical service list.
    :return: Human-readable error strings, empty when everything is valid.
    """
    errors: List[str] = []

    for idx, svc in enumerate(services):
        label = svc.name or str(idx + 1)
        if not svc.name:
            errors.append(f"Service {idx + 1}: Name is required")
        else:
            name_error = validate_service_name(svc.name)
            if name_error:
                errors.append(f'Service "{svc.name}": {name_error}')

        if not svc.image:
            errors.append(f'Service "{label}": Image is required')

        for p_idx, port in enumerate(svc.ports):
            for side, value in (("host", port.host), ("container", port.container)):
                port_error = validate_port(value)
                if port_error:
                    errors.append(f'Service "{label}" port {p_idx + 1} {side}: {port_error}')

        for e_idx, env in enumerate(svc.environment):
            key_error = validate_env_key(env.key)
            if key_error:
                errors.append(f'Service "{label}" env var {e_idx + 1}: {key_error}')

        if svc.deploy is not None:
            resources = svc.deploy.resources
            checks = (
                ("CPU limit", validate_cpu_value(resources.limits.cpus)),
                ("memory limit", validate_memory_value(resources.limits.memory)),
                ("CPU reservation", validate_cpu_value(resources.reservations.cpus)),
                ("memory reservation", validate_memory_value(resources.reservations.memory)),
            )
            for what, error in checks:
                if error:
                    errors.append(f'Service "{label}" {what}: {error}')

    return errors
