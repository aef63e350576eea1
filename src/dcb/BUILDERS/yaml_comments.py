"""
Descriptive comments injected above service, network and volume blocks of a
rendered compose document.

Injection works on the text only and adds nothing but blank lines and ``#``
lines, so the parsed document is unchanged.
"""
from typing import Dict, List, Optional

from ..MODELS.resource_config import NetworkConfig, VolumeConfig
from ..MODELS.service_config import ServiceConfig
from .vpn_sidecar import SidecarGenerator

SECTION_INDENT = "  "


def _protocol_suffix(port) -> str:
    return "" if port.protocol.value == "none" else f"/{port.protocol.value}"


def service_comments(service: ServiceConfig, routed_via: Optional[str] = None) -> List[str]:
    """
    Summarizes a service: image, ports, mounts, environment size, health
    check and dependencies.

    :param service: The service.
    :param routed_via: Sidecar name when the service's traffic is routed
        through it; its own ports are then not published.
    """
    comments = [f"# {service.name} service"]
    if service.image:
        comments.append(f"# Image: {service.image}")

    if routed_via:
        comments.append(f"# Network traffic routed through {routed_via}")
    else:
        for port in service.ports:
            if port.host and port.container:
                comments.append(f"# Port {port.host}:{port.container}{_protocol_suffix(port)}")
            elif port.container:
                comments.append(f"# Exposed port {port.container}{_protocol_suffix(port)}")

    for volume in service.volumes:
        if volume.host and volume.container:
            suffix = " (read-only)" if volume.read_only else ""
            comments.append(f"# Volume: {volume.host} -> {volume.container}{suffix}")
        elif volume.container:
            comments.append(f"# Anonymous volume: {volume.container}")

    env_count = len([kv for kv in service.environment if kv.key])
    if env_count:
        comments.append(f"# Environment variables: {env_count} defined")
    if service.healthcheck is not None and service.healthcheck.test:
        comments.append("# Health check configured")
    depends_on = [name for name in service.depends_on if name]
    if depends_on:
        comments.append(f"# Depends on: {', '.join(depends_on)}")
    return comments


def network_comments(network: NetworkConfig) -> List[str]:
    comments = [f"# Network: {network.name}"]
    if network.driver:
        comments.append(f"# Driver: {network.driver}")
    if network.external:
        comments.append("# External network")
    if network.internal:
        comments.append("# Internal network (no external access)")
    return comments


def volume_comments(volume: VolumeConfig) -> List[str]:
    comments = [f"# Volume: {volume.name}"]
    if volume.driver:
        comments.append(f"# Driver: {volume.driver}")
    if volume.external:
        comments.append("# External volume")
    return comments


def _entry_name(line: str) -> Optional[str]:
    """Name of a second-level block header (``  name:``), else ``None``."""
    if not line.startswith(SECTION_INDENT) or line.startswith(SECTION_INDENT + " "):
        return None
    stripped = line.strip()
    if not stripped.endswith(":") or stripped.startswith(("#", "-")):
        return None
    name = stripped[:-1]
    if len(name) > 1 and name[0] == name[-1] == '"':
        name = name[1:-1]
    return name


def inject_comments(
    text: str,
    services: List[ServiceConfig],
    networks: List[NetworkConfig],
    volumes: List[VolumeConfig],
    sidecar: Optional[SidecarGenerator] = None,
    routed: Optional[Dict[str, str]] = None,
) -> str:
    """
    Inserts a blank line and a comment group above each block header.

    Top-level sections are lines without indentation ending in ``:``; within
    ``services``, ``networks`` and ``volumes`` every two-space-indented
    header gets the comments of the matching entry.

    :param text: The rendered document.
    :param routed: Service name to sidecar name, for services whose traffic
        goes through a network-mode sidecar.
    :return: The commented document.
    """
    routed = routed or {}
    lookup = {
        "services": {svc.name: svc for svc in services if svc.name},
        "networks": {net.name: net for net in networks if net.name},
        "volumes": {vol.name: vol for vol in volumes if vol.name},
    }
    section = None
    output: List[str] = []
    for line in text.split("\n"):
        if line and not line[0].isspace() and line.endswith(":"):
            section = line[:-1]
        name = _entry_name(line) if section in lookup else None
        comments: List[str] = []
        if name is not None:
            if section == "services" and sidecar is not None and name == sidecar.service_name:
                comments = sidecar.comments()
            elif section == "services" and name in lookup["services"]:
                comments = service_comments(lookup["services"][name], routed.get(name))
            elif section == "networks" and name in lookup["networks"]:
                comments = network_comments(lookup["networks"][name])
            elif section == "volumes" and name in lookup["volumes"]:
                comments = volume_comments(lookup["volumes"][name])
        if comments:
            output.append("")
            output.extend(comments)
        output.append(line)
    return "\n".join(output)
