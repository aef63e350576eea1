"""
Converts rendered compose YAML into a Komodo TOML configuration.
"""
import logging
from typing import Any, List

import yaml

from ..UTILS.yaml_loader import load_yaml

logger = logging.getLogger(__name__)

HEADER = (
    "# Komodo configuration generated from Portainer stack\n"
    "# Generated from Docker Compose configuration\n"
    "\n"
)

ERROR_STUB = """# Komodo configuration generated from Docker Compose
# Note: Error parsing configuration: {message}
# Please adjust manually

[service]
name = "service"
image = ""

# Add configuration as needed
"""


def _quoted(value: Any) -> str:
    # Embedded quotes and newlines are not escaped.
    return f'"{value}"'


def _array_item(item: Any) -> str:
    if isinstance(item, dict):
        fields = ", ".join(f"{k} = {_quoted(v)}" for k, v in item.items())
        return "{ " + fields + " }"
    return _quoted(item)


def _array(key: str, items: List[Any]) -> List[str]:
    return [f"{key} = ["] + [f"  {_array_item(item)}," for item in items] + ["]"]


def generate_komodo_toml(yaml_text: str) -> str:
    """
    Emits one TOML table per compose service with its image, container name,
    restart policy, ports, volumes and environment.

    :param yaml_text: Compose YAML as produced by the assembler.
    :return: The TOML document, or a commented stub when the YAML does not parse.
    """
    try:
        document = load_yaml(yaml_text)
    except yaml.YAMLError as e:
        logger.warning("Cannot convert to Komodo TOML: %s", e)
        return ERROR_STUB.format(message=str(e).replace("\n", " "))

    services = document.get("services") if isinstance(document, dict) else None
    lines: List[str] = []
    for name, service in (services or {}).items():
        service = service or {}
        lines.append(f"[{name}]")
        for key in ("image", "container_name", "restart"):
            if service.get(key):
                lines.append(f"{key} = {_quoted(service[key])}")
        for key in ("ports", "volumes"):
            if isinstance(service.get(key), list):
                lines.extend(_array(key, service[key]))
        environment = service.get("environment")
        if isinstance(environment, list):
            lines.extend(_array("environment", environment))
        elif isinstance(environment, dict):
            for key, value in environment.items():
                lines.append(f"environment.{key} = {_quoted('' if value is None else value)}")
        lines.append("")
    return HEADER + "".join(line + "\n" for line in lines)
