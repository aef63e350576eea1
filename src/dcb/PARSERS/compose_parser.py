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
Parsers for Docker Compose YAML documents.

Compose allows most list-like fields in two equivalent shapes. Everything is
normalized here into the canonical model so the rest of the package only ever
sees one shape; the shape that was found is kept in the per-field syntax flags.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from ..MODELS.orchestration_config import ComposeProject
from ..MODELS.resource_config import IpamConfig, IpamPool, NetworkConfig, VolumeConfig
from ..MODELS.service_config import (
    DeployConfig,
    DeployResources,
    Healthcheck,
    KeyValue,
    PortMapping,
    Protocol,
    ResourceSpec,
    RestartPolicy,
    ServiceConfig,
    SyntaxFlag,
    TriState,
    Ulimit,
    VolumeMapping,
)
from ..UTILS.command_tokenizer import command_to_string
from ..UTILS.yaml_loader import load_yaml
from .template_parser import TemplateMetadata, TemplateParseError, parse_template_toml, split_env_pair

logger = logging.getLogger(__name__)


class ComposeImportError(ValueError):
    """Raised when a document cannot be imported at all."""


def _text(value: Any) -> str:
    """Stringifies a scalar the way it would read in YAML."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [_text(item) for item in value if item is not None]
    return [_text(value)]


def _pairs(value: Any) -> Tuple[List[KeyValue], SyntaxFlag]:
    """
    Normalizes a ``KEY=VALUE`` list or a mapping into key/value pairs.

    :return: The pairs and the shape they were found in.
    """
    if isinstance(value, dict):
        return [KeyValue(key=str(k), value=_text(v)) for k, v in value.items()], SyntaxFlag.DICT
    if isinstance(value, list):
        pairs = []
        for entry in value:
            key, _, val = _text(entry).partition("=")
            pairs.append(KeyValue(key=key, value=val))
        return pairs, SyntaxFlag.ARRAY
    return [], SyntaxFlag.ARRAY


def _protocol(value: Optional[str]) -> Protocol:
    if not value:
        return Protocol.NONE
    try:
        return Protocol(value.lower())
    except ValueError:
        logger.warning("Unsupported port protocol '%s', dropping it", value)
        return Protocol.NONE


def parse_port(entry: Any) -> Optional[PortMapping]:
    """
    Parses a single ``ports`` entry.

    Supports ``container``, ``host:container`` and ``ip:host:container``,
    each with an optional ``/protocol`` suffix, bare integers, and the long
    mapping syntax (``target``/``published``/``protocol``/``host_ip``).

    :param entry: The raw entry.
    :return: The mapping, or ``None`` if the entry is unusable.
    """
    if isinstance(entry, int) and not isinstance(entry, bool):
        return PortMapping(container=str(entry))

    if isinstance(entry, str):
        cleaned = entry.strip()
        mapping, _, proto = cleaned.partition("/")
        host, sep, container = mapping.rpartition(":")
        if not sep:
            host, container = "", mapping
        return PortMapping(host=host, container=container, protocol=_protocol(proto))

    if isinstance(entry, dict):
        container = _text(entry.get("target"))
        if not container:
            return None
        host = _text(entry.get("published"))
        host_ip = _text(entry.get("host_ip"))
        if host_ip and host:
            host = f"{host_ip}:{host}"
        return PortMapping(host=host, container=container, protocol=_protocol(entry.get("protocol")))

    return None


def parse_volume(entry: Any) -> Optional[VolumeMapping]:
    """
    Parses a single ``volumes`` entry.

    ``host:container[:mode]`` strings mark the mount read-only when the mode
    contains ``ro``; a bare path is an anonymous volume. Mapping entries use
    ``source``/``target``/``read_only``.
    """
    if isinstance(entry, str):
        parts = entry.split(":")
        if len(parts) == 1:
            return VolumeMapping(container=parts[0])
        modes = parts[2].split(",") if len(parts) > 2 else []
        return VolumeMapping(host=parts[0], container=parts[1], read_only="ro" in modes)
    if isinstance(entry, dict):
        return VolumeMapping(
            host=_text(entry.get("source")),
            container=_text(entry.get("target")),
            read_only=bool(entry.get("read_only", False)),
        )
    return None


def _restart(value: Any) -> RestartPolicy:
    if not value:
        return RestartPolicy.NONE
    text = _text(value)
    try:
        return RestartPolicy(text)
    except ValueError:
        pass
    if text.startswith("on-failure"):
        return RestartPolicy.ON_FAILURE
    logger.warning("Unknown restart policy '%s', leaving it unset", text)
    return RestartPolicy.NONE


def _tmpfs(value: Any) -> List[str]:
    if isinstance(value, dict):
        return [f"{path}:{_text(size)}" for path, size in value.items()]
    return _string_list(value)


def _ulimits(value: Any) -> List[Ulimit]:
    if not isinstance(value, dict):
        return []
    limits = []
    for name, limit in value.items():
        if isinstance(limit, dict):
            limits.append(Ulimit(name=str(name), soft=_text(limit.get("soft")), hard=_text(limit.get("hard"))))
        else:
            limits.append(Ulimit(name=str(name), soft=_text(limit), hard=_text(limit)))
    return limits


def _healthcheck(value: Any) -> Optional[Healthcheck]:
    if not isinstance(value, dict):
        return None
    return Healthcheck(
        test=command_to_string(value.get("test")),
        interval=_text(value.get("interval")),
        timeout=_text(value.get("timeout")),
        retries=_text(value.get("retries")),
        start_period=_text(value.get("start_period")),
        start_interval=_text(value.get("start_interval")),
    )


def _deploy(value: Any) -> Optional[DeployConfig]:
    if not isinstance(value, dict) or not isinstance(value.get("resources"), dict):
        return None
    resources = value["resources"]

    def spec(section: Any) -> ResourceSpec:
        section = section if isinstance(section, dict) else {}
        return ResourceSpec(cpus=_text(section.get("cpus")), memory=_text(section.get("memory")))

    return DeployConfig(
        resources=DeployResources(
            limits=spec(resources.get("limits")),
            reservations=spec(resources.get("reservations")),
        )
    )


def _names(value: Any) -> List[str]:
    """``depends_on`` and ``networks`` accept a list or a mapping keyed by name."""
    if isinstance(value, dict):
        return [str(key) for key in value]
    return _string_list(value)


def parse_service(name: str, spec: Optional[Dict[str, Any]]) -> ServiceConfig:
    """
    Normalizes a single service definition.

    :param name: The service key in the document.
    :param spec: The service mapping as parsed from YAML.
    :return: A ServiceConfig instance.
    """
    spec = spec if isinstance(spec, dict) else {}

    raw_volumes = spec.get("volumes") if isinstance(spec.get("volumes"), list) else []
    volumes = [v for v in (parse_volume(entry) for entry in raw_volumes) if v is not None]
    volumes_syntax = SyntaxFlag.DICT if raw_volumes and isinstance(raw_volumes[0], dict) else SyntaxFlag.ARRAY

    raw_ports = spec.get("ports") if isinstance(spec.get("ports"), list) else []
    ports = [p for p in (parse_port(entry) for entry in raw_ports) if p is not None]

    environment, environment_syntax = _pairs(spec.get("environment"))
    labels, labels_syntax = _pairs(spec.get("labels"))
    sysctls, sysctls_syntax = _pairs(spec.get("sysctls"))
    if spec.get("sysctls") is None:
        sysctls_syntax = SyntaxFlag.DICT

    env_file = spec.get("env_file")
    if isinstance(env_file, list):
        env_file = ",".join(_text(f) for f in env_file)

    return ServiceConfig(
        name=name,
        image=_text(spec.get("image")),
        container_name=_text(spec.get("container_name")),
        command=command_to_string(spec.get("command")),
        entrypoint=command_to_string(spec.get("entrypoint")),
        restart=_restart(spec.get("restart")),
        user=_text(spec.get("user")),
        working_dir=_text(spec.get("working_dir")),
        ports=ports,
        expose=_string_list(spec.get("expose")),
        networks=_names(spec.get("networks")),
        network_mode=_text(spec.get("network_mode")),
        extra_hosts=_string_list(spec.get("extra_hosts")),
        dns=_string_list(spec.get("dns")),
        volumes=volumes,
        volumes_syntax=volumes_syntax,
        tmpfs=_tmpfs(spec.get("tmpfs")),
        environment=environment,
        environment_syntax=environment_syntax,
        env_file=_text(env_file),
        labels=labels,
        labels_syntax=labels_syntax,
        privileged=TriState.from_value(spec.get("privileged")),
        read_only=TriState.from_value(spec.get("read_only")),
        cap_add=_string_list(spec.get("cap_add")),
        cap_drop=_string_list(spec.get("cap_drop")),
        security_opt=_string_list(spec.get("security_opt")),
        sysctls=sysctls,
        sysctls_syntax=sysctls_syntax,
        devices=_string_list(spec.get("devices")),
        ulimits=_ulimits(spec.get("ulimits")),
        shm_size=_text(spec.get("shm_size")),
        depends_on=_names(spec.get("depends_on")),
        healthcheck=_healthcheck(spec.get("healthcheck")),
        init=TriState.from_value(spec.get("init")),
        stop_grace_period=_text(spec.get("stop_grace_period")),
        stop_signal=_text(spec.get("stop_signal")),
        tty=TriState.from_value(spec.get("tty")),
        stdin_open=TriState.from_value(spec.get("stdin_open")),
        hostname=_text(spec.get("hostname")),
        domainname=_text(spec.get("domainname")),
        mac_address=_text(spec.get("mac_address")),
        ipc_mode=_text(spec.get("ipc")),
        pid=_text(spec.get("pid")),
        uts=_text(spec.get("uts")),
        cgroup_parent=_text(spec.get("cgroup_parent")),
        isolation=_text(spec.get("isolation")),
        deploy=_deploy(spec.get("deploy")),
    )


def _options(value: Any) -> List[KeyValue]:
    if not isinstance(value, dict):
        return []
    return [KeyValue(key=str(k), value=_text(v)) for k, v in value.items()]


def _external_name(config: Dict[str, Any]) -> str:
    external = config.get("external")
    if isinstance(external, dict):
        return _text(external.get("name"))
    if external and config.get("name"):
        return _text(config.get("name"))
    return ""


def parse_network(name: str, config: Optional[Dict[str, Any]]) -> NetworkConfig:
    config = config if isinstance(config, dict) else {}
    ipam = config.get("ipam") if isinstance(config.get("ipam"), dict) else {}
    pools = [
        IpamPool(subnet=_text(pool.get("subnet")), gateway=_text(pool.get("gateway")))
        for pool in ipam.get("config") or []
        if isinstance(pool, dict)
    ]
    labels, _ = _pairs(config.get("labels"))
    return NetworkConfig(
        name=name,
        driver=_text(config.get("driver")),
        driver_opts=_options(config.get("driver_opts")),
        attachable=bool(config.get("attachable", False)),
        labels=labels,
        external=bool(config.get("external", False)),
        name_external=_external_name(config),
        internal=bool(config.get("internal", False)),
        enable_ipv6=bool(config.get("enable_ipv6", False)),
        ipam=IpamConfig(driver=_text(ipam.get("driver")), config=pools, options=_options(ipam.get("options"))),
    )


def parse_volume_definition(name: str, config: Optional[Dict[str, Any]]) -> VolumeConfig:
    """
    Normalizes a top-level named volume. The local-driver ``type``,
    ``device`` and ``o`` options go to their dedicated fields.
    """
    config = config if isinstance(config, dict) else {}
    options = _options(config.get("driver_opts"))
    shortcuts = {opt.key: opt.value for opt in options if opt.key in ("type", "device", "o")}
    labels, _ = _pairs(config.get("labels"))
    return VolumeConfig(
        name=name,
        driver=_text(config.get("driver")),
        driver_opts=[opt for opt in options if opt.key not in shortcuts],
        labels=labels,
        external=bool(config.get("external", False)),
        name_external=_external_name(config),
        driver_opts_type=shortcuts.get("type", ""),
        driver_opts_device=shortcuts.get("device", ""),
        driver_opts_o=shortcuts.get("o", ""),
    )


def _merge_env(service: ServiceConfig, entries: Iterable[KeyValue]) -> ServiceConfig:
    existing = {kv.key for kv in service.environment}
    additions = []
    for kv in entries:
        if kv.key and kv.key not in existing:
            additions.append(kv)
            existing.add(kv.key)
    if not additions:
        return service
    return service.model_copy(update={"environment": list(service.environment) + additions})


def apply_template_metadata(
    services: List[ServiceConfig],
    metadata: TemplateMetadata,
    targets: Optional[Iterable[str]] = None,
) -> List[ServiceConfig]:
    """
    Merges template environment and domain ports into ``services``.

    A service named by a domain binding with its own ``env`` receives that
    env; every other service listed in ``targets`` receives the shared
    ``config.env``. Existing keys are never overwritten. A domain's port is
    appended unless a port with the same container value already exists.

    :param services: The service list.
    :param metadata: Parsed template metadata.
    :param targets: Names eligible for the shared env; all services when omitted.
    :return: A new service list.
    """
    target_names = None if targets is None else set(targets)
    updated = []
    for service in services:
        domain = metadata.domain_for(service.name) if service.name else None
        if domain is not None and domain.env:
            service = _merge_env(service, (split_env_pair(e) for e in domain.env))
        elif target_names is None or service.name in target_names:
            service = _merge_env(service, metadata.env)

        if domain is not None and domain.port:
            port = str(domain.port)
            if not any(p.container == port for p in service.ports):
                service = service.model_copy(
                    update={"ports": list(service.ports) + [PortMapping(container=port)]}
                )
        updated.append(service)
    return updated


def normalize(document: Any, template_metadata: Optional[TemplateMetadata] = None) -> ComposeProject:
    """
    Maps a parsed compose document into the canonical model.

    :param document: The document as returned by ``load_yaml``.
    :param template_metadata: Optional metadata applied to the imported services.
    :return: A ComposeProject with services, networks and volumes.
    :raises ComposeImportError: If the document has no ``services`` mapping.
    """
    if not isinstance(document, dict) or not document.get("services"):
        raise ComposeImportError("Invalid docker-compose document: missing 'services'")
    raw_services = document["services"]
    if not isinstance(raw_services, dict):
        raise ComposeImportError("Invalid docker-compose document: 'services' must be a mapping")

    services = [parse_service(str(name), spec) for name, spec in raw_services.items()]
    networks = [parse_network(str(name), cfg) for name, cfg in (document.get("networks") or {}).items()]
    volumes = [parse_volume_definition(str(name), cfg) for name, cfg in (document.get("volumes") or {}).items()]

    if template_metadata is not None:
        services = apply_template_metadata(services, template_metadata)

    logger.debug(
        "Normalized %d services, %d networks, %d volumes",
        len(services), len(networks), len(volumes),
    )
    return ComposeProject(services=services, networks=networks, volumes=volumes)


def _merge_by_name(existing: list, imported: list, kind: str) -> list:
    names = {item.name for item in existing}
    merged = list(existing)
    for item in imported:
        if item.name in names:
            logger.warning("Keeping existing %s '%s', dropping the imported one", kind, item.name)
            continue
        names.add(item.name)
        merged.append(item)
    return merged


def import_template(
    services: List[ServiceConfig],
    networks: List[NetworkConfig],
    volumes: List[VolumeConfig],
    compose_text: str,
    template_toml: Optional[str] = None,
) -> ComposeProject:
    """
    Merges a catalog template into an existing project.

    Unnamed placeholder services are dropped, the template's services are
    appended, and its networks and volumes are added unless one with the same
    name already exists. Metadata is best effort: if ``template_toml`` does
    not parse, the import continues with the compose document alone.

    :return: A new ComposeProject holding the merged lists.
    :raises ComposeImportError: If the compose document is invalid.
    """
    try:
        document = load_yaml(compose_text)
    except yaml.YAMLError as e:
        raise ComposeImportError(f"Invalid docker-compose document: {e}") from e
    imported = normalize(document)

    metadata = None
    if template_toml:
        try:
            metadata = parse_template_toml(template_toml)
        except TemplateParseError as e:
            logger.warning("Ignoring template metadata: %s", e)

    merged = [svc for svc in services if svc.name.strip()] + list(imported.services)
    if metadata is not None:
        merged = apply_template_metadata(merged, metadata, targets=[svc.name for svc in imported.services])

    return ComposeProject(
        services=merged,
        networks=_merge_by_name(networks, imported.networks, "network"),
        volumes=_merge_by_name(volumes, imported.volumes, "volume"),
    )


class ComposeParser:
    """
    Parser for docker-compose.yml files.
    """
    def __init__(self, template_metadata: Optional[TemplateMetadata] = None):
        """
        :param template_metadata: Metadata applied to every parsed document.
        """
        self.template_metadata = template_metadata

    def parse(self, compose_path: str) -> ComposeProject:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed configuration.
        """
        with open(compose_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> ComposeProject:
        try:
            data = load_yaml(content)
        except yaml.YAMLError as e:
            raise ComposeImportError(f"Invalid docker-compose document: {e}") from e
        return normalize(data, self.template_metadata)
