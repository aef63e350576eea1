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
Builds the compose document from the canonical model.

The assembler shapes every service into a compose mapping, wires in the VPN
sidecar, prunes unset values, hands the tree to the YAML serializer and
finally decorates the text with descriptive comments.
"""
import logging
from typing import Any, Dict, List, Optional

from ..MODELS.resource_config import NetworkConfig, VolumeConfig
from ..MODELS.service_config import (
    DeployConfig,
    Healthcheck,
    KeyValue,
    RestartPolicy,
    ServiceConfig,
    SyntaxFlag,
    TriState,
    Ulimit,
)
from ..MODELS.vpn_config import VPNConfig
from ..UTILS.command_tokenizer import tokenize_command
from ..UTILS.yaml_serializer import QuotedStr, serialize
from .vpn_sidecar import SidecarGenerator, sidecar_for
from .yaml_comments import inject_comments

logger = logging.getLogger(__name__)

BIND_SOURCE_PREFIXES = ("/", ".", "~", "$")


def prune(value: Any) -> Any:
    """
    Recursively drops ``None`` values and the empty lists and mappings left
    behind, at every nesting level.
    """
    if isinstance(value, dict):
        pruned = {}
        for key, item in value.items():
            item = prune(item)
            if item is None or (isinstance(item, (dict, list)) and not item):
                continue
            pruned[key] = item
        return pruned
    if isinstance(value, list):
        return [prune(item) for item in value if item is not None]
    return value


def _strings(values: List[str]) -> List[str]:
    return [v for v in values if v]


def _pairs(pairs: List[KeyValue], syntax: SyntaxFlag, keep_empty: bool = True):
    """
    Renders key/value pairs as ``KEY=VALUE`` strings or as a mapping.
    Entries without a key are skipped; order is preserved.
    """
    pairs = [kv for kv in pairs if kv.key]
    if syntax == SyntaxFlag.DICT:
        return {kv.key: (kv.value if keep_empty or kv.value else None) for kv in pairs}
    return [f"{kv.key}={kv.value}" for kv in pairs]


def _tristate(value: TriState) -> Optional[bool]:
    return value.as_bool()


def _int_or_text(value: str):
    return int(value) if value.isdigit() else value


def shape_ports(service: ServiceConfig) -> List[str]:
    shaped = []
    for port in service.ports:
        if not port.container:
            continue
        text = f"{port.host}:{port.container}" if port.host else port.container
        if port.protocol.value != "none":
            text = f"{text}/{port.protocol.value}"
        shaped.append(text)
    return shaped


def shape_volumes(service: ServiceConfig) -> List[Any]:
    """
    Renders mounts in the service's chosen syntax. The long syntax marks
    path-like sources as binds and everything else as named volumes.
    """
    shaped: List[Any] = []
    for volume in service.volumes:
        if not volume.container:
            continue
        if service.volumes_syntax == SyntaxFlag.DICT:
            if volume.host:
                kind = "bind" if volume.host.startswith(BIND_SOURCE_PREFIXES) else "volume"
                entry: Dict[str, Any] = {"type": kind, "source": volume.host, "target": volume.container}
                if volume.read_only:
                    entry["read_only"] = True
            else:
                entry = {"type": "volume", "target": volume.container}
            shaped.append(entry)
        elif volume.host:
            suffix = ":ro" if volume.read_only else ""
            shaped.append(f"{volume.host}:{volume.container}{suffix}")
        else:
            shaped.append(volume.container)
    return shaped


def shape_ulimits(ulimits: List[Ulimit]) -> Dict[str, Any]:
    shaped = {}
    for limit in ulimits:
        if not limit.name:
            continue
        entry = {}
        if limit.soft:
            entry["soft"] = _int_or_text(limit.soft)
        if limit.hard:
            entry["hard"] = _int_or_text(limit.hard)
        if not entry:
            logger.debug("Dropping ulimit '%s' with neither soft nor hard value", limit.name)
            continue
        shaped[limit.name] = entry
    return shaped


def shape_healthcheck(healthcheck: Optional[Healthcheck]) -> Optional[Dict[str, Any]]:
    if healthcheck is None or not healthcheck.test:
        return None
    return {
        "test": tokenize_command(healthcheck.test),
        "interval": healthcheck.interval or None,
        "timeout": healthcheck.timeout or None,
        "retries": healthcheck.retries or None,
        "start_period": healthcheck.start_period or None,
        "start_interval": healthcheck.start_interval or None,
    }


def shape_deploy(deploy: Optional[DeployConfig]) -> Optional[Dict[str, Any]]:
    if deploy is None:
        return None
    resources = deploy.resources
    return {
        "resources": {
            "limits": {
                "cpus": resources.limits.cpus or None,
                "memory": resources.limits.memory or None,
            },
            "reservations": {
                "cpus": resources.reservations.cpus or None,
                "memory": resources.reservations.memory or None,
            },
        }
    }


def shape_service(service: ServiceConfig) -> Dict[str, Any]:
    """
    Maps a service onto its compose representation. Unset fields come out
    as ``None`` and are removed by :func:`prune`.
    """
    env_files = [f.strip() for f in service.env_file.split(",") if f.strip()]
    return {
        "image": service.image or None,
        "container_name": service.container_name or None,
        "command": tokenize_command(service.command),
        "restart": service.restart.value if service.restart != RestartPolicy.NONE else None,
        "ports": shape_ports(service),
        "expose": _strings(service.expose),
        "network_mode": service.network_mode or None,
        "volumes": shape_volumes(service),
        "environment": _pairs(service.environment, service.environment_syntax),
        "healthcheck": shape_healthcheck(service.healthcheck),
        "depends_on": _strings(service.depends_on),
        "entrypoint": tokenize_command(service.entrypoint),
        "env_file": env_files,
        "extra_hosts": _strings(service.extra_hosts),
        "dns": _strings(service.dns),
        "networks": _strings(service.networks),
        "user": QuotedStr(service.user) if service.user else None,
        "working_dir": service.working_dir or None,
        "labels": _pairs(service.labels, service.labels_syntax),
        "privileged": _tristate(service.privileged),
        "read_only": _tristate(service.read_only),
        "shm_size": service.shm_size or None,
        "security_opt": _strings(service.security_opt),
        "cap_add": _strings(service.cap_add),
        "cap_drop": _strings(service.cap_drop),
        "sysctls": _pairs(service.sysctls, service.sysctls_syntax, keep_empty=False),
        "devices": _strings(service.devices),
        "tmpfs": _strings(service.tmpfs),
        "ulimits": shape_ulimits(service.ulimits),
        "init": _tristate(service.init),
        "stop_grace_period": service.stop_grace_period or None,
        "stop_signal": service.stop_signal or None,
        "tty": _tristate(service.tty),
        "stdin_open": _tristate(service.stdin_open),
        "hostname": service.hostname or None,
        "domainname": service.domainname or None,
        "mac_address": service.mac_address or None,
        "ipc": service.ipc_mode or None,
        "pid": service.pid or None,
        "uts": service.uts or None,
        "cgroup_parent": service.cgroup_parent or None,
        "isolation": service.isolation or None,
        "deploy": shape_deploy(service.deploy),
    }


def _options(options: List[KeyValue]) -> Dict[str, str]:
    return {opt.key: opt.value for opt in options if opt.key}


def _external(name_external: str):
    return {"name": name_external} if name_external else True


def shape_network(network: NetworkConfig) -> Dict[str, Any]:
    if network.external:
        return {"external": _external(network.name_external)}
    ipam = network.ipam
    return {
        "driver": network.driver or None,
        "attachable": network.attachable or None,
        "internal": network.internal or None,
        "enable_ipv6": network.enable_ipv6 or None,
        "driver_opts": _options(network.driver_opts),
        "labels": _pairs(network.labels, SyntaxFlag.ARRAY),
        "ipam": {
            "driver": ipam.driver or None,
            "config": [
                {"subnet": pool.subnet or None, "gateway": pool.gateway or None}
                for pool in ipam.config
                if pool.subnet or pool.gateway
            ],
            "options": _options(ipam.options),
        },
    }


def shape_volume(volume: VolumeConfig) -> Dict[str, Any]:
    """
    The ``driver_opts_*`` shortcuts override the same keys in ``driver_opts``.
    """
    driver_opts = _options(volume.driver_opts)
    for key, value in (("type", volume.driver_opts_type), ("device", volume.driver_opts_device), ("o", volume.driver_opts_o)):
        if value:
            driver_opts[key] = value
    shaped: Dict[str, Any] = {}
    if volume.external:
        shaped["external"] = _external(volume.name_external)
    shaped["driver"] = volume.driver or None
    shaped["driver_opts"] = driver_opts
    shaped["labels"] = _pairs(volume.labels, SyntaxFlag.ARRAY)
    return shaped


def _with_sidecar_resources(existing: list, required: list) -> list:
    names = {item.name for item in existing}
    return list(existing) + [item for item in required if item.name not in names]


class ComposeAssembler:
    """
    Assembles the compose document for one snapshot of the canonical model.
    """
    def __init__(
        self,
        services: List[ServiceConfig],
        networks: List[NetworkConfig],
        volumes: List[VolumeConfig],
        vpn_config: Optional[VPNConfig] = None,
    ):
        """
        :param services: Services in emission order; unnamed ones are skipped.
        :param networks: Top-level networks.
        :param volumes: Top-level volumes.
        :param vpn_config: Optional VPN sidecar settings.
        """
        self.services = [svc for svc in services if svc.name]
        self.sidecar: Optional[SidecarGenerator] = sidecar_for(vpn_config)
        self.routed_names = set(vpn_config.services_using_vpn) if self.sidecar else set()
        if self.sidecar is not None:
            networks = _with_sidecar_resources(networks, self.sidecar.networks())
            volumes = _with_sidecar_resources(volumes, self.sidecar.volumes())
        self.networks = [net for net in networks if net.name]
        self.volumes = [vol for vol in volumes if vol.name]

    def build_document(self) -> Dict[str, Any]:
        """
        Builds the pruned compose tree.

        :return: A mapping with ``services`` and, when present, ``networks``,
            ``volumes`` and ``configs``.
        """
        services: Dict[str, Any] = {}
        for service in self.services:
            shaped = shape_service(service)
            if self.sidecar is not None and service.name in self.routed_names:
                shaped = self.sidecar.route(shaped)
            services[service.name] = prune(shaped)

        document: Dict[str, Any] = {"services": services}
        if self.sidecar is not None:
            if self.sidecar.service_name in services:
                logger.warning(
                    "Service '%s' is replaced by the VPN sidecar of the same name",
                    self.sidecar.service_name,
                )
            services[self.sidecar.service_name] = prune(self.sidecar.service())

        if self.networks:
            document["networks"] = {net.name: prune(shape_network(net)) for net in self.networks}
        if self.volumes:
            document["volumes"] = {vol.name: prune(shape_volume(vol)) for vol in self.volumes}
        if self.sidecar is not None and self.sidecar.configs():
            document["configs"] = self.sidecar.configs()
        return document

    def routed_services(self) -> Dict[str, str]:
        """Services whose network stack is taken over by the sidecar."""
        if self.sidecar is None or not self.sidecar.uses_network_mode:
            return {}
        return {name: self.sidecar.service_name for name in self.routed_names}

    def assemble(self) -> str:
        """
        Renders the compose document.

        :return: Commented YAML text ending in a newline.
        """
        document = self.build_document()
        logger.debug(
            "Assembling %d services, %d networks, %d volumes",
            len(document["services"]), len(self.networks), len(self.volumes),
        )
        text = serialize(document)
        text = inject_comments(
            text,
            self.services,
            self.networks,
            self.volumes,
            sidecar=self.sidecar,
            routed=self.routed_services(),
        )
        return text + "\n"


def assemble(
    services: List[ServiceConfig],
    networks: List[NetworkConfig],
    volumes: List[VolumeConfig],
    vpn_config: Optional[VPNConfig] = None,
) -> str:
    """
    Renders the compose document for the given model snapshot.
    """
    return ComposeAssembler(services, networks, volumes, vpn_config).assemble()
