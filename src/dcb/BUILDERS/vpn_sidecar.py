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
Generators for the synthetic VPN sidecar service.

Each provider has one generator class. A generator knows the sidecar's own
service definition, the top-level volumes/networks it needs, how a service
routed through it must be rewritten, and which credential variables it reads
from the environment.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Type

from ..MODELS.resource_config import NetworkConfig, VolumeConfig
from ..MODELS.vpn_config import VPNConfig, VPNType

logger = logging.getLogger(__name__)

SERVE_CONFIG_NAME = "serve-config"
SERVE_CONFIG_PATH = "/etc/tailscale/serve.json"
CERT_DOMAIN_PLACEHOLDER = "$${TS_CERT_DOMAIN}"


def generate_tailscale_serve_config(
    external_port: str,
    internal_port: str,
    path: str = "/",
    protocol: str = "HTTPS",
    cert_domain: str = "",
) -> str:
    """
    Builds the Tailscale Serve routing document.

    HTTPS terminates TLS on ``<cert domain>:<external port>`` and proxies
    ``path`` to the target's internal port; HTTP attaches the handler directly
    to the TCP listener.

    :return: The document as indented JSON.
    """
    handlers = {path: {"Proxy": f"http://127.0.0.1:{internal_port}"}}
    config: Dict[str, Any] = {"TCP": {external_port: {"HTTPS": protocol == "HTTPS"}}}
    if protocol == "HTTPS":
        domain = cert_domain or CERT_DOMAIN_PLACEHOLDER
        config["Web"] = {f"{domain}:{external_port}": {"Handlers": handlers}}
    else:
        config["TCP"][external_port] = {"HTTP": True, "Handlers": handlers}
    return json.dumps(config, indent=2)


class SidecarGenerator:
    """
    Base class for VPN sidecar generators.
    """
    vpn_type: VPNType
    uses_network_mode = False

    def __init__(self, settings):
        """
        :param settings: The provider's settings model.
        """
        self.settings = settings

    @property
    def service_name(self) -> str:
        return self.vpn_type.value

    def service(self) -> Dict[str, Any]:
        """Returns the sidecar's compose service mapping."""
        raise NotImplementedError

    def volumes(self) -> List[VolumeConfig]:
        return []

    def networks(self) -> List[NetworkConfig]:
        return []

    def configs(self) -> Dict[str, Any]:
        return {}

    def credential_variables(self) -> List[str]:
        return []

    def comments(self) -> List[str]:
        return []

    def route(self, service: Dict[str, Any]) -> Dict[str, Any]:
        """
        Rewrites a service mapping that opted into the VPN.

        Network-mode providers take over the service's network stack: its
        ``network_mode`` points at the sidecar and its own ports and networks
        are dropped. Other providers leave the service untouched.
        """
        if not self.uses_network_mode:
            return service
        routed = {k: v for k, v in service.items() if k not in ("ports", "networks")}
        routed["network_mode"] = f"service:{self.service_name}"
        return routed


def _drop_unset(environment: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {k: v for k, v in environment.items() if v is not None}


class TailscaleSidecar(SidecarGenerator):
    vpn_type = VPNType.TAILSCALE
    uses_network_mode = True

    @property
    def serve_enabled(self) -> bool:
        return bool(self.settings.enable_serve and self.settings.serve_target_service)

    def service(self) -> Dict[str, Any]:
        ts = self.settings
        environment = {
            "TS_STATE_DIR": "/var/lib/tailscale",
            "TS_ACCEPT_DNS": "true" if ts.accept_dns else "false",
            "TS_AUTH_ONCE": "true" if ts.auth_once else "false",
            "TS_USERSPACE": "true" if ts.userspace else "false",
            "TS_AUTHKEY": "${TS_AUTHKEY}" if ts.auth_key else None,
            "TS_HOSTNAME": ts.hostname or None,
        }
        if ts.exit_node:
            extra = "--exit-node=${TS_EXIT_NODE}"
            if ts.exit_node_allow_lan:
                extra += " --exit-node-allow-lan-access"
            environment["TS_EXTRA_ARGS"] = extra
        service: Dict[str, Any] = {
            "image": "tailscale/tailscale:latest",
            "restart": "always",
            "privileged": True,
            "volumes": ["tailscale:/var/lib/tailscale", "/dev/net/tun:/dev/net/tun"],
        }
        if self.serve_enabled:
            environment["TS_SERVE_CONFIG"] = SERVE_CONFIG_PATH
            service["configs"] = [{"source": SERVE_CONFIG_NAME, "target": SERVE_CONFIG_PATH}]
        service["environment"] = _drop_unset(environment)
        return service

    def volumes(self) -> List[VolumeConfig]:
        return [VolumeConfig(name="tailscale")]

    def configs(self) -> Dict[str, Any]:
        if not self.serve_enabled:
            return {}
        ts = self.settings
        content = generate_tailscale_serve_config(
            ts.serve_external_port,
            ts.serve_internal_port,
            ts.serve_path,
            ts.serve_protocol,
            ts.cert_domain,
        )
        return {SERVE_CONFIG_NAME: {"content": content}}

    def credential_variables(self) -> List[str]:
        names = []
        if self.settings.auth_key:
            names.append("TS_AUTHKEY")
        if self.settings.exit_node:
            names.append("TS_EXIT_NODE")
        return names

    def comments(self) -> List[str]:
        ts = self.settings
        lines = ["# Tailscale Sidecar Configuration", "# Routes traffic through Tailscale VPN"]
        if ts.hostname:
            lines.append(f"# Hostname: {ts.hostname}")
        if ts.enable_serve:
            lines.append("# Tailscale Serve enabled - exposes service on Tailnet")
        if ts.exit_node:
            lines.append(f"# Using exit node: {ts.exit_node}")
        return lines


class NewtSidecar(SidecarGenerator):
    vpn_type = VPNType.NEWT

    def service(self) -> Dict[str, Any]:
        newt = self.settings
        return {
            "image": "fosrl/newt",
            "container_name": "newt",
            "restart": "always",
            "environment": _drop_unset({
                "PANGOLIN_ENDPOINT": newt.endpoint or None,
                "NEWT_ID": "${NEWT_ID}" if newt.newt_id else None,
                "NEWT_SECRET": "${NEWT_SECRET}" if newt.newt_secret else None,
            }),
            "networks": [newt.network_name],
        }

    def networks(self) -> List[NetworkConfig]:
        name = self.settings.network_name
        return [NetworkConfig(name=name, external=True, name_external=name)]

    def route(self, service: Dict[str, Any]) -> Dict[str, Any]:
        """Joins the service to the Pangolin network, keeping its own networks."""
        networks = list(service.get("networks") or [])
        if self.settings.network_name not in networks:
            networks.append(self.settings.network_name)
        return dict(service, networks=networks)

    def credential_variables(self) -> List[str]:
        names = []
        if self.settings.newt_id:
            names.append("NEWT_ID")
        if self.settings.newt_secret:
            names.append("NEWT_SECRET")
        return names

    def comments(self) -> List[str]:
        return ["# Newt VPN Configuration", "# Lightweight VPN with Pangolin integration"]


class CloudflaredSidecar(SidecarGenerator):
    vpn_type = VPNType.CLOUDFLARED
    uses_network_mode = True

    def service(self) -> Dict[str, Any]:
        cf = self.settings
        return {
            "image": "cloudflare/cloudflared",
            "restart": "always",
            "command": ["--no-autoupdate", "tunnel", "run"] if cf.no_autoupdate else ["tunnel", "run"],
            "environment": _drop_unset({"TUNNEL_TOKEN": "${TUNNEL_TOKEN}" if cf.tunnel_token else None}),
        }

    def credential_variables(self) -> List[str]:
        return ["TUNNEL_TOKEN"] if self.settings.tunnel_token else []

    def comments(self) -> List[str]:
        return ["# Cloudflared Tunnel Configuration", "# Routes traffic through Cloudflare Tunnel"]


class WireguardSidecar(SidecarGenerator):
    vpn_type = VPNType.WIREGUARD

    def service(self) -> Dict[str, Any]:
        return {
            "image": "linuxserver/wireguard:latest",
            "restart": "always",
            "cap_add": ["NET_ADMIN", "SYS_MODULE"],
            "environment": {"PUID": "1000", "PGID": "1000", "TZ": "Etc/UTC"},
            "sysctls": ["net.ipv4.conf.all.src_valid_mark=1"],
            "volumes": [f"{self.settings.config_path}:/config"],
        }

    def comments(self) -> List[str]:
        return ["# WireGuard VPN Configuration"]


class ZerotierSidecar(SidecarGenerator):
    vpn_type = VPNType.ZEROTIER

    def service(self) -> Dict[str, Any]:
        zt = self.settings
        return {
            "image": "zerotier/zerotier:latest",
            "restart": "always",
            "privileged": True,
            "network_mode": "host",
            "volumes": [f"{zt.identity_path}:/var/lib/zerotier-one"],
            "environment": _drop_unset({"ZT_NC_NETWORK": "${ZT_NETWORK_ID}" if zt.network_id else None}),
        }

    def credential_variables(self) -> List[str]:
        return ["ZT_NETWORK_ID"] if self.settings.network_id else []

    def comments(self) -> List[str]:
        return ["# ZeroTier VPN Configuration"]


class NetbirdSidecar(SidecarGenerator):
    vpn_type = VPNType.NETBIRD

    def service(self) -> Dict[str, Any]:
        nb = self.settings
        return {
            "image": "netbirdio/netbird:latest",
            "restart": "always",
            "privileged": True,
            "cap_add": ["NET_ADMIN", "SYS_MODULE"],
            "sysctls": ["net.ipv4.ip_forward=1", "net.ipv6.conf.all.forwarding=1"],
            "environment": _drop_unset({
                "NETBIRD_SETUP_KEY": "${NETBIRD_SETUP_KEY}" if nb.setup_key else None,
                "NETBIRD_MANAGEMENT_URL": nb.management_url or None,
            }),
        }

    def credential_variables(self) -> List[str]:
        return ["NETBIRD_SETUP_KEY"] if self.settings.setup_key else []

    def comments(self) -> List[str]:
        return ["# Netbird VPN Configuration"]


SIDECARS: Dict[VPNType, Type[SidecarGenerator]] = {
    cls.vpn_type: cls
    for cls in (
        TailscaleSidecar,
        NewtSidecar,
        CloudflaredSidecar,
        WireguardSidecar,
        ZerotierSidecar,
        NetbirdSidecar,
    )
}


def sidecar_for(vpn_config: Optional[VPNConfig]) -> Optional[SidecarGenerator]:
    """
    Returns the generator for the active provider, or ``None`` when the VPN
    is disabled or no provider is selected.
    """
    if vpn_config is None or not vpn_config.active:
        return None
    logger.debug("Using %s sidecar", vpn_config.type.value)
    return SIDECARS[vpn_config.type](vpn_config.settings)
