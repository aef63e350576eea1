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
Models for the optional VPN sidecar: one settings object per provider and the
top-level switch selecting which provider, if any, is active.

Field names are snake_case; the camelCase spellings used by form state and
saved documents (``servicesUsingVpn``, ``authKey``) are accepted as aliases.
"""
from typing import Any, List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class VPNType(str, Enum):
    """Supported VPN sidecar providers."""
    TAILSCALE = "tailscale"
    NEWT = "newt"
    CLOUDFLARED = "cloudflared"
    WIREGUARD = "wireguard"
    ZEROTIER = "zerotier"
    NETBIRD = "netbird"


class _VPNModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class TailscaleConfig(_VPNModel):
    auth_key: str = ""
    hostname: str = ""
    accept_dns: bool = False
    auth_once: bool = True
    userspace: bool = False
    exit_node: str = ""
    exit_node_allow_lan: bool = False
    enable_serve: bool = False
    cert_domain: str = ""
    serve_target_service: str = ""
    serve_external_port: str = "443"
    serve_internal_port: str = "8080"
    serve_path: str = "/"
    serve_protocol: str = "HTTPS"


class NewtConfig(_VPNModel):
    endpoint: str = "https://app.pangolin.net"
    newt_id: str = ""
    newt_secret: str = ""
    network_name: str = "newt"


class CloudflaredConfig(_VPNModel):
    tunnel_token: str = ""
    no_autoupdate: bool = True


class WireguardConfig(_VPNModel):
    config_path: str = "/etc/wireguard/wg0.conf"
    interface_name: str = "wg0"


class ZerotierConfig(_VPNModel):
    network_id: str = ""
    identity_path: str = "/var/lib/zerotier-one"


class NetbirdConfig(_VPNModel):
    setup_key: str = ""
    management_url: str = ""


SETTINGS_MODELS = {
    VPNType.TAILSCALE: TailscaleConfig,
    VPNType.NEWT: NewtConfig,
    VPNType.CLOUDFLARED: CloudflaredConfig,
    VPNType.WIREGUARD: WireguardConfig,
    VPNType.ZEROTIER: ZerotierConfig,
    VPNType.NETBIRD: NetbirdConfig,
}


class VPNConfig(_VPNModel):
    """
    VPN sidecar selection. ``type`` holds at most one active provider; when
    ``enabled`` the settings object for that provider is always present.
    """
    enabled: bool = False
    type: Optional[VPNType] = None
    tailscale: Optional[TailscaleConfig] = None
    newt: Optional[NewtConfig] = None
    cloudflared: Optional[CloudflaredConfig] = None
    wireguard: Optional[WireguardConfig] = None
    zerotier: Optional[ZerotierConfig] = None
    netbird: Optional[NetbirdConfig] = None
    services_using_vpn: List[str] = []

    @model_validator(mode="before")
    @classmethod
    def _fill_active_settings(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        vpn_type = data.get("type")
        if not data.get("enabled") or not vpn_type:
            return data
        key = vpn_type.value if isinstance(vpn_type, VPNType) else str(vpn_type)
        if data.get(key) is None:
            data = dict(data)
            data[key] = {}
        return data

    @property
    def active(self) -> bool:
        """True when a provider is both enabled and selected."""
        return self.enabled and self.type is not None

    @property
    def settings(self) -> Optional[BaseModel]:
        """Settings object of the active provider, or ``None``."""
        if not self.active:
            return None
        return getattr(self, self.type.value) or SETTINGS_MODELS[self.type]()


def default_tailscale_config() -> TailscaleConfig:
    return TailscaleConfig()


def default_newt_config() -> NewtConfig:
    return NewtConfig()


def default_cloudflared_config() -> CloudflaredConfig:
    return CloudflaredConfig()


def default_wireguard_config() -> WireguardConfig:
    return WireguardConfig()


def default_zerotier_config() -> ZerotierConfig:
    return ZerotierConfig()


def default_netbird_config() -> NetbirdConfig:
    return NetbirdConfig()


def default_vpn_config() -> VPNConfig:
    return VPNConfig()
