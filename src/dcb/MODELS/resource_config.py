"""
Models for top-level named networks and volumes.
"""
from typing import List
from pydantic import BaseModel, ConfigDict, Field

from .service_config import KeyValue


class IpamPool(BaseModel):
    model_config = ConfigDict(frozen=True)

    subnet: str = ""
    gateway: str = ""


class IpamConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    driver: str = ""
    config: List[IpamPool] = []
    options: List[KeyValue] = []


class NetworkConfig(BaseModel):
    """
    A named network. Services reference it by ``name`` in their ``networks``.
    """
    model_config = ConfigDict(frozen=True)

    name: str = ""
    driver: str = ""
    driver_opts: List[KeyValue] = []
    attachable: bool = False
    labels: List[KeyValue] = []
    external: bool = False
    name_external: str = ""
    internal: bool = False
    enable_ipv6: bool = False
    ipam: IpamConfig = Field(default_factory=IpamConfig)


class VolumeConfig(BaseModel):
    """
    A named volume. Services reference it by ``name`` as a mount's ``host``.
    The ``driver_opts_*`` fields are shortcuts for the common local-driver
    options and win over the same keys in ``driver_opts``.
    """
    model_config = ConfigDict(frozen=True)

    name: str = ""
    driver: str = ""
    driver_opts: List[KeyValue] = []
    labels: List[KeyValue] = []
    external: bool = False
    name_external: str = ""
    driver_opts_type: str = ""
    driver_opts_device: str = ""
    driver_opts_o: str = ""


def default_network() -> NetworkConfig:
    return NetworkConfig()


def default_volume() -> VolumeConfig:
    return VolumeConfig()
