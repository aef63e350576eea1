"""
Models for the overall builder state.
"""
from typing import List
from pydantic import BaseModel, ConfigDict, Field
from .service_config import ServiceConfig
from .resource_config import NetworkConfig, VolumeConfig
from .vpn_config import VPNConfig, default_vpn_config


class ComposeProject(BaseModel):
    """
    Complete canonical model for a multi-service stack: the value every
    transform reads from and the importer produces.
    """
    model_config = ConfigDict(frozen=True)

    services: List[ServiceConfig] = []
    networks: List[NetworkConfig] = []
    volumes: List[VolumeConfig] = []
    vpn: VPNConfig = Field(default_factory=default_vpn_config)

    def service_named(self, name: str):
        """
        Returns the first service called ``name``, or ``None``.
        """
        return next((svc for svc in self.services if svc.name == name), None)
