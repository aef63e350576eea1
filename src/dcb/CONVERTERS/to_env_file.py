"""
Extracts the variables a compose project expects from a ``.env`` file.
"""
from typing import List, Optional

from ..BUILDERS.vpn_sidecar import sidecar_for
from ..MODELS.service_config import ServiceConfig
from ..MODELS.vpn_config import VPNConfig
from ..UTILS.string_interpolation import EnvironmentInterpolator


def env_variable_names(services: List[ServiceConfig], vpn_config: Optional[VPNConfig] = None) -> List[str]:
    """
    Collects ``${NAME}`` references from environment values plus the
    credential variables of the active VPN sidecar.

    :return: Sorted, distinct names.
    """
    values = [kv.value for svc in services for kv in svc.environment if kv.key]
    names = set(EnvironmentInterpolator.collect(values))
    sidecar = sidecar_for(vpn_config)
    if sidecar is not None:
        names.update(sidecar.credential_variables())
    return sorted(names)


def generate_env_file(services: List[ServiceConfig], vpn_config: Optional[VPNConfig] = None) -> str:
    """
    Renders one empty ``NAME=`` line per expected variable, sorted.
    """
    return "\n".join(f"{name}=" for name in env_variable_names(services, vpn_config))
