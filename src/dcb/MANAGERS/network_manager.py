"""
Network management: add, rename and remove top-level networks while keeping
every service reference consistent.
"""
from typing import List, Tuple

from ..MODELS.resource_config import NetworkConfig, default_network
from ..MODELS.service_config import ServiceConfig

NetworkEdit = Tuple[List[NetworkConfig], List[ServiceConfig]]


def add_network(networks: List[NetworkConfig]) -> List[NetworkConfig]:
    return list(networks) + [default_network()]


def rename_network(
    networks: List[NetworkConfig],
    services: List[ServiceConfig],
    idx: int,
    new_name: str,
) -> NetworkEdit:
    """
    Renames the network at ``idx`` and every service's reference to it.

    :return: The new network list and the new service list.
    """
    old_name = networks[idx].name
    updated_networks = list(networks)
    updated_networks[idx] = networks[idx].model_copy(update={"name": new_name})
    updated_services = [
        svc.model_copy(update={"networks": [new_name if n == old_name else n for n in svc.networks]})
        if old_name in svc.networks else svc
        for svc in services
    ]
    return updated_networks, updated_services


def remove_network(
    networks: List[NetworkConfig],
    services: List[ServiceConfig],
    idx: int,
) -> NetworkEdit:
    """
    Removes the network at ``idx`` and strips it from every service.

    :return: The new network list and the new service list.
    """
    removed = networks[idx].name
    updated_networks = [net for i, net in enumerate(networks) if i != idx]
    updated_services = [
        svc.model_copy(update={"networks": [n for n in svc.networks if n != removed]})
        if removed in svc.networks else svc
        for svc in services
    ]
    return updated_networks, updated_services
