"""
Volume management: add, rename and remove top-level named volumes while
keeping every service mount consistent.
"""
from typing import List, Tuple

from ..MODELS.resource_config import VolumeConfig, default_volume
from ..MODELS.service_config import ServiceConfig

VolumeEdit = Tuple[List[VolumeConfig], List[ServiceConfig]]


def add_volume(volumes: List[VolumeConfig]) -> List[VolumeConfig]:
    return list(volumes) + [default_volume()]


def _uses(service: ServiceConfig, name: str) -> bool:
    return any(mount.host == name for mount in service.volumes)


def rename_volume(
    volumes: List[VolumeConfig],
    services: List[ServiceConfig],
    idx: int,
    new_name: str,
) -> VolumeEdit:
    """
    Renames the volume at ``idx``; mounts sourcing it follow the new name.

    :return: The new volume list and the new service list.
    """
    old_name = volumes[idx].name
    updated_volumes = list(volumes)
    updated_volumes[idx] = volumes[idx].model_copy(update={"name": new_name})
    updated_services = []
    for svc in services:
        if _uses(svc, old_name):
            mounts = [
                m.model_copy(update={"host": new_name}) if m.host == old_name else m
                for m in svc.volumes
            ]
            svc = svc.model_copy(update={"volumes": mounts})
        updated_services.append(svc)
    return updated_volumes, updated_services


def remove_volume(
    volumes: List[VolumeConfig],
    services: List[ServiceConfig],
    idx: int,
) -> VolumeEdit:
    """
    Removes the volume at ``idx`` together with every mount sourcing it.

    :return: The new volume list and the new service list.
    """
    removed = volumes[idx].name
    updated_volumes = [vol for i, vol in enumerate(volumes) if i != idx]
    updated_services = [
        svc.model_copy(update={"volumes": [m for m in svc.volumes if m.host != removed]})
        if _uses(svc, removed) else svc
        for svc in services
    ]
    return updated_volumes, updated_services
