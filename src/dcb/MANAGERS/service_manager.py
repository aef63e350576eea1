"""
Whole-value editing operations on the service list.

Every operation returns a new list; the input list and its services are
never modified.
"""
from typing import List

from ..MODELS.service_config import ServiceConfig, default_service


def add_service(services: List[ServiceConfig]) -> List[ServiceConfig]:
    """Appends a default service."""
    return list(services) + [default_service()]


def remove_service(services: List[ServiceConfig], idx: int) -> List[ServiceConfig]:
    """
    Removes the service at ``idx``. Removing the last remaining service
    leaves a single default service in its place.
    """
    remaining = [svc for i, svc in enumerate(services) if i != idx]
    return remaining or [default_service()]


def replace_service(services: List[ServiceConfig], idx: int, service: ServiceConfig) -> List[ServiceConfig]:
    """
    Replaces the service at ``idx``.

    :raises IndexError: If ``idx`` is out of range.
    """
    if not 0 <= idx < len(services):
        raise IndexError(f"No service at index {idx}")
    updated = list(services)
    updated[idx] = service
    return updated
