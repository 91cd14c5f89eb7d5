"""Stable ordering of services, volumes and networks for the layout engine."""

from typing import Optional, TypeVar

from models.compose_model import NetworkConfig, ServiceConfig, VolumeConfig
from models.project_model import ComposeProject

T = TypeVar("T", ServiceConfig, VolumeConfig)


def _declared_positions(declared: list[str]) -> dict[str, int]:
    """Map each name to its first position in the declared sequence."""
    positions: dict[str, int] = {}
    for index, name in enumerate(declared):
        positions.setdefault(name, index)
    return positions


def sort_by_declaration(entities: dict[str, T], declared: list[str]) -> list[tuple[str, T]]:
    """Order services or volumes by explicit order, then declaration.

    Entities compare by ``order`` ascending (an absent order counts as 0).
    Ties fall back to the first position of the name in ``declared``; names
    missing from ``declared`` go after every declared name, and remaining
    ties are broken by name.
    """
    positions = _declared_positions(declared)

    def key(item: tuple[str, T]) -> tuple[int, int, int, str]:
        name, entity = item
        order: Optional[int] = entity.order
        position = positions.get(name)
        return (
            order if order is not None else 0,
            0 if position is not None else 1,
            position if position is not None else 0,
            name,
        )

    return sorted(entities.items(), key=key)


def sorted_services(project: ComposeProject) -> list[tuple[str, ServiceConfig]]:
    """Services in layout order."""
    return sort_by_declaration(project.services, project.service_order)


def sorted_volumes(project: ComposeProject) -> list[tuple[str, VolumeConfig]]:
    """Volumes in layout order."""
    return sort_by_declaration(project.volumes, project.volume_order)


def sorted_networks(project: ComposeProject) -> list[tuple[str, NetworkConfig]]:
    """Networks by name; they carry no declaration order."""
    return sorted(project.networks.items(), key=lambda item: item[0])
