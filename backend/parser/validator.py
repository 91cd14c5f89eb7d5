"""Reference checks for decoded compose projects."""

from models.project_model import ComposeProject
from services.ordering import sorted_services


def validate_references(project: ComposeProject) -> list[str]:
    """Report names that a service uses but the project does not define.

    Returns a list of warning messages. Unresolved references never block
    layout: the layout engine simply draws no edge for them.
    """
    warnings: list[str] = []

    for service_name, service in sorted_services(project):
        for dependency in service.depends_on:
            if dependency not in project.services:
                warnings.append(
                    f"Service '{service_name}': depends on unknown service '{dependency}'"
                )
            elif dependency == service_name:
                warnings.append(f"Service '{service_name}': depends on itself")

        for network_name in service.networks:
            if network_name not in project.networks:
                warnings.append(
                    f"Service '{service_name}': network '{network_name}' is not defined"
                )

        for mount in service.volumes:
            if mount.is_named_volume and mount.source not in project.volumes:
                warnings.append(
                    f"Service '{service_name}': volume '{mount.source}' is not defined"
                )

    return warnings
