"""Edge construction for compose project diagrams.

Every edge id is derived from its relation kind and its endpoint ids, so the
same project always yields the same edge set. References to names the
project does not define produce no edge.
"""

from models.graph_model import (
    ROOT_NODE_ID,
    Edge,
    EdgeKind,
    edge_id,
    service_node_id,
    volume_node_id,
)
from models.project_model import ComposeProject
from services.ordering import sorted_services

NETWORK_LABEL_STYLE = {
    "fill": "#3b82f6",
    "opacity": 0.4,
    "textAlign": "center",
}

UNUSED_VOLUME_LABEL_STYLE = {
    "fill": "#9ca3af",
    "fontWeight": "400",
    "fontSize": "9px",
    "background": "rgba(255, 255, 255, 0.8)",
    "padding": "1px 4px",
    "borderRadius": "3px",
}


def _unique(names: list[str]) -> list[str]:
    """Drop repeated names, keeping the first occurrence."""
    return list(dict.fromkeys(names))


def create_root_to_network_edges(network_ids: dict[str, str]) -> list[Edge]:
    """One edge from the root to each network node."""
    return [
        Edge(
            id=edge_id(EdgeKind.COMPOSE_NETWORK, ROOT_NODE_ID, node_id),
            source=ROOT_NODE_ID,
            target=node_id,
            type="step",
        )
        for node_id in network_ids.values()
    ]


def create_network_to_service_edges(
    project: ComposeProject, network_ids: dict[str, str]
) -> list[Edge]:
    """Network membership edges, with a root fallback for unattached services.

    A service whose networks are all unknown (or who has none) is linked
    straight to the root with a dashed edge instead.
    """
    result: list[Edge] = []

    for service_name, service in sorted_services(project):
        node_id = service_node_id(service_name)
        attached = False

        for network_name in _unique(service.networks):
            network_id = network_ids.get(network_name)
            if network_id is None:
                continue
            result.append(Edge(
                id=edge_id(EdgeKind.NETWORK_SERVICE, network_id, node_id),
                source=network_id,
                target=node_id,
                type="smoothstep",
                style={"strokeWidth": 0, "stroke": "transparent"},
                label=network_name,
                label_style=dict(NETWORK_LABEL_STYLE),
                network_name=network_name,
                service_name=service_name,
            ))
            attached = True

        if not attached:
            result.append(Edge(
                id=edge_id(EdgeKind.COMPOSE_SERVICE, ROOT_NODE_ID, node_id),
                source=ROOT_NODE_ID,
                target=node_id,
                type="smoothstep",
                style={"strokeWidth": 1.5, "strokeDasharray": "5,5"},
            ))

    return result


def create_depends_on_edges(
    project: ComposeProject, service_ids: dict[str, str]
) -> list[Edge]:
    """Animated edges from each service to the services it depends on."""
    result: list[Edge] = []

    for service_name, service in sorted_services(project):
        source_id = service_ids[service_name]
        for dependency in _unique(service.depends_on):
            target_id = service_ids.get(dependency)
            if target_id is None:
                continue
            result.append(Edge(
                id=edge_id(EdgeKind.DEPENDS, source_id, target_id),
                source=source_id,
                source_handle=f"{source_id}-source-2",
                target=target_id,
                target_handle=f"{target_id}-target-2",
                type="smoothstep",
                animated=True,
            ))

    return result


def create_service_to_volume_edges(
    project: ComposeProject, volume_ids: dict[str, str]
) -> list[Edge]:
    """Animated edges from services to the named volumes they mount."""
    result: list[Edge] = []

    for service_name, service in sorted_services(project):
        source_id = service_node_id(service_name)
        sources = _unique([m.source for m in service.volumes if m.is_named_volume])
        for volume_name in sources:
            target_id = volume_ids.get(volume_name)
            if target_id is None:
                continue
            result.append(Edge(
                id=edge_id(EdgeKind.SERVICE_VOLUME, source_id, target_id),
                source=source_id,
                target=target_id,
                type="smoothstep",
                animated=True,
            ))

    return result


def create_unused_volume_edges(volume_names: list[str]) -> list[Edge]:
    """Muted dashed edges from the root to volumes no service mounts."""
    result: list[Edge] = []

    for volume_name in volume_names:
        target_id = volume_node_id(volume_name)
        result.append(Edge(
            id=edge_id(EdgeKind.COMPOSE_UNUSED_VOLUME, ROOT_NODE_ID, target_id),
            source=ROOT_NODE_ID,
            source_handle=f"{ROOT_NODE_ID}-source-2",
            target=target_id,
            type="step",
            style={
                "strokeWidth": 1,
                "stroke": "#9ca3af",
                "strokeDasharray": "3,3",
                "opacity": 0.6,
            },
            label="unused",
            label_style=dict(UNUSED_VOLUME_LABEL_STYLE),
        ))

    return result
