"""Layout engine that computes positions for Docker Compose project diagrams.

Layout strategy (left-to-right columns):
Phase 0: Canvas dimensions from entity counts and options
Phase 1: Root node (left column)
Phase 2: Network column, centered against the service column
Phase 3: Service column
Phase 4: Volumes - used ones next to their consumers, unused ones under the root
Phase 5: Edges (services.edges)
Phase 6: Viewport and graph assembly
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from models.compose_model import VolumeConfig
from models.graph_model import (
    ROOT_NODE_ID,
    Graph,
    Node,
    NodeData,
    NodeType,
    Position,
    Viewport,
    network_node_id,
    service_node_id,
    volume_node_id,
)
from models.project_model import ComposeProject
from services import edges
from services.ordering import sorted_networks, sorted_services, sorted_volumes

logger = logging.getLogger(__name__)


class LayoutOptions(BaseModel):
    """Spacing and offset constants for the generated diagram."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    direction: str = Field(default="LR", description="Direction hint for the front end")
    node_width: int = Field(default=240, alias="nodeWidth", description="Node width")
    node_height: int = Field(default=120, alias="nodeHeight", description="Node height")
    node_gap_x: int = Field(
        default=100, alias="nodeGapX", description="Vertical step between unused volumes"
    )
    node_gap_y: int = Field(default=50, alias="nodeGapY", description="Vertical gap between nodes")
    padding: int = Field(default=50, description="Padding around the diagram")
    column_gap: int = Field(
        default=440, alias="columnGap", description="Horizontal distance to the service column"
    )
    column_top_gap: int = Field(
        default=120, alias="columnTopGap", description="Vertical step between stacked nodes"
    )
    root_column_start_x: int = Field(
        default=-350, alias="rootColumnStartX", description="X of the root node column"
    )
    volume_x_offset: int = Field(
        default=300, alias="volumeXOffset", description="Used volumes sit this far right of consumers"
    )
    volume_y_offset: int = Field(
        default=180, alias="volumeYOffset", description="Unused volumes start this far below the root"
    )
    initial_last_placed_y: int = Field(
        default=-1000, alias="initialLastPlacedY", description="Seed of the volume stacking bound"
    )


# Networks sit just right of the column origin, between root and services
NETWORK_COLUMN_OFFSET = 20
NETWORK_SPACING = 120

# Lifts the root slightly above the vertical center of the service column
ROOT_Y_ADJUST = 10

SERVICE_COLOR = "#3b82f6"
UNUSED_VOLUME_OPACITY = 0.5
VIEWPORT_ZOOM = 0.8

LAYOUT_ENGINE = "custom"
GRAPH_DIRECTION = "LR"


def _trunc_div(total: int, count: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(total) // abs(count)
    return quotient if (total >= 0) == (count > 0) else -quotient


# ---------- Phase 0: Dimensions ----------

@dataclass(frozen=True)
class GraphDimensions:
    """Canvas geometry derived for a single layout call."""
    service_count: int
    network_count: int
    volume_count: int
    origin_x: int
    root_y: int
    service_column_height: int
    network_column_height: int
    service_base_y: int
    network_start_y: int
    network_x: int
    service_start_x: int
    service_start_y: int
    unused_volume_start_y: int


def calculate_dimensions(project: ComposeProject, options: LayoutOptions) -> GraphDimensions:
    """Compute column origins and centering offsets from entity counts."""
    service_count = len(project.services)
    network_count = len(project.networks)
    volume_count = len(project.volumes)

    origin_x = 0
    root_y = _trunc_div(service_count * options.node_height, 2) - ROOT_Y_ADJUST

    service_height = max(service_count * options.node_height, options.node_width)
    network_height = max(network_count * options.node_height, options.node_height)

    # Center the shorter column against the taller one
    service_base_y = options.padding
    if service_height >= network_height:
        network_start_y = service_base_y + (service_height - network_height) // 2
    else:
        network_start_y = service_base_y - (network_height - service_height) // 2

    return GraphDimensions(
        service_count=service_count,
        network_count=network_count,
        volume_count=volume_count,
        origin_x=origin_x,
        root_y=root_y,
        service_column_height=service_height,
        network_column_height=network_height,
        service_base_y=service_base_y,
        network_start_y=network_start_y,
        network_x=origin_x + NETWORK_COLUMN_OFFSET,
        service_start_x=origin_x + options.column_gap,
        service_start_y=options.padding,
        unused_volume_start_y=root_y + options.volume_y_offset,
    )


# ---------- Phase 1-3: Root, network and service nodes ----------

def create_root_node(
    project: ComposeProject, options: LayoutOptions, dims: GraphDimensions
) -> Node:
    """The single node standing for the whole project."""
    return Node(
        id=ROOT_NODE_ID,
        type=NodeType.COMPOSE,
        position=Position(x=options.root_column_start_x, y=dims.root_y),
        data=NodeData(
            label=project.name,
            type=NodeType.COMPOSE,
            properties={
                "services": dims.service_count,
                "networks": dims.network_count,
                "volumes": dims.volume_count,
                "version": project.version,
            },
        ),
    )


def create_network_nodes(
    project: ComposeProject, dims: GraphDimensions
) -> tuple[list[Node], dict[str, str]]:
    """Network column. Returns the nodes and a name -> node id map."""
    nodes: list[Node] = []
    node_ids: dict[str, str] = {}

    for index, (name, network) in enumerate(sorted_networks(project)):
        node_id = network_node_id(name)
        node_ids[name] = node_id
        nodes.append(Node(
            id=node_id,
            type=NodeType.NETWORK,
            position=Position(x=dims.network_x, y=dims.network_start_y + index * NETWORK_SPACING),
            data=NodeData(
                label=name,
                type=NodeType.NETWORK,
                network=network,
                properties={
                    "driver": network.driver or "",
                    "internal": network.internal,
                    "external": network.external,
                    "attachable": network.attachable,
                },
            ),
        ))

    return nodes, node_ids


def create_service_nodes(
    project: ComposeProject, options: LayoutOptions, dims: GraphDimensions
) -> tuple[list[Node], dict[str, str]]:
    """Service column. Returns the nodes and a name -> node id map."""
    nodes: list[Node] = []
    node_ids: dict[str, str] = {}

    for index, (name, service) in enumerate(sorted_services(project)):
        node_id = service_node_id(name)
        node_ids[name] = node_id
        nodes.append(Node(
            id=node_id,
            type=NodeType.SERVICE,
            position=Position(
                x=dims.service_start_x,
                y=dims.service_start_y + index * options.column_top_gap,
            ),
            data=NodeData(
                label=name,
                type=NodeType.SERVICE,
                service=service,
                status="saved",
                properties={
                    "image": service.image or "",
                    "ports": len(service.ports),
                    "volumes": len(service.volumes),
                    "depends_on": len(service.depends_on),
                    "networks": len(service.networks),
                    "color": SERVICE_COLOR,
                    "order": service.order,
                },
            ),
        ))

    return nodes, node_ids


# ---------- Phase 4: Volumes ----------

@dataclass(frozen=True)
class PlacedVolume:
    """A used volume with its anchor derived from its consumers."""
    name: str
    volume: VolumeConfig
    x: int
    y: int
    used_by: list[str]


def collect_volume_usage(project: ComposeProject) -> dict[str, list[str]]:
    """Map volume name -> names of services mounting it, in service order."""
    usage: dict[str, list[str]] = {}
    for service_name, service in sorted_services(project):
        for mount in service.volumes:
            if not mount.is_named_volume:
                continue
            users = usage.setdefault(mount.source, [])
            if service_name not in users:
                users.append(service_name)
    return usage


def place_used_volumes(
    used: list[tuple[str, VolumeConfig]],
    usage: dict[str, list[str]],
    service_positions: dict[str, Position],
    options: LayoutOptions,
) -> list[PlacedVolume]:
    """Anchor each used volume at the mean position of its consumers.

    Volumes are stacked by ascending mean Y; each one is pushed down to at
    least ``column_top_gap`` below the previous, so no two share a row.
    """
    anchors: list[tuple[str, VolumeConfig, int, int]] = []
    for name, volume in used:
        positions = [service_positions[s] for s in usage[name] if s in service_positions]
        if positions:
            mean_x = _trunc_div(sum(int(p.x) for p in positions), len(positions))
            mean_y = _trunc_div(sum(int(p.y) for p in positions), len(positions))
        else:
            mean_x = mean_y = 0
        anchors.append((name, volume, mean_x, mean_y))

    anchors.sort(key=lambda anchor: anchor[3])

    placed: list[PlacedVolume] = []
    last_y = options.initial_last_placed_y
    for index, (name, volume, mean_x, mean_y) in enumerate(anchors):
        if index == 0:
            y = max(mean_y, options.padding)
        else:
            y = max(mean_y, last_y + options.column_top_gap)
        last_y = y
        placed.append(PlacedVolume(
            name=name,
            volume=volume,
            x=mean_x + options.volume_x_offset,
            y=y,
            used_by=list(usage[name]),
        ))

    return placed


def _volume_properties(volume: VolumeConfig, used_by: list[str], used: bool) -> dict[str, Any]:
    return {
        "driver": volume.driver or "",
        "external": volume.external,
        "order": volume.order,
        "used_by": used_by,
        "used": used,
    }


def create_volume_nodes(
    project: ComposeProject,
    options: LayoutOptions,
    dims: GraphDimensions,
    usage: dict[str, list[str]],
    service_positions: dict[str, Position],
) -> tuple[list[Node], list[str]]:
    """Volume nodes (used first, then unused) and the names of unused volumes."""
    used: list[tuple[str, VolumeConfig]] = []
    unused: list[tuple[str, VolumeConfig]] = []
    for name, volume in sorted_volumes(project):
        (used if usage.get(name) else unused).append((name, volume))

    nodes: list[Node] = []
    for placed in place_used_volumes(used, usage, service_positions, options):
        nodes.append(Node(
            id=volume_node_id(placed.name),
            type=NodeType.VOLUME,
            position=Position(x=placed.x, y=placed.y),
            data=NodeData(
                label=placed.name,
                type=NodeType.VOLUME,
                volume=placed.volume,
                properties=_volume_properties(placed.volume, placed.used_by, True),
            ),
        ))

    for index, (name, volume) in enumerate(unused):
        properties = _volume_properties(volume, [], False)
        properties["status"] = "unused"
        nodes.append(Node(
            id=volume_node_id(name),
            type=NodeType.VOLUME,
            position=Position(
                x=options.root_column_start_x,
                y=dims.unused_volume_start_y + index * options.node_gap_x,
            ),
            style={"opacity": UNUSED_VOLUME_OPACITY},
            data=NodeData(
                label=name,
                type=NodeType.VOLUME,
                volume=volume,
                status="unused",
                properties=properties,
            ),
        ))

    return nodes, [name for name, _ in unused]


# ---------- Phase 6: Viewport ----------

def bounding_box(nodes: list[Node], padding: int) -> tuple[float, float, float, float]:
    """(min_x, min_y, max_x, max_y) over all nodes, grown by padding.

    An empty node list yields a zero box.
    """
    if not nodes:
        return 0.0, 0.0, 0.0, 0.0

    min_x = min(n.position.x for n in nodes)
    min_y = min(n.position.y for n in nodes)
    max_x = max(n.position.x + (n.width or 0) for n in nodes)
    max_y = max(n.position.y + (n.height or 0) for n in nodes)

    return min_x - padding, min_y - padding, max_x + padding, max_y + padding


def calculate_viewport(nodes: list[Node], options: LayoutOptions) -> Viewport:
    min_x, min_y, _, _ = bounding_box(nodes, options.padding)
    return Viewport(x=min_x, y=min_y, zoom=VIEWPORT_ZOOM)


# ---------- Main layout function ----------

def compute_layout(
    project: ComposeProject, options: LayoutOptions | None = None
) -> Graph:
    """Convert a ComposeProject into a positioned diagram.

    Pure apart from the ``created_at`` stamp: identical input and options
    always yield identical nodes and edges.
    """
    if options is None:
        options = LayoutOptions()

    dims = calculate_dimensions(project, options)

    root = create_root_node(project, options, dims)
    network_nodes, network_ids = create_network_nodes(project, dims)
    service_nodes, service_ids = create_service_nodes(project, options, dims)

    membership_edges = edges.create_network_to_service_edges(project, network_ids)

    usage = collect_volume_usage(project)
    service_positions = {node.data.label: node.position for node in service_nodes}
    volume_nodes, unused_volumes = create_volume_nodes(
        project, options, dims, usage, service_positions
    )
    volume_ids = {node.data.label: node.id for node in volume_nodes}

    all_nodes = [root, *network_nodes, *service_nodes, *volume_nodes]
    all_edges = [
        *edges.create_root_to_network_edges(network_ids),
        *membership_edges,
        *edges.create_depends_on_edges(project, service_ids),
        *edges.create_service_to_volume_edges(project, volume_ids),
        *edges.create_unused_volume_edges(unused_volumes),
    ]

    logger.debug(
        "Laid out project %r: %d nodes, %d edges", project.name, len(all_nodes), len(all_edges)
    )

    return Graph(
        nodes=all_nodes,
        edges=all_edges,
        project=project.name,
        layout=LAYOUT_ENGINE,
        direction=GRAPH_DIRECTION,
        viewport=calculate_viewport(all_nodes, options),
        created_at=datetime.now(timezone.utc),
    )
