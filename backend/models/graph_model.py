"""Pydantic models for the positioned diagram consumed by the React Flow front end."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .compose_model import NetworkConfig, ServiceConfig, VolumeConfig


class NodeType(str, Enum):
    """Kind tags of diagram nodes."""
    COMPOSE = "compose"
    NETWORK = "network"
    SERVICE = "services"
    VOLUME = "volume"


class EdgeKind(str, Enum):
    """Relation kinds between diagram nodes."""
    COMPOSE_NETWORK = "compose-network"
    NETWORK_SERVICE = "network-services"
    COMPOSE_SERVICE = "compose-services"
    DEPENDS = "depends"
    SERVICE_VOLUME = "services-volume"
    COMPOSE_UNUSED_VOLUME = "compose-unused-volume"


ROOT_NODE_ID = "docker-compose"


def network_node_id(name: str) -> str:
    return f"network-{name}"


def service_node_id(name: str) -> str:
    return f"services-{name}"


def volume_node_id(name: str) -> str:
    return f"volume-{name}"


def edge_id(kind: EdgeKind, source: str, target: str) -> str:
    """Identifier derived only from the relation kind and its endpoints."""
    return f"edge-{kind.value}-{source}->{target}"


class _GraphElement(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Position(_GraphElement):
    """Top-left corner of a node on the canvas."""
    x: float
    y: float


class NodeData(_GraphElement):
    """Display data attached to a node."""
    label: str
    type: NodeType
    service: Optional[ServiceConfig] = Field(default=None, alias="services")
    network: Optional[NetworkConfig] = None
    volume: Optional[VolumeConfig] = None
    status: Optional[str] = None
    description: Optional[str] = None
    properties: dict[str, Any] = Field(default_factory=dict)


class Node(_GraphElement):
    """A positioned diagram node."""
    id: str
    type: NodeType
    position: Position
    data: NodeData
    width: Optional[int] = None
    height: Optional[int] = None
    style: Optional[dict[str, Any]] = None


class Edge(_GraphElement):
    """A connection between two nodes of the same graph."""
    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    type: Optional[str] = None
    animated: bool = False
    style: Optional[dict[str, Any]] = None
    label: Optional[str] = None
    network_name: Optional[str] = Field(default=None, alias="networkName")
    service_name: Optional[str] = Field(default=None, alias="serviceName")
    label_style: Optional[dict[str, Any]] = Field(default=None, alias="labelStyle")
    label_bg_style: Optional[dict[str, Any]] = Field(default=None, alias="labelBgStyle")


class Viewport(_GraphElement):
    """Initial camera of the diagram."""
    x: float = 0
    y: float = 0
    zoom: float = 0.8


class Graph(_GraphElement):
    """Complete diagram for one compose project."""
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    project: str
    layout: str = "custom"
    direction: str = "LR"
    viewport: Viewport = Field(default_factory=Viewport)
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialise with front-end field names, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
