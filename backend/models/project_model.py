"""Container model for a decoded Docker Compose project."""

from pydantic import BaseModel, ConfigDict, Field

from .compose_model import (
    ConfigConfig,
    NetworkConfig,
    SecretConfig,
    ServiceConfig,
    VolumeConfig,
)


class ComposeProject(BaseModel):
    """Immutable snapshot of a compose project handed to the layout engine.

    ``service_order`` and ``volume_order`` hold names in the order they were
    first encountered in the source document.
    """
    model_config = ConfigDict(frozen=True)

    name: str = "docker-compose"
    version: str = ""
    services: dict[str, ServiceConfig] = Field(default_factory=dict)
    service_order: list[str] = Field(default_factory=list)
    networks: dict[str, NetworkConfig] = Field(default_factory=dict)
    volumes: dict[str, VolumeConfig] = Field(default_factory=dict)
    volume_order: list[str] = Field(default_factory=list)
    secrets: dict[str, SecretConfig] = Field(default_factory=dict)
    configs: dict[str, ConfigConfig] = Field(default_factory=dict)
