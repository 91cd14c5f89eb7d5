"""Pydantic data models for Docker Compose services, networks and volumes."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class MountType(str, Enum):
    """Kinds of service volume mounts."""
    BIND = "bind"
    VOLUME = "volume"
    TMPFS = "tmpfs"
    NPIPE = "npipe"


class BuildConfig(BaseModel):
    """Image build instructions for a service."""
    context: str = "."
    dockerfile: Optional[str] = None
    args: dict[str, str] = Field(default_factory=dict)
    target: Optional[str] = None
    cache_from: list[str] = Field(default_factory=list)
    labels: dict[str, str] = Field(default_factory=dict)


class PortMapping(BaseModel):
    """A published or exposed container port."""
    target: int
    published: Optional[int] = None
    protocol: Optional[str] = None
    mode: Optional[str] = None


class VolumeMount(BaseModel):
    """A single entry of a service's ``volumes`` list."""
    type: MountType = MountType.VOLUME
    source: str = ""
    target: str = ""
    read_only: bool = False
    consistency: Optional[str] = None

    @property
    def is_named_volume(self) -> bool:
        """True for mounts that reference a top-level named volume."""
        return self.type == MountType.VOLUME and bool(self.source)


# ---------- Deploy ----------

class PlacementConfig(BaseModel):
    """Scheduling constraints for swarm deployments."""
    constraints: list[str] = Field(default_factory=list)
    preferences: list[str] = Field(default_factory=list)
    max_replicas: Optional[int] = None


class ResourceLimits(BaseModel):
    cpus: Optional[str] = None
    memory: Optional[str] = None
    pids: Optional[int] = None


class ResourceRequirements(BaseModel):
    """Upper limits and guaranteed reservations."""
    limits: Optional[ResourceLimits] = None
    reservations: Optional[ResourceLimits] = None


class RestartPolicyConfig(BaseModel):
    condition: Optional[str] = None
    delay: Optional[str] = None
    max_attempts: Optional[int] = None
    window: Optional[str] = None


class UpdateConfig(BaseModel):
    """How replicas are replaced during an update."""
    parallelism: Optional[int] = None
    delay: Optional[str] = None
    failure_action: Optional[str] = None
    monitor: Optional[str] = None
    max_failure_ratio: Optional[str] = None
    order: Optional[str] = None


class RollbackConfig(UpdateConfig):
    """How replicas are restored after a failed update."""


class DeployConfig(BaseModel):
    """The ``deploy`` section of a service."""
    mode: Optional[str] = None
    replicas: Optional[int] = None
    placement: Optional[PlacementConfig] = None
    resources: Optional[ResourceRequirements] = None
    restart_policy: Optional[RestartPolicyConfig] = None
    update_config: Optional[UpdateConfig] = None
    rollback_config: Optional[RollbackConfig] = None


# ---------- Runtime ----------

class LoggingConfig(BaseModel):
    driver: Optional[str] = None
    options: dict[str, str] = Field(default_factory=dict)


class HealthCheckConfig(BaseModel):
    """Container health check command and timing."""
    test: list[str] = Field(default_factory=list)
    interval: Optional[str] = None
    timeout: Optional[str] = None
    retries: Optional[int] = None
    start_period: Optional[str] = None
    start_interval: Optional[str] = None


class ExtendsConfig(BaseModel):
    """Reference to a service this one inherits from."""
    file: Optional[str] = None
    service: str = ""


class ServiceConfig(BaseModel):
    """A deployable unit of a compose project."""
    name: str
    image: Optional[str] = None
    build: Optional[BuildConfig] = None
    command: list[str] = Field(default_factory=list)
    entrypoint: list[str] = Field(default_factory=list)
    working_dir: Optional[str] = None
    user: Optional[str] = None
    platform: Optional[str] = None
    # Position in the source document; None when the snapshot was built by hand
    order: Optional[int] = None
    depends_on: list[str] = Field(default_factory=list)
    restart: Optional[str] = None
    ports: list[PortMapping] = Field(default_factory=list)
    expose: list[str] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)
    network_mode: Optional[str] = None
    environment: dict[str, str] = Field(default_factory=dict)
    env_file: list[str] = Field(default_factory=list)
    volumes: list[VolumeMount] = Field(default_factory=list)
    volumes_from: list[str] = Field(default_factory=list)
    # Resources
    deploy: Optional[DeployConfig] = None
    cpu_shares: Optional[int] = None
    cpuset: Optional[str] = None
    cpu_quota: Optional[int] = None
    cpus: Optional[float] = None
    memory: Optional[str] = None
    memory_swap: Optional[str] = None
    # Runtime
    logging: Optional[LoggingConfig] = None
    healthcheck: Optional[HealthCheckConfig] = None
    labels: dict[str, str] = Field(default_factory=dict)
    extends: Optional[ExtendsConfig] = None


class NetworkConfig(BaseModel):
    """A top-level network definition."""
    driver: Optional[str] = None
    driver_opts: dict[str, str] = Field(default_factory=dict)
    external: bool = False
    name: Optional[str] = None
    attachable: bool = False
    internal: bool = False
    labels: dict[str, str] = Field(default_factory=dict)


class VolumeConfig(BaseModel):
    """A top-level named volume definition."""
    driver: Optional[str] = None
    driver_opts: dict[str, str] = Field(default_factory=dict)
    external: bool = False
    name: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)
    order: Optional[int] = None


class SecretConfig(BaseModel):
    """A top-level secret definition."""
    file: Optional[str] = None
    external: bool = False
    name: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)


class ConfigConfig(BaseModel):
    """A top-level config definition."""
    file: Optional[str] = None
    external: bool = False
    name: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)
