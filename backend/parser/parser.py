"""Decoder that converts Docker Compose YAML into a ComposeProject snapshot."""

import logging
import re
from pathlib import Path
from typing import IO, Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from models.compose_model import (
    BuildConfig,
    ConfigConfig,
    DeployConfig,
    ExtendsConfig,
    HealthCheckConfig,
    LoggingConfig,
    MountType,
    NetworkConfig,
    PlacementConfig,
    PortMapping,
    ResourceLimits,
    ResourceRequirements,
    RestartPolicyConfig,
    RollbackConfig,
    SecretConfig,
    ServiceConfig,
    UpdateConfig,
    VolumeConfig,
    VolumeMount,
)
from models.project_model import ComposeProject
from parser.syntax import (
    BIND_SOURCE_PREFIXES,
    COMPOSE_FILE_NAMES,
    DEFAULT_PROJECT_NAME,
    READ_ONLY_FLAG,
    SECTION_CONFIGS,
    SECTION_NAME,
    SECTION_NETWORKS,
    SECTION_SECRETS,
    SECTION_SERVICES,
    SECTION_VERSION,
    SECTION_VOLUMES,
    YAML_EXTENSIONS,
)

logger = logging.getLogger(__name__)

_PORT_NUMBER_RE = re.compile(r"^\s*(\d+)")

ModelT = TypeVar("ModelT", bound=BaseModel)

# Service keys copied as text
_SCALAR_KEYS = (
    "image", "working_dir", "user", "platform", "restart", "network_mode",
    "cpuset", "memory", "memory_swap",
)
# Service keys that accept a string or a list of strings
_LIST_KEYS = (
    "command", "entrypoint", "depends_on", "expose", "networks", "env_file", "volumes_from",
)
# Service keys validated as numbers by the model
_NUMBER_KEYS = ("cpu_shares", "cpu_quota", "cpus")


class ComposeParseError(Exception):
    """Error raised when a compose document cannot be decoded."""

    def __init__(self, message: str, path: str = "") -> None:
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class ComposeParser:
    """Parser that converts compose YAML text into a ComposeProject."""

    def parse(self, source: str, project_name: str | None = None) -> ComposeProject:
        """Parse YAML text and return the project snapshot.

        The project name defaults to the document's top-level ``name`` key,
        then to ``docker-compose``.
        """
        try:
            document = yaml.safe_load(source)
        except yaml.YAMLError as exc:
            raise ComposeParseError(f"failed to parse YAML: {exc}") from exc

        if document is None:
            raise ComposeParseError("invalid YAML document")
        if not isinstance(document, dict):
            raise ComposeParseError("root node is not a mapping")

        name = project_name or _scalar(document.get(SECTION_NAME)) or DEFAULT_PROJECT_NAME
        version = _scalar(document.get(SECTION_VERSION))

        services: dict[str, ServiceConfig] = {}
        service_order: list[str] = []
        for index, (service_name, raw) in enumerate(
            _section(document, SECTION_SERVICES).items(), start=1
        ):
            service = self._parse_service(service_name, raw)
            services[service_name] = service.model_copy(update={"order": index})
            service_order.append(service_name)

        networks = {
            network_name: self._parse_network(network_name, raw)
            for network_name, raw in _section(document, SECTION_NETWORKS).items()
        }

        volumes: dict[str, VolumeConfig] = {}
        volume_order: list[str] = []
        for index, (volume_name, raw) in enumerate(
            _section(document, SECTION_VOLUMES).items(), start=1
        ):
            volume = self._parse_volume(volume_name, raw)
            volumes[volume_name] = volume.model_copy(update={"order": index})
            volume_order.append(volume_name)

        secrets = {
            secret_name: _parse_file_definition(SecretConfig, raw, f"secrets.{secret_name}")
            for secret_name, raw in _section(document, SECTION_SECRETS).items()
        }
        configs = {
            config_name: _parse_file_definition(ConfigConfig, raw, f"configs.{config_name}")
            for config_name, raw in _section(document, SECTION_CONFIGS).items()
        }

        logger.debug(
            "Decoded compose project %r: %d services, %d networks, %d volumes",
            name, len(services), len(networks), len(volumes),
        )

        return ComposeProject(
            name=name,
            version=version,
            services=services,
            service_order=service_order,
            networks=networks,
            volumes=volumes,
            volume_order=volume_order,
            secrets=secrets,
            configs=configs,
        )

    def parse_stream(
        self, stream: IO[str] | IO[bytes], project_name: str | None = None
    ) -> ComposeProject:
        """Parse a compose document from an open text or binary stream.

        Bytes are decoded as UTF-8.
        """
        try:
            data = stream.read()
            source = data.decode("utf-8") if isinstance(data, bytes) else data
        except (OSError, UnicodeDecodeError) as exc:
            raise ComposeParseError(f"failed to read from stream: {exc}") from exc

        return self.parse(source, project_name)

    def parse_file(self, path: str | Path, project_name: str | None = None) -> ComposeProject:
        """Parse a ``.yml``/``.yaml`` file; the project name defaults to the file stem."""
        file_path = Path(path)
        if file_path.suffix.lower() not in YAML_EXTENSIONS:
            raise ComposeParseError(
                f"unsupported file extension: {file_path.suffix!r}, expected .yaml or .yml"
            )
        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ComposeParseError(f"failed to read file {file_path}: {exc}") from exc

        return self.parse(source, project_name or file_path.stem)

    def parse_directory(self, path: str | Path) -> list[ComposeProject]:
        """Parse every well-known compose file present in a directory."""
        directory = Path(path)
        return [
            self.parse_file(directory / file_name)
            for file_name in COMPOSE_FILE_NAMES
            if (directory / file_name).is_file()
        ]

    # -- Services --

    def _parse_service(self, name: str, raw: Any) -> ServiceConfig:
        where = f"services.{name}"
        service = _require_map(raw, "service", where)

        fields: dict[str, Any] = {"name": name}

        for key in _SCALAR_KEYS:
            if key in service:
                fields[key] = _scalar(service[key])
        for key in _LIST_KEYS:
            if key in service:
                fields[key] = _string_list(service[key])
        for key in _NUMBER_KEYS:
            if key in service:
                fields[key] = service[key]

        if "build" in service:
            fields["build"] = _parse_build(service["build"], f"{where}.build")
        if "ports" in service:
            fields["ports"] = _parse_ports(service["ports"], f"{where}.ports")
        if "environment" in service:
            fields["environment"] = _parse_mapping(service["environment"], f"{where}.environment")
        if "labels" in service:
            fields["labels"] = _parse_mapping(service["labels"], f"{where}.labels")
        if "volumes" in service:
            fields["volumes"] = _parse_volume_mounts(service["volumes"], f"{where}.volumes")
        if "deploy" in service:
            fields["deploy"] = _parse_deploy(service["deploy"], f"{where}.deploy")
        if "logging" in service:
            fields["logging"] = _parse_logging(service["logging"], f"{where}.logging")
        if "healthcheck" in service:
            fields["healthcheck"] = _parse_healthcheck(
                service["healthcheck"], f"{where}.healthcheck"
            )
        if "extends" in service:
            fields["extends"] = _parse_extends(service["extends"], f"{where}.extends")

        return _build(ServiceConfig, where, **fields)

    # -- Networks and volumes --

    def _parse_network(self, name: str, raw: Any) -> NetworkConfig:
        if isinstance(raw, bool):
            return NetworkConfig(external=raw)
        if not isinstance(raw, dict):
            return NetworkConfig()

        where = f"networks.{name}"
        return _build(
            NetworkConfig,
            where,
            driver=_optional_scalar(raw.get("driver")),
            driver_opts=_parse_mapping(raw.get("driver_opts"), f"{where}.driver_opts"),
            external=_external(raw.get("external")),
            name=_optional_scalar(raw.get("name")),
            attachable=raw.get("attachable"),
            internal=raw.get("internal"),
            labels=_parse_mapping(raw.get("labels"), f"{where}.labels"),
        )

    def _parse_volume(self, name: str, raw: Any) -> VolumeConfig:
        if isinstance(raw, bool):
            return VolumeConfig(external=raw)
        if not isinstance(raw, dict):
            return VolumeConfig()

        where = f"volumes.{name}"
        return _build(
            VolumeConfig,
            where,
            driver=_optional_scalar(raw.get("driver")),
            driver_opts=_parse_mapping(raw.get("driver_opts"), f"{where}.driver_opts"),
            external=_external(raw.get("external")),
            name=_optional_scalar(raw.get("name")),
            labels=_parse_mapping(raw.get("labels"), f"{where}.labels"),
        )


# ---------- Value helpers ----------

def _build(model: type[ModelT], where: str, **fields: Any) -> ModelT:
    """Validate raw values into ``model``, leaving unset fields at their defaults.

    Flags and counts are coerced by the model, so ``"false"`` reads as False
    and values that cannot be coerced raise ComposeParseError.
    """
    try:
        return model(**{key: value for key, value in fields.items() if value is not None})
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ComposeParseError(f"invalid value for {field}: {error['msg']}", where) from exc


def _require_map(raw: Any, what: str, where: str) -> dict:
    if not isinstance(raw, dict):
        raise ComposeParseError(f"{what} configuration must be a map", where)
    return raw


def _external(raw: Any) -> Any:
    """``external: {name: ...}`` marks an external resource like ``external: true``."""
    return True if isinstance(raw, dict) else raw


def _scalar(raw: Any) -> str:
    """Render a YAML scalar as text; None becomes the empty string."""
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


def _optional_scalar(raw: Any) -> str | None:
    return _scalar(raw) or None


def _section(document: dict, key: str) -> dict[str, Any]:
    """Return a top-level mapping section with string keys, preserving order."""
    raw = document.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ComposeParseError("section must be a mapping", key)
    return {_scalar(name): value for name, value in raw.items()}


def _string_list(raw: Any) -> list[str]:
    """Accept a single string, a list, or a mapping (whose keys are used)."""
    if raw is None:
        return []
    if isinstance(raw, dict):
        return [_scalar(key) for key in raw]
    if isinstance(raw, list):
        return [_scalar(item) for item in raw if not isinstance(item, (dict, list))]
    return [_scalar(raw)]


def _parse_mapping(raw: Any, where: str) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lists or plain mappings (environment, labels, options)."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return {_scalar(key): _scalar(value) for key, value in raw.items()}
    if isinstance(raw, list):
        result: dict[str, str] = {}
        for item in raw:
            key, _, value = _scalar(item).partition("=")
            result[key] = value
        return result
    raise ComposeParseError(f"invalid configuration type: {type(raw).__name__}", where)


def _parse_build(raw: Any, where: str) -> BuildConfig:
    if isinstance(raw, str):
        return BuildConfig(context=raw)
    if isinstance(raw, dict):
        return BuildConfig(
            context=_scalar(raw.get("context")) or ".",
            dockerfile=_optional_scalar(raw.get("dockerfile")),
            args=_parse_mapping(raw.get("args"), f"{where}.args"),
            target=_optional_scalar(raw.get("target")),
            cache_from=_string_list(raw.get("cache_from")),
            labels=_parse_mapping(raw.get("labels"), f"{where}.labels"),
        )
    raise ComposeParseError(f"invalid build configuration type: {type(raw).__name__}", where)


def _parse_file_definition(model: type[ModelT], raw: Any, where: str) -> ModelT:
    """Secrets and configs: a flag, a file path, or a mapping."""
    if isinstance(raw, bool):
        return model(external=raw)
    if isinstance(raw, str):
        return model(file=raw)
    if not isinstance(raw, dict):
        return model()
    return _build(
        model,
        where,
        file=_optional_scalar(raw.get("file")),
        external=_external(raw.get("external")),
        name=_optional_scalar(raw.get("name")),
        labels=_parse_mapping(raw.get("labels"), f"{where}.labels"),
    )


# ---------- Ports ----------

def _port_number(text: str, where: str) -> int:
    match = _PORT_NUMBER_RE.match(text)
    if match is None:
        raise ComposeParseError(f"invalid port number: {text!r}", where)
    return int(match.group(1))


def _parse_port(raw: Any, where: str) -> PortMapping:
    if isinstance(raw, bool):
        raise ComposeParseError("invalid port configuration type: bool", where)
    if isinstance(raw, int):
        return PortMapping(target=raw)
    if isinstance(raw, str):
        # [host_ip:][published:]target[/protocol]
        address, _, protocol = raw.partition("/")
        parts = address.rsplit(":", 2)
        target = _port_number(parts[-1], where)
        published = _port_number(parts[-2], where) if len(parts) >= 2 and parts[-2] else None
        return PortMapping(target=target, published=published, protocol=protocol or None)
    if isinstance(raw, dict):
        if "target" not in raw:
            raise ComposeParseError("port mapping requires a target", where)
        published = raw.get("published")
        return PortMapping(
            target=_port_number(_scalar(raw["target"]), where),
            published=_port_number(_scalar(published), where) if published is not None else None,
            protocol=_optional_scalar(raw.get("protocol")),
            mode=_optional_scalar(raw.get("mode")),
        )
    raise ComposeParseError(f"invalid port configuration type: {type(raw).__name__}", where)


def _parse_ports(raw: Any, where: str) -> list[PortMapping]:
    if not isinstance(raw, list):
        raise ComposeParseError(f"invalid ports configuration type: {type(raw).__name__}", where)
    return [_parse_port(item, f"{where}[{i}]") for i, item in enumerate(raw)]


# ---------- Volume mounts ----------

def _parse_volume_mount(raw: Any, where: str) -> VolumeMount:
    if isinstance(raw, str):
        parts = raw.split(":")
        if len(parts) > 3 or not parts[0]:
            raise ComposeParseError(f"invalid volume format: {raw!r}", where)
        if len(parts) == 1:
            # Anonymous volume: only the container path is given
            return VolumeMount(type=MountType.VOLUME, target=parts[0])

        source = parts[0]
        mount_type = MountType.BIND if source.startswith(BIND_SOURCE_PREFIXES) else MountType.VOLUME
        mount = VolumeMount(type=mount_type, source=source, target=parts[1])
        if len(parts) == 3:
            if parts[2] == READ_ONLY_FLAG:
                mount = mount.model_copy(update={"read_only": True})
            else:
                mount = mount.model_copy(update={"consistency": parts[2]})
        return mount

    if isinstance(raw, dict):
        try:
            mount_type = MountType(_scalar(raw.get("type")) or MountType.VOLUME.value)
        except ValueError as exc:
            raise ComposeParseError(f"unknown mount type: {raw.get('type')!r}", where) from exc
        return _build(
            VolumeMount,
            where,
            type=mount_type,
            source=_scalar(raw.get("source")),
            target=_scalar(raw.get("target")),
            read_only=raw.get("read_only"),
            consistency=_optional_scalar(raw.get("consistency")),
        )

    raise ComposeParseError(f"invalid volume configuration type: {type(raw).__name__}", where)


def _parse_volume_mounts(raw: Any, where: str) -> list[VolumeMount]:
    if not isinstance(raw, list):
        raise ComposeParseError(f"invalid volumes configuration type: {type(raw).__name__}", where)
    return [_parse_volume_mount(item, f"{where}[{i}]") for i, item in enumerate(raw)]


# ---------- Deploy ----------

def _parse_deploy(raw: Any, where: str) -> DeployConfig:
    deploy = _require_map(raw, "deploy", where)

    fields: dict[str, Any] = {
        "mode": _optional_scalar(deploy.get("mode")),
        "replicas": deploy.get("replicas"),
    }
    if "placement" in deploy:
        fields["placement"] = _parse_placement(deploy["placement"], f"{where}.placement")
    if "resources" in deploy:
        fields["resources"] = _parse_resources(deploy["resources"], f"{where}.resources")
    if "restart_policy" in deploy:
        fields["restart_policy"] = _parse_restart_policy(
            deploy["restart_policy"], f"{where}.restart_policy"
        )
    if "update_config" in deploy:
        fields["update_config"] = _parse_rollout(
            UpdateConfig, deploy["update_config"], "update", f"{where}.update_config"
        )
    if "rollback_config" in deploy:
        fields["rollback_config"] = _parse_rollout(
            RollbackConfig, deploy["rollback_config"], "rollback", f"{where}.rollback_config"
        )

    return _build(DeployConfig, where, **fields)


def _parse_placement(raw: Any, where: str) -> PlacementConfig:
    placement = _require_map(raw, "placement", where)
    return _build(
        PlacementConfig,
        where,
        constraints=_string_list(placement.get("constraints")),
        preferences=_string_list(placement.get("preferences")),
        max_replicas=placement.get("max_replicas"),
    )


def _parse_resources(raw: Any, where: str) -> ResourceRequirements:
    resources = _require_map(raw, "resources", where)
    fields: dict[str, Any] = {}
    for key in ("limits", "reservations"):
        if key in resources:
            fields[key] = _parse_resource_limits(resources[key], f"{where}.{key}")
    return ResourceRequirements(**fields)


def _parse_resource_limits(raw: Any, where: str) -> ResourceLimits:
    limits = _require_map(raw, "resource limits", where)
    return _build(
        ResourceLimits,
        where,
        cpus=_optional_scalar(limits.get("cpus")),
        memory=_optional_scalar(limits.get("memory")),
        pids=limits.get("pids"),
    )


def _parse_restart_policy(raw: Any, where: str) -> RestartPolicyConfig:
    policy = _require_map(raw, "restart policy", where)
    return _build(
        RestartPolicyConfig,
        where,
        condition=_optional_scalar(policy.get("condition")),
        delay=_optional_scalar(policy.get("delay")),
        max_attempts=policy.get("max_attempts"),
        window=_optional_scalar(policy.get("window")),
    )


def _parse_rollout(model: type[ModelT], raw: Any, what: str, where: str) -> ModelT:
    """Shared shape of ``update_config`` and ``rollback_config``."""
    config = _require_map(raw, what, where)
    return _build(
        model,
        where,
        parallelism=config.get("parallelism"),
        delay=_optional_scalar(config.get("delay")),
        failure_action=_optional_scalar(config.get("failure_action")),
        monitor=_optional_scalar(config.get("monitor")),
        max_failure_ratio=_optional_scalar(config.get("max_failure_ratio")),
        order=_optional_scalar(config.get("order")),
    )


# ---------- Logging, healthcheck, extends ----------

def _parse_logging(raw: Any, where: str) -> LoggingConfig:
    config = _require_map(raw, "logging", where)
    return LoggingConfig(
        driver=_optional_scalar(config.get("driver")),
        options=_parse_mapping(config.get("options"), f"{where}.options"),
    )


def _parse_healthcheck(raw: Any, where: str) -> HealthCheckConfig:
    check = _require_map(raw, "healthcheck", where)
    return _build(
        HealthCheckConfig,
        where,
        test=_string_list(check.get("test")),
        interval=_optional_scalar(check.get("interval")),
        timeout=_optional_scalar(check.get("timeout")),
        retries=check.get("retries"),
        start_period=_optional_scalar(check.get("start_period")),
        start_interval=_optional_scalar(check.get("start_interval")),
    )


def _parse_extends(raw: Any, where: str) -> ExtendsConfig:
    if isinstance(raw, str):
        return ExtendsConfig(service=raw)
    if isinstance(raw, dict):
        return ExtendsConfig(
            file=_optional_scalar(raw.get("file")),
            service=_scalar(raw.get("service")),
        )
    raise ComposeParseError(f"invalid extends configuration type: {type(raw).__name__}", where)
