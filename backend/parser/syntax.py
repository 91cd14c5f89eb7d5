"""Constants describing the Docker Compose file format."""

# Accepted file extensions for compose documents
YAML_EXTENSIONS = frozenset({".yml", ".yaml"})

# File names looked up when scanning a directory, in priority order
COMPOSE_FILE_NAMES = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
)

DEFAULT_PROJECT_NAME = "docker-compose"

# Top-level sections understood by the decoder
SECTION_VERSION = "version"
SECTION_NAME = "name"
SECTION_SERVICES = "services"
SECTION_NETWORKS = "networks"
SECTION_VOLUMES = "volumes"
SECTION_SECRETS = "secrets"
SECTION_CONFIGS = "configs"

# Short-syntax mount sources with these prefixes are host paths
BIND_SOURCE_PREFIXES = ("/", ".", "~")

READ_ONLY_FLAG = "ro"
