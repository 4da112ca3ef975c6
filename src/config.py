"""Application configuration and storage paths.

Configuration is loaded from the data directory:
- config.yaml: Optional overrides for any AppConfig field

Resolution order for the data directory:
1. $POLAR_HOME environment variable
2. ~/.polar/ (default)

Networks live under {data_dir}/networks/{id}/. Older releases stored them
under the per-user config directory; that location is only read once, when
migrating to the current layout.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

# Version stamped into networks.json by this release
APP_VERSION = '0.3.0'

# Docker Hub repository hosting the node images
DOCKER_REPO = 'polarlightning'

# Prefix for compose container names: {prefix}-n{network_id}-{node_name}
CONTAINER_PREFIX = 'polar'

COMPOSE_FILE_NAME = 'docker-compose.yml'
NETWORKS_FILE_NAME = 'networks.json'

# Default image versions for newly created nodes
DEFAULT_VERSIONS = {
    'bitcoind': '0.19.0.1',
    'LND': '0.8.2-beta',
    'c-lightning': '0.8.0',
    'eclair': '0.3.3',
}


class ConfigError(Exception):
    """Configuration error."""


def get_data_dir() -> Path:
    """Discover the application data directory.

    Resolution order:
    1. $POLAR_HOME environment variable (must exist)
    2. ~/.polar/
    """
    if env_path := os.environ.get('POLAR_HOME'):
        path = Path(env_path)
        if path.exists():
            return path
        raise ConfigError(f"POLAR_HOME={env_path} does not exist")

    return Path.home() / '.polar'


def get_legacy_networks_dir() -> Path:
    """Networks root used by releases before 0.2.0."""
    config_home = os.environ.get('XDG_CONFIG_HOME') or str(Path.home() / '.config')
    return Path(config_home) / 'polar' / 'data' / 'networks'


@dataclass
class AppConfig:
    """Resolved application configuration.

    Attributes:
        data_dir: Root of all application data
        networks_dir: Root of network working directories and networks.json
        legacy_networks_dir: Pre-0.2.0 networks root (read during migration only)
        docker_repo: Image repository for node images
        compose_command: Command used to invoke compose (e.g. ['docker', 'compose'])
        command_timeout: Seconds before a compose command is abandoned
    """
    data_dir: Path
    networks_dir: Path = None  # type: ignore[assignment]
    legacy_networks_dir: Path = field(default_factory=get_legacy_networks_dir)
    docker_repo: str = DOCKER_REPO
    compose_command: list[str] = field(default_factory=lambda: ['docker', 'compose'])
    command_timeout: int = 600

    def __post_init__(self):
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)
        if self.networks_dir is None:
            self.networks_dir = self.data_dir / 'networks'
        elif isinstance(self.networks_dir, str):
            self.networks_dir = Path(self.networks_dir)
        if isinstance(self.legacy_networks_dir, str):
            self.legacy_networks_dir = Path(self.legacy_networks_dir)
        if isinstance(self.compose_command, str):
            self.compose_command = self.compose_command.split()

    @property
    def networks_file(self) -> Path:
        return self.networks_dir / NETWORKS_FILE_NAME

    @property
    def legacy_networks_file(self) -> Path:
        return self.legacy_networks_dir / NETWORKS_FILE_NAME


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    try:
        with open(path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must be a YAML object (dict)")
    return data


def load_app_config(data_dir: Optional[Path] = None) -> AppConfig:
    """Load configuration, applying config.yaml overrides when present.

    Args:
        data_dir: Explicit data directory. If None, uses get_data_dir().

    Returns:
        AppConfig instance

    Raises:
        ConfigError: If config.yaml is invalid
    """
    data_dir = Path(data_dir) if data_dir else get_data_dir()
    config = AppConfig(data_dir=data_dir)

    config_file = data_dir / 'config.yaml'
    if not config_file.exists():
        return config

    overrides = _parse_yaml(config_file)

    if networks_dir := overrides.get('networks_dir'):
        config.networks_dir = Path(networks_dir).expanduser()
    if legacy := overrides.get('legacy_networks_dir'):
        config.legacy_networks_dir = Path(legacy).expanduser()
    if docker_repo := overrides.get('docker_repo'):
        config.docker_repo = str(docker_repo)
    if compose_command := overrides.get('compose_command'):
        if isinstance(compose_command, str):
            compose_command = compose_command.split()
        config.compose_command = [str(part) for part in compose_command]
    if timeout := overrides.get('command_timeout'):
        try:
            config.command_timeout = int(timeout)
        except (TypeError, ValueError):
            raise ConfigError(f"command_timeout must be an integer, got {timeout!r}")

    return config
