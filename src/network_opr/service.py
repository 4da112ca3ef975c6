"""Docker service: lifecycle commands and persistence for networks.

Lifecycle commands run compose in the network's working directory. Any
failure, whatever shape the executor raised it in, is re-raised as
CommandError with a normalized message. Queries (versions, images) degrade
to empty results instead of failing.

networks.json is loaded through the migration pipeline, relocating it from
the legacy networks root first when only the legacy copy exists.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from common import CommandError, error_message
from compose_file import generate_compose
from config import APP_VERSION, COMPOSE_FILE_NAME, AppConfig, ConfigError
from files import FileStore
from migrations import migrate_networks_file
from network import Network, NetworksFile, Node
from network_opr.env import get_compose_env
from network_opr.executors import ComposeRunner, DockerEngine
from node_templates import VOLUME_DIRS

logger = logging.getLogger(__name__)


@dataclass
class DockerVersions:
    """Engine and compose version strings ('' when unknown)."""
    docker: str = ''
    compose: str = ''


class DockerService:
    """Runs network lifecycle commands and persists networks.

    Attributes:
        config: Application configuration (paths, repo)
        engine: Docker engine executor
        compose: Compose CLI executor
        store: File storage
        env_builder: Returns the environment for compose commands
    """

    def __init__(
        self,
        config: AppConfig,
        engine: Optional[DockerEngine] = None,
        compose: Optional[ComposeRunner] = None,
        store: Optional[FileStore] = None,
        env_builder: Callable[[], dict[str, str]] = get_compose_env,
    ):
        self.config = config
        self.engine = engine or DockerEngine()
        self.compose = compose or ComposeRunner(config.compose_command, timeout=config.command_timeout)
        self.store = store or FileStore()
        self.env_builder = env_builder

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_versions(self, throw_on_error: bool = False) -> DockerVersions:
        """Get docker and compose versions.

        Both versions are always queried. A failed query leaves its field
        empty, unless throw_on_error is set, in which case the docker error
        (or else the compose error) is raised.

        Raises:
            CommandError: If throw_on_error and either query failed
        """
        versions = DockerVersions()
        docker_error: Optional[Exception] = None
        compose_error: Optional[Exception] = None

        try:
            versions.docker = str(self.engine.version().get('Version', ''))
        except Exception as e:
            docker_error = e
            logger.debug(f"Failed to get docker version: {error_message(e)}")

        try:
            result = self.compose.version(env=self.env_builder())
            versions.compose = result.out.strip()
        except Exception as e:
            compose_error = e
            logger.debug(f"Failed to get compose version: {error_message(e)}")

        if throw_on_error:
            failure = docker_error or compose_error
            if failure is not None:
                raise CommandError(error_message(failure)) from failure

        logger.debug(f"Docker versions: {versions}")
        return versions

    def get_images(self) -> list[str]:
        """All image tags known to the engine, in engine order.

        Images without repo tags are skipped. Returns [] if the query fails.
        """
        try:
            images = self.engine.list_images()
        except Exception as e:
            logger.warning(f"Failed to list docker images: {error_message(e)}")
            return []

        tags: list[str] = []
        for image in images:
            tags.extend(image.get('RepoTags') or [])
        return tags

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save_compose_file(self, network: Network) -> Path:
        """Write {network.path}/docker-compose.yml."""
        path = Path(network.path) / COMPOSE_FILE_NAME
        self.store.write(path, generate_compose(network, repo=self.config.docker_repo))
        logger.info(f"Saved compose file for network '{network.name}' to {path}")
        return path

    def save_networks(self, data: NetworksFile) -> Path:
        """Write networks.json with every network and chart."""
        path = self.config.networks_file
        self.store.write(path, json.dumps(data.to_dict(), indent=2))
        logger.info(f"Saved {len(data.networks)} network(s) to {path}")
        return path

    def load_networks(self) -> NetworksFile:
        """Load networks.json, migrating older data to APP_VERSION.

        If networks.json exists only under the legacy root, the legacy
        networks tree is copied to the current root first.

        Returns:
            NetworksFile (empty when nothing has been saved yet)

        Raises:
            ConfigError: If the file is not valid JSON or a network is invalid
        """
        path = self.config.networks_file
        legacy_path = self.config.legacy_networks_file

        if self.store.exists(legacy_path) and not self.store.exists(path):
            logger.info(f"Copying networks from {self.config.legacy_networks_dir} "
                        f"to {self.config.networks_dir}")
            self.store.copy_tree(self.config.legacy_networks_dir, self.config.networks_dir)

        if not self.store.exists(path):
            logger.debug(f"No networks saved at {path}")
            return NetworksFile(version=APP_VERSION)

        try:
            data: Any = json.loads(self.store.read(path))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a JSON object")

        migrated = migrate_networks_file(data, self.config.networks_dir)
        networks_file = NetworksFile.from_dict(migrated)
        logger.info(f"Loaded {len(networks_file.networks)} network(s) from {path}")
        return networks_file

    # -------------------------------------------------------------------------
    # Lifecycle commands
    # -------------------------------------------------------------------------

    def _execute(self, description: str, fn: Callable, *args, **kwargs):
        """Run an executor call, normalizing any failure to CommandError."""
        logger.debug(description)
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            message = error_message(e)
            logger.error(f"{description} failed: {message}")
            raise CommandError(message) from e

    def _ensure_volume_dirs(self, network: Network) -> None:
        """Create volume directories so they are owned by the host user.

        Left to docker, they would be created owned by root.
        """
        for node in network.all_nodes():
            impl_dir = VOLUME_DIRS.get(node.implementation, node.implementation.lower())
            volume_dir = Path(network.path) / 'volumes' / impl_dir / node.name
            self._execute(f"Creating {volume_dir}", self.store.ensure_dir, volume_dir)

    def start(self, network: Network) -> None:
        """Start every service in the network."""
        self._ensure_volume_dirs(network)
        logger.info(f"Starting network '{network.name}' in {network.path}")
        self._execute(f"compose up ({network.path})", self.compose.up_all,
                      cwd=network.path, env=self.env_builder())

    def stop(self, network: Network) -> None:
        """Stop and remove every service in the network."""
        logger.info(f"Stopping network '{network.name}' in {network.path}")
        self._execute(f"compose down ({network.path})", self.compose.down,
                      cwd=network.path, env=self.env_builder())

    def start_node(self, network: Network, node: Node) -> None:
        logger.info(f"Starting node '{node.name}' in network '{network.name}'")
        self._execute(f"compose up {node.name}", self.compose.up_one,
                      node.name, cwd=network.path)

    def stop_node(self, network: Network, node: Node) -> None:
        logger.info(f"Stopping node '{node.name}' in network '{network.name}'")
        self._execute(f"compose stop {node.name}", self.compose.stop_one,
                      node.name, cwd=network.path)

    def remove_node(self, network: Network, node: Node) -> None:
        """Stop a node's service, then remove stopped containers."""
        logger.info(f"Removing node '{node.name}' from network '{network.name}'")
        self._execute(f"compose stop {node.name}", self.compose.stop_one,
                      node.name, cwd=network.path)
        self._execute(f"compose rm ({network.path})", self.compose.rm,
                      cwd=network.path)
