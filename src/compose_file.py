"""docker-compose.yml generation for networks.

Builds one compose service per node:
- bitcoin nodes always get a service
- lightning nodes get a service when their implementation is supported,
  depending on their resolved bitcoin backend so compose starts it first

The generated text is deterministic for a given network.
"""

import logging
from typing import Any, Optional

import yaml

import node_templates
from config import CONTAINER_PREFIX, DOCKER_REPO
from network import BitcoinNode, LightningNode, Network

logger = logging.getLogger(__name__)

COMPOSE_VERSION = '3.3'

IMAGE_NAMES = {
    'bitcoind': 'bitcoind',
    'LND': 'lnd',
    'c-lightning': 'clightning',
}


def container_name(network_id: int, node_name: str, prefix: str = CONTAINER_PREFIX) -> str:
    """Container name for a node: {prefix}-n{network_id}-{node_name}."""
    return f'{prefix}-n{network_id}-{node_name}'


class ComposeFile:
    """In-memory compose document for a single network.

    Attributes:
        network_id: Network the services belong to
        repo: Image repository for default images
        content: The compose document (version + services)
    """

    def __init__(self, network_id: int, repo: str = DOCKER_REPO):
        self.network_id = network_id
        self.repo = repo
        self.content: dict[str, Any] = {
            'version': COMPOSE_VERSION,
            'services': {},
        }

    @property
    def services(self) -> dict[str, dict]:
        return self.content['services']

    def _image(self, node) -> str:
        if custom := node.docker.get('image'):
            return custom
        return f'{self.repo}/{IMAGE_NAMES[node.implementation]}:{node.version}'

    def _command(self, node, backend: Optional[BitcoinNode] = None) -> Optional[str]:
        """Custom command with {{placeholders}} applied, None for the default."""
        custom = node.docker.get('command')
        if not custom:
            return None
        variables = {
            'name': node.name,
            'rpcUser': node_templates.RPC_USER,
            'rpcPass': node_templates.RPC_PASS,
        }
        if backend is not None:
            variables['backendName'] = backend.name
        return node_templates.apply_command_vars(custom, variables)

    def add_bitcoind(self, node: BitcoinNode) -> None:
        self.services[node.name] = node_templates.bitcoind(
            name=node.name,
            container_name=container_name(self.network_id, node.name),
            image=self._image(node),
            ports=node.ports,
            command=self._command(node),
        )

    def add_lnd(self, node: LightningNode, backend: Optional[BitcoinNode]) -> None:
        service = node_templates.lnd(
            name=node.name,
            container_name=container_name(self.network_id, node.name),
            image=self._image(node),
            backend_name=backend.name if backend else '',
            ports=node.ports,
            command=self._command(node, backend),
        )
        self._add_dependent(node.name, service, backend)

    def add_clightning(self, node: LightningNode, backend: Optional[BitcoinNode]) -> None:
        service = node_templates.clightning(
            name=node.name,
            container_name=container_name(self.network_id, node.name),
            image=self._image(node),
            backend_name=backend.name if backend else '',
            ports=node.ports,
            command=self._command(node, backend),
        )
        self._add_dependent(node.name, service, backend)

    def _add_dependent(self, name: str, service: dict, backend: Optional[BitcoinNode]) -> None:
        if backend is not None:
            service['depends_on'] = [backend.name]
        self.services[name] = service

    def add_lightning(self, node: LightningNode, backend: Optional[BitcoinNode]) -> bool:
        """Add a lightning node service.

        Returns:
            False if the implementation is not supported (nothing added)
        """
        if not node.is_supported:
            logger.debug(f"Skipping '{node.name}': unsupported implementation '{node.implementation}'")
            return False
        adders = {'LND': self.add_lnd, 'c-lightning': self.add_clightning}
        adders[node.implementation](node, backend)
        return True

    def to_yaml(self) -> str:
        """Serialize to compose YAML text."""
        text: str = yaml.dump(self.content, default_flow_style=False, sort_keys=False)
        return text


def build_compose_file(network: Network, repo: str = DOCKER_REPO) -> ComposeFile:
    """Build the compose document for a network."""
    file = ComposeFile(network.id, repo=repo)

    for btc in network.bitcoin:
        file.add_bitcoind(btc)

    for ln in network.lightning:
        file.add_lightning(ln, network.backend_for(ln))

    return file


def generate_compose(network: Network, repo: str = DOCKER_REPO) -> str:
    """Generate docker-compose.yml text for a network."""
    return build_compose_file(network, repo=repo).to_yaml()
