"""Network topology model and networks file container.

A network is a set of bitcoin (chain) nodes and lightning (payment channel)
nodes sharing one working directory. Lightning nodes reference their
bitcoin backend by name.

Serialized form (networks.json) uses camelCase keys:
networkId, backendName, zmqBlock, ...
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from config import APP_VERSION, DEFAULT_VERSIONS, ConfigError

logger = logging.getLogger(__name__)

BITCOIN = 'bitcoin'
LIGHTNING = 'lightning'

BITCOIN_IMPLEMENTATIONS = frozenset({'bitcoind'})
LIGHTNING_IMPLEMENTATIONS = frozenset({'LND', 'c-lightning', 'eclair'})

# Lightning implementations the compose generator knows how to run
SUPPORTED_LIGHTNING = frozenset({'LND', 'c-lightning'})

STATUS_STOPPED = 'Stopped'

BASE_PORTS = {
    'bitcoind': {'rpc': 18443, 'p2p': 19444, 'zmqBlock': 28334, 'zmqTx': 29335},
    'LND': {'rest': 8081, 'grpc': 10001},
    'c-lightning': {'rest': 8181},
    'eclair': {'rest': 8281},
}

LIGHTNING_NAMES = [
    'alice', 'bob', 'carol', 'dave', 'erin', 'frank', 'grace', 'heidi',
    'ivan', 'judy', 'mike', 'niaj', 'oscar', 'peggy', 'rupert', 'sybil',
    'trent', 'victor', 'walter',
]


def _docker_overrides(data: Optional[dict] = None) -> dict:
    data = data or {}
    return {'image': data.get('image', ''), 'command': data.get('command', '')}


@dataclass
class BitcoinNode:
    """A bitcoind chain node.

    Attributes:
        id: Index of the node among the network's bitcoin nodes
        network_id: Owning network id
        name: Node name, also its compose service and hostname
        version: Image tag
        implementation: Always 'bitcoind'
        status: Last known status
        peers: Names of bitcoin nodes this node connects to (None in pre-0.2.0 data)
        ports: Host ports for rpc, p2p, zmqBlock and zmqTx
        docker: Custom image/command overrides (empty string = default)
    """
    id: int
    network_id: int
    name: str
    version: str
    implementation: str = 'bitcoind'
    status: str = STATUS_STOPPED
    peers: Optional[list[str]] = None
    ports: dict[str, int] = field(default_factory=dict)
    docker: dict[str, str] = field(default_factory=_docker_overrides)

    type = BITCOIN

    @classmethod
    def from_dict(cls, data: dict) -> 'BitcoinNode':
        """Create BitcoinNode from dictionary."""
        if 'name' not in data:
            raise ConfigError("Bitcoin node missing required field: name")
        implementation = data.get('implementation', 'bitcoind')
        if implementation not in BITCOIN_IMPLEMENTATIONS:
            raise ConfigError(
                f"Bitcoin node '{data['name']}' has unknown implementation '{implementation}'"
            )
        peers = data.get('peers')
        return cls(
            id=data.get('id', 0),
            network_id=data.get('networkId', 0),
            name=data['name'],
            version=data.get('version', DEFAULT_VERSIONS['bitcoind']),
            implementation=implementation,
            status=data.get('status', STATUS_STOPPED),
            peers=list(peers) if peers is not None else None,
            ports=dict(data.get('ports', {})),
            docker=_docker_overrides(data.get('docker')),
        )

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            'id': self.id,
            'networkId': self.network_id,
            'name': self.name,
            'type': self.type,
            'implementation': self.implementation,
            'version': self.version,
            'status': self.status,
            'ports': dict(self.ports),
            'docker': dict(self.docker),
        }
        if self.peers is not None:
            d['peers'] = list(self.peers)
        return d


@dataclass
class LightningNode:
    """A payment channel node backed by a bitcoin node.

    Attributes:
        id: Index of the node among the network's lightning nodes
        network_id: Owning network id
        name: Node name, also its compose service and hostname
        version: Image tag
        implementation: One of LIGHTNING_IMPLEMENTATIONS
        backend_name: Name of the bitcoin node it uses (may not resolve)
        status: Last known status
        ports: Host ports (rest, plus grpc for LND)
        docker: Custom image/command overrides (empty string = default)
    """
    id: int
    network_id: int
    name: str
    version: str
    implementation: str
    backend_name: Optional[str] = None
    status: str = STATUS_STOPPED
    ports: dict[str, int] = field(default_factory=dict)
    docker: dict[str, str] = field(default_factory=_docker_overrides)

    type = LIGHTNING

    @property
    def is_supported(self) -> bool:
        """True if the compose generator can run this implementation."""
        return self.implementation in SUPPORTED_LIGHTNING

    @classmethod
    def from_dict(cls, data: dict) -> 'LightningNode':
        """Create LightningNode from dictionary.

        Unknown implementations are kept as-is; they are valid data that the
        compose generator skips.
        """
        if 'name' not in data:
            raise ConfigError("Lightning node missing required field: name")
        if 'implementation' not in data:
            raise ConfigError(f"Lightning node '{data['name']}' missing required field: implementation")
        if data['implementation'] not in LIGHTNING_IMPLEMENTATIONS:
            logger.warning(f"Lightning node '{data['name']}' has unknown implementation "
                           f"'{data['implementation']}'")
        return cls(
            id=data.get('id', 0),
            network_id=data.get('networkId', 0),
            name=data['name'],
            version=data.get('version', DEFAULT_VERSIONS.get(data['implementation'], '')),
            implementation=data['implementation'],
            backend_name=data.get('backendName'),
            status=data.get('status', STATUS_STOPPED),
            ports=dict(data.get('ports', {})),
            docker=_docker_overrides(data.get('docker')),
        )

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            'id': self.id,
            'networkId': self.network_id,
            'name': self.name,
            'type': self.type,
            'implementation': self.implementation,
            'version': self.version,
            'status': self.status,
            'ports': dict(self.ports),
            'docker': dict(self.docker),
        }
        if self.backend_name is not None:
            d['backendName'] = self.backend_name
        return d


Node = Union[BitcoinNode, LightningNode]


@dataclass
class Network:
    """A simulated network and its working directory.

    Attributes:
        id: Network identifier
        name: Display name
        path: Working directory holding docker-compose.yml and volumes/
        status: Last known status
        bitcoin: Ordered bitcoin nodes
        lightning: Ordered lightning nodes
    """
    id: int
    name: str
    path: Path
    status: str = STATUS_STOPPED
    bitcoin: list[BitcoinNode] = field(default_factory=list)
    lightning: list[LightningNode] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.path, str):
            self.path = Path(self.path)

    @property
    def nodes(self) -> dict[str, list]:
        """Node lists keyed by node type, bitcoin first."""
        return {BITCOIN: self.bitcoin, LIGHTNING: self.lightning}

    def all_nodes(self) -> list[Node]:
        return [*self.bitcoin, *self.lightning]

    def get_node(self, name: str) -> Node:
        """Get a node of any type by name.

        Raises:
            KeyError: If no node has that name
        """
        for node in self.all_nodes():
            if node.name == name:
                return node
        raise KeyError(name)

    def find_bitcoin(self, name: Optional[str]) -> Optional[BitcoinNode]:
        """Find a bitcoin node by name, None if it does not exist."""
        if name is None:
            return None
        return next((n for n in self.bitcoin if n.name == name), None)

    def backend_for(self, node: LightningNode) -> Optional[BitcoinNode]:
        """Resolve a lightning node's backend.

        Falls back to the first bitcoin node when backend_name is missing,
        names no node, or names a node that is not a bitcoin node. Returns
        None only when the network has no bitcoin nodes.
        """
        backend = self.find_bitcoin(node.backend_name)
        if backend is None and self.bitcoin:
            if node.backend_name is not None:
                logger.debug(f"Backend '{node.backend_name}' for '{node.name}' not found, "
                             f"using '{self.bitcoin[0].name}'")
            backend = self.bitcoin[0]
        return backend

    @classmethod
    def from_dict(cls, data: dict) -> 'Network':
        """Create Network from dictionary.

        Raises:
            ConfigError: If required fields are missing
        """
        if 'id' not in data:
            raise ConfigError(f"Network '{data.get('name', 'unnamed')}' missing required field: id")
        nodes = data.get('nodes') or {}
        return cls(
            id=data['id'],
            name=data.get('name', f"network-{data['id']}"),
            path=Path(data.get('path', '')),
            status=data.get('status', STATUS_STOPPED),
            bitcoin=[BitcoinNode.from_dict(n) for n in nodes.get(BITCOIN) or []],
            lightning=[LightningNode.from_dict(n) for n in nodes.get(LIGHTNING) or []],
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'path': str(self.path),
            'nodes': {kind: [n.to_dict() for n in nodes] for kind, nodes in self.nodes.items()},
        }


@dataclass
class NetworksFile:
    """Contents of networks.json.

    Attributes:
        version: Application version that last wrote the file
        networks: All saved networks
        charts: Chart (layout) data keyed by network id as a string
    """
    version: str = APP_VERSION
    networks: list[Network] = field(default_factory=list)
    charts: dict[str, dict] = field(default_factory=dict)

    def chart_for(self, network: Network) -> Optional[dict]:
        return self.charts.get(str(network.id))

    @classmethod
    def from_dict(cls, data: dict) -> 'NetworksFile':
        return cls(
            version=data.get('version', APP_VERSION),
            networks=[Network.from_dict(n) for n in data.get('networks') or []],
            charts={str(k): v for k, v in (data.get('charts') or {}).items()},
        )

    def to_dict(self) -> dict:
        return {
            'version': self.version,
            'networks': [n.to_dict() for n in self.networks],
            'charts': self.charts,
        }


def network_path(networks_dir: Path, network_id: int) -> Path:
    """Working directory of a network: {networks_dir}/{id}."""
    return Path(networks_dir) / str(network_id)


def _lightning_name(index: int) -> str:
    """alice, bob, ... then alice2, bob2, ... once the list is exhausted."""
    name = LIGHTNING_NAMES[index % len(LIGHTNING_NAMES)]
    cycle = index // len(LIGHTNING_NAMES)
    return f'{name}{cycle + 1}' if cycle else name


def _ports(implementation: str, node_id: int) -> dict[str, int]:
    return {key: base + node_id for key, base in BASE_PORTS[implementation].items()}


def create_network(
    id: int,
    name: str,
    lnd_nodes: int,
    clightning_nodes: int,
    bitcoind_nodes: int,
    networks_dir: Path,
    versions: Optional[dict[str, str]] = None,
) -> Network:
    """Build a new network with default node names, ports and links.

    Bitcoin nodes are named backend1..N and peer with their neighbours.
    Lightning nodes (LND first, then c-lightning) are named alice, bob, ...
    and all use the first bitcoin node as backend.

    Args:
        id: Network id
        name: Display name
        lnd_nodes: Number of LND nodes
        clightning_nodes: Number of c-lightning nodes
        bitcoind_nodes: Number of bitcoind nodes
        networks_dir: Root for network working directories
        versions: Image version per implementation (defaults: DEFAULT_VERSIONS)

    Returns:
        Network instance
    """
    versions = {**DEFAULT_VERSIONS, **(versions or {})}
    network = Network(id=id, name=name, path=network_path(networks_dir, id))

    btc_names = [f'backend{i + 1}' for i in range(bitcoind_nodes)]
    for i, btc_name in enumerate(btc_names):
        peers = [n for n in (btc_names[i - 1] if i > 0 else None,
                             btc_names[i + 1] if i + 1 < len(btc_names) else None) if n]
        network.bitcoin.append(BitcoinNode(
            id=i,
            network_id=id,
            name=btc_name,
            version=versions['bitcoind'],
            peers=peers,
            ports=_ports('bitcoind', i),
        ))

    backend_name = btc_names[0] if btc_names else None
    implementations = ['LND'] * lnd_nodes + ['c-lightning'] * clightning_nodes
    for i, implementation in enumerate(implementations):
        network.lightning.append(LightningNode(
            id=i,
            network_id=id,
            name=_lightning_name(i),
            version=versions[implementation],
            implementation=implementation,
            backend_name=backend_name,
            ports=_ports(implementation, i),
        ))

    logger.debug(f"Created network {id} '{name}' with {len(network.all_nodes())} nodes")
    return network
