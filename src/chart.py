"""Chart (visual layout) data for networks.

Charts are stored beside networks in networks.json and are opaque to the
lifecycle engine except for node ports and links, which must stay
consistent with the network's nodes.
"""

from typing import Any, Optional

from network import BitcoinNode, LightningNode, Network

NODE_WIDTH = 200
NODE_HEIGHT = 36


def _port(port_id: str, port_type: str) -> dict:
    return {'id': port_id, 'type': port_type}


def bitcoin_ports() -> dict[str, dict]:
    """Ports rendered on a bitcoin chart node."""
    return {
        'backend': _port('backend', 'input'),
        'peer-left': _port('peer-left', 'left'),
        'peer-right': _port('peer-right', 'right'),
    }


def lightning_ports() -> dict[str, dict]:
    """Ports rendered on a lightning chart node."""
    return {
        'empty-left': _port('empty-left', 'left'),
        'empty-right': _port('empty-right', 'right'),
        'backend': _port('backend', 'output'),
    }


def create_bitcoin_chart_node(node: BitcoinNode) -> dict:
    return {
        'id': node.name,
        'type': node.type,
        'position': {'x': node.id * 250 + 200, 'y': 400},
        'ports': bitcoin_ports(),
        'size': {'width': NODE_WIDTH, 'height': NODE_HEIGHT},
        'properties': {'status': node.status, 'icon': node.implementation},
    }


def create_lightning_chart_node(node: LightningNode) -> dict:
    return {
        'id': node.name,
        'type': node.type,
        'position': {'x': node.id * 250 + 50, 'y': node.id % 2 * 100 + 100},
        'ports': lightning_ports(),
        'size': {'width': NODE_WIDTH, 'height': NODE_HEIGHT},
        'properties': {'status': node.status, 'icon': node.implementation},
    }


def _link(from_node: str, from_port: str, to_node: str, to_port: str, link_type: str) -> dict:
    return {
        'id': f'{from_node}-{to_node}',
        'from': {'nodeId': from_node, 'portId': from_port},
        'to': {'nodeId': to_node, 'portId': to_port},
        'properties': {'type': link_type},
    }


def backend_link(node: LightningNode, backend_name: str) -> dict:
    return _link(node.name, 'backend', backend_name, 'backend', 'backend')


def peer_link(left: str, right: str) -> dict:
    return _link(left, 'peer-right', right, 'peer-left', 'btcpeer')


def init_chart_from_network(network: Network) -> dict[str, Any]:
    """Build a fresh chart for a network.

    Bitcoin peers are linked left to right in node order. Each lightning
    node is linked to its backend (or the first bitcoin node when its
    backend does not resolve).
    """
    chart: dict[str, Any] = {
        'offset': {'x': 0, 'y': 0},
        'scale': 1,
        'nodes': {},
        'links': {},
        'selected': {},
        'hovered': {},
    }

    previous: Optional[BitcoinNode] = None
    for btc in network.bitcoin:
        chart['nodes'][btc.name] = create_bitcoin_chart_node(btc)
        if previous is not None and btc.name in (previous.peers or []):
            link = peer_link(previous.name, btc.name)
            chart['links'][link['id']] = link
        previous = btc

    for ln in network.lightning:
        chart['nodes'][ln.name] = create_lightning_chart_node(ln)
        backend = network.backend_for(ln)
        if backend is not None:
            link = backend_link(ln, backend.name)
            chart['links'][link['id']] = link

    return chart
