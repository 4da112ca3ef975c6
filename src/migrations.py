"""Schema migrations for networks.json.

Each migration is a pure transform (file dict in, file dict out) registered
under the release that introduced it. Migrations newer than the stored
version run in order; afterwards every network path is re-derived from its
id and the file is stamped with APP_VERSION.

Migrations fill in missing fields rather than reject older data.
"""

import copy
import logging
import re
from pathlib import Path
from typing import Callable

import chart
from config import APP_VERSION, ConfigError
from network import BITCOIN, LIGHTNING, network_path

logger = logging.getLogger(__name__)

Migration = Callable[[dict], dict]


def parse_version(version: str) -> tuple[int, ...]:
    """Parse 'X.Y.Z' (optionally 'vX.Y.Z-suffix') into a comparable tuple.

    Raises:
        ConfigError: If the version has no numeric components
    """
    match = re.match(r'^v?(\d+(?:\.\d+)*)', str(version).strip())
    if not match:
        raise ConfigError(f"Invalid networks file version: {version!r}")
    return tuple(int(part) for part in match.group(1).split('.'))


def _chart_nodes(data: dict, network: dict) -> dict:
    charts = data.get('charts') or {}
    chart_data = charts.get(str(network.get('id'))) or {}
    nodes: dict = chart_data.get('nodes') or {}
    return nodes


def _migrate_0_2_0(data: dict) -> dict:
    """Bitcoin peers.

    - bitcoin nodes without peers get an empty list
    - bitcoin chart nodes get their peer-left/peer-right ports
    """
    defaults = chart.bitcoin_ports()
    for network in data.get('networks') or []:
        chart_nodes = _chart_nodes(data, network)
        for node in (network.get('nodes') or {}).get(BITCOIN) or []:
            if node.get('peers') is None:
                node['peers'] = []
            chart_node = chart_nodes.get(node.get('name'))
            if chart_node is None:
                continue
            ports = chart_node.setdefault('ports', {})
            for port_id in ('peer-left', 'peer-right'):
                if port_id not in ports:
                    ports[port_id] = dict(defaults[port_id])
                    logger.debug(f"Added chart port '{port_id}' to '{node.get('name')}'")
    return data


def _migrate_0_3_0(data: dict) -> dict:
    """Backend names and custom docker settings.

    - lightning nodes without backendName use the first bitcoin node
    - nodes without docker overrides get empty image/command
    - chart nodes get their backend port
    """
    for network in data.get('networks') or []:
        nodes = network.get('nodes') or {}
        bitcoin = nodes.get(BITCOIN) or []
        first_backend = bitcoin[0].get('name') if bitcoin else None
        chart_nodes = _chart_nodes(data, network)

        for node in nodes.get(LIGHTNING) or []:
            if not node.get('backendName') and first_backend:
                node['backendName'] = first_backend

        for kind, defaults in ((BITCOIN, chart.bitcoin_ports()), (LIGHTNING, chart.lightning_ports())):
            for node in nodes.get(kind) or []:
                if not isinstance(node.get('docker'), dict):
                    node['docker'] = {'image': '', 'command': ''}
                chart_node = chart_nodes.get(node.get('name'))
                if chart_node is not None and 'backend' not in chart_node.setdefault('ports', {}):
                    chart_node['ports']['backend'] = dict(defaults['backend'])
    return data


# Ordered by version
MIGRATIONS: list[tuple[str, Migration]] = [
    ('0.2.0', _migrate_0_2_0),
    ('0.3.0', _migrate_0_3_0),
]


def pending_migrations(version: str) -> list[tuple[str, Migration]]:
    """Migrations newer than the given stored version."""
    current = parse_version(version)
    return [(v, fn) for v, fn in MIGRATIONS if parse_version(v) > current]


def check_shape(data: dict) -> None:
    """Reject collections of the wrong type before any migration runs.

    Null collections are accepted and treated as empty.

    Raises:
        ConfigError: If networks, charts or a node list has the wrong type
    """
    networks = data.get('networks') or []
    if not isinstance(networks, list):
        raise ConfigError(f"'networks' must be a list, got {type(networks).__name__}")
    charts = data.get('charts') or {}
    if not isinstance(charts, dict) or not all(isinstance(c, dict) for c in charts.values()):
        raise ConfigError("'charts' must be an object of chart objects")

    for network in networks:
        if not isinstance(network, dict):
            raise ConfigError(f"Network entry must be an object, got {type(network).__name__}")
        nodes = network.get('nodes') or {}
        if not isinstance(nodes, dict):
            raise ConfigError(f"Network '{network.get('name', 'unnamed')}': 'nodes' must be an object")
        for kind in (BITCOIN, LIGHTNING):
            entries = nodes.get(kind) or []
            if not isinstance(entries, list) or not all(isinstance(n, dict) for n in entries):
                raise ConfigError(
                    f"Network '{network.get('name', 'unnamed')}': '{kind}' must be a list of objects"
                )


def update_paths(data: dict, networks_dir: Path) -> dict:
    """Re-derive every network path as {networks_dir}/{id}."""
    for network in data.get('networks') or []:
        if 'id' not in network:
            raise ConfigError(f"Network '{network.get('name', 'unnamed')}' missing required field: id")
        network['path'] = str(network_path(networks_dir, network['id']))
    return data


def migrate_networks_file(data: dict, networks_dir: Path) -> dict:
    """Upgrade a networks file dict to APP_VERSION.

    The input is not modified. Running this on its own output returns an
    equal dict.

    Args:
        data: Parsed networks.json
        networks_dir: Current networks root

    Returns:
        Migrated copy of the data

    Raises:
        ConfigError: If the version is invalid, a collection has the wrong type
            or a network has no id
    """
    result = copy.deepcopy(data)
    if result.get('networks') is None:
        result['networks'] = []
    if result.get('charts') is None:
        result['charts'] = {}
    check_shape(result)
    stored = str(result.get('version') or '0.0.0')

    if parse_version(stored) > parse_version(APP_VERSION):
        logger.warning(f"Networks file version {stored} is newer than {APP_VERSION}, "
                       f"loading without migration")
        return update_paths(result, networks_dir)

    for version, migration in pending_migrations(stored):
        logger.info(f"Migrating networks file from {stored} to {version}")
        result = migration(result)
        stored = version

    result = update_paths(result, networks_dir)
    result['version'] = APP_VERSION
    return result
