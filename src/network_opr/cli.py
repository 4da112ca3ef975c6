"""CLI handlers for network, node and docker verbs.

Usage:
    polar-driver network list [--json-output]
    polar-driver network create --name <name> [--lnd N] [--clightning N] [--bitcoind N]
    polar-driver network compose -N <network>
    polar-driver network start -N <network>
    polar-driver network stop -N <network>
    polar-driver network migrate
    polar-driver node start|stop|remove -N <network> <node>
    polar-driver docker versions [--strict] [--json-output]
    polar-driver docker images [--json-output]
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Optional

from chart import init_chart_from_network
from common import CommandError
from config import ConfigError, load_app_config
from network import LIGHTNING, Network, NetworksFile, create_network
from network_opr.service import DockerService

logger = logging.getLogger(__name__)


def _common_parser(prog: str, description: str) -> argparse.ArgumentParser:
    """Build argument parser with options shared by all verbs."""
    parser = argparse.ArgumentParser(prog=f'polar-driver {prog}', description=description)
    parser.add_argument(
        '--data-dir',
        help='Data directory (override: POLAR_HOME env var, default: ~/.polar)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging',
    )
    parser.add_argument(
        '--json-output',
        action='store_true',
        help='Output structured JSON to stdout (logs to stderr)',
    )
    return parser


def _network_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--network', '-N',
        required=True,
        help='Network id or name',
    )


def _setup_logging(verbose: bool, json_output: bool) -> None:
    """Configure logging based on flags."""
    if json_output:
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))
        root_logger.addHandler(stderr_handler)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _create_service(args) -> DockerService:
    config = load_app_config(args.data_dir)
    return DockerService(config)


def _find_network(data: NetworksFile, ref: str) -> Network:
    """Find a network by id or name.

    Raises:
        ConfigError: If no network matches
    """
    for network in data.networks:
        if str(network.id) == ref or network.name == ref:
            return network
    available = ', '.join(f'{n.id} ({n.name})' for n in data.networks)
    raise ConfigError(f"Network '{ref}' not found. Available: {available or 'none'}")


def _run(args, handler) -> int:
    """Run a handler, reporting config and command errors on stderr."""
    _setup_logging(args.verbose, args.json_output)
    try:
        rc: int = handler(args)
        return rc
    except (ConfigError, CommandError) as e:
        if args.json_output:
            print(json.dumps({'success': False, 'error': str(e)}, indent=2))
        print(f"Error: {e}", file=sys.stderr)
        return 1


# -----------------------------------------------------------------------------
# network
# -----------------------------------------------------------------------------

def _network_summary(network: Network) -> dict:
    return {
        'id': network.id,
        'name': network.name,
        'path': str(network.path),
        'bitcoin': [n.name for n in network.bitcoin],
        'lightning': [n.name for n in network.lightning],
    }


def _list(args) -> int:
    data = _create_service(args).load_networks()
    if args.json_output:
        print(json.dumps([_network_summary(n) for n in data.networks], indent=2))
        return 0
    if not data.networks:
        print("No networks")
        return 0
    for network in data.networks:
        print(f"{network.id:>4}  {network.name:<24} {len(network.all_nodes())} nodes  {network.path}")
    return 0


def _create(args) -> int:
    service = _create_service(args)
    data = service.load_networks()
    next_id = max((n.id for n in data.networks), default=0) + 1
    network = create_network(
        id=next_id,
        name=args.name,
        lnd_nodes=args.lnd,
        clightning_nodes=args.clightning,
        bitcoind_nodes=args.bitcoind,
        networks_dir=service.config.networks_dir,
    )
    data.networks.append(network)
    data.charts[str(network.id)] = init_chart_from_network(network)
    service.save_networks(data)
    service.save_compose_file(network)

    if args.json_output:
        print(json.dumps(_network_summary(network), indent=2))
    else:
        print(f"Created network {network.id} '{network.name}' at {network.path}")
    return 0


def _compose(args) -> int:
    service = _create_service(args)
    network = _find_network(service.load_networks(), args.network)
    path = service.save_compose_file(network)
    print(f"Wrote {path}")
    return 0


def _start(args) -> int:
    service = _create_service(args)
    network = _find_network(service.load_networks(), args.network)
    service.save_compose_file(network)
    service.start(network)
    print(f"Network '{network.name}' started")
    return 0


def _stop(args) -> int:
    service = _create_service(args)
    network = _find_network(service.load_networks(), args.network)
    service.stop(network)
    print(f"Network '{network.name}' stopped")
    return 0


def _migrate(args) -> int:
    service = _create_service(args)
    data = service.load_networks()
    path = service.save_networks(data)
    for network in data.networks:
        service.save_compose_file(network)
    print(f"Networks file at {path} is at version {data.version} ({len(data.networks)} networks)")
    return 0


NETWORK_ACTIONS = {
    'list': 'List saved networks',
    'create': 'Create a network and its compose file',
    'compose': "Regenerate a network's docker-compose.yml",
    'start': 'Start every node in a network',
    'stop': 'Stop every node in a network',
    'migrate': 'Upgrade networks.json to the current version',
}


def network_main(argv: list) -> int:
    """Handle 'network' noun."""
    if not argv or argv[0] not in NETWORK_ACTIONS:
        _print_actions('network', NETWORK_ACTIONS, argv)
        return 1 if not argv or not argv[0].startswith('-') else 0

    action, rest = argv[0], argv[1:]
    parser = _common_parser(f'network {action}', NETWORK_ACTIONS[action])
    if action == 'create':
        parser.add_argument('--name', required=True, help='Network display name')
        parser.add_argument('--lnd', type=int, default=1, help='Number of LND nodes')
        parser.add_argument('--clightning', type=int, default=1, help='Number of c-lightning nodes')
        parser.add_argument('--bitcoind', type=int, default=1, help='Number of bitcoind nodes')
    elif action in ('compose', 'start', 'stop'):
        _network_arg(parser)
    args = parser.parse_args(rest)

    handlers = {
        'list': _list,
        'create': _create,
        'compose': _compose,
        'start': _start,
        'stop': _stop,
        'migrate': _migrate,
    }
    return _run(args, handlers[action])


# -----------------------------------------------------------------------------
# node
# -----------------------------------------------------------------------------

def _remove_from_network(data: NetworksFile, network: Network, name: str) -> None:
    """Drop a lightning node and its chart entries."""
    network.lightning = [n for n in network.lightning if n.name != name]
    chart = data.chart_for(network)
    if chart is None:
        return
    chart.get('nodes', {}).pop(name, None)
    links = chart.get('links', {})
    for link_id in [k for k, link in links.items()
                    if name in (link.get('from', {}).get('nodeId'), link.get('to', {}).get('nodeId'))]:
        del links[link_id]


def _node_action(args) -> int:
    service = _create_service(args)
    data = service.load_networks()
    network = _find_network(data, args.network)
    try:
        node = network.get_node(args.node)
    except KeyError:
        raise ConfigError(f"Node '{args.node}' not found in network '{network.name}'")

    if args.action == 'start':
        service.start_node(network, node)
    elif args.action == 'stop':
        service.stop_node(network, node)
    else:
        if node.type != LIGHTNING:
            raise ConfigError(f"Only lightning nodes can be removed ('{node.name}' is {node.type})")
        service.remove_node(network, node)
        _remove_from_network(data, network, node.name)
        service.save_networks(data)
        service.save_compose_file(network)

    print(f"Node '{node.name}': {args.action} complete")
    return 0


NODE_ACTIONS = {
    'start': 'Start one node',
    'stop': 'Stop one node',
    'remove': 'Stop and remove a lightning node',
}


def node_main(argv: list) -> int:
    """Handle 'node' noun."""
    if not argv or argv[0] not in NODE_ACTIONS:
        _print_actions('node', NODE_ACTIONS, argv)
        return 1 if not argv or not argv[0].startswith('-') else 0

    action, rest = argv[0], argv[1:]
    parser = _common_parser(f'node {action}', NODE_ACTIONS[action])
    _network_arg(parser)
    parser.add_argument('node', help='Node name')
    args = parser.parse_args(rest)
    args.action = action
    return _run(args, _node_action)


# -----------------------------------------------------------------------------
# docker
# -----------------------------------------------------------------------------

def _versions(args) -> int:
    versions = _create_service(args).get_versions(throw_on_error=args.strict)
    if args.json_output:
        print(json.dumps(asdict(versions), indent=2))
    else:
        print(f"docker:  {versions.docker or 'not found'}")
        print(f"compose: {versions.compose or 'not found'}")
    return 0


def _images(args) -> int:
    images = _create_service(args).get_images()
    if args.json_output:
        print(json.dumps(images, indent=2))
    else:
        for tag in images:
            print(tag)
    return 0


DOCKER_ACTIONS = {
    'versions': 'Show docker and compose versions',
    'images': 'List docker image tags',
}


def docker_main(argv: list) -> int:
    """Handle 'docker' noun."""
    if not argv or argv[0] not in DOCKER_ACTIONS:
        _print_actions('docker', DOCKER_ACTIONS, argv)
        return 1 if not argv or not argv[0].startswith('-') else 0

    action, rest = argv[0], argv[1:]
    parser = _common_parser(f'docker {action}', DOCKER_ACTIONS[action])
    if action == 'versions':
        parser.add_argument('--strict', action='store_true',
                            help='Fail if either version cannot be determined')
    args = parser.parse_args(rest)
    return _run(args, _versions if action == 'versions' else _images)


def _print_actions(noun: str, actions: dict, argv: Optional[list]) -> None:
    if argv and not argv[0].startswith('-'):
        print(f"Error: Unknown {noun} action '{argv[0]}'")
    print(f"Usage: polar-driver {noun} <action> [options]")
    print()
    print("Actions:")
    for action, desc in actions.items():
        print(f"  {action:<10} {desc}")
    print()
    print(f"Run 'polar-driver {noun} <action> --help' for action-specific options.")
