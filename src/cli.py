#!/usr/bin/env python3
"""CLI entry point for polar-driver.

Supports noun-action subcommands:
- polar-driver network start -N 1
- polar-driver node stop -N 1 alice

Nouns:
- network: Network lifecycle and persistence (list/create/compose/start/stop/migrate)
- node: Single node lifecycle (start/stop/remove)
- docker: Docker environment queries (versions/images)
"""

import logging
import sys
from importlib.metadata import PackageNotFoundError, version

# Noun commands (noun-action subcommands)
NOUN_COMMANDS = {
    "network": "Network lifecycle and persistence (list/create/compose/start/stop/migrate)",
    "node": "Single node lifecycle (start/stop/remove)",
    "docker": "Docker environment queries (versions/images)",
}

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def get_version() -> str:
    """Installed distribution version, 'dev' when running from a checkout."""
    try:
        return version('polar-driver')
    except PackageNotFoundError:
        return 'dev'


def dispatch_noun(noun: str, argv: list) -> int:
    """Dispatch to noun-specific CLI handler.

    Args:
        noun: The noun command (e.g., "network", "node")
        argv: Remaining command line arguments

    Returns:
        Exit code
    """
    if noun == "network":
        from network_opr.cli import network_main
        rc: int = network_main(argv)
        return rc

    if noun == "node":
        from network_opr.cli import node_main
        rc = node_main(argv)
        return rc

    if noun == "docker":
        from network_opr.cli import docker_main
        rc = docker_main(argv)
        return rc

    print(f"Error: Unknown command '{noun}'")
    print(f"Available commands: {', '.join(NOUN_COMMANDS)}")
    return 1


def print_usage():
    """Print top-level usage showing noun commands."""
    print(f"polar-driver {get_version()}")
    print()
    print("Usage: polar-driver <noun> <action> [options]")
    print()
    print("Commands:")
    for noun, desc in NOUN_COMMANDS.items():
        print(f"  {noun:<12} {desc}")
    print()
    print("Run 'polar-driver <noun> --help' for command-specific options.")
    print()
    print("Examples:")
    print("  polar-driver network create --name demo --lnd 2 --clightning 1")
    print("  polar-driver network start -N 1")
    print("  polar-driver node stop -N 1 alice")
    print("  polar-driver docker versions --strict")


def main(argv: list | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    if not argv or argv[0] in ('-h', '--help'):
        print_usage()
        return 0 if argv else 1

    if argv[0] == '--version':
        print(f"polar-driver {get_version()}")
        return 0

    return dispatch_noun(argv[0], argv[1:])


if __name__ == '__main__':
    sys.exit(main())
