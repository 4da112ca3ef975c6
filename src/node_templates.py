"""Compose service templates for each node implementation.

Each template returns the service definition for one node. Ports inside
the containers are fixed; host ports come from the node model.
"""

import re
from typing import Any, Optional

RPC_USER = 'polaruser'
RPC_PASS = 'polarpass'
# rpcauth for polaruser/polarpass; '$' doubled for compose interpolation
RPC_AUTH = ('polaruser:5e5e98c21f5c814568f8b55d83b23c1c$$'
            '066b03f92df30b11de8e4b1b1cd5b1b4281aa25205bd57df9be82caf97a05526')

BITCOIND_PORTS = {'rpc': 18443, 'p2p': 18444, 'zmqBlock': 28334, 'zmqTx': 28335}
LND_PORTS = {'rest': 8080, 'grpc': 10009, 'p2p': 9735}
CLIGHTNING_PORTS = {'rest': 8080, 'p2p': 9735}

# Runs processes inside containers as the host user (see network_opr.env)
USER_ENVIRONMENT = {
    'USERID': '${USERID:-1000}',
    'GROUPID': '${GROUPID:-1000}',
}

# Per-implementation directory under {network.path}/volumes/
VOLUME_DIRS = {
    'bitcoind': 'bitcoind',
    'LND': 'lnd',
    'c-lightning': 'c-lightning',
    'eclair': 'eclair',
}

_VAR_PATTERN = re.compile(r'\{\{(\w+)\}\}')


def apply_command_vars(command: str, variables: dict[str, str]) -> str:
    """Replace {{name}} placeholders in a custom command.

    Unknown placeholders are left untouched.
    """
    return _VAR_PATTERN.sub(lambda m: variables.get(m.group(1), m.group(0)), command)


def _command(args: list[str]) -> str:
    return ' '.join(args)


def _port_mappings(host_ports: dict[str, int], container_ports: dict[str, int]) -> list[str]:
    """Map host ports to container ports for every port the node declares."""
    return [
        f'{host_ports[key]}:{container_ports[key]}'
        for key in container_ports
        if key in host_ports
    ]


def bitcoind(
    name: str,
    container_name: str,
    image: str,
    ports: dict[str, int],
    command: Optional[str] = None,
) -> dict[str, Any]:
    """Service definition for a bitcoind node."""
    default_command = _command([
        'bitcoind',
        '-server=1',
        '-regtest=1',
        f'-rpcauth={RPC_AUTH}',
        '-debug=1',
        f"-zmqpubrawblock=tcp://0.0.0.0:{BITCOIND_PORTS['zmqBlock']}",
        f"-zmqpubrawtx=tcp://0.0.0.0:{BITCOIND_PORTS['zmqTx']}",
        '-txindex=1',
        '-dnsseed=0',
        '-upnp=0',
        '-rpcbind=0.0.0.0',
        '-rpcallowip=0.0.0.0/0',
        f"-rpcport={BITCOIND_PORTS['rpc']}",
        '-rest',
        '-listen=1',
        '-listenonion=0',
        '-fallbackfee=0.0002',
    ])
    return {
        'image': image,
        'container_name': container_name,
        'environment': dict(USER_ENVIRONMENT),
        'hostname': name,
        'command': command or default_command,
        'volumes': [f"./volumes/{VOLUME_DIRS['bitcoind']}/{name}:/home/bitcoin/.bitcoin"],
        'expose': [str(p) for p in BITCOIND_PORTS.values()],
        'ports': _port_mappings(ports, BITCOIND_PORTS),
    }


def lnd(
    name: str,
    container_name: str,
    image: str,
    backend_name: str,
    ports: dict[str, int],
    command: Optional[str] = None,
) -> dict[str, Any]:
    """Service definition for an LND node."""
    default_command = _command([
        'lnd',
        '--noseedbackup',
        '--trickledelay=5000',
        f'--alias={name}',
        f'--externalip={name}',
        f'--tlsextradomain={name}',
        f"--listen=0.0.0.0:{LND_PORTS['p2p']}",
        f"--rpclisten=0.0.0.0:{LND_PORTS['grpc']}",
        f"--restlisten=0.0.0.0:{LND_PORTS['rest']}",
        '--bitcoin.active',
        '--bitcoin.regtest',
        '--bitcoin.node=bitcoind',
        f'--bitcoind.rpchost={backend_name}',
        f'--bitcoind.rpcuser={RPC_USER}',
        f'--bitcoind.rpcpass={RPC_PASS}',
        f"--bitcoind.zmqpubrawblock=tcp://{backend_name}:{BITCOIND_PORTS['zmqBlock']}",
        f"--bitcoind.zmqpubrawtx=tcp://{backend_name}:{BITCOIND_PORTS['zmqTx']}",
    ])
    return {
        'image': image,
        'container_name': container_name,
        'environment': dict(USER_ENVIRONMENT),
        'hostname': name,
        'command': command or default_command,
        'restart': 'always',
        'volumes': [f"./volumes/{VOLUME_DIRS['LND']}/{name}:/home/lnd/.lnd"],
        'expose': [str(p) for p in LND_PORTS.values()],
        'ports': _port_mappings(ports, LND_PORTS),
    }


def clightning(
    name: str,
    container_name: str,
    image: str,
    backend_name: str,
    ports: dict[str, int],
    command: Optional[str] = None,
) -> dict[str, Any]:
    """Service definition for a c-lightning node with the REST plugin."""
    default_command = _command([
        'lightningd',
        f'--alias={name}',
        f'--addr={name}',
        f"--addr=0.0.0.0:{CLIGHTNING_PORTS['p2p']}",
        '--network=regtest',
        f'--bitcoin-rpcuser={RPC_USER}',
        f'--bitcoin-rpcpassword={RPC_PASS}',
        f'--bitcoin-rpcconnect={backend_name}',
        f"--bitcoin-rpcport={BITCOIND_PORTS['rpc']}",
        '--log-level=debug',
        '--dev-bitcoind-poll=2',
        '--plugin=/opt/c-lightning-rest/plugin.js',
        f"--rest-port={CLIGHTNING_PORTS['rest']}",
        '--rest-protocol=http',
    ])
    return {
        'image': image,
        'container_name': container_name,
        'environment': dict(USER_ENVIRONMENT),
        'hostname': name,
        'command': command or default_command,
        'restart': 'always',
        'volumes': [
            f"./volumes/{VOLUME_DIRS['c-lightning']}/{name}/lightningd:/home/clightning/.lightning",
            f"./volumes/{VOLUME_DIRS['c-lightning']}/{name}/rest-api:/opt/c-lightning-rest/certs",
        ],
        'expose': [str(p) for p in CLIGHTNING_PORTS.values()],
        'ports': _port_mappings(ports, CLIGHTNING_PORTS),
    }
