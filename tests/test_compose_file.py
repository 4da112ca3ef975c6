"""Tests for compose_file.py - docker-compose.yml generation."""

import sys
from pathlib import Path

import yaml

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from compose_file import ComposeFile, build_compose_file, container_name, generate_compose
from network import create_network


def _services(network) -> dict:
    return yaml.safe_load(generate_compose(network))['services']


class TestContainerName:
    def test_format(self):
        assert container_name(1, 'alice') == 'polar-n1-alice'

    def test_custom_prefix(self):
        assert container_name(12, 'backend1', prefix='lab') == 'lab-n12-backend1'


class TestGenerateCompose:
    """Tests for the generated text."""

    def test_text_anchors(self, network):
        text = generate_compose(network)
        assert 'version:' in text
        assert 'services:' in text

    def test_bitcoin_container_name(self, network):
        text = generate_compose(network)
        assert f'container_name: polar-n1-{network.bitcoin[0].name}' in text

    def test_lightning_container_names(self, network):
        text = generate_compose(network)
        for node in network.lightning:
            assert f'container_name: polar-n1-{node.name}' in text

    def test_deterministic(self, network):
        assert generate_compose(network) == generate_compose(network)

    def test_version_field(self, network):
        assert yaml.safe_load(generate_compose(network))['version'] == '3.3'

    def test_service_order(self, network):
        assert list(_services(network)) == ['backend1', 'alice', 'bob', 'carol']


class TestBitcoindService:
    """Tests for bitcoind services."""

    def test_image(self, network):
        service = _services(network)['backend1']
        assert service['image'] == f'polarlightning/bitcoind:{network.bitcoin[0].version}'

    def test_volume_under_network_path(self, network):
        service = _services(network)['backend1']
        assert service['volumes'] == ['./volumes/bitcoind/backend1:/home/bitcoin/.bitcoin']

    def test_ports(self, tmp_path):
        net = create_network(1, 'net', 0, 0, 2, networks_dir=tmp_path)
        service = _services(net)['backend2']
        assert '18444:18443' in service['ports']
        assert '19445:18444' in service['ports']
        assert len(service['ports']) == 4

    def test_no_dependencies(self, network):
        assert 'depends_on' not in _services(network)['backend1']

    def test_user_environment(self, network):
        env = _services(network)['backend1']['environment']
        assert env == {'USERID': '${USERID:-1000}', 'GROUPID': '${GROUPID:-1000}'}


class TestLightningServices:
    """Tests for lightning services and backend linkage."""

    def test_lnd_depends_on_backend(self, network):
        service = _services(network)['alice']
        assert service['depends_on'] == ['backend1']
        assert '--bitcoind.rpchost=backend1' in service['command']

    def test_clightning_depends_on_backend(self, network):
        service = _services(network)['carol']
        assert service['depends_on'] == ['backend1']
        assert '--bitcoin-rpcconnect=backend1' in service['command']
        assert service['image'].startswith('polarlightning/clightning:')
        assert len(service['volumes']) == 2

    def test_named_backend(self, tmp_path):
        net = create_network(1, 'net', 1, 0, 2, networks_dir=tmp_path)
        net.lightning[0].backend_name = 'backend2'
        assert _services(net)['alice']['depends_on'] == ['backend2']

    def test_invalid_lnd_backend_falls_back(self, tmp_path):
        net = create_network(1, 'my network', 1, 0, 1, networks_dir=tmp_path)
        net.lightning[0].backend_name = 'invalid'
        text = generate_compose(net)
        assert 'container_name: polar-n1-alice' in text
        assert _services(net)['alice']['depends_on'] == ['backend1']

    def test_invalid_clightning_backend_falls_back(self, tmp_path):
        net = create_network(1, 'my network', 0, 1, 1, networks_dir=tmp_path)
        net.lightning[0].backend_name = 'invalid'
        assert _services(net)['alice']['depends_on'] == ['backend1']

    def test_unsupported_implementation_skipped(self, network):
        network.lightning[0].implementation = 'eclair'
        text = generate_compose(network)
        assert f'container_name: polar-n1-{network.lightning[0].name}' not in text
        assert 'container_name: polar-n1-bob' in text
        assert 'container_name: polar-n1-backend1' in text

    def test_lnd_ports(self, network):
        service = _services(network)['bob']
        assert service['ports'] == ['8082:8080', '10002:10009']


class TestDegenerateNetworks:
    """Generation never fails for structurally valid input."""

    def test_no_lightning_nodes(self, tmp_path):
        net = create_network(1, 'net', 0, 0, 1, networks_dir=tmp_path)
        assert list(_services(net)) == ['backend1']

    def test_no_bitcoin_nodes(self, tmp_path):
        net = create_network(1, 'net', 1, 0, 0, networks_dir=tmp_path)
        service = _services(net)['alice']
        assert 'depends_on' not in service

    def test_empty_network(self, tmp_path):
        net = create_network(1, 'net', 0, 0, 0, networks_dir=tmp_path)
        text = generate_compose(net)
        assert 'services:' in text
        assert yaml.safe_load(text)['services'] == {}


class TestDockerOverrides:
    """Tests for custom image and command settings."""

    def test_custom_image(self, network):
        network.lightning[0].docker['image'] = 'my/lnd:custom'
        assert _services(network)['alice']['image'] == 'my/lnd:custom'

    def test_custom_command_placeholders(self, network):
        network.lightning[0].docker['command'] = 'lnd --alias={{name}} --bitcoind.rpchost={{backendName}} {{other}}'
        command = _services(network)['alice']['command']
        assert command == 'lnd --alias=alice --bitcoind.rpchost=backend1 {{other}}'

    def test_custom_repo(self, network):
        file = build_compose_file(network, repo='myrepo')
        assert file.services['backend1']['image'].startswith('myrepo/bitcoind:')

    def test_add_lightning_reports_skip(self, network):
        file = ComposeFile(network.id)
        network.lightning[0].implementation = 'eclair'
        assert file.add_lightning(network.lightning[0], network.bitcoin[0]) is False
        assert file.services == {}

    def test_add_lightning_follows_supported_set(self, network):
        file = ComposeFile(network.id)
        for node in network.lightning:
            assert file.add_lightning(node, network.bitcoin[0]) is node.is_supported
        assert list(file.services) == ['alice', 'bob', 'carol']
