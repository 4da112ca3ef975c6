"""Tests for migrations.py - networks.json schema upgrades."""

import copy
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from config import APP_VERSION, ConfigError
from migrations import (
    MIGRATIONS,
    migrate_networks_file,
    parse_version,
    pending_migrations,
    update_paths,
)


def _legacy_file() -> dict:
    """A networks file as written before bitcoin peers existed."""
    return {
        'networks': [{
            'id': 1,
            'name': 'legacy',
            'path': '/old/location/1',
            'status': 'Stopped',
            'nodes': {
                'bitcoin': [{
                    'id': 0, 'networkId': 1, 'name': 'backend1', 'type': 'bitcoin',
                    'implementation': 'bitcoind', 'version': '0.18.1', 'status': 'Stopped',
                    'ports': {'rpc': 18443},
                }],
                'lightning': [{
                    'id': 0, 'networkId': 1, 'name': 'alice', 'type': 'lightning',
                    'implementation': 'LND', 'version': '0.7.1-beta', 'status': 'Stopped',
                    'ports': {'rest': 8081, 'grpc': 10001},
                }],
            },
        }],
        'charts': {
            '1': {
                'nodes': {
                    'backend1': {'id': 'backend1', 'ports': {}},
                    'alice': {'id': 'alice', 'ports': {'empty-left': {'id': 'empty-left', 'type': 'left'}}},
                },
                'links': {},
            },
        },
    }


class TestParseVersion:
    def test_plain(self):
        assert parse_version('0.2.0') == (0, 2, 0)

    def test_prefix_and_suffix(self):
        assert parse_version('v0.3.1-beta') == (0, 3, 1)

    def test_ordering(self):
        assert parse_version('0.10.0') > parse_version('0.9.9')

    def test_invalid(self):
        with pytest.raises(ConfigError, match='Invalid networks file version'):
            parse_version('latest')


class TestPendingMigrations:
    def test_all_pending_from_zero(self):
        assert [v for v, _ in pending_migrations('0.0.0')] == [v for v, _ in MIGRATIONS]

    def test_partial(self):
        assert [v for v, _ in pending_migrations('0.2.0')] == ['0.3.0']

    def test_none_pending_at_current(self):
        assert pending_migrations(APP_VERSION) == []


class TestMigrateNetworksFile:
    """Tests for migrate_networks_file()."""

    def test_legacy_gains_peers(self, tmp_path):
        result = migrate_networks_file(_legacy_file(), tmp_path)
        assert result['networks'][0]['nodes']['bitcoin'][0]['peers'] == []

    def test_legacy_gains_chart_ports(self, tmp_path):
        result = migrate_networks_file(_legacy_file(), tmp_path)
        ports = result['charts']['1']['nodes']['backend1']['ports']
        assert ports['peer-left'] == {'id': 'peer-left', 'type': 'left'}
        assert ports['peer-right'] == {'id': 'peer-right', 'type': 'right'}
        assert ports['backend'] == {'id': 'backend', 'type': 'input'}

    def test_lightning_chart_backend_port(self, tmp_path):
        result = migrate_networks_file(_legacy_file(), tmp_path)
        ports = result['charts']['1']['nodes']['alice']['ports']
        assert ports['backend'] == {'id': 'backend', 'type': 'output'}
        assert 'empty-left' in ports

    def test_backend_name_filled(self, tmp_path):
        result = migrate_networks_file(_legacy_file(), tmp_path)
        assert result['networks'][0]['nodes']['lightning'][0]['backendName'] == 'backend1'

    def test_docker_overrides_filled(self, tmp_path):
        result = migrate_networks_file(_legacy_file(), tmp_path)
        assert result['networks'][0]['nodes']['bitcoin'][0]['docker'] == {'image': '', 'command': ''}

    def test_path_rederived(self, tmp_path):
        result = migrate_networks_file(_legacy_file(), tmp_path)
        assert result['networks'][0]['path'] == str(tmp_path / '1')

    def test_stamped_with_app_version(self, tmp_path):
        result = migrate_networks_file(_legacy_file(), tmp_path)
        assert result['version'] == APP_VERSION

    def test_input_not_modified(self, tmp_path):
        data = _legacy_file()
        original = copy.deepcopy(data)
        migrate_networks_file(data, tmp_path)
        assert data == original

    def test_idempotent(self, tmp_path):
        once = migrate_networks_file(_legacy_file(), tmp_path)
        assert migrate_networks_file(once, tmp_path) == once

    def test_existing_peers_kept(self, tmp_path):
        data = _legacy_file()
        data['networks'][0]['nodes']['bitcoin'][0]['peers'] = ['backend2']
        result = migrate_networks_file(data, tmp_path)
        assert result['networks'][0]['nodes']['bitcoin'][0]['peers'] == ['backend2']

    def test_current_version_only_updates_paths(self, tmp_path):
        data = _legacy_file()
        data['version'] = APP_VERSION
        result = migrate_networks_file(data, tmp_path)
        assert 'peers' not in result['networks'][0]['nodes']['bitcoin'][0]
        assert result['networks'][0]['path'] == str(tmp_path / '1')

    def test_newer_version_left_alone(self, tmp_path):
        data = _legacy_file()
        data['version'] = '9.0.0'
        result = migrate_networks_file(data, tmp_path)
        assert result['version'] == '9.0.0'
        assert 'peers' not in result['networks'][0]['nodes']['bitcoin'][0]
        assert result['networks'][0]['path'] == str(tmp_path / '1')

    def test_missing_id_raises(self, tmp_path):
        data = _legacy_file()
        del data['networks'][0]['id']
        with pytest.raises(ConfigError, match='missing required field: id'):
            migrate_networks_file(data, tmp_path)

    def test_empty_file(self, tmp_path):
        result = migrate_networks_file({}, tmp_path)
        assert result == {'networks': [], 'charts': {}, 'version': APP_VERSION}

    def test_network_without_chart(self, tmp_path):
        data = _legacy_file()
        data['charts'] = {}
        result = migrate_networks_file(data, tmp_path)
        assert result['networks'][0]['nodes']['bitcoin'][0]['peers'] == []


class TestMalformedData:
    """Null collections load as empty; wrongly typed ones raise ConfigError."""

    def test_null_networks(self, tmp_path):
        result = migrate_networks_file({'version': '0.0.0', 'networks': None}, tmp_path)
        assert result['networks'] == []
        assert result['charts'] == {}

    def test_null_node_lists(self, tmp_path):
        data = _legacy_file()
        data['networks'][0]['nodes'] = {'bitcoin': None, 'lightning': None}
        result = migrate_networks_file(data, tmp_path)
        assert result['networks'][0]['path'] == str(tmp_path / '1')

    def test_null_nodes(self, tmp_path):
        data = _legacy_file()
        data['networks'][0]['nodes'] = None
        assert migrate_networks_file(data, tmp_path)['version'] == APP_VERSION

    def test_networks_not_a_list(self, tmp_path):
        with pytest.raises(ConfigError, match="'networks' must be a list"):
            migrate_networks_file({'networks': 'oops'}, tmp_path)

    def test_network_not_an_object(self, tmp_path):
        with pytest.raises(ConfigError, match='Network entry must be an object'):
            migrate_networks_file({'networks': [1]}, tmp_path)

    def test_node_list_wrong_type(self, tmp_path):
        data = _legacy_file()
        data['networks'][0]['nodes']['bitcoin'] = {'name': 'backend1'}
        with pytest.raises(ConfigError, match="'bitcoin' must be a list of objects"):
            migrate_networks_file(data, tmp_path)

    def test_nodes_wrong_type(self, tmp_path):
        data = _legacy_file()
        data['networks'][0]['nodes'] = ['backend1']
        with pytest.raises(ConfigError, match="'nodes' must be an object"):
            migrate_networks_file(data, tmp_path)

    def test_charts_wrong_type(self, tmp_path):
        data = _legacy_file()
        data['charts'] = {'1': 'layout'}
        with pytest.raises(ConfigError, match="'charts' must be an object"):
            migrate_networks_file(data, tmp_path)


class TestUpdatePaths:
    def test_multiple_networks(self, tmp_path):
        data = {'networks': [{'id': 1}, {'id': 2}]}
        update_paths(data, tmp_path)
        assert [n['path'] for n in data['networks']] == [str(tmp_path / '1'), str(tmp_path / '2')]
