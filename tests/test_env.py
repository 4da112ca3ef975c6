"""Tests for network_opr/env.py - compose environment."""

import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from network_opr.env import get_compose_env, host_user_ids


class TestGetComposeEnv:
    """Tests for get_compose_env()."""

    @patch('network_opr.env.platform.system', return_value='Linux')
    def test_linux_adds_user_ids(self, mock_system):
        env = get_compose_env({'PATH': '/usr/bin'}, identity=lambda: (1001, 1002))
        assert env == {'PATH': '/usr/bin', 'USERID': '1001', 'GROUPID': '1002'}

    @patch('network_opr.env.platform.system', return_value='Darwin')
    def test_other_platforms_unchanged(self, mock_system):
        env = get_compose_env({'PATH': '/usr/bin'}, identity=lambda: (1001, 1002))
        assert 'USERID' not in env
        assert 'GROUPID' not in env

    @patch('network_opr.env.platform.system', return_value='Windows')
    def test_windows_unchanged(self, mock_system):
        env = get_compose_env({'A': 'b'}, identity=lambda: (1, 1))
        assert env == {'A': 'b'}

    @patch('network_opr.env.platform.system', return_value='Linux')
    def test_unknown_identity(self, mock_system):
        env = get_compose_env({'A': 'b'}, identity=lambda: None)
        assert env == {'A': 'b'}

    @patch('network_opr.env.platform.system', return_value='Linux')
    def test_identity_disabled(self, mock_system):
        assert get_compose_env({'A': 'b'}, identity=None) == {'A': 'b'}

    @patch('network_opr.env.platform.system', return_value='Linux')
    def test_failing_identity_omits_ids(self, mock_system):
        def identity():
            raise KeyError('uid not in passwd')

        assert get_compose_env({'A': 'b'}, identity=identity) == {'A': 'b'}

    @patch('network_opr.env.platform.system', return_value='Linux')
    def test_does_not_mutate_input(self, mock_system):
        environ = {'A': 'b'}
        get_compose_env(environ, identity=lambda: (5, 6))
        assert environ == {'A': 'b'}

    @patch('network_opr.env.platform.system', return_value='Linux')
    def test_defaults_to_os_environ(self, mock_system, monkeypatch):
        monkeypatch.setenv('__POLAR_TEST', 'yes')
        env = get_compose_env(identity=lambda: (5, 6))
        assert env['__POLAR_TEST'] == 'yes'
        assert env['USERID'] == '5'


class TestHostUserIds:
    """Tests for host_user_ids()."""

    def test_returns_ids(self):
        with patch('network_opr.env.os.getuid', return_value=1000, create=True), \
             patch('network_opr.env.os.getgid', return_value=100, create=True):
            assert host_user_ids() == (1000, 100)

    def test_lookup_failure(self):
        with patch('network_opr.env.os.getuid', side_effect=OSError('nope'), create=True), \
             patch('network_opr.env.os.getgid', return_value=100, create=True):
            assert host_user_ids() is None
