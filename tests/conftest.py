"""Shared pytest fixtures for polar-driver tests."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from common import CommandResult  # noqa: E402
from config import AppConfig  # noqa: E402
from network import create_network  # noqa: E402


@pytest.fixture
def app_config(tmp_path):
    """AppConfig rooted in a temporary data directory."""
    return AppConfig(
        data_dir=tmp_path / 'polar',
        legacy_networks_dir=tmp_path / 'legacy' / 'data' / 'networks',
    )


@pytest.fixture
def network(app_config):
    """Default test network: 2 LND, 1 c-lightning, 1 bitcoind."""
    return create_network(
        id=1,
        name='my-test',
        lnd_nodes=2,
        clightning_nodes=1,
        bitcoind_nodes=1,
        networks_dir=app_config.networks_dir,
    )


@pytest.fixture
def mock_store():
    """FileStore double; nothing exists by default."""
    store = MagicMock()
    store.exists.return_value = False
    return store


@pytest.fixture
def mock_engine():
    engine = MagicMock()
    engine.version.return_value = {'Version': '1.2.3'}
    engine.list_images.return_value = []
    return engine


@pytest.fixture
def mock_compose():
    """ComposeRunner double; every verb succeeds."""
    compose = MagicMock()
    ok = CommandResult(exit_code=0, out='', err='')
    for verb in ('up_all', 'down', 'up_one', 'stop_one', 'rm'):
        getattr(compose, verb).return_value = ok
    compose.version.return_value = CommandResult(exit_code=0, out='4.5.6\n', err='')
    return compose


@pytest.fixture
def docker_service(app_config, mock_engine, mock_compose, mock_store):
    """DockerService wired to mocks, with a fixed compose environment."""
    from network_opr.service import DockerService
    return DockerService(
        app_config,
        engine=mock_engine,
        compose=mock_compose,
        store=mock_store,
        env_builder=lambda: {'__TESTVAR': 'TESTVAL'},
    )
