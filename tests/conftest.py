"""
Global pytest configuration and fixtures for storenode tests.
"""

import json
from argparse import Namespace
from unittest.mock import AsyncMock, Mock

import pytest

from storenode.api.client import MinerInfo, VersionInfo
from storenode.api.version import FULL_API_VERSION
from storenode.utils.config import Settings
from tests.helpers import OLD_PEER_ID, PEER_ID, FakeMinerConnector


@pytest.fixture
def miner_connector():
    return FakeMinerConnector()


@pytest.fixture
def mock_log():
    """Injected logger; bind() hands back the same mock so calls are easy to inspect."""
    log = Mock()
    log.bind.return_value = log
    return log


@pytest.fixture
def mock_full_node():
    """Mock full node API that is in sync and knows the miner."""
    api = Mock()
    api.version = AsyncMock(
        return_value=VersionInfo(Version="1.0.0", APIVersion=FULL_API_VERSION.to_int(), BlockDelay=30)
    )
    api.chain_head = AsyncMock(return_value={"Height": 1000, "Blocks": [{"Timestamp": 10**10}]})
    api.state_miner_info = AsyncMock(
        return_value=MinerInfo(Owner="f0100", Worker="f0101", PeerId=OLD_PEER_ID)
    )
    api.mpool_push_message = AsyncMock(return_value={"CID": {"/": "bafy2bzaceexample"}})
    api.state_wait_msg = AsyncMock(return_value={"Receipt": {"ExitCode": 0}})
    return api


@pytest.fixture
def full_node_connector(mock_full_node):
    closer = AsyncMock()
    connect = AsyncMock(return_value=(mock_full_node, closer))
    connect.closer = closer
    return connect


@pytest.fixture
def service_files(tmp_path):
    """Base config, storage layout and metadata backup on disk."""
    config = tmp_path / "config.toml"
    config.write_text(
        "[API]\n"
        'ListenAddress = "/ip4/127.0.0.1/tcp/2345/http"\n'
        "\n"
        "[Subsystems]\n"
        "EnableMining = true\n"
        "EnableSealing = true\n"
        "EnableSectorStorage = true\n"
        "EnableStorageMarket = false\n",
        encoding="utf-8",
    )

    storage = tmp_path / "storage.json"
    storage.write_text(json.dumps({"StoragePaths": [{"Path": "/data/market"}]}), encoding="utf-8")

    backup = tmp_path / "backup.json"
    backup.write_text(
        json.dumps({"metadata": {"miner-address": "f01000", "peer-id": PEER_ID}}),
        encoding="utf-8",
    )

    return Namespace(config=str(config), storage=str(storage), backup=str(backup), repo=tmp_path / "repo")


@pytest.fixture
def test_settings(service_files):
    return Settings(
        FULLNODE_API_INFO="aaa.bbb.ccc:/ip4/127.0.0.1/tcp/1234/http",
        STORAGE_MINER_PATH=str(service_files.repo),
    )


@pytest.fixture
def service_args(service_files):
    """Parsed ``init service`` arguments for the market-only scenario."""
    return Namespace(
        config=service_files.config,
        storage_config=service_files.storage,
        nosync=True,
        enable_market=True,
        api_sealer="MINER_API_INFO=abc:1234",
        api_sector_index="def:5678",
        backup_file=service_files.backup,
    )
