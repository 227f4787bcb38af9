"""
Repo restore for service nodes.

Loads the base config and storage layout, reads the node identity from a
backup, talks to the full node, runs the caller's two callbacks and only
then writes the repo. The repo appears on disk in a single rename, so a
failed run leaves nothing behind.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from storenode.api.api_info import APIInfo
from storenode.api.client import FullNodeAPI, MinerInfo, connect_full_node
from storenode.api.version import FULL_API_VERSION
from storenode.errors import RestoreError, ServiceInitError, VersionMismatch
from storenode.node.config import StorageConfig, StorageMinerConfig, load_config, load_storage_config
from storenode.utils.custom_logger import get_logger

logger = get_logger(__name__)

MINER_ADDRESS_KEY = "miner-address"
PEER_ID_KEY = "peer-id"

DEFAULT_BLOCK_DELAY_SECS = 30

Mutator = Callable[[StorageMinerConfig], Awaitable[StorageMinerConfig]]
AfterRestore = Callable[[FullNodeAPI, str, str, MinerInfo], Awaitable[None]]


@dataclass(frozen=True)
class RestoreOptions:
    config_path: str
    storage_config_path: str
    repo_path: str
    backup_path: Optional[str] = None
    nosync: bool = False
    fullnode_api_info: Optional[str] = None
    rpc_version: str = "v0"
    sync_poll_interval: float = 3.0


@dataclass(frozen=True)
class Backup:
    metadata: Dict[str, Any]

    @property
    def miner_address(self) -> str:
        return self.metadata[MINER_ADDRESS_KEY]

    @property
    def peer_id(self) -> str:
        return self.metadata[PEER_ID_KEY]


def read_backup(path: str) -> Backup:
    """Read a JSON metadata backup and check it names the miner and its peer ID."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise RestoreError(f"opening backup file {path}: {e}") from e
    except ValueError as e:
        raise RestoreError(f"decoding backup file {path}: {e}") from e

    metadata = data.get("metadata") if isinstance(data, dict) else None
    if not isinstance(metadata, dict):
        raise RestoreError(f"backup file {path} has no metadata section")
    for key in (MINER_ADDRESS_KEY, PEER_ID_KEY):
        if not metadata.get(key):
            raise RestoreError(f"backup file {path} is missing {key}")
    return Backup(metadata=metadata)


def _check_repo_free(repo: Path) -> None:
    if repo.exists() and (not repo.is_dir() or any(repo.iterdir())):
        raise RestoreError(f"repo at '{repo}' is already initialized")


def _write_file(path: Path, content: str, mode: int = 0o644) -> None:
    tmp = path.with_name(f"{path.name}.tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(content)
    os.chmod(tmp, mode)
    os.replace(tmp, path)


def persist_repo(repo: Path, config: StorageMinerConfig, storage: StorageConfig, backup: Backup) -> None:
    """Stage the repo beside its final location and rename it into place."""
    missing = config.subsystems.missing_delegations()
    if missing:
        raise RestoreError(f"refusing to write config: no remote API recorded for {', '.join(missing)}")

    repo.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{repo.name}-", dir=repo.parent))
    try:
        _write_file(staging / "config.toml", config.to_toml(), 0o600)
        _write_file(staging / "storage.json", storage.to_json())
        (staging / "datastore").mkdir()
        _write_file(staging / "datastore" / "metadata.json", json.dumps(backup.metadata, indent=2) + "\n", 0o600)
        if repo.exists():
            repo.rmdir()
        os.rename(staging, repo)
    except OSError as e:
        raise RestoreError(f"writing repo {repo}: {e}") from e
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)


async def wait_for_sync(
    api: FullNodeAPI,
    block_delay: int,
    poll_interval: float,
    *,
    clock: Callable[[], float] = time.time,
    log=None,
) -> None:
    """Block until the chain head is less than one block delay old."""
    log = log or logger
    while True:
        head = await api.chain_head()
        blocks = head.get("Blocks") or []
        if blocks:
            behind = clock() - min(int(b["Timestamp"]) for b in blocks)
            if behind < block_delay:
                log.success(f"Chain in sync at height {head.get('Height')}")
                return
            log.info(f"Waiting for chain sync: height {head.get('Height')}, {int(behind)}s behind")
        await asyncio.sleep(poll_interval)


async def restore(
    options: RestoreOptions,
    mutate: Mutator,
    after: AfterRestore,
    *,
    connect=connect_full_node,
    log=None,
) -> StorageMinerConfig:
    """
    Initialize a node repo from a backup.

    ``mutate`` receives the base config and returns the config to persist;
    ``after`` gets the full node API, miner address, peer ID and chain miner
    info. Both run before anything is written; an exception from either one
    aborts the restore with the repo untouched. Returns the persisted config.
    """
    log = log or logger

    if not options.backup_path:
        raise RestoreError("expected 1 argument: backup file")

    repo = Path(options.repo_path).expanduser()
    _check_repo_free(repo)

    base_config = load_config(options.config_path)
    storage = load_storage_config(options.storage_config_path)
    backup = read_backup(options.backup_path)

    if not options.fullnode_api_info:
        raise RestoreError("FULLNODE_API_INFO is not set")
    info = APIInfo.parse(options.fullnode_api_info.strip())
    try:
        addr = info.dial_args(options.rpc_version)
    except ServiceInitError as e:
        e.add_context("full node API")
        raise

    api, closer = await connect(addr, info.auth_header())
    try:
        try:
            v = await api.version()
        except ValueError as e:
            raise RestoreError(f"decoding full node version: {e}") from e
        if not v.api.eq_major_minor(FULL_API_VERSION):
            raise VersionMismatch(FULL_API_VERSION, v.api).add_context("full node API")

        if not options.nosync:
            await wait_for_sync(api, v.block_delay or DEFAULT_BLOCK_DELAY_SECS, options.sync_poll_interval, log=log)

        log.info(f"Restoring node for miner {backup.miner_address}")
        try:
            mi = await api.state_miner_info(backup.miner_address)
        except ValueError as e:
            raise RestoreError(f"decoding miner info for {backup.miner_address}: {e}") from e

        config = await mutate(base_config)
        await after(api, backup.miner_address, backup.peer_id, mi)
    finally:
        await closer()

    persist_repo(repo, config, storage, backup)
    log.success(f"Repo initialized at {repo}")
    return config
