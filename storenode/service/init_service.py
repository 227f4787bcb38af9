"""
``init service``: turn a backed-up storage node into a market service node.

Mining, sealing and sector storage are switched off locally; sealing and
sector storage are delegated to the remote APIs given on the command line.
Flags are checked before any network call, the remote APIs are checked
before the config is built, the miner actor is updated after that, and only
when all of it succeeds does the restore routine write the repo.
"""

from __future__ import annotations

from functools import partial
from typing import Any

from storenode.api.client import FullNodeAPI, MinerInfo, connect_full_node, connect_storage_miner
from storenode.node.config import StorageMinerConfig
from storenode.node.subsystems import SUBSYSTEMS, Subsystem
from storenode.service.actor import configure_storage_miner
from storenode.service.configurator import SubsystemRequest, check_request, configure_subsystems
from storenode.service.endpoint import check_api_info
from storenode.service.restore import RestoreOptions, restore
from storenode.utils.config import Settings
from storenode.utils.custom_logger import get_logger

logger = get_logger(__name__)


def request_from_args(args: Any) -> SubsystemRequest:
    enabled = frozenset({Subsystem.MARKET}) if getattr(args, "enable_market", False) else frozenset()
    endpoints = {}
    for spec in SUBSYSTEMS:
        if spec.remote_flag is None:
            continue
        value = getattr(args, spec.remote_flag.replace("-", "_"), None)
        if value:
            endpoints[spec.subsystem] = value
    return SubsystemRequest(enabled=enabled, endpoints=endpoints)


async def init_service(
    args: Any,
    settings: Settings,
    *,
    validate=None,
    configure_actor=configure_storage_miner,
    restore_fn=restore,
    connect_full=None,
    log=None,
) -> StorageMinerConfig:
    log = log or logger
    log.info("Initializing storage node service")

    request = request_from_args(args)
    check_request(request)

    timeout = settings.RPC.TIMEOUT_SECONDS
    if validate is None:
        validate = partial(
            check_api_info,
            connect=partial(connect_storage_miner, timeout=timeout),
            rpc_version=settings.RPC.API_VERSION,
            log=log,
        )
    if connect_full is None:
        connect_full = partial(connect_full_node, timeout=timeout)

    async def mutate(cfg: StorageMinerConfig) -> StorageMinerConfig:
        return await configure_subsystems(cfg, request, validate=validate, log=log)

    async def after(api: FullNodeAPI, maddr: str, peer_id: str, mi: MinerInfo) -> None:
        if Subsystem.MARKET not in request.local:
            return
        log.info("Configuring miner actor")
        await configure_actor(
            api,
            maddr,
            peer_id,
            settings.SERVICE.ACTOR_COLLATERAL,
            confidence=settings.SERVICE.MESSAGE_CONFIDENCE,
            log=log,
        )

    options = RestoreOptions(
        config_path=args.config,
        storage_config_path=args.storage_config,
        repo_path=settings.STORAGE_MINER_PATH,
        backup_path=getattr(args, "backup_file", None),
        nosync=bool(getattr(args, "nosync", False)),
        fullnode_api_info=settings.FULLNODE_API_INFO,
        rpc_version=settings.RPC.API_VERSION,
        sync_poll_interval=settings.SERVICE.SYNC_POLL_INTERVAL_SECONDS,
    )
    return await restore_fn(options, mutate, after, connect=connect_full, log=log)
