"""
Remote API endpoint checks.

Before a remote sealer or sector index is written into the node config we
dial it once, ask for its version and make sure it speaks the miner API
major.minor this build expects.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, Tuple

from storenode.api.api_info import APIInfo, canonicalize
from storenode.api.client import Closer, StorageMinerAPI, connect_storage_miner
from storenode.api.version import MINER_API_VERSION, APIVersion
from storenode.errors import ConnectionFailed, MalformedEndpoint, RpcError, VersionMismatch
from storenode.utils.custom_logger import get_logger

logger = get_logger(__name__)

Connector = Callable[[str, Dict[str, str]], Awaitable[Tuple[StorageMinerAPI, Closer]]]


async def check_api_info(
    raw: str,
    *,
    connect: Connector = connect_storage_miner,
    expected: APIVersion = MINER_API_VERSION,
    rpc_version: str = "v0",
    log=None,
) -> str:
    """
    Validate a remote storage miner API and return its canonical API info.

    Raises MalformedEndpoint if the string cannot be dialed, ConnectionFailed
    on any transport, RPC or decoding failure and VersionMismatch if the remote's
    major.minor differs from ``expected``. The connection is closed before
    returning on every path.
    """
    log = log or logger

    ai = canonicalize(raw or "")
    if not ai:
        raise MalformedEndpoint("empty API info")

    info = APIInfo.parse(ai)
    try:
        addr = info.dial_args(rpc_version)
    except MalformedEndpoint as e:
        e.add_context("could not get DialArgs")
        raise

    log.bind(addr=addr).info(f"Checking api version of {addr}")

    try:
        api, closer = await connect(addr, info.auth_header())
    except ConnectionFailed:
        raise
    except (OSError, RpcError) as e:
        raise ConnectionFailed(f"connecting to {addr}: {e}") from e

    try:
        v = await api.version()
    except (ConnectionFailed, RpcError, ValueError) as e:
        raise ConnectionFailed(f"checking version: {e}") from e
    finally:
        try:
            await closer()
        except Exception as e:
            log.warning(f"Error closing connection to {addr}: {e}")

    remote = v.api
    if not remote.eq_major_minor(expected):
        raise VersionMismatch(expected, remote)

    return ai
