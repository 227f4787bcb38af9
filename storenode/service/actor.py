"""
On-chain miner actor configuration.

A service node that runs the market module advertises its own libp2p peer
ID, so the miner actor's ``PeerId`` is updated with a ``ChangePeerID``
message sent from the worker address.
"""

from __future__ import annotations

import base64

from storenode.api.client import FullNodeAPI
from storenode.errors import ActorConfigurationError, ConnectionFailed, RpcError
from storenode.utils.custom_logger import get_logger

logger = get_logger(__name__)

CHANGE_PEER_ID_METHOD = 4

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def decode_peer_id(peer_id: str) -> bytes:
    """Raw multihash bytes of a base58btc encoded peer ID."""
    num = 0
    for ch in peer_id:
        idx = _B58_ALPHABET.find(ch)
        if idx < 0:
            raise ValueError(f"invalid peer ID {peer_id!r}: unexpected character {ch!r}")
        num = num * 58 + idx
    leading_zeros = len(peer_id) - len(peer_id.lstrip("1"))
    body = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    return b"\x00" * leading_zeros + body


def encode_change_peer_id_params(peer_id: str) -> bytes:
    """CBOR encoding of ``ChangePeerIDParams{NewID}``: a one element array of bytes."""
    raw = decode_peer_id(peer_id)
    n = len(raw)
    if n < 24:
        header = bytes([0x40 + n])
    elif n < 0x100:
        header = bytes([0x58, n])
    elif n < 0x10000:
        header = bytes([0x59]) + n.to_bytes(2, "big")
    else:
        raise ValueError(f"peer ID too long: {n} bytes")
    return b"\x81" + header + raw


async def configure_storage_miner(
    api: FullNodeAPI,
    maddr: str,
    peer_id: str,
    collateral: int = 0,
    *,
    confidence: int = 5,
    log=None,
) -> None:
    log = (log or logger).bind(miner=maddr)

    try:
        mi = await api.state_miner_info(maddr)
    except (ConnectionFailed, RpcError, ValueError) as e:
        raise ActorConfigurationError(f"getting miner info: {e}") from e

    if mi.peer_id == peer_id:
        log.info("Miner actor peer ID already up to date")
        return

    try:
        params = encode_change_peer_id_params(peer_id)
    except ValueError as e:
        raise ActorConfigurationError(f"serializing change peer id params: {e}") from e

    msg = {
        "Version": 0,
        "To": maddr,
        "From": mi.worker,
        "Nonce": 0,
        "Value": str(collateral),
        "GasLimit": 0,
        "GasFeeCap": "0",
        "GasPremium": "0",
        "Method": CHANGE_PEER_ID_METHOD,
        "Params": base64.b64encode(params).decode("ascii"),
    }

    try:
        smsg = await api.mpool_push_message(msg, None)
        cid = smsg["CID"]
        log.info(f"Waiting for message {cid.get('/')} to update peer ID to {peer_id}")
        ret = await api.state_wait_msg(cid, confidence)
        exit_code = ret["Receipt"]["ExitCode"]
    except (ConnectionFailed, RpcError) as e:
        raise ActorConfigurationError(f"update peer id message: {e}") from e
    except (KeyError, TypeError) as e:
        raise ActorConfigurationError(f"unexpected response while updating peer id: {e!r}") from e

    if exit_code != 0:
        raise ActorConfigurationError(f"update peer id message failed with exit code {exit_code}")

    log.success(f"Miner actor peer ID set to {peer_id}")
