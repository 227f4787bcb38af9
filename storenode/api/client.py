"""
JSON-RPC clients for the storage miner and full node APIs.

Both APIs speak JSON-RPC 2.0 over HTTP POST at ``<base>/rpc/<version>``
with a bearer token. ``connect_*`` return an ``(api, closer)`` pair; the
caller owns the closer and must await it on every exit path.
"""

from __future__ import annotations

import itertools
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field

from storenode.api.version import APIVersion
from storenode.errors import ConnectionFailed, RpcError

Closer = Callable[[], Awaitable[None]]


class VersionInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str = Field("", alias="Version")
    api_version: int = Field(..., alias="APIVersion")
    block_delay: int = Field(0, alias="BlockDelay")

    @property
    def api(self) -> APIVersion:
        return APIVersion.from_int(self.api_version)


class MinerInfo(BaseModel):
    """Subset of on-chain miner actor info used by the init flow."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    owner: str = Field(..., alias="Owner")
    worker: str = Field(..., alias="Worker")
    peer_id: Optional[str] = Field(None, alias="PeerId")


class JsonRpcClient:
    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        namespace: str = "Filecoin",
    ):
        self.url = url
        self.namespace = namespace
        self._ids = itertools.count(1)
        kwargs: Dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        self._client = httpx.AsyncClient(headers=headers or {}, transport=transport, **kwargs)

    async def call(self, method: str, *params: Any) -> Any:
        name = f"{self.namespace}.{method}"
        payload = {"jsonrpc": "2.0", "method": name, "params": list(params), "id": next(self._ids)}
        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ConnectionFailed(f"{name}: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise RpcError(name, f"invalid JSON response: {e}") from e

        error = body.get("error")
        if error:
            raise RpcError(name, error.get("message", str(error)), error.get("code"))
        return body.get("result")

    async def close(self) -> None:
        await self._client.aclose()


class StorageMinerAPI:
    def __init__(self, client: JsonRpcClient):
        self.client = client

    async def version(self) -> VersionInfo:
        return VersionInfo.model_validate(await self.client.call("Version"))


class FullNodeAPI:
    def __init__(self, client: JsonRpcClient):
        self.client = client

    async def version(self) -> VersionInfo:
        return VersionInfo.model_validate(await self.client.call("Version"))

    async def chain_head(self) -> Dict[str, Any]:
        return await self.client.call("ChainHead")

    async def state_miner_info(self, maddr: str, tipset_key: Optional[List[Any]] = None) -> MinerInfo:
        result = await self.client.call("StateMinerInfo", maddr, tipset_key or [])
        return MinerInfo.model_validate(result)

    async def mpool_push_message(self, message: Dict[str, Any], spec: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.client.call("MpoolPushMessage", message, spec)

    async def state_wait_msg(self, cid: Dict[str, str], confidence: int) -> Dict[str, Any]:
        return await self.client.call("StateWaitMsg", cid, confidence)


async def connect_storage_miner(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    *,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tuple[StorageMinerAPI, Closer]:
    client = JsonRpcClient(url, headers, timeout=timeout, transport=transport)
    return StorageMinerAPI(client), client.close


async def connect_full_node(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    *,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tuple[FullNodeAPI, Closer]:
    client = JsonRpcClient(url, headers, timeout=timeout, transport=transport)
    return FullNodeAPI(client), client.close
