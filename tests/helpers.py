"""
Fakes and constants shared by the storenode tests.
"""

from typing import Dict, Optional
from unittest.mock import AsyncMock, Mock

from storenode.api.client import VersionInfo
from storenode.api.version import MINER_API_VERSION, APIVersion

SEALER_URL = "http://abc:1234/rpc/v0"
SECTOR_INDEX_URL = "http://def:5678/rpc/v0"
PEER_ID = "12D3KooWGzxzKZYveHXtpG6AsrUJBcWxHBFS2HsEoGTxrMLvKXtf"
OLD_PEER_ID = "12D3KooWRBy97UB99e3J6hiPesre1MZeuNQvfan4gBziswrRJsNK"


class FakeMinerConnector:
    """
    Stand-in for ``connect_storage_miner`` that records every dial.

    versions: reported API version per URL (defaults to the expected one).
    errors: exception raised by ``version()`` per URL.
    """

    def __init__(
        self,
        versions: Optional[Dict[str, APIVersion]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ):
        self.versions = versions or {}
        self.errors = errors or {}
        self.calls = []
        self.closers = []

    async def __call__(self, addr, headers):
        self.calls.append((addr, headers))
        closer = AsyncMock()
        self.closers.append(closer)

        api = Mock()
        if addr in self.errors:
            api.version = AsyncMock(side_effect=self.errors[addr])
        else:
            version = self.versions.get(addr, MINER_API_VERSION)
            api.version = AsyncMock(return_value=VersionInfo(Version="1.0.0", APIVersion=version.to_int()))
        return api, closer

    @property
    def dialed(self):
        return [addr for addr, _ in self.calls]
