"""
API info strings: ``<token>:<address>`` or a bare ``<address>``.

The address is either a multiaddr (``/ip4/127.0.0.1/tcp/2345/http``), a
``host:port`` pair or a full URL. Operators usually copy these from
``auth api-info`` output, which prints them as ``MINER_API_INFO=...``.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlsplit

from storenode.errors import MalformedEndpoint

ENV_LABEL = "MINER_API_INFO="

# A JWT has three dot separated base64url segments; only then is the part
# before the first colon a token rather than a host
_TOKEN_RE = re.compile(r"^[a-zA-Z0-9\-_]+?\.[a-zA-Z0-9\-_]+?\.([a-zA-Z0-9\-_]+)?:.+$")

_HOST_PROTOCOLS = ("ip4", "ip6", "dns", "dns4", "dns6")
_MULTIADDR_SCHEMES = {"http": "http", "https": "https", "ws": "http", "wss": "https"}
_URL_SCHEMES = {"http": "http", "https": "https", "ws": "http", "wss": "https"}


def canonicalize(raw: str) -> str:
    """Strip whitespace and an optional ``MINER_API_INFO=`` label (any case)."""
    text = raw.strip()
    if text[: len(ENV_LABEL)].upper() == ENV_LABEL:
        text = text[len(ENV_LABEL):]
    return text.strip()


@dataclass(frozen=True)
class APIInfo:
    addr: str
    token: Optional[str] = None

    @staticmethod
    def parse(text: str) -> "APIInfo":
        """Split an already canonical API info string; see ``canonicalize``."""
        if _TOKEN_RE.match(text):
            token, addr = text.split(":", 1)
            return APIInfo(addr=addr, token=token)
        return APIInfo(addr=text)

    def base_url(self) -> str:
        if not self.addr:
            raise MalformedEndpoint("empty API address")
        if any(c.isspace() for c in self.addr):
            raise MalformedEndpoint(f"whitespace in API address {self.addr!r}")
        if self.addr.startswith("/"):
            return _multiaddr_to_url(self.addr)
        return _address_to_url(self.addr)

    def dial_args(self, version: str = "v0") -> str:
        return f"{self.base_url()}/rpc/{version}"

    def auth_header(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}


def _multiaddr_to_url(addr: str) -> str:
    parts = addr.strip("/").split("/")
    if len(parts) < 4:
        raise MalformedEndpoint(f"incomplete multiaddr {addr!r}")

    proto, host, transport, port_text = parts[:4]
    if proto not in _HOST_PROTOCOLS:
        raise MalformedEndpoint(f"unsupported multiaddr protocol {proto!r} in {addr!r}")
    if transport != "tcp":
        raise MalformedEndpoint(f"multiaddr {addr!r} is not dialable over tcp")

    try:
        if proto == "ip4":
            ipaddress.IPv4Address(host)
        elif proto == "ip6":
            host = f"[{ipaddress.IPv6Address(host)}]"
    except ValueError as e:
        raise MalformedEndpoint(f"invalid address in multiaddr {addr!r}: {e}") from e

    port = _parse_port(port_text, addr)

    scheme = "http"
    rest = parts[4:]
    if rest:
        if len(rest) != 1 or rest[0] not in _MULTIADDR_SCHEMES:
            raise MalformedEndpoint(f"unsupported multiaddr suffix {'/'.join(rest)!r} in {addr!r}")
        scheme = _MULTIADDR_SCHEMES[rest[0]]

    return f"{scheme}://{host}:{port}"


def _address_to_url(addr: str) -> str:
    if "://" not in addr:
        addr = f"http://{addr}"
    try:
        parts = urlsplit(addr)
    except ValueError as e:
        raise MalformedEndpoint(f"invalid address {addr!r}: {e}") from e
    scheme = _URL_SCHEMES.get(parts.scheme.lower())
    if scheme is None:
        raise MalformedEndpoint(f"unsupported scheme {parts.scheme!r} in {addr!r}")
    if not parts.hostname:
        raise MalformedEndpoint(f"missing host in {addr!r}")
    try:
        parts.port
    except ValueError as e:
        raise MalformedEndpoint(f"invalid port in {addr!r}") from e
    return f"{scheme}://{parts.netloc}{parts.path.rstrip('/')}"


def _parse_port(text: str, addr: str) -> int:
    if not text.isdigit() or not 0 < int(text) < 65536:
        raise MalformedEndpoint(f"invalid port {text!r} in {addr!r}")
    return int(text)
