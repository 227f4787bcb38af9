"""
Error types raised while initializing a storage node sub-service.

Every error keeps its type while context is prepended on the way up, so
callers can still match on ``VersionMismatch`` after the configurator has
added ``checking sealer API``.
"""

from typing import List, Optional


class ServiceInitError(Exception):
    """Base class for every failure surfaced by ``storenode init service``."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.context: List[str] = []

    def add_context(self, context: str) -> "ServiceInitError":
        self.context.insert(0, context)
        return self

    def __str__(self) -> str:
        return ": ".join(self.context + [self.message])


class FlagValidationError(ServiceInitError):
    """Command line intent is incomplete; raised before any I/O."""


class MalformedEndpoint(ServiceInitError):
    """API info string could not be turned into dial arguments."""


class ConnectionFailed(ServiceInitError):
    """Transport level failure talking to a remote API."""


class VersionMismatch(ServiceInitError):
    """Remote API speaks an incompatible major.minor version."""

    def __init__(self, expected, remote):
        super().__init__(
            f"remote service API version didn't match (expected {expected}, remote {remote})"
        )
        self.expected = expected
        self.remote = remote


class ActorConfigurationError(ServiceInitError):
    """On-chain miner actor update failed."""


class RestoreError(ServiceInitError):
    """Repo, backup or config file problem during restore."""


class RpcError(ServiceInitError):
    """JSON-RPC error object returned by a remote node."""

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        super().__init__(f"{method}: {message}" + (f" (code {code})" if code is not None else ""))
        self.method = method
        self.code = code
