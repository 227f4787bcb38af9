from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Mapping

from storenode.errors import FlagValidationError, ServiceInitError
from storenode.node.config import StorageMinerConfig
from storenode.node.subsystems import (
    SERVICE_LOCAL_SUBSYSTEMS,
    SUBSYSTEMS,
    Subsystem,
    delegated_subsystems,
)
from storenode.service.endpoint import check_api_info
from storenode.utils.custom_logger import get_logger

logger = get_logger(__name__)

Validator = Callable[[str], Awaitable[str]]


@dataclass(frozen=True)
class SubsystemRequest:
    """Subsystems the operator asked to run plus raw remote API info by subsystem."""

    enabled: FrozenSet[Subsystem]
    endpoints: Mapping[Subsystem, str] = field(default_factory=dict)

    @property
    def local(self) -> FrozenSet[Subsystem]:
        return self.enabled & SERVICE_LOCAL_SUBSYSTEMS


def check_request(request: SubsystemRequest) -> None:
    """Reject incomplete intent before anything touches the network."""
    if not request.enabled:
        raise FlagValidationError("at least one module must be enabled")

    unsupported = request.enabled - SERVICE_LOCAL_SUBSYSTEMS
    if unsupported:
        names = ", ".join(sorted(s.value for s in unsupported))
        raise FlagValidationError(f"modules can't run on a service node: {names}")

    for spec in delegated_subsystems(request.local):
        if not request.endpoints.get(spec.subsystem):
            module = spec.subsystem.value.replace("-", " ")
            raise FlagValidationError(f"--{spec.remote_flag} is required without the {module} module enabled")


async def configure_subsystems(
    config: StorageMinerConfig,
    request: SubsystemRequest,
    *,
    validate: Validator = check_api_info,
    log=None,
) -> StorageMinerConfig:
    """
    Build the service node config from ``config``.

    Subsystems outside ``request.local`` are disabled; each of them that has
    a remote role gets its API checked (in table order) and recorded. The
    first failing check propagates with the subsystem named in its context
    and no config is produced. ``config`` itself is never modified.
    """
    log = log or logger
    local = request.local

    updates = {spec.enable_field: spec.subsystem in local for spec in SUBSYSTEMS}

    for spec in delegated_subsystems(local):
        try:
            ai = await validate(request.endpoints.get(spec.subsystem, ""))
        except ServiceInitError as e:
            e.add_context(f"checking {spec.label} API")
            raise
        log.bind(subsystem=spec.subsystem.value).info(f"Using remote {spec.label} API")
        updates[spec.api_info_field] = ai

    subsystems = config.subsystems.model_copy(update=updates)
    return config.model_copy(update={"subsystems": subsystems})
