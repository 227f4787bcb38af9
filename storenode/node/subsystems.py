from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class Subsystem(str, Enum):
    MARKET = "market"
    MINING = "mining"
    SEALING = "sealing"
    SECTOR_STORAGE = "sector-storage"


@dataclass(frozen=True)
class SubsystemSpec:
    """
    How one subsystem maps onto config fields and CLI flags.

    enable_field: SubsystemsConfig field toggling the subsystem locally.
    api_info_field: field holding the remote API info when delegated, or None
        if the subsystem has no remote role.
    remote_flag: CLI flag that supplies the remote API info.
    label: human name used in error context ("checking sealer API").
    """

    subsystem: Subsystem
    enable_field: str
    api_info_field: Optional[str] = None
    remote_flag: Optional[str] = None
    label: str = ""

    @property
    def delegatable(self) -> bool:
        return self.api_info_field is not None


# Iteration order is the order remotes are checked in
SUBSYSTEMS: Tuple[SubsystemSpec, ...] = (
    SubsystemSpec(Subsystem.MARKET, "enable_storage_market", label="market"),
    SubsystemSpec(Subsystem.MINING, "enable_mining", label="mining"),
    SubsystemSpec(
        Subsystem.SEALING,
        "enable_sealing",
        api_info_field="sealer_api_info",
        remote_flag="api-sealer",
        label="sealer",
    ),
    SubsystemSpec(
        Subsystem.SECTOR_STORAGE,
        "enable_sector_storage",
        api_info_field="sector_index_api_info",
        remote_flag="api-sector-index",
        label="sector index",
    ),
)

# Subsystems a service node may run itself; everything else is disabled
# locally and, where it has a remote role, delegated.
SERVICE_LOCAL_SUBSYSTEMS: FrozenSet[Subsystem] = frozenset({Subsystem.MARKET})


def delegated_subsystems(local: FrozenSet[Subsystem]) -> Tuple[SubsystemSpec, ...]:
    """Specs of subsystems that must be reached remotely, in check order."""
    return tuple(spec for spec in SUBSYSTEMS if spec.delegatable and spec.subsystem not in local)
