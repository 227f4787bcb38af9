"""
Storage node configuration models.

``config.toml`` is loaded into frozen pydantic models. Only the
``[Subsystems]`` section is modelled; every other section is carried through
verbatim so a round trip never drops operator settings.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import List

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storenode.errors import RestoreError
from storenode.node.subsystems import SUBSYSTEMS


class SubsystemsConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    enable_mining: bool = Field(True, alias="EnableMining")
    enable_sealing: bool = Field(True, alias="EnableSealing")
    enable_sector_storage: bool = Field(True, alias="EnableSectorStorage")
    enable_storage_market: bool = Field(True, alias="EnableStorageMarket")

    sealer_api_info: str = Field("", alias="SealerApiInfo")
    sector_index_api_info: str = Field("", alias="SectorIndexApiInfo")

    def missing_delegations(self) -> List[str]:
        """Labels of subsystems disabled locally without a remote API recorded."""
        return [
            spec.label
            for spec in SUBSYSTEMS
            if spec.delegatable
            and not getattr(self, spec.enable_field)
            and not getattr(self, spec.api_info_field)
        ]


class StorageMinerConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    subsystems: SubsystemsConfig = Field(default_factory=SubsystemsConfig, alias="Subsystems")

    def to_toml(self) -> str:
        return tomli_w.dumps(self.model_dump(by_alias=True, exclude_none=True))


class LocalPath(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str = Field(..., alias="Path")


class StorageConfig(BaseModel):
    """``storage.json``: local paths the node may store sectors in."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    storage_paths: List[LocalPath] = Field(default_factory=list, alias="StoragePaths")

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), indent=2) + "\n"


def load_config(path: str) -> StorageMinerConfig:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return StorageMinerConfig.model_validate(data)
    except OSError as e:
        raise RestoreError(f"reading config file {path}: {e}") from e
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        raise RestoreError(f"parsing config file {path}: {e}") from e


def load_storage_config(path: str) -> StorageConfig:
    try:
        return StorageConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise RestoreError(f"reading storage config {path}: {e}") from e
    except ValidationError as e:
        raise RestoreError(f"parsing storage config {path}: {e}") from e
