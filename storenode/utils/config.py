from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RpcSettings(BaseSettings):
    """JSON-RPC transport settings, prefixed with RPC_"""

    # Path segment of the RPC endpoint: <base>/rpc/<API_VERSION>
    API_VERSION: str = "v0"

    # None keeps the httpx default
    TIMEOUT_SECONDS: Optional[float] = None

    model_config = SettingsConfigDict(env_prefix='RPC_')


class ServiceSettings(BaseSettings):
    """Settings for the service init flow, prefixed with SERVICE_"""

    # Sent as the Value of the ChangePeerID message, not as its gas premium
    # (which stays zero). Zero unless an operator explicitly decides the
    # market module needs collateral.
    ACTOR_COLLATERAL: int = 0

    # Confirmations to wait for after pushing the actor message
    MESSAGE_CONFIDENCE: int = 5

    # Chain sync wait
    SYNC_POLL_INTERVAL_SECONDS: float = 3.0

    model_config = SettingsConfigDict(env_prefix='SERVICE_')


class Settings(BaseSettings):
    """The main application settings object."""

    # Full node endpoint descriptor: <token>:<multiaddr>
    FULLNODE_API_INFO: Optional[str] = None

    # Storage node repo directory
    STORAGE_MINER_PATH: str = "~/.storageminer"

    # Logging Configuration
    LOGGING_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Nested Settings
    RPC: RpcSettings = Field(default_factory=RpcSettings)
    SERVICE: ServiceSettings = Field(default_factory=ServiceSettings)

    model_config = SettingsConfigDict(
        env_file='.env',
        env_nested_delimiter='__',  # Allows SERVICE__ACTOR_COLLATERAL in .env
        case_sensitive=False,
        extra='ignore',
    )
