"""Identity service configuration via environment variables."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class IdentitySettings(BaseSettings):
    model_config = {"env_prefix": "IDENTITY_"}

    # Player registry contract on StarkNet Sepolia
    contract_address: str = Field(
        default="0x3060854ecff13fd7f72caf971475823ff457fed1de616e70cd5342ffa345d88",
        min_length=1,
    )
    rpc_url: str = Field(default="https://free-rpc.nethermind.io/sepolia-juno", min_length=1)
    # Base URL of the REST identity store (used when store_backend is "rest")
    backend_url: str = Field(default="http://127.0.0.1:8080", min_length=1)
    backend_api_key: str | None = None

    store_backend: Literal["sqlite", "rest"] = "sqlite"
    database_path: str = Field(default="backend/storage.db", min_length=1)

    # Unset means wait for finality indefinitely.
    confirmation_timeout_seconds: float | None = Field(default=None, gt=0)
    confirmation_poll_interval_seconds: float = Field(default=5.0, gt=0)
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    log_dir: str | None = None
