from pathlib import Path
from typing import Any, List, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        env_prefix="GATEWAY_",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalize wallet keys so lookups by address never depend on formatting."""

        super().model_post_init(__context)

        cleaned = [key.strip() for key in self.wallet_private_keys if key and key.strip()]
        object.__setattr__(self, "wallet_private_keys", cleaned)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=15888, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["auto", "json", "console"] = Field(
        default="auto",
        description="Log renderer; auto uses the console renderer at DEBUG and JSON otherwise",
    )

    # Chain + connector definitions
    config_path: Path = Field(
        default=BASE_DIR / "conf" / "gateway.yml",
        description="YAML file declaring chains, networks and connectors",
    )

    # Wallets
    wallet_private_keys: List[str] = Field(
        default_factory=list,
        description="Hex private keys of the wallets the gateway may sign for",
        validation_alias=AliasChoices("gateway_wallet_private_keys", "wallet_private_keys"),
    )

    # Nonce management
    nonce_resync_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Max age of the local nonce counter before it is reconciled with the chain",
    )

    # Broadcasting
    submit_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Max seconds to wait for a raw transaction to be accepted into the pool",
    )
    rpc_timeout_seconds: float = Field(default=10.0, gt=0, description="JSON-RPC request timeout")

    # Aggregators
    openocean_base_url: str = Field(
        default="https://open-api.openocean.finance",
        description="Base URL of the OpenOcean aggregator API",
    )
    router_timeout_seconds: int = Field(default=20, ge=1, description="Aggregator API request timeout")

    @property
    def has_wallets(self) -> bool:
        return bool(self.wallet_private_keys)


# Global settings instance
settings = Settings()
