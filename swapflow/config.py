import os

from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the LI.FI SDK's environment variable name as well."""

        super().model_post_init(__context)

        if not self.lifi_api_key:
            fallback = os.getenv("LIFI_SDK_API_KEY")
            if fallback:
                object.__setattr__(self, "lifi_api_key", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Optional[str] = Field(
        default=None,
        description="Log renderer: json or console; unset picks console at DEBUG, json otherwise",
    )

    # Routing service (LI.FI)
    lifi_base_url: str = Field(
        default="https://li.quest/v1",
        description="Base URL of the LI.FI routing API",
    )
    lifi_integrator: str = Field(
        default="swapflow",
        description="Integrator tag sent with every LI.FI request",
    )
    lifi_api_key: str = Field(
        default="",
        description="Optional LI.FI API key (raises rate limits)",
        validation_alias=AliasChoices("lifi_api_key", "LIFI_API_KEY"),
    )
    request_timeout_seconds: int = Field(default=30, description="Request timeout")

    # Swap lifecycle
    default_network: str = Field(
        default="mainnet",
        description="Network used when a request does not name one (mainnet or testnet)",
    )
    poll_interval_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Seconds between confirmation probes",
    )
    poll_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Give up a single polling round after this many seconds; unset polls until terminal",
    )

    # Swap record persistence
    swap_store_backend: str = Field(
        default="file",
        description="Where swap records are persisted: memory, file or convex",
    )
    swap_store_path: Path = Field(
        default=BASE_DIR / "data" / "swaps.json",
        description="JSON file used by the file-backed swap store",
    )
    convex_url: str = Field(default="", description="Convex deployment URL")
    convex_deploy_key: str = Field(default="", description="Convex deploy key")

    # Wallet integration
    wallet_provider: str = Field(
        default="",
        description="Import path 'module:factory' of a callable returning the WalletProvider; unset serves quotes only",
    )

    @property
    def has_lifi_key(self) -> bool:
        return bool(self.lifi_api_key)

    @property
    def has_convex(self) -> bool:
        return bool(self.convex_url)


# Global settings instance
settings = Settings()
