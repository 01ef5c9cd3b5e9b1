"""Centralized configuration via pydantic-settings. All secrets from .env."""

from decimal import Decimal
from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, SecretStr


PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Price sources
    oneinch_api_key: str = ""
    oneinch_base_url: str = "https://api.1inch.dev"
    coingecko_api_key: str = ""
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_calls_per_minute: int = 30

    # Optional per-chain RPC overrides
    ethereum_rpc_url: str = ""
    arbitrum_rpc_url: str = ""
    arbitrum_sepolia_rpc_url: str = ""
    polygon_rpc_url: str = ""
    bsc_rpc_url: str = ""

    # Reward gateway (owner key is only ever read by SigningService)
    chain_id: int = 42161
    owner_private_key: SecretStr = SecretStr("")
    reward_token_address: str = ""
    gasless_swap_address: str = ""
    gasless_domain_name: str = "GaslessSwapStation"
    gasless_domain_version: str = "4"
    max_gas_price_gwei: Decimal = Decimal("1")

    # Halvening curve
    halvening_threshold_usd: int = 100_000
    base_tokens_per_dollar: Decimal = Decimal("0.01")

    # Timeouts (seconds)
    request_timeout: float = 10.0
    receipt_timeout: float = 120.0

    # Storage
    data_dir: Path = Field(default_factory=lambda: PROJECT_ROOT / "data")
    duckdb_path: Path = Field(default_factory=lambda: PROJECT_ROOT / "data" / "pegasus.duckdb")

    log_level: str = "INFO"

    @property
    def max_gas_price_wei(self) -> int:
        return int(self.max_gas_price_gwei * 10**9)

    def get_rpc_url(self, chain_id: int) -> str:
        """Get RPC URL for a chain, using override or the public endpoint."""
        overrides = {
            1: self.ethereum_rpc_url,
            42161: self.arbitrum_rpc_url,
            421614: self.arbitrum_sepolia_rpc_url,
            137: self.polygon_rpc_url,
            56: self.bsc_rpc_url,
        }
        if overrides.get(chain_id):
            return overrides[chain_id]
        public = {
            1: "https://eth.llamarpc.com",
            42161: "https://arb1.arbitrum.io/rpc",
            421614: "https://sepolia-rollup.arbitrum.io/rpc",
            137: "https://polygon-rpc.com",
            56: "https://bsc-dataseed.binance.org",
        }
        if chain_id in public:
            return public[chain_id]
        raise ValueError(f"No RPC URL configured for chain_id={chain_id}")


@lru_cache
def get_settings() -> Settings:
    return Settings()
