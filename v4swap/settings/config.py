"""
Configuration management for the v4swap service.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from v4swap.models.chain import (
    CHAIN_KEY_BY_ID,
    DEFAULT_PERMIT2,
    TRADING_CHAIN_CONFIGS,
    ZERO_ADDRESS,
    ChainConfig,
    TokenConfig,
)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def get_chain_config(chain: str | int | None) -> ChainConfig | None:
    """Return chain configuration by chain name or chain id."""
    if chain is None:
        return None
    if isinstance(chain, int):
        chain_key = CHAIN_KEY_BY_ID.get(chain)
        return TRADING_CHAIN_CONFIGS.get(chain_key) if chain_key else None
    return TRADING_CHAIN_CONFIGS.get(chain.strip().lower())


UNIVERSAL_ROUTER_EXECUTE_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "bytes", "name": "commands", "type": "bytes"},
            {"internalType": "bytes[]", "name": "inputs", "type": "bytes[]"},
        ],
        "name": "execute",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "bytes", "name": "commands", "type": "bytes"},
            {"internalType": "bytes[]", "name": "inputs", "type": "bytes[]"},
            {"internalType": "uint256", "name": "deadline", "type": "uint256"},
        ],
        "name": "execute",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        extra="ignore",
        env_ignore_empty=True,
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
    )

    app_name: str = "v4swap"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    # Redis Configuration (log mirroring only)
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_db: int = Field(default=0, validation_alias="REDIS_DB")

    # Chain
    chain: str = Field(default="sepolia", validation_alias="CHAIN")
    chain_id: Optional[int] = Field(default=None, validation_alias="CHAIN_ID")
    eth_rpc_url: str = Field(default="https://ethereum-sepolia-rpc.publicnode.com", validation_alias="ETH_RPC_URL")
    universal_router_address: Optional[str] = Field(default=None, validation_alias="UNIVERSAL_ROUTER_ADDRESS")
    permit2_address: Optional[str] = Field(default=None, validation_alias="PERMIT2_ADDRESS")
    quoter_address: Optional[str] = Field(default=None, validation_alias="QUOTER_ADDRESS")

    # Wallet
    private_key: Optional[str] = Field(default=None, validation_alias="PRIVATE_KEY")

    # Single supported pool
    pool_fee: int = Field(default=10_000, validation_alias="POOL_FEE")  # 1% tier
    pool_tick_spacing: int = Field(default=200, validation_alias="POOL_TICK_SPACING")
    pool_hooks: str = Field(default=ZERO_ADDRESS, validation_alias="POOL_HOOKS")
    # Pool holds the wrapped native token instead of the native asset itself
    pool_wraps_native: bool = Field(default=False, validation_alias="POOL_WRAPS_NATIVE")

    # Tokens
    native_symbol: str = Field(default="ETH", validation_alias="NATIVE_SYMBOL")
    native_decimals: int = Field(default=18, validation_alias="NATIVE_DECIMALS")
    usdt_address: str = Field(default="0xbAce3798896B6e8dcBBe26B7A698150c98ba67d0", validation_alias="USDT_ADDRESS")
    usdt_decimals: int = Field(default=18, validation_alias="USDT_DECIMALS")

    # Swap execution
    swap_deadline_seconds: int = Field(default=3600, validation_alias="SWAP_DEADLINE_SECONDS")
    default_slippage_bps: int = Field(default=50, validation_alias="DEFAULT_SLIPPAGE_BPS")
    receipt_timeout_seconds: int = Field(default=180, validation_alias="RECEIPT_TIMEOUT_SECONDS")
    receipt_poll_seconds: float = Field(default=2.0, validation_alias="RECEIPT_POLL_SECONDS")
    swap_gas_limit: int = Field(default=300_000, validation_alias="SWAP_GAS_LIMIT")
    approve_gas_limit: int = Field(default=80_000, validation_alias="APPROVE_GAS_LIMIT")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="logs/v4swap.log", validation_alias="LOG_FILE")
    log_redis_enabled: bool = Field(default=False, validation_alias="LOG_REDIS_ENABLED")
    log_redis_list_key: str = Field(default="v4swap:logs:recent", validation_alias="LOG_REDIS_LIST_KEY")
    log_redis_max_entries: int = Field(default=1000, validation_alias="LOG_REDIS_MAX_ENTRIES")

    def chain_config(self) -> ChainConfig:
        """Registry entry for the configured chain with any address overrides applied."""
        base = get_chain_config(self.chain_id) if self.chain_id is not None else None
        base = base or get_chain_config(self.chain)
        overrides: dict[str, Any] = {}
        if self.universal_router_address:
            overrides["universal_router"] = self.universal_router_address
        if self.permit2_address:
            overrides["permit2"] = self.permit2_address
        if self.quoter_address:
            overrides["quoter"] = self.quoter_address
        if base is None:
            if not self.universal_router_address or self.chain_id is None:
                raise ValueError(
                    f"Unknown chain '{self.chain}': set CHAIN_ID and UNIVERSAL_ROUTER_ADDRESS explicitly"
                )
            return ChainConfig(
                name=self.chain,
                chain_id=self.chain_id,
                universal_router=self.universal_router_address,
                quoter=self.quoter_address,
                permit2=self.permit2_address or DEFAULT_PERMIT2,
            )
        if self.chain_id is not None:
            overrides["chain_id"] = self.chain_id
        if not overrides:
            return base
        # Re-validate so overridden addresses go through the same checks.
        return ChainConfig.model_validate({**base.model_dump(), **overrides})

    def pool_key_config(self) -> dict[str, Any]:
        return {"fee": self.pool_fee, "tick_spacing": self.pool_tick_spacing, "hooks": self.pool_hooks}

    def tokens(self) -> dict[str, TokenConfig]:
        """Token table keyed by upper-case symbol."""
        native = TokenConfig(symbol=self.native_symbol.upper(), address=ZERO_ADDRESS, decimals=self.native_decimals)
        usdt = TokenConfig(symbol="USDT", address=self.usdt_address, decimals=self.usdt_decimals)
        return {native.symbol: native, usdt.symbol: usdt}


# Global settings instance
settings = Settings()
