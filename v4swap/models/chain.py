"""Chain and token models plus the registry of known Uniswap v4 deployments."""

from __future__ import annotations

import re
from typing import Final
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, field_validator

ADDRESS_REGEX: Final[re.Pattern[str]] = re.compile(r"^0x[a-fA-F0-9]{40}$")
ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"
DEFAULT_PERMIT2: Final[str] = "0x000000000022D473030F116dDEE9F6B43aC78BA3"


def _check_address(value: str | None) -> str | None:
    if value is not None and not ADDRESS_REGEX.match(value):
        raise ValueError(f"Invalid Ethereum address: {value}")
    return value


class ChainConfig(BaseModel):
    """Contract addresses the swap engine talks to on one chain.

    ``wrapped_native`` is only consulted for pools that hold the wrapped
    token instead of the native asset.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    chain_id: int
    universal_router: str
    permit2: str
    quoter: str | None = None
    wrapped_native: str | None = None
    explorer_base_url: str | None = None

    @field_validator("universal_router", "permit2", "quoter", "wrapped_native")
    @classmethod
    def validate_address(cls, value: str | None) -> str | None:
        return _check_address(value)

    @field_validator("explorer_base_url")
    @classmethod
    def validate_explorer_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(f"Invalid explorer URL: {value}")
        return value.rstrip("/")

    def explorer_tx_url(self, tx_hash: str) -> str | None:
        return f"{self.explorer_base_url}/tx/{tx_hash}" if self.explorer_base_url else None


class TokenConfig(BaseModel):
    """A tradable currency. The zero address stands for the chain's native asset."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    address: str
    decimals: int

    @field_validator("address")
    @classmethod
    def validate_address(cls, value: str) -> str:
        return _check_address(value)

    @field_validator("decimals")
    @classmethod
    def validate_decimals(cls, value: int) -> int:
        # 10**77 is the largest power of ten that fits in uint256
        if not 0 <= value <= 77:
            raise ValueError(f"Unsupported token decimals: {value}")
        return value

    @property
    def is_native(self) -> bool:
        return self.address.lower() == ZERO_ADDRESS

    @property
    def unit(self) -> int:
        return 10**self.decimals


TRADING_CHAIN_CONFIGS: dict[str, ChainConfig] = {
    "sepolia": ChainConfig(
        name="sepolia",
        chain_id=11155111,
        universal_router="0x3a9d48ab9751398bbfa63ad67599bb04e4bdf98b",
        permit2=DEFAULT_PERMIT2,
        quoter="0x61B3f2011A92d183C7dbaDBdA940a7555Ccf9227",
        wrapped_native="0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14",
        explorer_base_url="https://sepolia.etherscan.io",
    ),
    "ethereum": ChainConfig(
        name="ethereum",
        chain_id=1,
        universal_router="0x66a9893cc07d91d95644aedd05d03f95e1dba8af",
        permit2=DEFAULT_PERMIT2,
        quoter="0x52f0e24d1c21c8a0cb1e5a5dd6198556bd9e1203",
        wrapped_native="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        explorer_base_url="https://etherscan.io",
    ),
    "base": ChainConfig(
        name="base",
        chain_id=8453,
        universal_router="0x6ff5693b99212da76ad316178a184ab56d299b43",
        permit2=DEFAULT_PERMIT2,
        quoter="0x0d5e0f971ed27fbff6c2837bf31316121532048d",
        wrapped_native="0x4200000000000000000000000000000000000006",
        explorer_base_url="https://basescan.org",
    ),
}

CHAIN_KEY_BY_ID: dict[int, str] = {config.chain_id: key for key, config in TRADING_CHAIN_CONFIGS.items()}
