"""Data structures shared by the quote engine, encoder and swap orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from v4swap.models.chain import TokenConfig

UINT24_MAX = 2**24 - 1
INT24_MIN, INT24_MAX = -(2**23), 2**23 - 1
UINT48_MAX = 2**48 - 1
UINT128_MAX = 2**128 - 1
UINT160_MAX = 2**160 - 1
UINT256_MAX = 2**256 - 1


class QuoteMode(str, Enum):
    EXACT_IN = "exact_in"
    EXACT_OUT = "exact_out"


class QuoteRequest(BaseModel):
    """Pricing question for the single configured pool."""

    model_config = {"frozen": True}

    token_in: str
    token_out: str
    amount: int = Field(ge=0, le=UINT128_MAX)
    sell_decimals: int = Field(ge=0, le=77)
    buy_decimals: int = Field(ge=0, le=77)
    mode: QuoteMode = QuoteMode.EXACT_IN

    @model_validator(mode="after")
    def _distinct_tokens(self) -> "QuoteRequest":
        if self.token_in.lower() == self.token_out.lower():
            raise ValueError("token_in and token_out must differ")
        return self


@dataclass(frozen=True)
class QuoteResult:
    """Quoted on-chain amount plus a price-impact estimate.

    ``slippage_percent`` is ``None`` when it cannot be computed.
    """

    quoted_amount: int
    slippage_percent: float | None = None
    gas_estimate: int | None = None


@dataclass(frozen=True)
class PoolKey:
    """Uniswap v4 pool identifier. ``currency0`` sorts strictly below ``currency1``."""

    currency0: str
    currency1: str
    fee: int
    tick_spacing: int
    hooks: str

    def __post_init__(self) -> None:
        if bytes.fromhex(self.currency0[2:]) >= bytes.fromhex(self.currency1[2:]):
            raise ValueError(f"currency0 must sort below currency1: {self.currency0} >= {self.currency1}")
        if not 0 <= self.fee <= UINT24_MAX:
            raise ValueError(f"fee out of uint24 range: {self.fee}")
        if not INT24_MIN <= self.tick_spacing <= INT24_MAX:
            raise ValueError(f"tick_spacing out of int24 range: {self.tick_spacing}")


@dataclass(frozen=True)
class PermitSingle:
    """Signed Permit2 allowance for one token and one spender."""

    token: str
    amount: int
    expiration: int
    nonce: int
    spender: str
    sig_deadline: int
    signature: bytes

    def details_tuple(self) -> tuple[str, int, int, int]:
        return (self.token, self.amount, self.expiration, self.nonce)

    def abi_tuple(self) -> tuple[tuple[str, int, int, int], str, int]:
        return (self.details_tuple(), self.spender, self.sig_deadline)

    def split_signature(self) -> tuple[int, bytes, bytes]:
        """Return ``(v, r, s)`` for entrypoints that take the signature decomposed."""
        if len(self.signature) != 65:
            raise ValueError(f"Expected a 65-byte signature, got {len(self.signature)} bytes")
        r = self.signature[:32]
        s = self.signature[32:64]
        v = self.signature[64]
        if v < 27:
            v += 27
        return v, r, s


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class SwapState(str, Enum):
    IDLE = "idle"
    BUILDING_QUOTE = "building_quote"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CHECKING_ALLOWANCE = "checking_allowance"
    SIGNING = "signing"
    ENCODING = "encoding"
    BROADCASTING = "broadcasting"
    AWAITING_RECEIPT = "awaiting_receipt"
    COMPLETED = "completed"
    REVERTED = "reverted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {SwapState.COMPLETED, SwapState.REVERTED, SwapState.FAILED}


@dataclass(frozen=True)
class ProgressRecord:
    text: str
    severity: Severity
    state: SwapState
    tx_hash: str | None = None
    error_kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "severity": self.severity.value,
            "state": self.state.value,
            "tx_hash": self.tx_hash,
            "error_kind": self.error_kind,
        }


class SwapParams(BaseModel):
    """What the caller wants to trade. ``limit_amount`` overrides the slippage-derived bound."""

    model_config = {"frozen": True}

    sell: TokenConfig
    buy: TokenConfig
    amount: int = Field(gt=0, le=UINT128_MAX)
    mode: QuoteMode = QuoteMode.EXACT_IN
    slippage_bps: int | None = Field(default=None, ge=0, le=10_000)
    limit_amount: int | None = Field(default=None, ge=0, le=UINT128_MAX)

    @model_validator(mode="after")
    def _distinct_tokens(self) -> "SwapParams":
        if self.sell.address.lower() == self.buy.address.lower():
            raise ValueError("sell and buy tokens must differ")
        return self

    def quote_request(self) -> QuoteRequest:
        return QuoteRequest(
            token_in=self.sell.address,
            token_out=self.buy.address,
            amount=self.amount,
            sell_decimals=self.sell.decimals,
            buy_decimals=self.buy.decimals,
            mode=self.mode,
        )


@dataclass
class SwapAttempt:
    """One user-confirmed swap. Mutated only by the orchestrator, never persisted."""

    params: SwapParams
    attempt_id: str = field(default_factory=lambda: uuid4().hex)
    state: SwapState = SwapState.IDLE
    pool_key: PoolKey | None = None
    zero_for_one: bool | None = None
    quote: QuoteResult | None = None
    limit_amount: int | None = None
    permit: PermitSingle | None = None
    commands: bytes | None = None
    inputs: list[bytes] = field(default_factory=list)
    approval_tx_hash: str | None = None
    tx_hash: str | None = None
    error: str | None = None
    error_kind: str | None = None
    progress: list[ProgressRecord] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt_id": self.attempt_id,
            "state": self.state.value,
            "sell": self.params.sell.symbol,
            "buy": self.params.buy.symbol,
            "amount": str(self.params.amount),
            "mode": self.params.mode.value,
            "zero_for_one": self.zero_for_one,
            "quoted_amount": str(self.quote.quoted_amount) if self.quote else None,
            "slippage_percent": self.quote.slippage_percent if self.quote else None,
            "limit_amount": str(self.limit_amount) if self.limit_amount is not None else None,
            "permit_nonce": self.permit.nonce if self.permit else None,
            "commands": "0x" + self.commands.hex() if self.commands is not None else None,
            "approval_tx_hash": self.approval_tx_hash,
            "tx_hash": self.tx_hash,
            "error": self.error,
            "error_kind": self.error_kind,
            "progress": [record.to_dict() for record in self.progress],
            "created_at": self.created_at,
        }
