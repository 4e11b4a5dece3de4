"""Pydantic models for the swap API. Amounts are integers in token base units."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from v4swap.models.swap import UINT128_MAX, QuoteMode


class QuoteRequestBody(BaseModel):
    sell: str = Field(description="Symbol of the token being sold, e.g. ETH")
    buy: str = Field(description="Symbol of the token being bought, e.g. USDT")
    amount: int = Field(ge=0, le=UINT128_MAX)
    mode: QuoteMode = QuoteMode.EXACT_IN


class QuoteResponse(BaseModel):
    status: str
    quoted_amount: str | None = None
    slippage_percent: float | None = None
    gas_estimate: int | None = None


class ExecuteRequestBody(BaseModel):
    sell: str
    buy: str
    amount: int = Field(gt=0, le=UINT128_MAX)
    mode: QuoteMode = QuoteMode.EXACT_IN
    slippage_bps: int | None = Field(default=None, ge=0, le=10_000)
    limit_amount: int | None = Field(default=None, ge=0, le=UINT128_MAX)


class ExecuteResponse(BaseModel):
    status: str = "accepted"
    attempt_id: str


class BalancesResponse(BaseModel):
    status: str = "ok"
    address: str
    balances: dict[str, str | None]


class AttemptListResponse(BaseModel):
    status: str = "ok"
    count: int
    items: list[dict[str, Any]]
