"""Swap router: quotes, background swap attempts, balances and the test-token faucet."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from api.models.swap import (
    AttemptListResponse,
    BalancesResponse,
    ExecuteRequestBody,
    ExecuteResponse,
    QuoteRequestBody,
    QuoteResponse,
)
from api.services.swap_service import swap_service
from v4swap.clients.uniswap_v4.client import UniswapV4ClientError
from v4swap.clients.uniswap_v4.errors import SwapError

router = APIRouter()


@router.post("/quote", response_model=QuoteResponse)
async def quote(payload: QuoteRequestBody):
    try:
        result = await swap_service.quote(payload.sell, payload.buy, payload.amount, payload.mode)
    except (UniswapV4ClientError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return QuoteResponse(**result)


@router.post("/execute", response_model=ExecuteResponse, status_code=202)
async def execute(payload: ExecuteRequestBody):
    try:
        attempt_id = swap_service.execute(
            sell=payload.sell,
            buy=payload.buy,
            amount=payload.amount,
            mode=payload.mode,
            slippage_bps=payload.slippage_bps,
            limit_amount=payload.limit_amount,
        )
    except (UniswapV4ClientError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ExecuteResponse(attempt_id=attempt_id)


@router.get("/attempts", response_model=AttemptListResponse)
async def list_attempts(limit: int = Query(default=50, ge=1, le=500)):
    items = swap_service.list_attempts(limit=limit)
    return AttemptListResponse(count=len(items), items=items)


@router.get("/attempts/{attempt_id}")
async def get_attempt(attempt_id: str):
    item = swap_service.get_attempt(attempt_id)
    if item.get("status") == "not_found":
        raise HTTPException(status_code=404, detail=f"Unknown swap attempt {attempt_id}")
    return {"status": "ok", "item": item}


@router.post("/attempts/{attempt_id}/cancel")
async def cancel_attempt(attempt_id: str):
    cancelled = await swap_service.cancel_attempt(attempt_id)
    return {"status": "ok", "cancelled": cancelled}


@router.get("/balances/{address}", response_model=BalancesResponse)
async def get_balances(address: str):
    try:
        balances = await swap_service.balances(address)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return BalancesResponse(address=address, balances=balances)


@router.get("/faucet/{address}")
async def get_claimable(address: str, token: str = Query(default="USDT")):
    try:
        return await swap_service.faucet(address, token)
    except (UniswapV4ClientError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/faucet/claim")
async def claim(token: str = Query(default="USDT")):
    try:
        return await swap_service.claim(token)
    except (UniswapV4ClientError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SwapError as exc:
        raise HTTPException(status_code=409, detail={"kind": exc.kind, "message": exc.message}) from exc
