"""Swap service shared by the API routers."""

from __future__ import annotations

from typing import Any

from v4swap.clients.uniswap_v4.client import UniswapV4Client
from v4swap.logging import log
from v4swap.models.swap import QuoteMode, SwapParams
from v4swap.pipelines.swap.execution_tracker import ExecutionTracker


class SwapService:
    """Owns the chain client and the in-memory attempt tracker."""

    def __init__(self, client: UniswapV4Client | None = None) -> None:
        self._client = client
        self.tracker = ExecutionTracker()

    @property
    def client(self) -> UniswapV4Client:
        if self._client is None:
            self._client = UniswapV4Client()
        return self._client

    async def quote(self, sell: str, buy: str, amount: int, mode: QuoteMode) -> dict[str, Any]:
        result = await self.client.quote(sell, buy, amount, mode)
        if result is None:
            return {"status": "unavailable"}
        return {
            "status": "ok",
            "quoted_amount": str(result.quoted_amount),
            "slippage_percent": result.slippage_percent,
            "gas_estimate": result.gas_estimate,
        }

    def execute(
        self,
        sell: str,
        buy: str,
        amount: int,
        mode: QuoteMode,
        slippage_bps: int | None = None,
        limit_amount: int | None = None,
    ) -> str:
        params = SwapParams(
            sell=self.client.token(sell),
            buy=self.client.token(buy),
            amount=amount,
            mode=mode,
            slippage_bps=slippage_bps,
            limit_amount=limit_amount,
        )
        attempt_id = self.tracker.launch(self.client.orchestrator(), params)
        log.info(f"Swap attempt {attempt_id} launched sell={sell} buy={buy} amount={amount} mode={mode.value}")
        return attempt_id

    def get_attempt(self, attempt_id: str) -> dict[str, Any]:
        return self.tracker.get_status(attempt_id)

    def list_attempts(self, limit: int = 50) -> list[dict[str, Any]]:
        return self.tracker.list(limit=limit)

    async def cancel_attempt(self, attempt_id: str) -> bool:
        return await self.tracker.cancel(attempt_id)

    async def balances(self, address: str) -> dict[str, str | None]:
        raw = await self.client.get_balances(address)
        return {symbol: (str(value) if value is not None else None) for symbol, value in raw.items()}

    async def faucet(self, address: str, symbol: str = "USDT") -> dict[str, Any]:
        amount = await self.client.claimable(address, symbol)
        return {"status": "ok", "token": symbol.upper(), "claimable": str(amount)}

    async def claim(self, symbol: str = "USDT") -> dict[str, Any]:
        tx_hash = await self.client.claim(symbol)
        if tx_hash is None:
            return {"status": "nothing_to_claim", "tx_hash": None, "explorer_url": None}
        return {"status": "ok", "tx_hash": tx_hash, "explorer_url": self.client.get_explorer_tx_url(tx_hash)}

    async def shutdown(self) -> None:
        await self.tracker.cancel_all()


swap_service = SwapService()
