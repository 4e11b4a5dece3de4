"""Gas parameter estimation for EIP-1559 chains."""

from __future__ import annotations

from dataclasses import dataclass

from v4swap.clients.uniswap_v4.rpc import RPC, RPCError
from v4swap.logging import log

DEFAULT_PRIORITY_FEE = 1_500_000_000


@dataclass(frozen=True)
class GasQuote:
    gas: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int
    tx_type: int = 2

    def to_tx_params(self) -> dict[str, int]:
        return {
            "gas": self.gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
            "maxFeePerGas": self.max_fee_per_gas,
            "type": self.tx_type,
        }

    @property
    def max_cost(self) -> int:
        return int(self.gas) * int(self.max_fee_per_gas)


class GasManager:
    def __init__(self, rpc: RPC) -> None:
        self.rpc = rpc

    async def aggressive_fast(self, gas_limit: int, multiplier: float = 1.15) -> GasQuote:
        block = await self.rpc.latest_block()
        base_fee = int(block.get("baseFeePerGas", 0) or 0)

        try:
            priority = await self.rpc.max_priority_fee()
        except RPCError as exc:
            log.debug(f"eth_maxPriorityFeePerGas unavailable, using default: {exc}")
            priority = DEFAULT_PRIORITY_FEE

        boosted_priority = max(int(priority * multiplier), 1)
        max_fee = max(int(base_fee * multiplier + boosted_priority), boosted_priority)

        return GasQuote(
            gas=int(gas_limit),
            max_priority_fee_per_gas=boosted_priority,
            max_fee_per_gas=max_fee,
        )

    async def has_balance_for_gas(self, sender: str, gas_quote: GasQuote, value: int = 0) -> bool:
        balance = await self.rpc.get_balance(sender)
        return balance >= gas_quote.max_cost + int(value)
