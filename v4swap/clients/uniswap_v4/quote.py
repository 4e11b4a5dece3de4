"""Quote engine over the Uniswap v4 quoter contract."""

from __future__ import annotations

import asyncio

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from v4swap.clients.uniswap_v4.currency import NATIVE_CURRENCY, build_pool_key, pool_currency, pool_key_tuple
from v4swap.clients.uniswap_v4.rpc import ChainReader
from v4swap.clients.uniswap_v4.slippage import price, slippage_percent
from v4swap.logging import log
from v4swap.models.swap import PoolKey, QuoteMode, QuoteRequest, QuoteResult

QUOTE_PARAMS_TYPE = "((address,address,uint24,int24,address),bool,uint128,bytes)"
QUOTE_EXACT_INPUT_SINGLE = function_signature_to_4byte_selector(f"quoteExactInputSingle({QUOTE_PARAMS_TYPE})")
QUOTE_EXACT_OUTPUT_SINGLE = function_signature_to_4byte_selector(f"quoteExactOutputSingle({QUOTE_PARAMS_TYPE})")


class QuoteError(Exception):
    """Raised when quote retrieval fails."""


def baseline_amount(decimals: int) -> int:
    """Roughly 0.1% of one whole token, never zero."""
    return max(1, 10**decimals // 1000)


def encode_quote_call(mode: QuoteMode, key: PoolKey, zero_for_one: bool, exact_amount: int, hook_data: bytes = b"") -> bytes:
    selector = QUOTE_EXACT_INPUT_SINGLE if mode is QuoteMode.EXACT_IN else QUOTE_EXACT_OUTPUT_SINGLE
    params = (pool_key_tuple(key), zero_for_one, int(exact_amount), hook_data)
    return selector + encode([QUOTE_PARAMS_TYPE], [params])


class QuoteEngine:
    """Prices trades against the single configured pool.

    ``quote`` never raises for chain-side failures: a reverted or failed
    simulation resolves to ``None`` so callers can hide the trade action.
    """

    def __init__(
        self,
        reader: ChainReader,
        quoter_address: str,
        fee: int,
        tick_spacing: int,
        hooks: str = NATIVE_CURRENCY,
        wrapped_native: str | None = None,
    ) -> None:
        self.reader = reader
        self.quoter_address = quoter_address
        self.fee = int(fee)
        self.tick_spacing = int(tick_spacing)
        self.hooks = hooks
        self.wrapped_native = wrapped_native

    def pool_key_for(self, token_in: str, token_out: str) -> tuple[PoolKey, bool]:
        """Pool key and direction used for both quoting and execution."""
        return build_pool_key(
            pool_currency(token_in, self.wrapped_native),
            pool_currency(token_out, self.wrapped_native),
            self.fee,
            self.tick_spacing,
            self.hooks,
        )

    async def _simulate(self, mode: QuoteMode, key: PoolKey, zero_for_one: bool, amount: int) -> tuple[int, int]:
        data = encode_quote_call(mode, key, zero_for_one, amount)
        raw = await self.reader.call(self.quoter_address, data)
        try:
            quoted, gas_estimate = decode(["uint256", "uint256"], raw)
        except Exception as exc:
            raise QuoteError(f"Malformed quoter response ({len(raw)} bytes): {exc}") from exc
        return int(quoted), int(gas_estimate)

    async def quote(self, request: QuoteRequest) -> QuoteResult | None:
        if request.amount == 0:
            return QuoteResult(quoted_amount=0, slippage_percent=None)

        try:
            key, zero_for_one = self.pool_key_for(request.token_in, request.token_out)
        except ValueError as exc:
            log.warning(f"Quote unavailable token_in={request.token_in} token_out={request.token_out}: {exc}")
            return None
        exact_decimals = request.sell_decimals if request.mode is QuoteMode.EXACT_IN else request.buy_decimals
        sample = baseline_amount(exact_decimals)

        full, base = await asyncio.gather(
            self._simulate(request.mode, key, zero_for_one, request.amount),
            self._simulate(request.mode, key, zero_for_one, sample),
            return_exceptions=True,
        )
        for outcome in (full, base):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                log.warning(
                    f"Quote unavailable token_in={request.token_in} token_out={request.token_out} "
                    f"amount={request.amount} mode={request.mode.value}: {outcome}"
                )
                return None

        quoted, gas_estimate = full
        sample_quoted, _ = base
        if request.mode is QuoteMode.EXACT_IN:
            execution = price(request.amount, request.sell_decimals, quoted, request.buy_decimals)
            baseline = price(sample, request.sell_decimals, sample_quoted, request.buy_decimals)
        else:
            execution = price(quoted, request.sell_decimals, request.amount, request.buy_decimals)
            baseline = price(sample_quoted, request.sell_decimals, sample, request.buy_decimals)
        slippage = slippage_percent(execution, baseline)

        log.debug(
            f"Quote mode={request.mode.value} amount={request.amount} quoted={quoted} "
            f"sample={sample} sample_quoted={sample_quoted} slippage={slippage}"
        )
        return QuoteResult(quoted_amount=quoted, slippage_percent=slippage, gas_estimate=gas_estimate)
