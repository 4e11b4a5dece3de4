"""Single-shot swap state machine.

An attempt moves through::

    IDLE -> BUILDING_QUOTE -> AWAITING_CONFIRMATION
         -> [CHECKING_ALLOWANCE -> [SIGNING]] -> ENCODING
         -> BROADCASTING -> AWAITING_RECEIPT -> COMPLETED | REVERTED | FAILED

Every transition yields a ``ProgressRecord``. Records are append-only and a
failed attempt ends with exactly one ``error`` record. Nothing is retried:
the caller starts a new attempt with a fresh quote and nonce.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Any, AsyncIterator, Awaitable, Callable

from v4swap.clients.uniswap_v4.encoding import EncodingError, SwapIntent, encode_swap, swap_deadline
from v4swap.clients.uniswap_v4.errors import (
    QuoteUnavailable,
    SwapDeclined,
    SwapError,
    TransactionReverted,
    WalletNotConnected,
    classify_error,
)
from v4swap.clients.uniswap_v4.permit2 import PermitSigner
from v4swap.clients.uniswap_v4.quote import QuoteEngine
from v4swap.clients.uniswap_v4.router import Router
from v4swap.clients.uniswap_v4.slippage import calculate_max_in, calculate_min_out
from v4swap.clients.uniswap_v4.wallet import Broadcaster, TxReceiptStatus, TypedDataSigner
from v4swap.logging import log
from v4swap.models.swap import (
    ProgressRecord,
    QuoteMode,
    Severity,
    SwapAttempt,
    SwapParams,
    SwapState,
)

ConfirmFn = Callable[[SwapAttempt], Awaitable[bool]]

_LOG_LEVELS = {Severity.INFO: "INFO", Severity.SUCCESS: "SUCCESS", Severity.ERROR: "ERROR"}


class SwapOrchestrator:
    def __init__(
        self,
        quote_engine: QuoteEngine,
        permit_signer: PermitSigner,
        router: Router,
        signer: TypedDataSigner | None,
        broadcaster: Broadcaster | None,
        chain_id: int,
        slippage_bps: int = 50,
        deadline_seconds: int = 3600,
        approve_gas_limit: int = 80_000,
        confirm: ConfirmFn | None = None,
        explorer_tx_url: Callable[[str], str | None] | None = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.quote_engine = quote_engine
        self.permit_signer = permit_signer
        self.permit2 = permit_signer.permit2
        self.router = router
        self.signer = signer
        self.broadcaster = broadcaster
        self.chain_id = int(chain_id)
        self.slippage_bps = int(slippage_bps)
        self.deadline_seconds = int(deadline_seconds)
        self.approve_gas_limit = int(approve_gas_limit)
        self.confirm = confirm
        self.explorer_tx_url = explorer_tx_url
        self._now = now

    def new_attempt(self, params: SwapParams) -> SwapAttempt:
        return SwapAttempt(params=params)

    def start_swap(self, params: SwapParams) -> AsyncIterator[ProgressRecord]:
        return self.stream(self.new_attempt(params))

    async def run(self, attempt: SwapAttempt | SwapParams) -> SwapAttempt:
        """Drive an attempt to a terminal state and return it."""
        if isinstance(attempt, SwapParams):
            attempt = self.new_attempt(attempt)
        async for _ in self.stream(attempt):
            pass
        return attempt

    async def stream(self, attempt: SwapAttempt) -> AsyncIterator[ProgressRecord]:
        if attempt.state is not SwapState.IDLE:
            raise RuntimeError(f"Swap attempt {attempt.attempt_id} already ran; start a new attempt")
        try:
            async for record in self._execute(attempt):
                yield record
        except Exception as exc:
            yield self._fail(attempt, classify_error(exc))

    def _emit(
        self,
        attempt: SwapAttempt,
        state: SwapState,
        text: str,
        severity: Severity = Severity.INFO,
        tx_hash: str | None = None,
        error_kind: str | None = None,
    ) -> ProgressRecord:
        attempt.state = state
        record = ProgressRecord(text=text, severity=severity, state=state, tx_hash=tx_hash, error_kind=error_kind)
        attempt.progress.append(record)
        log.bind(SWAP_PROGRESS=True, attempt_id=attempt.attempt_id).log(
            _LOG_LEVELS[severity], f"[{state.value}] {text}" + (f" tx={tx_hash}" if tx_hash else "")
        )
        return record

    def _fail(self, attempt: SwapAttempt, error: SwapError) -> ProgressRecord:
        attempt.error = error.message
        attempt.error_kind = error.kind
        state = SwapState.REVERTED if isinstance(error, TransactionReverted) else SwapState.FAILED
        if error.recoverable:
            log.warning(f"Swap attempt {attempt.attempt_id} ended kind={error.kind}: {error.message}")
        return self._emit(attempt, state, error.message, Severity.ERROR, tx_hash=attempt.tx_hash, error_kind=error.kind)

    def _tx_text(self, prefix: str, tx_hash: str) -> str:
        url = self.explorer_tx_url(tx_hash) if self.explorer_tx_url else None
        return f"{prefix}: {url}" if url else f"{prefix}: {tx_hash}"

    async def _execute(self, attempt: SwapAttempt) -> AsyncIterator[ProgressRecord]:
        params = attempt.params
        if self.signer is None or self.broadcaster is None:
            raise WalletNotConnected("Connect a wallet before swapping")

        yield self._emit(attempt, SwapState.BUILDING_QUOTE, f"Fetching quote for {params.sell.symbol} -> {params.buy.symbol}")
        if params.sell.is_native and self.quote_engine.wrapped_native:
            raise EncodingError("Selling the native asset requires a native-currency pool")
        try:
            key, zero_for_one = self.quote_engine.pool_key_for(params.sell.address, params.buy.address)
        except ValueError as exc:
            raise QuoteUnavailable(f"No pool for this pair: {exc}") from exc
        attempt.pool_key, attempt.zero_for_one = key, zero_for_one
        quote = await self.quote_engine.quote(params.quote_request())
        if quote is None:
            raise QuoteUnavailable("No quote available for this pair and amount")
        attempt.quote = quote
        attempt.limit_amount = self._limit_amount(params, quote.quoted_amount)

        slippage = "n/a" if quote.slippage_percent is None else f"{quote.slippage_percent:.2f}%"
        if params.mode is QuoteMode.EXACT_IN:
            summary = f"Sell {params.amount} {params.sell.symbol} for ~{quote.quoted_amount} {params.buy.symbol}"
        else:
            summary = f"Buy {params.amount} {params.buy.symbol} for ~{quote.quoted_amount} {params.sell.symbol}"
        yield self._emit(
            attempt,
            SwapState.AWAITING_CONFIRMATION,
            f"{summary} (slippage {slippage}, limit {attempt.limit_amount})",
        )
        if self.confirm is not None and not await self.confirm(attempt):
            raise SwapDeclined("Swap was not confirmed")

        intent = SwapIntent(
            mode=params.mode,
            pool_key=key,
            zero_for_one=zero_for_one,
            amount=params.amount,
            limit=attempt.limit_amount,
            unwrap_native=params.buy.is_native and self.quote_engine.wrapped_native is not None,
        )

        if not params.sell.is_native:
            owner = self.signer.address
            token = params.sell.address
            yield self._emit(attempt, SwapState.CHECKING_ALLOWANCE, "Checking token spending allowance")
            if await self.permit2.needs_erc20_approval(owner, token, min_allowance=intent.max_input):
                async for record in self._approve_permit2(attempt, token):
                    yield record

            allowance = await self.permit2.get_allowance(owner, token, self.router.address)
            if allowance.covers(intent.max_input, int(self._now())):
                yield self._emit(attempt, SwapState.CHECKING_ALLOWANCE, "Existing Permit2 allowance covers this swap")
            else:
                yield self._emit(attempt, SwapState.SIGNING, "Sign the Permit2 authorization")
                attempt.permit = await self.permit_signer.build_permit(
                    token=token,
                    amount=intent.max_input,
                    spender=self.router.address,
                    chain_id=self.chain_id,
                    signer_address=owner,
                    sign_fn=self.signer.sign_typed_data,
                )
                intent = replace(intent, permit=attempt.permit)
                yield self._emit(attempt, SwapState.SIGNING, f"Permit signed (nonce {attempt.permit.nonce})", Severity.SUCCESS)

        yield self._emit(attempt, SwapState.ENCODING, "Encoding router commands")
        encoded = encode_swap(intent, swap_deadline(self._now(), self.deadline_seconds))
        attempt.commands, attempt.inputs = encoded.commands, encoded.inputs
        tx = self.router.build_swap_call(encoded)

        yield self._emit(attempt, SwapState.BROADCASTING, "Sending swap transaction")
        attempt.tx_hash = await self.broadcaster.send_transaction(tx)
        yield self._emit(
            attempt, SwapState.AWAITING_RECEIPT, self._tx_text("Swap submitted", attempt.tx_hash), tx_hash=attempt.tx_hash
        )

        status = await self.broadcaster.wait_for_receipt(attempt.tx_hash)
        if status is not TxReceiptStatus.SUCCESS:
            raise TransactionReverted("Swap transaction reverted on-chain; funds were not moved")
        yield self._emit(
            attempt,
            SwapState.COMPLETED,
            self._tx_text("Swap completed", attempt.tx_hash),
            Severity.SUCCESS,
            tx_hash=attempt.tx_hash,
        )

    async def _approve_permit2(self, attempt: SwapAttempt, token: str) -> AsyncIterator[ProgressRecord]:
        tx: dict[str, Any] = {
            "to": token,
            "data": "0x" + self.permit2.build_erc20_approve_data().hex(),
            "value": 0,
            "gas": self.approve_gas_limit,
        }
        attempt.approval_tx_hash = await self.broadcaster.send_transaction(tx)
        yield self._emit(
            attempt,
            SwapState.CHECKING_ALLOWANCE,
            self._tx_text("Approving Permit2", attempt.approval_tx_hash),
            tx_hash=attempt.approval_tx_hash,
        )
        status = await self.broadcaster.wait_for_receipt(attempt.approval_tx_hash)
        if status is not TxReceiptStatus.SUCCESS:
            raise TransactionReverted("Permit2 approval transaction reverted")
        yield self._emit(attempt, SwapState.CHECKING_ALLOWANCE, "Permit2 approval confirmed", Severity.SUCCESS)

    def _limit_amount(self, params: SwapParams, quoted: int) -> int:
        if params.limit_amount is not None:
            return params.limit_amount
        slippage_bps = self.slippage_bps if params.slippage_bps is None else params.slippage_bps
        if params.mode is QuoteMode.EXACT_IN:
            return calculate_min_out(quoted, slippage_bps)
        return calculate_max_in(quoted, slippage_bps)
