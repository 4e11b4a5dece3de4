"""Async RPC helpers for Uniswap v4 reads and broadcasts."""

from __future__ import annotations

from typing import Any, Protocol

from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted


class RPCError(Exception):
    """Raised when RPC interactions fail."""


class CallReverted(RPCError):
    """Raised when an eth_call or gas estimation reverts."""

    def __init__(self, message: str, data: str | None = None) -> None:
        super().__init__(message)
        self.data = data


class ReceiptTimeout(RPCError):
    """Raised when a broadcast transaction has no receipt within the wait window."""

    def __init__(self, message: str, tx_hash: str) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class ChainReader(Protocol):
    async def call(self, to: str, data: bytes) -> bytes: ...

    async def get_balance(self, address: str) -> int: ...


def _revert_data(exc: ContractLogicError) -> str | None:
    data = getattr(exc, "data", None)
    return data if isinstance(data, str) else None


class RPC:
    """Thin wrapper around an async web3 provider with normalized error handling."""

    def __init__(self, url: str, w3: AsyncWeb3 | None = None) -> None:
        self.url = url
        self.w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(url))

    async def call(self, to: str, data: bytes) -> bytes:
        tx = {"to": AsyncWeb3.to_checksum_address(to), "data": "0x" + data.hex()}
        try:
            return bytes(await self.w3.eth.call(tx))
        except ContractLogicError as exc:
            raise CallReverted(f"Call to {to} reverted: {exc}", data=_revert_data(exc)) from exc
        except Exception as exc:
            raise RPCError(f"Call to {to} failed: {exc}") from exc

    async def get_balance(self, address: str) -> int:
        try:
            return int(await self.w3.eth.get_balance(AsyncWeb3.to_checksum_address(address)))
        except Exception as exc:
            raise RPCError(f"Failed to fetch balance for {address}: {exc}") from exc

    async def nonce(self, address: str) -> int:
        try:
            return int(await self.w3.eth.get_transaction_count(AsyncWeb3.to_checksum_address(address), "pending"))
        except Exception as exc:
            raise RPCError(f"Failed to fetch nonce for {address}: {exc}") from exc

    async def latest_block(self) -> dict[str, Any]:
        try:
            return dict(await self.w3.eth.get_block("latest"))
        except Exception as exc:
            raise RPCError(f"Failed to fetch latest block: {exc}") from exc

    async def max_priority_fee(self) -> int:
        try:
            return int(await self.w3.eth.max_priority_fee)
        except Exception as exc:
            raise RPCError(f"Failed to fetch max priority fee: {exc}") from exc

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        try:
            return int(await self.w3.eth.estimate_gas(tx))
        except ContractLogicError as exc:
            raise CallReverted(f"Gas estimation reverted: {exc}", data=_revert_data(exc)) from exc
        except Exception as exc:
            raise RPCError(f"Gas estimation failed: {exc}") from exc

    async def send_raw(self, raw_tx: bytes) -> str:
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(raw_tx)
        except Exception as exc:
            raise RPCError(f"Failed to send raw transaction: {exc}") from exc
        return AsyncWeb3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: float, poll_latency: float) -> dict[str, Any]:
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout, poll_latency=poll_latency
            )
        except TimeExhausted as exc:
            raise ReceiptTimeout(f"No receipt for tx={tx_hash} after {timeout}s", tx_hash=tx_hash) from exc
        except Exception as exc:
            raise RPCError(f"Failed to fetch receipt for tx={tx_hash}: {exc}") from exc
        return dict(receipt)
