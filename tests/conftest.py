"""Test configuration and fixtures.

Provides an in-memory chain that answers the quoter, Permit2 and ERC20 calls
the swap engine makes (by decoding calldata with eth_abi), a real local-key
signer, and a broadcaster that records transactions instead of sending them.
No test touches the network.
"""

from __future__ import annotations

import os
from typing import Any, Callable

import pytest
from eth_abi import decode, encode
from eth_account import Account
from eth_utils import function_signature_to_4byte_selector

os.environ.setdefault("LOG_REDIS_ENABLED", "false")

from v4swap.clients.uniswap_v4.balances import ERC20_BALANCE_OF, ERC20_CLAIM, ERC20_CLAIMABLE  # noqa: E402
from v4swap.clients.uniswap_v4.encoding import Commands, decode_permit_input  # noqa: E402
from v4swap.clients.uniswap_v4.permit2 import (  # noqa: E402
    ERC20_ALLOWANCE,
    ERC20_APPROVE,
    PERMIT2_ALLOWANCE,
    Permit2Client,
    PermitSigner,
)
from v4swap.clients.uniswap_v4.quote import (  # noqa: E402
    QUOTE_EXACT_INPUT_SINGLE,
    QUOTE_EXACT_OUTPUT_SINGLE,
    QUOTE_PARAMS_TYPE,
    QuoteEngine,
)
from v4swap.clients.uniswap_v4.router import Router  # noqa: E402
from v4swap.clients.uniswap_v4.rpc import CallReverted, RPCError  # noqa: E402
from v4swap.clients.uniswap_v4.wallet import LocalAccountSigner, TxReceiptStatus  # noqa: E402
from v4swap.models.chain import TRADING_CHAIN_CONFIGS, ZERO_ADDRESS, TokenConfig  # noqa: E402
from v4swap.models.swap import QuoteMode  # noqa: E402
from v4swap.pipelines.swap.orchestrator import SwapOrchestrator  # noqa: E402

SEPOLIA = TRADING_CHAIN_CONFIGS["sepolia"]
PRIVATE_KEY = "0x59c6995e998f97a5a004497e5f6f3f0f4f8eb59eac220d8d9f87f84d888fff44"
USDT_ADDRESS = "0xbace3798896b6e8dcbbe26b7a698150c98ba67d0"
POOL_FEE = 10_000
TICK_SPACING = 200
NOW = 1_700_000_000

# 1 ETH (1e18 wei) trades for 3000 USDT (6 decimals) at every size.
USDT_PER_ETH = 3000 * 10**6
WEI_PER_ETH = 10**18

INVALID_NONCE_SELECTOR = "0x756688fe"
EXECUTE_SELECTOR = function_signature_to_4byte_selector("execute(bytes,bytes[],uint256)")


def _linear_quote(mode: QuoteMode, zero_for_one: bool, amount: int) -> int:
    # currency0 is ETH (zero address), so zero_for_one means selling ETH.
    if mode is QuoteMode.EXACT_IN:
        return amount * USDT_PER_ETH // WEI_PER_ETH if zero_for_one else amount * WEI_PER_ETH // USDT_PER_ETH
    return -(-amount * WEI_PER_ETH // USDT_PER_ETH) if zero_for_one else -(-amount * USDT_PER_ETH // WEI_PER_ETH)


class FakeChain:
    """Answers eth_call for the quoter, Permit2 and ERC20 tokens."""

    def __init__(self) -> None:
        self.quoter = SEPOLIA.quoter.lower()
        self.permit2 = SEPOLIA.permit2.lower()
        self.quote_fn: Callable[[QuoteMode, bool, int], int] = _linear_quote
        self.revert_amounts: set[int] = set()
        self.permit2_allowances: dict[tuple[str, str, str], tuple[int, int, int]] = {}
        self.permit2_nonce = 0
        self.erc20_allowances: dict[str, int] = {}
        self.erc20_balances: dict[str, int] = {}
        self.claimable: dict[str, int] = {}
        self.native_balance = 10 * WEI_PER_ETH
        self.failing_tokens: set[str] = set()
        self.calls: list[tuple[str, bytes]] = []
        self.quote_calls: list[dict[str, Any]] = []

    async def call(self, to: str, data: bytes) -> bytes:
        to = to.lower()
        self.calls.append((to, data))
        selector, body = data[:4], data[4:]
        if to == self.quoter:
            return self._quote(selector, body)
        if to == self.permit2 and selector == PERMIT2_ALLOWANCE:
            owner, token, spender = (value.lower() for value in decode(["address", "address", "address"], body))
            amount, expiration, nonce = self.permit2_allowances.get(
                (owner, token, spender), (0, 0, self.permit2_nonce)
            )
            return encode(["uint160", "uint48", "uint48"], [amount, expiration, nonce])
        if to in self.failing_tokens:
            raise RPCError(f"Call to {to} failed: connection reset")
        if selector == ERC20_ALLOWANCE:
            return encode(["uint256"], [self.erc20_allowances.get(to, 2**256 - 1)])
        if selector == ERC20_BALANCE_OF:
            return encode(["uint256"], [self.erc20_balances.get(to, 0)])
        if selector == ERC20_CLAIMABLE:
            return encode(["uint256"], [self.claimable.get(to, 0)])
        raise CallReverted(f"Call to {to} reverted: unknown selector 0x{selector.hex()}")

    def _quote(self, selector: bytes, body: bytes) -> bytes:
        mode = QuoteMode.EXACT_IN if selector == QUOTE_EXACT_INPUT_SINGLE else QuoteMode.EXACT_OUT
        assert selector in (QUOTE_EXACT_INPUT_SINGLE, QUOTE_EXACT_OUTPUT_SINGLE)
        ((pool_key, zero_for_one, amount, hook_data),) = decode([QUOTE_PARAMS_TYPE], body)
        self.quote_calls.append(
            {"mode": mode, "pool_key": pool_key, "zero_for_one": zero_for_one, "amount": amount, "hook_data": hook_data}
        )
        if amount in self.revert_amounts:
            raise CallReverted("Call reverted: execution reverted", data="0x6190b2b0")
        return encode(["uint256", "uint256"], [self.quote_fn(mode, zero_for_one, amount), 120_000])

    async def get_balance(self, address: str) -> int:
        if ZERO_ADDRESS in self.failing_tokens:
            raise RPCError("eth_getBalance failed")
        return self.native_balance


class FakeBroadcaster:
    """Records transactions; consumes Permit2 nonces the way the registry does."""

    def __init__(self, chain: FakeChain) -> None:
        self.chain = chain
        self.sent: list[dict[str, Any]] = []
        self.receipts: dict[str, TxReceiptStatus] = {}
        self.next_status = TxReceiptStatus.SUCCESS
        self.approval_status = TxReceiptStatus.SUCCESS
        self.used_nonces: set[tuple[str, int]] = set()
        self.reject_with: Exception | None = None

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        if self.reject_with is not None:
            raise self.reject_with
        data = bytes.fromhex(tx["data"][2:])
        is_approval = data[:4] == ERC20_APPROVE
        if data[:4] == EXECUTE_SELECTOR:
            self._consume_permit(data)
        if data[:4] == ERC20_CLAIM:
            token = tx["to"].lower()
            (amount,) = decode(["uint256"], data[4:])
            self.chain.claimable[token] = 0
            self.chain.erc20_balances[token] = self.chain.erc20_balances.get(token, 0) + amount
        self.sent.append(tx)
        tx_hash = "0x" + f"{len(self.sent):064x}"
        self.receipts[tx_hash] = self.approval_status if is_approval else self.next_status
        if is_approval:
            self.chain.erc20_allowances[tx["to"].lower()] = 2**256 - 1
        return tx_hash

    def _consume_permit(self, data: bytes) -> None:
        commands, inputs, _deadline = decode(["bytes", "bytes[]", "uint256"], data[len(EXECUTE_SELECTOR):])
        for command, payload in zip(commands, inputs):
            if command != Commands.PERMIT2_PERMIT:
                continue
            permit, _signature = decode_permit_input(payload)
            key = (permit[0][0].lower(), permit[0][3])
            if key in self.used_nonces:
                raise CallReverted(
                    f"Gas estimation reverted: execution reverted: {INVALID_NONCE_SELECTOR}",
                    data=INVALID_NONCE_SELECTOR,
                )
            self.used_nonces.add(key)
            self.chain.permit2_nonce = max(self.chain.permit2_nonce, permit[0][3] + 1)

    async def wait_for_receipt(self, tx_hash: str) -> TxReceiptStatus:
        return self.receipts[tx_hash]


class RejectingSigner:
    def __init__(self, address: str) -> None:
        self.address = address
        self.calls = 0

    async def sign_typed_data(self, domain, types, primary_type, message) -> bytes:
        self.calls += 1
        raise RuntimeError("User rejected the request.")


@pytest.fixture
def eth_token() -> TokenConfig:
    return TokenConfig(symbol="ETH", address=ZERO_ADDRESS, decimals=18)


@pytest.fixture
def usdt_token() -> TokenConfig:
    return TokenConfig(symbol="USDT", address=USDT_ADDRESS, decimals=6)


@pytest.fixture
def account():
    return Account.from_key(PRIVATE_KEY)


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def quote_engine(fake_chain) -> QuoteEngine:
    return QuoteEngine(fake_chain, SEPOLIA.quoter, fee=POOL_FEE, tick_spacing=TICK_SPACING)


@pytest.fixture
def permit2_client(fake_chain) -> Permit2Client:
    return Permit2Client(fake_chain, SEPOLIA.permit2)


@pytest.fixture
def permit_signer(permit2_client) -> PermitSigner:
    return PermitSigner(permit2_client, validity_seconds=3600, now=lambda: NOW)


@pytest.fixture
def router() -> Router:
    return Router(SEPOLIA.universal_router)


@pytest.fixture
def signer(account) -> LocalAccountSigner:
    return LocalAccountSigner(account)


@pytest.fixture
def broadcaster(fake_chain) -> FakeBroadcaster:
    return FakeBroadcaster(fake_chain)


@pytest.fixture
def make_orchestrator(quote_engine, permit_signer, router, signer, broadcaster):
    def _make(**overrides: Any) -> SwapOrchestrator:
        kwargs: dict[str, Any] = {
            "quote_engine": quote_engine,
            "permit_signer": permit_signer,
            "router": router,
            "signer": signer,
            "broadcaster": broadcaster,
            "chain_id": SEPOLIA.chain_id,
            "slippage_bps": 50,
            "deadline_seconds": 3600,
            "now": lambda: NOW,
        }
        kwargs.update(overrides)
        return SwapOrchestrator(**kwargs)

    return _make
