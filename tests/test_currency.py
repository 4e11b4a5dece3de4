from __future__ import annotations

import pytest

from v4swap.clients.uniswap_v4 import quote as quote_module
from v4swap.clients.uniswap_v4.currency import (
    NATIVE_CURRENCY,
    build_pool_key,
    is_native,
    resolve,
    sort_currencies,
    to_currency_id,
)
from v4swap.clients.uniswap_v4.encoding import Actions, decode_action, decode_v4_swap_input
from v4swap.models.swap import PoolKey, SwapParams

from tests.conftest import USDT_ADDRESS

ADDRESSES = [
    NATIVE_CURRENCY,
    USDT_ADDRESS,
    "0xfff9976782d46cc05630d1f6ebab18b2324d6b14",
    "0x0000000000000000000000000000000000000001",
    "0x8000000000000000000000000000000000000000",
    "0x7fffffffffffffffffffffffffffffffffffffff",
]


def _raw(address: str) -> bytes:
    return bytes.fromhex(address[2:])


@pytest.mark.parametrize("a", ADDRESSES)
@pytest.mark.parametrize("b", ADDRESSES)
def test_resolve_orders_by_raw_bytes_and_flips_direction(a, b):
    if a == b:
        with pytest.raises(ValueError):
            resolve(a, b)
        return
    forward = resolve(a, b)
    backward = resolve(b, a)
    assert _raw(forward.currency0) < _raw(forward.currency1)
    assert (forward.currency0, forward.currency1) == (backward.currency0, backward.currency1)
    assert forward.zero_for_one == (not backward.zero_for_one)
    assert forward.zero_for_one == (_raw(a) == _raw(forward.currency0))


def test_sort_is_case_insensitive_and_checksums():
    upper = "0xFFF9976782D46CC05630D1F6EBAB18B2324D6B14"
    currency0, currency1 = sort_currencies(upper, USDT_ADDRESS)
    assert currency0.lower() == USDT_ADDRESS
    assert currency1 == "0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14"


def test_native_currency_always_sorts_first():
    currency0, _ = sort_currencies(USDT_ADDRESS, NATIVE_CURRENCY)
    assert is_native(currency0)


def test_currency_id_is_left_padded_address():
    currency_id = to_currency_id(USDT_ADDRESS)
    assert len(currency_id) == 32
    assert currency_id[:12] == b"\x00" * 12
    assert currency_id[12:] == _raw(USDT_ADDRESS)


def test_pool_key_rejects_misordered_currencies():
    with pytest.raises(ValueError):
        PoolKey(currency0=USDT_ADDRESS, currency1=NATIVE_CURRENCY, fee=10_000, tick_spacing=200, hooks=NATIVE_CURRENCY)
    with pytest.raises(ValueError):
        PoolKey(currency0=NATIVE_CURRENCY, currency1=USDT_ADDRESS, fee=2**24, tick_spacing=200, hooks=NATIVE_CURRENCY)


def test_build_pool_key_direction_for_both_sides():
    key_sell_eth, sell_eth = build_pool_key(NATIVE_CURRENCY, USDT_ADDRESS, 10_000, 200)
    key_buy_eth, buy_eth = build_pool_key(USDT_ADDRESS, NATIVE_CURRENCY, 10_000, 200)
    assert key_sell_eth == key_buy_eth
    assert sell_eth is True
    assert buy_eth is False


@pytest.mark.asyncio
async def test_quote_and_execution_share_one_pool_key(monkeypatch, make_orchestrator, fake_chain, usdt_token, eth_token):
    built: list[tuple[PoolKey, bool]] = []
    real_build_pool_key = quote_module.build_pool_key

    def _spy(*args, **kwargs):
        result = real_build_pool_key(*args, **kwargs)
        built.append(result)
        return result

    monkeypatch.setattr(quote_module, "build_pool_key", _spy)
    orchestrator = make_orchestrator()
    attempt = await orchestrator.run(SwapParams(sell=usdt_token, buy=eth_token, amount=3000 * 10**6))

    assert attempt.state.value == "completed"
    # One construction for execution, one for the quote; both identical.
    assert len(built) == 2
    assert built[0] == built[1] == (attempt.pool_key, attempt.zero_for_one)

    quoted_key = fake_chain.quote_calls[0]["pool_key"]
    assert quoted_key[0].lower() == attempt.pool_key.currency0.lower()
    assert fake_chain.quote_calls[0]["zero_for_one"] is attempt.zero_for_one is False

    actions, params = decode_v4_swap_input(attempt.inputs[-1])
    pool_key_ids, zero_for_one, *_ = decode_action(Actions.SWAP_EXACT_IN_SINGLE, params[0])
    assert pool_key_ids[0] == to_currency_id(attempt.pool_key.currency0)
    assert pool_key_ids[1] == to_currency_id(attempt.pool_key.currency1)
    assert zero_for_one is False
