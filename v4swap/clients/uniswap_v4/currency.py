"""Canonical currency ordering for Uniswap v4 pool keys."""

from __future__ import annotations

from dataclasses import dataclass

from web3 import Web3

from v4swap.models.chain import ZERO_ADDRESS
from v4swap.models.swap import PoolKey

NATIVE_CURRENCY = ZERO_ADDRESS


@dataclass(frozen=True)
class ResolvedPair:
    currency0: str
    currency1: str
    zero_for_one: bool


def normalize_address(address: str) -> str:
    return Web3.to_checksum_address(address)


def is_native(address: str) -> bool:
    return address.lower() == NATIVE_CURRENCY


def _address_bytes(address: str) -> bytes:
    raw = bytes.fromhex(address[2:] if address.startswith(("0x", "0X")) else address)
    if len(raw) != 20:
        raise ValueError(f"Address must be 20 bytes: {address}")
    return raw


def to_currency_id(address: str) -> bytes:
    """32-byte left-zero-padded currency id."""
    return _address_bytes(address).rjust(32, b"\x00")


def sort_currencies(a: str, b: str) -> tuple[str, str]:
    """Order two addresses ascending by their raw bytes."""
    a_raw, b_raw = _address_bytes(a), _address_bytes(b)
    if a_raw == b_raw:
        raise ValueError(f"Pool currencies must differ: {a}")
    if a_raw < b_raw:
        return normalize_address(a), normalize_address(b)
    return normalize_address(b), normalize_address(a)


def resolve(token_in: str, token_out: str) -> ResolvedPair:
    currency0, currency1 = sort_currencies(token_in, token_out)
    zero_for_one = _address_bytes(token_in) == _address_bytes(currency0)
    return ResolvedPair(currency0=currency0, currency1=currency1, zero_for_one=zero_for_one)


def build_pool_key(
    token_in: str,
    token_out: str,
    fee: int,
    tick_spacing: int,
    hooks: str = NATIVE_CURRENCY,
) -> tuple[PoolKey, bool]:
    """Pool key and swap direction for a trade of ``token_in`` into ``token_out``.

    Quoting and execution both go through here so the two paths can never
    disagree on which side of the pool is being traded.
    """
    pair = resolve(token_in, token_out)
    key = PoolKey(
        currency0=pair.currency0,
        currency1=pair.currency1,
        fee=int(fee),
        tick_spacing=int(tick_spacing),
        hooks=normalize_address(hooks),
    )
    return key, pair.zero_for_one


def pool_key_tuple(key: PoolKey) -> tuple[str, str, int, int, str]:
    """Address-typed tuple as taken by the quoter."""
    return (key.currency0, key.currency1, key.fee, key.tick_spacing, key.hooks)


def pool_key_id_tuple(key: PoolKey) -> tuple[bytes, bytes, int, int, str]:
    """CurrencyId-typed tuple as taken by router swap actions."""
    return (to_currency_id(key.currency0), to_currency_id(key.currency1), key.fee, key.tick_spacing, key.hooks)


def pool_currency(address: str, wrapped_native: str | None = None) -> str:
    """Currency the pool actually holds for ``address``."""
    if wrapped_native and is_native(address):
        return wrapped_native
    return address
