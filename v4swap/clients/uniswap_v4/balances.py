"""Native and ERC20 balance lookups."""

from __future__ import annotations

import asyncio
from typing import Iterable

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3

from v4swap.clients.uniswap_v4.rpc import ChainReader
from v4swap.logging import log
from v4swap.models.chain import TokenConfig

ERC20_BALANCE_OF = function_signature_to_4byte_selector("balanceOf(address)")


class BalanceReader:
    def __init__(self, reader: ChainReader) -> None:
        self.reader = reader

    async def get_balance(self, owner: str, token: TokenConfig) -> int:
        if token.is_native:
            return await self.reader.get_balance(owner)
        data = ERC20_BALANCE_OF + encode(["address"], [Web3.to_checksum_address(owner)])
        raw = await self.reader.call(Web3.to_checksum_address(token.address), data)
        (balance,) = decode(["uint256"], raw)
        return int(balance)

    async def get_balances(self, owner: str, tokens: Iterable[TokenConfig]) -> dict[str, int | None]:
        """Balances keyed by symbol. A failed lookup yields ``None`` for that token only."""
        tokens = list(tokens)
        results = await asyncio.gather(
            *(self.get_balance(owner, token) for token in tokens),
            return_exceptions=True,
        )
        balances: dict[str, int | None] = {}
        for token, result in zip(tokens, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                log.warning(f"Balance lookup failed owner={owner} token={token.symbol}: {result}")
                balances[token.symbol] = None
            else:
                balances[token.symbol] = result
        return balances


ERC20_CLAIMABLE = function_signature_to_4byte_selector("claimable(address)")
ERC20_CLAIM = function_signature_to_4byte_selector("claim(uint256)")


class TokenFaucet:
    """Test-token faucet exposed by the testnet USDT contract."""

    def __init__(self, reader: ChainReader) -> None:
        self.reader = reader

    async def claimable(self, token: str, owner: str) -> int:
        data = ERC20_CLAIMABLE + encode(["address"], [Web3.to_checksum_address(owner)])
        raw = await self.reader.call(Web3.to_checksum_address(token), data)
        (amount,) = decode(["uint256"], raw)
        return int(amount)

    @staticmethod
    def build_claim_data(amount: int) -> bytes:
        return ERC20_CLAIM + encode(["uint256"], [int(amount)])
