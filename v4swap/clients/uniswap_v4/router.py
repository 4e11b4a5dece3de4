"""Universal Router transaction helper."""

from __future__ import annotations

from typing import Any

from web3 import Web3

from v4swap.clients.uniswap_v4.encoding import EncodedSwap
from v4swap.settings.config import UNIVERSAL_ROUTER_EXECUTE_ABI


class Router:
    def __init__(self, address: str, contract=None) -> None:
        self.contract = contract or Web3().eth.contract(
            address=Web3.to_checksum_address(address), abi=UNIVERSAL_ROUTER_EXECUTE_ABI
        )

    @property
    def address(self) -> str:
        return str(self.contract.address)

    def encode_execute(self, commands: bytes, inputs: list[bytes], deadline: int | None = None) -> str:
        args = [commands, inputs] if deadline is None else [commands, inputs, int(deadline)]
        if hasattr(self.contract, "encode_abi"):
            return self.contract.encode_abi("execute", args=args)
        return self.contract.encodeABI(fn_name="execute", args=args)

    def build_swap_call(self, encoded: EncodedSwap) -> dict[str, Any]:
        """Unsigned ``{to, data, value}`` for the broadcast capability."""
        return {
            "to": self.address,
            "data": self.encode_execute(encoded.commands, encoded.inputs, encoded.deadline),
            "value": int(encoded.value),
        }
