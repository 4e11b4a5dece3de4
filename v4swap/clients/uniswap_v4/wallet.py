"""Signing and broadcast capabilities backed by a local private key."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol

from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from web3 import Web3

from v4swap.clients.uniswap_v4.errors import SignatureRejected, TransactionRejected
from v4swap.clients.uniswap_v4.gas import GasManager
from v4swap.clients.uniswap_v4.rpc import RPC
from v4swap.logging import log

_DOMAIN_FIELD_TYPES = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
    ("salt", "bytes32"),
)


class TxReceiptStatus(str, Enum):
    SUCCESS = "success"
    REVERTED = "reverted"


class TypedDataSigner(Protocol):
    address: str

    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, Any],
        primary_type: str,
        message: dict[str, Any],
    ) -> bytes: ...


class Broadcaster(Protocol):
    async def send_transaction(self, tx: dict[str, Any]) -> str: ...

    async def wait_for_receipt(self, tx_hash: str) -> TxReceiptStatus: ...


def eip712_domain_type(domain: dict[str, Any]) -> list[dict[str, str]]:
    return [{"name": name, "type": type_} for name, type_ in _DOMAIN_FIELD_TYPES if name in domain]


class LocalAccountSigner:
    """EIP-712 signer over an ``eth_account`` local account."""

    def __init__(self, account: LocalAccount) -> None:
        self.account = account
        self.address = Web3.to_checksum_address(account.address)

    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, Any],
        primary_type: str,
        message: dict[str, Any],
    ) -> bytes:
        full_message = {
            "types": {"EIP712Domain": eip712_domain_type(domain), **types},
            "primaryType": primary_type,
            "domain": domain,
            "message": message,
        }
        try:
            signable = encode_typed_data(full_message=full_message)
            signed = self.account.sign_message(signable)
        except Exception as exc:
            raise SignatureRejected(f"Failed to sign {primary_type}: {exc}") from exc
        return bytes(signed.signature)


class Web3Broadcaster:
    """Builds, signs and sends EIP-1559 transactions for a local account."""

    def __init__(
        self,
        rpc: RPC,
        account: LocalAccount,
        gas: GasManager,
        chain_id: int,
        gas_limit: int = 300_000,
        receipt_timeout: float = 180,
        poll_latency: float = 2.0,
    ) -> None:
        self.rpc = rpc
        self.account = account
        self.address = Web3.to_checksum_address(account.address)
        self.gas = gas
        self.chain_id = int(chain_id)
        self.gas_limit = int(gas_limit)
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        value = int(tx.get("value", 0))
        nonce = await self.rpc.nonce(self.address)
        gas_quote = await self.gas.aggressive_fast(int(tx.get("gas") or self.gas_limit))
        if not await self.gas.has_balance_for_gas(self.address, gas_quote, value=value):
            raise TransactionRejected("Insufficient native token balance for gas and value")

        full_tx = {
            "from": self.address,
            "to": Web3.to_checksum_address(tx["to"]),
            "data": tx["data"],
            "value": value,
            "nonce": nonce,
            "chainId": self.chain_id,
            **gas_quote.to_tx_params(),
        }
        # Node-side simulation: a reverting call fails here, before broadcast.
        estimate = await self.rpc.estimate_gas({k: v for k, v in full_tx.items() if k != "gas"})
        full_tx["gas"] = max(estimate * 12 // 10, 21_000)

        signed = self.account.sign_transaction(full_tx)
        raw_tx = getattr(signed, "rawTransaction", None) or getattr(signed, "raw_transaction", None)
        if raw_tx is None:
            raise TransactionRejected("Signed transaction has no raw payload")
        tx_hash = await self.rpc.send_raw(raw_tx)
        log.info(f"Broadcasted tx hash={tx_hash} nonce={nonce} to={full_tx['to']} value={value}")
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> TxReceiptStatus:
        receipt = await self.rpc.wait_for_receipt(tx_hash, timeout=self.receipt_timeout, poll_latency=self.poll_latency)
        status = int(receipt.get("status", 0))
        log.info(f"Receipt tx hash={tx_hash} status={status} block={receipt.get('blockNumber')}")
        return TxReceiptStatus.SUCCESS if status == 1 else TxReceiptStatus.REVERTED
