"""Permit2 allowance reads, ERC20 approval helpers and permit signing."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3

from v4swap.clients.uniswap_v4.errors import SignatureRejected, SwapError
from v4swap.clients.uniswap_v4.rpc import ChainReader
from v4swap.logging import log
from v4swap.models.swap import UINT48_MAX, UINT160_MAX, UINT256_MAX, PermitSingle

PERMIT2_ALLOWANCE = function_signature_to_4byte_selector("allowance(address,address,address)")
ERC20_ALLOWANCE = function_signature_to_4byte_selector("allowance(address,address)")
ERC20_APPROVE = function_signature_to_4byte_selector("approve(address,uint256)")

PERMIT2_DOMAIN_NAME = "Permit2"
PERMIT_SINGLE_TYPES: dict[str, list[dict[str, str]]] = {
    "PermitDetails": [
        {"name": "token", "type": "address"},
        {"name": "amount", "type": "uint160"},
        {"name": "expiration", "type": "uint48"},
        {"name": "nonce", "type": "uint48"},
    ],
    "PermitSingle": [
        {"name": "details", "type": "PermitDetails"},
        {"name": "spender", "type": "address"},
        {"name": "sigDeadline", "type": "uint256"},
    ],
}

SignTypedDataFn = Callable[[dict[str, Any], dict[str, Any], str, dict[str, Any]], Awaitable[bytes]]


class Permit2Error(Exception):
    """Raised on Permit2 operations failures."""


@dataclass(frozen=True)
class Permit2Allowance:
    amount: int
    expiration: int
    nonce: int

    def covers(self, amount: int, now: int) -> bool:
        return self.amount >= amount and self.expiration > now


@dataclass(frozen=True)
class PermitTypedData:
    domain: dict[str, Any]
    types: dict[str, list[dict[str, str]]]
    primary_type: str
    message: dict[str, Any]


def build_permit_typed_data(
    token: str,
    amount: int,
    expiration: int,
    nonce: int,
    spender: str,
    sig_deadline: int,
    chain_id: int,
    permit2_address: str,
) -> PermitTypedData:
    if not 0 <= amount <= UINT160_MAX:
        raise Permit2Error(f"Permit amount does not fit in uint160: {amount}")
    if not 0 <= expiration <= UINT48_MAX or not 0 <= nonce <= UINT48_MAX:
        raise Permit2Error(f"Permit expiration/nonce out of uint48 range: {expiration}/{nonce}")
    if not 0 <= sig_deadline <= UINT256_MAX:
        raise Permit2Error(f"Permit signature deadline out of range: {sig_deadline}")
    return PermitTypedData(
        domain={
            "name": PERMIT2_DOMAIN_NAME,
            "chainId": int(chain_id),
            "verifyingContract": Web3.to_checksum_address(permit2_address),
        },
        types=PERMIT_SINGLE_TYPES,
        primary_type="PermitSingle",
        message={
            "details": {
                "token": Web3.to_checksum_address(token),
                "amount": int(amount),
                "expiration": int(expiration),
                "nonce": int(nonce),
            },
            "spender": Web3.to_checksum_address(spender),
            "sigDeadline": int(sig_deadline),
        },
    )


class Permit2Client:
    """Reads Permit2 and ERC20 allowance state."""

    def __init__(self, reader: ChainReader, permit2_address: str) -> None:
        self.reader = reader
        self.address = Web3.to_checksum_address(permit2_address)

    async def get_allowance(self, owner: str, token: str, spender: str) -> Permit2Allowance:
        data = PERMIT2_ALLOWANCE + encode(
            ["address", "address", "address"],
            [
                Web3.to_checksum_address(owner),
                Web3.to_checksum_address(token),
                Web3.to_checksum_address(spender),
            ],
        )
        try:
            raw = await self.reader.call(self.address, data)
            amount, expiration, nonce = decode(["uint160", "uint48", "uint48"], raw)
            return Permit2Allowance(amount=int(amount), expiration=int(expiration), nonce=int(nonce))
        except Exception as exc:
            raise Permit2Error(f"Failed to read Permit2 allowance: {exc}") from exc

    async def erc20_allowance(self, token: str, owner: str) -> int:
        """Allowance granted by ``owner`` to Permit2 on ``token``."""
        data = ERC20_ALLOWANCE + encode(
            ["address", "address"], [Web3.to_checksum_address(owner), self.address]
        )
        try:
            raw = await self.reader.call(Web3.to_checksum_address(token), data)
            (allowance,) = decode(["uint256"], raw)
            return int(allowance)
        except Exception as exc:
            raise Permit2Error(f"Failed to read ERC20 allowance token={token}: {exc}") from exc

    async def needs_erc20_approval(self, owner: str, token: str, min_allowance: int | None = None) -> bool:
        current_allowance = await self.erc20_allowance(token, owner)
        threshold = int(min_allowance) if min_allowance is not None else (2**200)
        return current_allowance < threshold

    def build_erc20_approve_data(self, amount: int | None = None) -> bytes:
        max_amount = int(amount) if amount is not None else UINT256_MAX
        return ERC20_APPROVE + encode(["address", "uint256"], [self.address, max_amount])


class PermitSigner:
    """Builds and signs single-token Permit2 authorizations."""

    def __init__(
        self,
        permit2: Permit2Client,
        validity_seconds: int = 3600,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.permit2 = permit2
        self.validity_seconds = int(validity_seconds)
        self._now = now

    async def build_permit(
        self,
        token: str,
        amount: int,
        spender: str,
        chain_id: int,
        signer_address: str,
        sign_fn: SignTypedDataFn,
    ) -> PermitSingle:
        if not 0 < amount <= UINT160_MAX:
            raise Permit2Error(f"Permit amount does not fit in uint160: {amount}")

        # Fresh per attempt: never reuse a nonce read for an earlier permit.
        allowance = await self.permit2.get_allowance(signer_address, token, spender)
        deadline = int(self._now()) + self.validity_seconds
        typed = build_permit_typed_data(
            token=token,
            amount=amount,
            expiration=deadline,
            nonce=allowance.nonce,
            spender=spender,
            sig_deadline=deadline,
            chain_id=chain_id,
            permit2_address=self.permit2.address,
        )

        try:
            signature = await sign_fn(typed.domain, typed.types, typed.primary_type, typed.message)
        except SwapError:
            raise
        except Exception as exc:
            raise SignatureRejected(f"Permit signature was not produced: {exc}") from exc
        signature = bytes(signature)
        if len(signature) != 65:
            raise SignatureRejected(f"Signer returned a {len(signature)}-byte signature, expected 65")

        log.info(f"Signed Permit2 permit token={token} spender={spender} nonce={allowance.nonce} deadline={deadline}")
        return PermitSingle(
            token=typed.message["details"]["token"],
            amount=int(amount),
            expiration=deadline,
            nonce=allowance.nonce,
            spender=typed.message["spender"],
            sig_deadline=deadline,
            signature=signature,
        )
