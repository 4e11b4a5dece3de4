"""Universal Router command and Uniswap v4 action encoding.

Two layers are encoded here. The outer layer is the router's command
string (one byte per command) plus one ABI payload per command. One of
those commands, ``V4_SWAP``, carries the inner layer: the v4 action bytes
and their per-action payloads, executed by the pool manager in order.

Everything in this module is pure: identical inputs always produce
byte-identical output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union

from eth_abi import decode, encode

from v4swap.clients.uniswap_v4.currency import NATIVE_CURRENCY, is_native, pool_key_id_tuple, to_currency_id
from v4swap.models.swap import UINT128_MAX, PermitSingle, PoolKey, QuoteMode

# Router-recognized recipient placeholders.
MSG_SENDER = "0x0000000000000000000000000000000000000001"
ADDRESS_THIS = "0x0000000000000000000000000000000000000002"
# Amount placeholder meaning "whatever the open delta is".
OPEN_DELTA = 0

POOL_KEY_TYPE = "(bytes32,bytes32,uint24,int24,address)"
SWAP_SINGLE_PARAMS_TYPE = f"({POOL_KEY_TYPE},bool,uint128,uint128,bytes)"
PERMIT_SINGLE_TYPE = "((address,uint160,uint48,uint48),address,uint256)"


class EncodingError(ValueError):
    """Raised when a swap cannot be expressed as router commands."""


class Commands(IntEnum):
    SWEEP = 0x04
    PERMIT2_PERMIT = 0x0A
    UNWRAP_WETH = 0x0C
    V4_SWAP = 0x10


class Actions(IntEnum):
    SWAP_EXACT_IN_SINGLE = 0x06
    SWAP_EXACT_OUT_SINGLE = 0x08
    SETTLE_ALL = 0x0C
    TAKE = 0x0E
    TAKE_ALL = 0x0F


def _check_uint128(name: str, value: int) -> int:
    if not 0 <= value <= UINT128_MAX:
        raise EncodingError(f"{name} does not fit in uint128: {value}")
    return int(value)


# ---------------------------------------------------------------------------
# Inner v4 actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SwapExactInSingle:
    pool_key: PoolKey
    zero_for_one: bool
    amount_in: int
    amount_out_minimum: int
    hook_data: bytes = b""

    code = Actions.SWAP_EXACT_IN_SINGLE

    def encode(self) -> bytes:
        params = (
            pool_key_id_tuple(self.pool_key),
            self.zero_for_one,
            _check_uint128("amount_in", self.amount_in),
            _check_uint128("amount_out_minimum", self.amount_out_minimum),
            self.hook_data,
        )
        return encode([SWAP_SINGLE_PARAMS_TYPE], [params])


@dataclass(frozen=True)
class SwapExactOutSingle:
    pool_key: PoolKey
    zero_for_one: bool
    amount_out: int
    amount_in_maximum: int
    hook_data: bytes = b""

    code = Actions.SWAP_EXACT_OUT_SINGLE

    def encode(self) -> bytes:
        params = (
            pool_key_id_tuple(self.pool_key),
            self.zero_for_one,
            _check_uint128("amount_out", self.amount_out),
            _check_uint128("amount_in_maximum", self.amount_in_maximum),
            self.hook_data,
        )
        return encode([SWAP_SINGLE_PARAMS_TYPE], [params])


@dataclass(frozen=True)
class SettleAll:
    """Pay the pool manager what the swap owes in ``currency``, up to ``max_amount``."""

    currency: str
    max_amount: int

    code = Actions.SETTLE_ALL

    def encode(self) -> bytes:
        return encode(["bytes32", "uint256"], [to_currency_id(self.currency), int(self.max_amount)])


@dataclass(frozen=True)
class TakeAll:
    """Send the full credit in ``currency`` to the caller, at least ``min_amount``."""

    currency: str
    min_amount: int

    code = Actions.TAKE_ALL

    def encode(self) -> bytes:
        return encode(["bytes32", "uint256"], [to_currency_id(self.currency), int(self.min_amount)])


@dataclass(frozen=True)
class Take:
    currency: str
    recipient: str
    amount: int

    code = Actions.TAKE

    def encode(self) -> bytes:
        return encode(
            ["bytes32", "address", "uint256"],
            [to_currency_id(self.currency), self.recipient, int(self.amount)],
        )


V4Action = Union[SwapExactInSingle, SwapExactOutSingle, SettleAll, TakeAll, Take]


# ---------------------------------------------------------------------------
# Outer router commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Permit2Permit:
    permit: PermitSingle

    code = Commands.PERMIT2_PERMIT

    def encode(self) -> bytes:
        return encode([PERMIT_SINGLE_TYPE, "bytes"], [self.permit.abi_tuple(), self.permit.signature])


@dataclass(frozen=True)
class V4Swap:
    actions: tuple[V4Action, ...]

    code = Commands.V4_SWAP

    def action_bytes(self) -> bytes:
        return bytes(action.code for action in self.actions)

    def encode(self) -> bytes:
        return encode(["bytes", "bytes[]"], [self.action_bytes(), [action.encode() for action in self.actions]])


@dataclass(frozen=True)
class UnwrapWeth:
    recipient: str
    amount_min: int

    code = Commands.UNWRAP_WETH

    def encode(self) -> bytes:
        return encode(["address", "uint256"], [self.recipient, int(self.amount_min)])


@dataclass(frozen=True)
class Sweep:
    """Send the router's whole balance of ``token`` to ``recipient``."""

    token: str
    recipient: str
    amount_min: int = 0

    code = Commands.SWEEP

    def encode(self) -> bytes:
        return encode(["address", "address", "uint160"], [self.token, self.recipient, int(self.amount_min)])


RouterCommand = Union[Permit2Permit, V4Swap, UnwrapWeth, Sweep]


@dataclass(frozen=True)
class CommandPlan:
    commands: tuple[RouterCommand, ...]

    def command_bytes(self) -> bytes:
        return bytes(command.code for command in self.commands)

    def inputs(self) -> list[bytes]:
        return [command.encode() for command in self.commands]


# ---------------------------------------------------------------------------
# Swap recipes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SwapIntent:
    """A fully-bounded single-pool swap.

    ``amount`` is the exact side (input for exact-in, output for exact-out);
    ``limit`` is the opposite bound (minimum output, or maximum input).
    ``unwrap_native`` means the pool pays out the wrapped native token and
    the router must unwrap it for the caller.
    """

    mode: QuoteMode
    pool_key: PoolKey
    zero_for_one: bool
    amount: int
    limit: int
    permit: PermitSingle | None = None
    unwrap_native: bool = False

    @property
    def currency_in(self) -> str:
        return self.pool_key.currency0 if self.zero_for_one else self.pool_key.currency1

    @property
    def currency_out(self) -> str:
        return self.pool_key.currency1 if self.zero_for_one else self.pool_key.currency0

    @property
    def max_input(self) -> int:
        return self.amount if self.mode is QuoteMode.EXACT_IN else self.limit

    @property
    def min_output(self) -> int:
        return self.limit if self.mode is QuoteMode.EXACT_IN else self.amount


@dataclass(frozen=True)
class EncodedSwap:
    commands: bytes
    inputs: list[bytes] = field(default_factory=list)
    deadline: int = 0
    value: int = 0


def swap_deadline(now: float, window_seconds: int = 3600) -> int:
    return int(now) + int(window_seconds)


def build_swap_action(intent: SwapIntent) -> SwapExactInSingle | SwapExactOutSingle:
    if intent.mode is QuoteMode.EXACT_IN:
        return SwapExactInSingle(intent.pool_key, intent.zero_for_one, intent.amount, intent.limit)
    return SwapExactOutSingle(intent.pool_key, intent.zero_for_one, intent.amount, intent.limit)


def plan_swap(intent: SwapIntent) -> CommandPlan:
    """Pick the command recipe for ``intent``.

    ``[PERMIT2_PERMIT?] + V4_SWAP + [UNWRAP_WETH? | SWEEP?]`` where the swap
    carries ``[SWAP_*_SINGLE, SETTLE_ALL, TAKE_ALL]``, or ``TAKE`` to the
    router itself when the output is unwrapped afterwards. An exact-out sell
    of the native asset sends ``max_input`` as value; ``SWEEP`` returns what
    the swap did not consume.
    """
    if intent.amount <= 0:
        raise EncodingError(f"Swap amount must be positive: {intent.amount}")
    if is_native(intent.currency_in) and intent.permit is not None:
        raise EncodingError("Native-asset sells carry value, not a Permit2 permit")
    if intent.unwrap_native and is_native(intent.currency_out):
        raise EncodingError("Output is already the native asset, nothing to unwrap")

    actions: list[V4Action] = [build_swap_action(intent), SettleAll(intent.currency_in, intent.max_input)]
    if intent.unwrap_native:
        actions.append(Take(intent.currency_out, ADDRESS_THIS, OPEN_DELTA))
    else:
        actions.append(TakeAll(intent.currency_out, intent.min_output))

    commands: list[RouterCommand] = []
    if intent.permit is not None:
        commands.append(Permit2Permit(intent.permit))
    commands.append(V4Swap(tuple(actions)))
    if intent.unwrap_native:
        commands.append(UnwrapWeth(MSG_SENDER, intent.min_output))
    if is_native(intent.currency_in) and intent.mode is QuoteMode.EXACT_OUT:
        commands.append(Sweep(NATIVE_CURRENCY, MSG_SENDER))
    return CommandPlan(tuple(commands))


def encode_swap(intent: SwapIntent, deadline: int) -> EncodedSwap:
    plan = plan_swap(intent)
    value = intent.max_input if is_native(intent.currency_in) else 0
    return EncodedSwap(
        commands=plan.command_bytes(),
        inputs=plan.inputs(),
        deadline=int(deadline),
        value=value,
    )


# ---------------------------------------------------------------------------
# Decoding (diagnostics and tests)
# ---------------------------------------------------------------------------

_ACTION_TYPES: dict[Actions, list[str]] = {
    Actions.SWAP_EXACT_IN_SINGLE: [SWAP_SINGLE_PARAMS_TYPE],
    Actions.SWAP_EXACT_OUT_SINGLE: [SWAP_SINGLE_PARAMS_TYPE],
    Actions.SETTLE_ALL: ["bytes32", "uint256"],
    Actions.TAKE_ALL: ["bytes32", "uint256"],
    Actions.TAKE: ["bytes32", "address", "uint256"],
}


def decode_v4_swap_input(payload: bytes) -> tuple[bytes, list[bytes]]:
    actions, params = decode(["bytes", "bytes[]"], payload)
    if len(actions) != len(params):
        raise EncodingError(f"Action count {len(actions)} does not match payload count {len(params)}")
    return bytes(actions), [bytes(p) for p in params]


def decode_action(code: int, payload: bytes) -> tuple:
    try:
        types = _ACTION_TYPES[Actions(code)]
    except (KeyError, ValueError) as exc:
        raise EncodingError(f"Unknown v4 action 0x{code:02x}") from exc
    decoded = decode(types, payload)
    return decoded[0] if len(types) == 1 else tuple(decoded)


def decode_permit_input(payload: bytes) -> tuple[tuple, bytes]:
    permit, signature = decode([PERMIT_SINGLE_TYPE, "bytes"], payload)
    return permit, bytes(signature)


def decode_sweep_input(payload: bytes) -> tuple[str, str, int]:
    token, recipient, amount_min = decode(["address", "address", "uint160"], payload)
    return token, recipient, int(amount_min)
