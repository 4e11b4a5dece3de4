"""Uniswap v4 swap client package."""

from v4swap.clients.uniswap_v4.client import UniswapV4Client, UniswapV4ClientError
from v4swap.clients.uniswap_v4.currency import build_pool_key, resolve, sort_currencies
from v4swap.clients.uniswap_v4.encoding import (
    Actions,
    CommandPlan,
    Commands,
    EncodedSwap,
    SwapIntent,
    encode_swap,
    plan_swap,
)
from v4swap.clients.uniswap_v4.errors import (
    NonceStale,
    QuoteUnavailable,
    ReceiptPending,
    SignatureRejected,
    SwapDeclined,
    SwapError,
    TransactionRejected,
    TransactionReverted,
    WalletNotConnected,
    classify_error,
)
from v4swap.clients.uniswap_v4.permit2 import Permit2Client, PermitSigner
from v4swap.clients.uniswap_v4.quote import QuoteEngine

__all__ = [
    "Actions",
    "CommandPlan",
    "Commands",
    "EncodedSwap",
    "NonceStale",
    "Permit2Client",
    "PermitSigner",
    "QuoteEngine",
    "QuoteUnavailable",
    "ReceiptPending",
    "SignatureRejected",
    "SwapDeclined",
    "SwapError",
    "SwapIntent",
    "TransactionRejected",
    "TransactionReverted",
    "UniswapV4Client",
    "UniswapV4ClientError",
    "WalletNotConnected",
    "build_pool_key",
    "classify_error",
    "encode_swap",
    "plan_swap",
    "resolve",
    "sort_currencies",
]
