from __future__ import annotations

from v4swap.clients.uniswap_v4.errors import (
    NonceStale,
    QuoteUnavailable,
    SignatureRejected,
    TransactionRejected,
    TransactionReverted,
    WalletNotConnected,
    classify_error,
)
from v4swap.clients.uniswap_v4.rpc import CallReverted, RPCError


def test_swap_errors_pass_through_unchanged():
    error = SignatureRejected("declined")
    assert classify_error(error) is error


def test_invalid_nonce_by_name_or_selector():
    assert isinstance(classify_error(RPCError("execution reverted: InvalidNonce()")), NonceStale)
    assert isinstance(classify_error(CallReverted("reverted", data="0x756688FE")), NonceStale)


def test_other_failures_become_transaction_rejected_with_message():
    classified = classify_error(RPCError("insufficient funds"))
    assert isinstance(classified, TransactionRejected)
    assert "insufficient funds" in classified.message
    assert classify_error(ValueError()).message == "ValueError"


def test_kinds_and_recoverability():
    assert QuoteUnavailable().kind == "quote_unavailable"
    assert QuoteUnavailable().recoverable is True
    assert NonceStale().recoverable is True
    assert WalletNotConnected().recoverable is False
    assert TransactionReverted().kind == "transaction_reverted"
    assert WalletNotConnected().message
