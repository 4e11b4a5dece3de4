"""Swap error taxonomy and classification of lower-level failures."""

from __future__ import annotations

from v4swap.clients.uniswap_v4.rpc import ReceiptTimeout

# Custom error selector of Permit2's `InvalidNonce()`.
INVALID_NONCE_SELECTOR = "0x756688fe"
_NONCE_MARKERS = ("invalidnonce", INVALID_NONCE_SELECTOR[2:])


class SwapError(Exception):
    """Base class for failures that end a swap attempt."""

    kind = "swap_error"
    recoverable = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.kind)

    @property
    def message(self) -> str:
        return str(self)


class WalletNotConnected(SwapError):
    """Raised when no signer or sender address is available."""

    kind = "wallet_not_connected"


class QuoteUnavailable(SwapError):
    """Raised when the pool cannot price the requested trade."""

    kind = "quote_unavailable"
    recoverable = True


class SwapDeclined(SwapError):
    """Raised when the caller does not confirm the quoted trade."""

    kind = "swap_declined"
    recoverable = True


class SignatureRejected(SwapError):
    """Raised when the signer declines to sign the permit."""

    kind = "signature_rejected"
    recoverable = True


class NonceStale(SwapError):
    """Raised when Permit2 rejects a permit built from an outdated nonce."""

    kind = "nonce_stale"
    recoverable = True


class TransactionRejected(SwapError):
    """Raised when the node refuses to accept the transaction."""

    kind = "transaction_rejected"
    recoverable = True


class ReceiptPending(SwapError):
    """Raised when a broadcast transaction was not mined within the wait window."""

    kind = "receipt_pending"


class TransactionReverted(SwapError):
    """Raised when the transaction was mined with a failed status."""

    kind = "transaction_reverted"


def is_invalid_nonce(exc: BaseException) -> bool:
    text = f"{exc!r} {exc} {getattr(exc, 'data', '') or ''}".lower()
    return any(marker in text for marker in _NONCE_MARKERS)


def classify_error(exc: BaseException) -> SwapError:
    """Map any failure raised while executing an attempt onto the taxonomy."""
    if isinstance(exc, SwapError):
        return exc
    if isinstance(exc, ReceiptTimeout):
        return ReceiptPending(
            f"Transaction {exc.tx_hash} was broadcast but not mined in time; its outcome is still pending: {exc}"
        )
    if is_invalid_nonce(exc):
        return NonceStale(f"Permit nonce is stale, start a new swap: {exc}")
    return TransactionRejected(str(exc) or exc.__class__.__name__)
