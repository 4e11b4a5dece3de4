"""Slippage bounds and price-impact math."""

from __future__ import annotations

from fractions import Fraction

BPS_DENOMINATOR = 10_000


class SlippageError(ValueError):
    """Raised when invalid slippage values are supplied."""


def _check_bps(slippage_bps: int) -> None:
    if slippage_bps < 0 or slippage_bps > BPS_DENOMINATOR:
        raise SlippageError("slippage_bps must be in [0, 10000]")


def calculate_min_out(expected_out: int, slippage_bps: int) -> int:
    """Return minimum acceptable output amount using basis-points slippage."""
    if expected_out < 0:
        raise SlippageError("expected_out must be non-negative")
    _check_bps(slippage_bps)
    return expected_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def calculate_max_in(expected_in: int, slippage_bps: int) -> int:
    """Return maximum acceptable input amount, rounded up."""
    if expected_in < 0:
        raise SlippageError("expected_in must be non-negative")
    _check_bps(slippage_bps)
    return -(-expected_in * (BPS_DENOMINATOR + slippage_bps) // BPS_DENOMINATOR)


def price(sell_amount: int, sell_decimals: int, buy_amount: int, buy_decimals: int) -> Fraction | None:
    """Buy units per sell unit, exact. ``None`` when the sell side is zero."""
    if sell_amount == 0:
        return None
    return Fraction(buy_amount, 10**buy_decimals) / Fraction(sell_amount, 10**sell_decimals)


def slippage_percent(execution_price: Fraction | None, baseline_price: Fraction | None) -> float | None:
    """Relative deviation of the execution price from the baseline, in percent."""
    if execution_price is None or baseline_price is None or baseline_price == 0:
        return None
    return float(abs(execution_price - baseline_price) / baseline_price * 100)
