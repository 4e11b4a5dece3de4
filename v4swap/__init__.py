"""v4swap: Uniswap v4 swap transaction builder and quote engine."""

__version__ = "0.1.0"
