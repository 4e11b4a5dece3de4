"""Swap execution pipeline."""
