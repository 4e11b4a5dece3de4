"""Typed models for chains, tokens and swap attempts."""
