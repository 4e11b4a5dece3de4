"""Runtime settings."""

from v4swap.settings.config import Settings, get_chain_config, settings

__all__ = ["Settings", "get_chain_config", "settings"]
