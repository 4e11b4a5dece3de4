from __future__ import annotations

import pytest
from pydantic import ValidationError

from v4swap.models.chain import DEFAULT_PERMIT2, ChainConfig, TokenConfig
from v4swap.settings.config import Settings, get_chain_config


def _settings(**updates) -> Settings:
    return Settings().model_copy(update=updates)


def test_chain_lookup_by_name_and_id():
    assert get_chain_config("Sepolia").chain_id == 11155111
    assert get_chain_config(11155111).name == "sepolia"
    assert get_chain_config(424242) is None
    assert get_chain_config(None) is None


def test_default_settings_target_sepolia_pool():
    cfg = _settings(chain="sepolia", chain_id=None).chain_config()
    assert cfg.universal_router.lower() == "0x3a9d48ab9751398bbfa63ad67599bb04e4bdf98b"
    assert cfg.quoter == "0x61B3f2011A92d183C7dbaDBdA940a7555Ccf9227"
    assert cfg.permit2 == DEFAULT_PERMIT2
    assert _settings(pool_fee=10_000, pool_tick_spacing=200).pool_key_config()["tick_spacing"] == 200


def test_address_overrides_are_revalidated():
    quoter = "0x1111111111111111111111111111111111111111"
    cfg = _settings(chain="sepolia", chain_id=None, quoter_address=quoter).chain_config()
    assert cfg.quoter == quoter

    with pytest.raises(ValidationError):
        _settings(chain="sepolia", chain_id=None, quoter_address="0x1234").chain_config()


def test_unknown_chain_requires_explicit_router():
    with pytest.raises(ValueError):
        _settings(chain="devnet", chain_id=None, universal_router_address=None).chain_config()

    cfg = _settings(
        chain="devnet",
        chain_id=31337,
        universal_router_address="0x2222222222222222222222222222222222222222",
    ).chain_config()
    assert cfg.chain_id == 31337
    assert cfg.permit2 == DEFAULT_PERMIT2


def test_explorer_urls_and_validation():
    cfg = get_chain_config("sepolia")
    assert cfg.explorer_tx_url("0xabc") == "https://sepolia.etherscan.io/tx/0xabc"
    with pytest.raises(ValidationError):
        ChainConfig(name="x", chain_id=1, universal_router="nope", permit2=DEFAULT_PERMIT2)
    with pytest.raises(ValidationError):
        ChainConfig(
            name="x", chain_id=1, universal_router=DEFAULT_PERMIT2, permit2=DEFAULT_PERMIT2, explorer_base_url="ftp://x"
        )


def test_token_table_marks_native_asset():
    tokens = _settings(native_symbol="eth", usdt_decimals=6).tokens()
    assert tokens["ETH"].is_native
    assert not tokens["USDT"].is_native
    assert tokens["USDT"].unit == 10**6
    with pytest.raises(ValidationError):
        TokenConfig(symbol="BAD", address=DEFAULT_PERMIT2, decimals=78)
