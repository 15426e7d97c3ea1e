"""
Tests for the asset registry and base-unit conversion.
"""

from decimal import Decimal

import pytest

from swapflow.core.swap import UnsupportedAssetError
from swapflow.core.swap.assets import (
    ASSETS,
    NATIVE_ASSET_ADDRESS,
    currency_to_unit,
    format_address,
    get_asset,
    resolve_chain_id,
    token_address,
    unit_to_currency,
)


class TestRegistry:
    def test_resolves_chain_ids_per_network(self):
        assert resolve_chain_id("ETH", "mainnet") == 1
        assert resolve_chain_id("ETH", "testnet") == 11155111
        assert resolve_chain_id("PUSDC", "mainnet") == 137
        assert resolve_chain_id("SOL", "mainnet") == 1151111081099710

    def test_native_assets_use_placeholder_address(self):
        assert token_address("ETH", "mainnet") == NATIVE_ASSET_ADDRESS
        assert token_address("SOL", "mainnet") == "11111111111111111111111111111111"

    def test_tokens_use_network_contract(self):
        assert token_address("USDC", "mainnet") == "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
        assert token_address("USDC", "testnet") == "0x1c7d4b196cb0c7b01d743fbc6116a902379c7238"

    @pytest.mark.parametrize(
        "symbol,network",
        [
            ("DOGE", "mainnet"),   # unknown symbol
            ("USDT", "testnet"),   # token without a testnet contract
            ("SOL", "testnet"),    # chain not routable on testnet
            ("BTC", "mainnet"),    # chain not routable at all
        ],
    )
    def test_unregistered_pairs_raise(self, symbol, network):
        with pytest.raises(UnsupportedAssetError) as exc_info:
            resolve_chain_id(symbol, network)
        assert exc_info.value.asset == symbol
        assert exc_info.value.context.recoverable is False

    def test_every_asset_has_decimals(self):
        for symbol in ASSETS:
            assert get_asset(symbol).decimals > 0


class TestConversion:
    def test_currency_to_unit_scales_by_decimals(self):
        assert currency_to_unit(get_asset("ETH"), "1") == 10 ** 18
        assert currency_to_unit(get_asset("USDC"), "2.5") == 2_500_000

    def test_currency_to_unit_truncates_dust(self):
        assert currency_to_unit(get_asset("USDC"), "0.0000019") == 1

    def test_large_values_keep_every_digit(self):
        # 30 significant digits, beyond the default decimal context
        assert currency_to_unit(get_asset("ETH"), "123456789012.123456789012345678") == (
            123456789012123456789012345678
        )

    def test_unit_to_currency(self):
        assert unit_to_currency(get_asset("USDC"), 1_234_567) == Decimal("1.234567")

    def test_invalid_amount(self):
        with pytest.raises(ValueError):
            currency_to_unit(get_asset("ETH"), "lots")


def test_format_address_checksums_evm_addresses():
    lower = "0x52908400098527886e0f7030069857d2e4169ee7"
    assert format_address("polygon", lower) == "0x52908400098527886E0F7030069857D2E4169EE7"
    assert format_address("solana", "So1anaAddre55") == "So1anaAddre55"
