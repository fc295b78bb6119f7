"""
test_registry.py - Unit tests for registry.py
"""

import pytest
from datetime import datetime

from stableledger import (
    CollateralRegistry, StaticPriceFeed, OracleAdapter,
    TokenNotAllowed, TokenAddressesAndPriceFeedAddressesMustBeSameLength,
    to_base_units,
)
from tests.fake_view import FakeClock


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1))


@pytest.fixture
def registry(clock):
    eth = StaticPriceFeed(clock, 2000_00000000)
    btc = StaticPriceFeed(clock, 1000_00000000)
    return CollateralRegistry(["WETH", "WBTC"], [eth, btc], clock)


class TestCollateralRegistry:
    """Tests for CollateralRegistry."""

    def test_assets_in_order(self, registry):
        assert registry.assets == ("WETH", "WBTC")
        assert len(registry) == 2

    def test_membership(self, registry):
        assert "WETH" in registry
        assert registry.is_allowed("WBTC")
        assert not registry.is_allowed("DSC")

    def test_require_unknown_raises(self, registry):
        with pytest.raises(TokenNotAllowed) as exc_info:
            registry.require("DSC")
        assert exc_info.value.asset == "DSC"

    def test_require_returns_config(self, registry):
        config = registry.require("WETH")
        assert config.asset == "WETH"
        assert registry.price_feed("WETH") is config.price_feed

    def test_adapter(self, registry):
        adapter = registry.adapter("WBTC")
        assert isinstance(adapter, OracleAdapter)
        assert adapter.to_usd_value(to_base_units(2)) == to_base_units(2000)

    def test_adapter_unknown_raises(self, registry):
        with pytest.raises(TokenNotAllowed):
            registry.adapter("DOGE")

    def test_length_mismatch(self, clock):
        with pytest.raises(TokenAddressesAndPriceFeedAddressesMustBeSameLength):
            CollateralRegistry(["WETH"], [], clock)

    def test_duplicate_asset(self, clock):
        feed = StaticPriceFeed(clock, 1)
        with pytest.raises(ValueError, match="twice"):
            CollateralRegistry(["WETH", "WETH"], [feed, feed], clock)

    def test_missing_feed_rejected(self, clock):
        with pytest.raises(ValueError, match="no price feed"):
            CollateralRegistry(["WETH"], [None], clock)

    def test_empty_registry(self, clock):
        registry = CollateralRegistry([], [], clock)
        assert registry.assets == ()
        assert not registry.is_allowed("WETH")

    def test_repr(self, registry):
        assert repr(registry) == "CollateralRegistry(WETH, WBTC)"
