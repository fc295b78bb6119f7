"""
registry.py - Allowed collateral assets and their oracles

The registry is built once from two parallel lists (assets, price feeds)
and never changes afterwards. A lookup for an asset that was not configured
raises TokenNotAllowed.
"""

from __future__ import annotations
from datetime import timedelta
from types import MappingProxyType
from typing import Dict, Sequence, Tuple, Mapping

from .core import (
    CollateralAssetConfig, PriceFeed, LedgerView,
    ORACLE_TIMEOUT,
    TokenNotAllowed, TokenAddressesAndPriceFeedAddressesMustBeSameLength,
)
from .oracle import OracleAdapter


class CollateralRegistry:
    """
    Immutable table of collateral configurations, in configuration order.

    Example:
        registry = CollateralRegistry(["WETH", "WBTC"], [eth_feed, btc_feed], ledger)
        registry.adapter("WETH").to_usd_value(10**18)
    """

    def __init__(
        self,
        assets: Sequence[str],
        price_feeds: Sequence[PriceFeed],
        clock: LedgerView,
        timeout: timedelta = ORACLE_TIMEOUT,
    ):
        """
        Raises:
            TokenAddressesAndPriceFeedAddressesMustBeSameLength: If the lists differ in length
            ValueError: If an asset is listed twice
            UnsupportedFeedDecimals: If a feed does not answer with FEED_DECIMALS decimals
        """
        if len(assets) != len(price_feeds):
            raise TokenAddressesAndPriceFeedAddressesMustBeSameLength(
                f"{len(assets)} assets but {len(price_feeds)} price feeds"
            )
        configs: Dict[str, CollateralAssetConfig] = {}
        adapters: Dict[str, OracleAdapter] = {}
        for asset, feed in zip(assets, price_feeds):
            if asset in configs:
                raise ValueError(f"Collateral asset {asset} configured twice")
            configs[asset] = CollateralAssetConfig(asset=asset, price_feed=feed)
            adapters[asset] = OracleAdapter(feed, clock, timeout)

        self._assets: Tuple[str, ...] = tuple(configs)
        self._configs: Mapping[str, CollateralAssetConfig] = MappingProxyType(configs)
        self._adapters: Mapping[str, OracleAdapter] = MappingProxyType(adapters)

    @property
    def assets(self) -> Tuple[str, ...]:
        return self._assets

    def is_allowed(self, asset: str) -> bool:
        return asset in self._configs

    def require(self, asset: str) -> CollateralAssetConfig:
        """
        Raises:
            TokenNotAllowed: If asset is not configured
        """
        config = self._configs.get(asset)
        if config is None:
            raise TokenNotAllowed(asset)
        return config

    def price_feed(self, asset: str) -> PriceFeed:
        return self.require(asset).price_feed

    def adapter(self, asset: str) -> OracleAdapter:
        self.require(asset)
        return self._adapters[asset]

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset: object) -> bool:
        return asset in self._configs

    def __repr__(self):
        return f"CollateralRegistry({', '.join(self._assets)})"
