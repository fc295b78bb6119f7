"""
config.py - Network configuration for deployments

A NetworkConfig describes everything deploy_local() needs to stand up a
working system: which collateral assets exist, their starting prices, who
deploys, and when the clock starts.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Tuple

from .core import ORACLE_TIMEOUT


# Local network defaults
ETH_USD_PRICE = 2000_00000000
BTC_USD_PRICE = 1000_00000000
DEFAULT_DEPLOYER = "deployer"
DEFAULT_ENGINE_ADDRESS = "engine"
DEFAULT_START_TIME = datetime(2024, 1, 1)


@dataclass(frozen=True, slots=True)
class CollateralSpec:
    """One collateral asset to deploy: token metadata and its starting feed answer."""
    symbol: str
    name: str
    initial_price: int
    description: str = ""

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Collateral symbol cannot be empty")
        if self.initial_price <= 0:
            raise ValueError(f"Initial price of {self.symbol} must be positive, got {self.initial_price}")


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """
    Deployment parameters.

    Attributes:
        collateral: Assets to deploy, in registry order
        deployer: Account that creates the stable token and hands it to the engine
        engine_address: Account identifier of the engine
        start_time: Initial logical time of the ledger
        oracle_timeout: Maximum accepted price age
    """
    collateral: Tuple[CollateralSpec, ...]
    deployer: str = DEFAULT_DEPLOYER
    engine_address: str = DEFAULT_ENGINE_ADDRESS
    start_time: datetime = DEFAULT_START_TIME
    oracle_timeout: timedelta = ORACLE_TIMEOUT

    def __post_init__(self):
        symbols = [c.symbol for c in self.collateral]
        if len(set(symbols)) != len(symbols):
            raise ValueError(f"Duplicate collateral symbols: {symbols}")
        if self.deployer == self.engine_address:
            raise ValueError("Deployer and engine must be different accounts")

    @property
    def symbols(self) -> Tuple[str, ...]:
        return tuple(c.symbol for c in self.collateral)


def local_network_config() -> NetworkConfig:
    """WETH at $2000 and WBTC at $1000, deployed at DEFAULT_START_TIME."""
    return NetworkConfig(
        collateral=(
            CollateralSpec("WETH", "Wrapped Ether", ETH_USD_PRICE, "ETH / USD"),
            CollateralSpec("WBTC", "Wrapped Bitcoin", BTC_USD_PRICE, "BTC / USD"),
        ),
    )
