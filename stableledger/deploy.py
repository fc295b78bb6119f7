"""
deploy.py - Wiring a ledger, tokens, feeds and the engine together

deploy_engine() builds a StableEngine over existing tokens and feeds and
hands stable-token ownership to it, which is the only way the engine gets
the mint/burn capability. deploy_local() additionally creates the ledger,
mock collateral tokens and static feeds described by a NetworkConfig.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional, Sequence
import logging

from .core import PriceFeed, ORACLE_TIMEOUT
from .config import NetworkConfig, local_network_config
from .engine import StableEngine
from .ledger import Ledger
from .pricing_source import StaticPriceFeed
from .token import Token, CollateralToken, StableUnitToken

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Deployment:
    """Handles to everything deploy_local() created."""
    ledger: Ledger
    engine: StableEngine
    stable_token: StableUnitToken
    collateral_tokens: Dict[str, CollateralToken]
    price_feeds: Dict[str, StaticPriceFeed]
    config: NetworkConfig

    def token(self, symbol: str) -> Token:
        if symbol == self.stable_token.symbol:
            return self.stable_token
        return self.collateral_tokens[symbol]

    def feed(self, symbol: str) -> StaticPriceFeed:
        return self.price_feeds[symbol]


def deploy_engine(
    collateral_tokens: Sequence[Token],
    price_feeds: Sequence[PriceFeed],
    stable_token: StableUnitToken,
    deployer: str,
    engine_address: str = "engine",
    oracle_timeout: timedelta = ORACLE_TIMEOUT,
) -> StableEngine:
    """
    Create the engine and make it the stable token's owner.

    Raises:
        Unauthorized: If deployer does not own stable_token
        OwnershipLocked: If stable_token was already handed over
    """
    engine = StableEngine(
        collateral_tokens,
        price_feeds,
        stable_token,
        address=engine_address,
        oracle_timeout=oracle_timeout,
    )
    stable_token.transfer_ownership(deployer, engine.address)
    logger.info("Deployed %r; %s ownership transferred to %s", engine, stable_token.symbol, engine.address)
    return engine


def deploy_local(config: Optional[NetworkConfig] = None, ledger_name: str = "local") -> Deployment:
    """
    Stand up a complete local system with mock collateral and static feeds.

    Example:
        d = deploy_local()
        d.collateral_tokens["WETH"].mint("alice", 10 * 10**18)
        d.feed("WETH").update_answer(1800_00000000)
    """
    config = config or local_network_config()
    ledger = Ledger(ledger_name, initial_time=config.start_time)

    collateral_tokens: Dict[str, CollateralToken] = {}
    price_feeds: Dict[str, StaticPriceFeed] = {}
    for spec in config.collateral:
        collateral_tokens[spec.symbol] = CollateralToken(ledger, spec.symbol, spec.name)
        price_feeds[spec.symbol] = StaticPriceFeed(
            ledger,
            spec.initial_price,
            description=spec.description or f"{spec.symbol} / USD",
        )

    stable_token = StableUnitToken(ledger, owner=config.deployer)
    engine = deploy_engine(
        list(collateral_tokens.values()),
        [price_feeds[s] for s in collateral_tokens],
        stable_token,
        deployer=config.deployer,
        engine_address=config.engine_address,
        oracle_timeout=config.oracle_timeout,
    )
    return Deployment(
        ledger=ledger,
        engine=engine,
        stable_token=stable_token,
        collateral_tokens=collateral_tokens,
        price_feeds=price_feeds,
        config=config,
    )
