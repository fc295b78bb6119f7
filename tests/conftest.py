"""
conftest.py - Shared pytest fixtures for stableledger tests

Provides common fixtures used across unit and functional tests:
- Bare ledgers and the local deployment (WETH $2000, WBTC $1000)
- A user with 10 WETH deposited and 100 stable units minted
- The same position after WETH falls to $18, plus a funded liquidator
- Helpers for funding accounts and building engines over custom tokens
"""

import pytest
from datetime import datetime
from typing import List, Optional

from stableledger import (
    Ledger, StableEngine, StableUnitToken, CollateralToken, Token,
    StaticPriceFeed, Deployment,
    deploy_local, deploy_engine, to_base_units,
)


# =============================================================================
# CONSTANTS
# =============================================================================

START = datetime(2024, 1, 1)

AMOUNT_COLLATERAL = to_base_units(10)
AMOUNT_TO_MINT = to_base_units(100)
COLLATERAL_TO_COVER = to_base_units(20)

ETH_PRICE = 2000_00000000
BTC_PRICE = 1000_00000000
CRASH_PRICE = 18_00000000

USER = "alice"
LIQUIDATOR = "liquidator"
DEPLOYER = "deployer"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def fund(token: CollateralToken, account: str, amount: int, spender: str = "engine") -> None:
    """Mint collateral to account and approve spender for all of it."""
    token.mint(account, amount)
    token.approve(account, spender, token.allowance(account, spender) + amount)


def open_position(d: Deployment, user: str, asset: str, collateral: int, debt: int) -> None:
    """Fund user, deposit collateral and mint debt in one operation."""
    fund(d.collateral_tokens[asset], user, collateral, d.engine.address)
    d.engine.deposit_and_mint(user, asset, collateral, debt)


def build_engine(
    ledger: Ledger,
    collateral_tokens: List[Token],
    stable: Optional[StableUnitToken] = None,
    prices: Optional[List[int]] = None,
) -> StableEngine:
    """Deploy an engine over hand-built tokens with fresh static feeds."""
    stable = stable or StableUnitToken(ledger, owner=DEPLOYER)
    prices = prices or [ETH_PRICE] * len(collateral_tokens)
    feeds = [StaticPriceFeed(ledger, p) for p in prices]
    return deploy_engine(collateral_tokens, feeds, stable, deployer=DEPLOYER)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Empty ledger at START."""
    return Ledger("test", initial_time=START)


@pytest.fixture
def deployment():
    """Local deployment: WETH at $2000, WBTC at $1000."""
    return deploy_local()


@pytest.fixture
def engine(deployment):
    return deployment.engine


@pytest.fixture
def weth(deployment):
    return deployment.collateral_tokens["WETH"]


@pytest.fixture
def wbtc(deployment):
    return deployment.collateral_tokens["WBTC"]


@pytest.fixture
def dsc(deployment):
    return deployment.stable_token


@pytest.fixture
def eth_feed(deployment):
    return deployment.feed("WETH")


@pytest.fixture
def btc_feed(deployment):
    return deployment.feed("WBTC")


@pytest.fixture
def funded_user(deployment, weth):
    """USER holds 10 WETH and has approved the engine for all of it."""
    fund(weth, USER, AMOUNT_COLLATERAL, deployment.engine.address)
    return USER


@pytest.fixture
def deposited(deployment, funded_user):
    """USER has 10 WETH deposited and no debt."""
    deployment.engine.deposit_collateral(funded_user, "WETH", AMOUNT_COLLATERAL)
    return funded_user


@pytest.fixture
def minted(deployment):
    """USER has 10 WETH deposited and 100 stable units minted (health factor 100)."""
    open_position(deployment, USER, "WETH", AMOUNT_COLLATERAL, AMOUNT_TO_MINT)
    return USER


@pytest.fixture
def liquidatable(deployment, minted):
    """
    USER's position after WETH falls to $18 (health factor 0.9).

    LIQUIDATOR deposited 20 WETH and minted 100 stable units before the
    crash, and has approved the engine to pull them back.
    """
    open_position(deployment, LIQUIDATOR, "WETH", COLLATERAL_TO_COVER, AMOUNT_TO_MINT)
    deployment.stable_token.approve(LIQUIDATOR, deployment.engine.address, AMOUNT_TO_MINT)
    deployment.feed("WETH").update_answer(CRASH_PRICE)
    return USER
