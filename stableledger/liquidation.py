"""
liquidation.py - Liquidation payout sizing

A liquidator repays debt_to_cover stable units of an insolvent position and
receives the equivalent collateral plus a LIQUIDATION_BONUS percent bonus.
Sizing is pure; eligibility and post-condition checks are done by the
engine around it.
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import LIQUIDATION_BONUS, LIQUIDATION_PRECISION
from .oracle import token_amount_from_usd


@dataclass(frozen=True, slots=True)
class LiquidationQuote:
    """
    Collateral owed to a liquidator for covering debt_to_cover.

    total_collateral = collateral_for_debt + bonus, all in base units of
    the collateral asset.
    """
    asset: str
    debt_to_cover: int
    price: int
    collateral_for_debt: int
    bonus: int

    @property
    def total_collateral(self) -> int:
        return self.collateral_for_debt + self.bonus


def quote_liquidation(
    asset: str,
    price: int,
    debt_to_cover: int,
    liquidation_bonus: int = LIQUIDATION_BONUS,
) -> LiquidationQuote:
    """
    Size a liquidation payout at an 8-decimal price.

    Example:
        At $18, covering 100 units of debt:
        collateral_for_debt = 5555555555555555555
        bonus               =  555555555555555555
        total_collateral    = 6111111111111111110
    """
    if debt_to_cover <= 0:
        raise ValueError(f"debt_to_cover must be positive, got {debt_to_cover}")
    collateral = token_amount_from_usd(price, debt_to_cover)
    bonus = (collateral * liquidation_bonus) // LIQUIDATION_PRECISION
    return LiquidationQuote(
        asset=asset,
        debt_to_cover=debt_to_cover,
        price=price,
        collateral_for_debt=collateral,
        bonus=bonus,
    )
