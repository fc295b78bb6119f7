"""
health.py - Health factor calculator

Pure functions with all inputs explicit. No engine state, no oracle reads.

Key Formula:
    health_factor = (collateral_usd * LIQUIDATION_THRESHOLD // LIQUIDATION_PRECISION)
                    * PRECISION // total_debt

A position without debt has MAX_HEALTH_FACTOR. A health factor below
MIN_HEALTH_FACTOR (1.0 in 18-decimal fixed point) makes the position
liquidatable.
"""

from __future__ import annotations

from .core import (
    PRECISION, LIQUIDATION_THRESHOLD, LIQUIDATION_PRECISION,
    MIN_HEALTH_FACTOR, MAX_HEALTH_FACTOR,
)


# Position status constants
POSITION_STATUS_HEALTHY = "HEALTHY"
POSITION_STATUS_LIQUIDATABLE = "LIQUIDATABLE"


def calculate_health_factor(
    total_debt: int,
    collateral_value_usd: int,
    liquidation_threshold: int = LIQUIDATION_THRESHOLD,
    liquidation_precision: int = LIQUIDATION_PRECISION,
) -> int:
    """
    Health factor of a position, 18-decimal fixed point.

    Args:
        total_debt: Minted stable units (18 decimals)
        collateral_value_usd: USD value of all deposited collateral (18 decimals)
        liquidation_threshold: Share of collateral value that counts, in
            liquidation_precision units

    Returns:
        MAX_HEALTH_FACTOR when total_debt is 0, otherwise the truncated ratio

    Example:
        >>> calculate_health_factor(100 * 10**18, 20_000 * 10**18)
        100000000000000000000
    """
    if total_debt < 0 or collateral_value_usd < 0:
        raise ValueError("Debt and collateral value cannot be negative")
    if total_debt == 0:
        return MAX_HEALTH_FACTOR
    adjusted = (collateral_value_usd * liquidation_threshold) // liquidation_precision
    return (adjusted * PRECISION) // total_debt


def is_healthy(health_factor: int, min_health_factor: int = MIN_HEALTH_FACTOR) -> bool:
    return health_factor >= min_health_factor


def position_status(health_factor: int, min_health_factor: int = MIN_HEALTH_FACTOR) -> str:
    """HEALTHY or LIQUIDATABLE; there is no stored state, only this recomputation."""
    if is_healthy(health_factor, min_health_factor):
        return POSITION_STATUS_HEALTHY
    return POSITION_STATUS_LIQUIDATABLE


def max_additional_debt(total_debt: int, collateral_value_usd: int) -> int:
    """
    Largest extra debt that keeps the health factor at or above the minimum.

    Returns 0 when the position is already at or below the limit.
    """
    capacity = (collateral_value_usd * LIQUIDATION_THRESHOLD) // LIQUIDATION_PRECISION
    return max(capacity - total_debt, 0)
