"""
oracle.py - Price oracle adapter with staleness protection

Every price the engine uses goes through stale_check_latest_round_data():
a reading older than ORACLE_TIMEOUT aborts the calling operation with
StalePriceData. There is no fallback source; an asset with a stale feed is
unusable until the feed updates.

Conversions (price p has FEED_DECIMALS decimals):
    usd_value(p, amount)          = p * 1e10 * amount // 1e18
    token_amount_from_usd(p, usd) = usd * 1e18 // (p * 1e10)

Both truncate toward zero, so converting USD to collateral never
over-pays collateral.
"""

from __future__ import annotations
from datetime import datetime, timedelta
import logging

from .core import (
    PriceFeed, RoundData, LedgerView,
    PRECISION, ADDITIONAL_FEED_PRECISION, ORACLE_TIMEOUT, FEED_DECIMALS,
    StalePriceData, InvalidPrice, UnsupportedFeedDecimals,
)

logger = logging.getLogger(__name__)


def stale_check_latest_round_data(
    feed: PriceFeed,
    now: datetime,
    timeout: timedelta = ORACLE_TIMEOUT,
) -> RoundData:
    """
    Read the feed's latest round and reject it if it is too old.

    Raises:
        StalePriceData: If the round was never updated or now - updated_at > timeout
    """
    round_data = feed.latest_round_data()
    updated_at = round_data.updated_at
    if updated_at is None or now - updated_at > timeout:
        logger.warning("Stale price from %r: updated_at=%s now=%s", feed, updated_at, now)
        raise StalePriceData(updated_at, now)
    return round_data


def usd_value(price: int, amount: int) -> int:
    """USD value (18 decimals) of amount base units at an 8-decimal price."""
    return (price * ADDITIONAL_FEED_PRECISION * amount) // PRECISION


def token_amount_from_usd(price: int, usd_amount: int) -> int:
    """Base units worth usd_amount (18 decimals) at an 8-decimal price."""
    return (usd_amount * PRECISION) // (price * ADDITIONAL_FEED_PRECISION)


class OracleAdapter:
    """
    Wraps one asset's price feed.

    Every conversion reads a fresh, staleness-checked price at the clock's
    current time. The conversions assume FEED_DECIMALS, so a feed with any
    other precision is refused up front.
    """

    def __init__(self, feed: PriceFeed, clock: LedgerView, timeout: timedelta = ORACLE_TIMEOUT):
        if feed.decimals != FEED_DECIMALS:
            raise UnsupportedFeedDecimals(feed, feed.decimals)
        self.feed = feed
        self.clock = clock
        self.timeout = timeout

    def latest_price(self) -> int:
        """
        Latest fresh answer.

        Raises:
            StalePriceData: If the feed is stale
            InvalidPrice: If the feed answered a non-positive price
        """
        round_data = stale_check_latest_round_data(self.feed, self.clock.current_time, self.timeout)
        if round_data.answer <= 0:
            raise InvalidPrice(self.feed, round_data.answer)
        return round_data.answer

    def to_usd_value(self, amount: int) -> int:
        return usd_value(self.latest_price(), amount)

    def from_usd_value(self, usd_amount: int) -> int:
        return token_amount_from_usd(self.latest_price(), usd_amount)

    def __repr__(self):
        return f"OracleAdapter({self.feed!r}, timeout={self.timeout})"
