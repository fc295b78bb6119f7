"""
fake_view.py - Test helpers for the read-only protocols

Provides minimal LedgerView and EngineView implementations so oracle,
registry and simulation code can be tested without a full deployment.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Dict, Set, Optional, Tuple

from stableledger import PRECISION, ADDITIONAL_FEED_PRECISION, MAX_HEALTH_FACTOR


class FakeClock:
    """
    Minimal LedgerView: a settable clock with no balances.

    Example:
        clock = FakeClock(datetime(2024, 1, 1))
        feed = StaticPriceFeed(clock, 2000_00000000)
        clock.advance(timedelta(hours=4))
    """

    def __init__(self, time: Optional[datetime] = None):
        self._time = time or datetime(2024, 1, 1)

    @property
    def current_time(self) -> datetime:
        return self._time

    def advance(self, delta: timedelta) -> None:
        self._time += delta

    def advance_time(self, new_time: datetime) -> None:
        self._time = new_time

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        return 0

    def get_positions(self, unit_symbol: str) -> Dict[str, int]:
        return {}

    def total_supply(self, unit_symbol: str) -> int:
        return 0


class FakeEngineView:
    """
    Minimal EngineView over fixed deposits, debts and prices.

    Prices are read from the given feeds at call time, so pushing a new
    answer into a feed changes what the view reports.

    Example:
        view = FakeEngineView(
            deposits={'alice': {'WETH': 10 * 10**18}},
            debts={'alice': 100 * 10**18},
            feeds={'WETH': feed},
        )
    """

    def __init__(
        self,
        deposits: Dict[str, Dict[str, int]],
        debts: Dict[str, int],
        feeds: Dict[str, object],
        address: str = "engine",
    ):
        self._deposits = deposits
        self._debts = debts
        self._feeds = feeds
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    def get_collateral_tokens(self) -> Tuple[str, ...]:
        return tuple(self._feeds)

    def get_collateral_balance_of_user(self, user: str, asset: str) -> int:
        return self._deposits.get(user, {}).get(asset, 0)

    def get_debt(self, user: str) -> int:
        return self._debts.get(user, 0)

    def get_usd_value(self, asset: str, amount: int) -> int:
        price = self._feeds[asset].latest_round_data().answer
        return price * ADDITIONAL_FEED_PRECISION * amount // PRECISION

    def get_health_factor(self, user: str) -> int:
        debt = self.get_debt(user)
        if debt == 0:
            return MAX_HEALTH_FACTOR
        value = sum(
            self.get_usd_value(asset, amount)
            for asset, amount in self._deposits.get(user, {}).items()
        )
        return (value // 2) * PRECISION // debt

    def list_users(self) -> Set[str]:
        return set(self._deposits) | set(self._debts)
