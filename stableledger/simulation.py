"""
simulation.py - Price paths and price-shock stress runs

simulate_price_path() generates a geometric Brownian motion path:

    S(t+dt) = S(t) * exp((mu - 0.5*sigma^2)*dt + sigma*sqrt(dt)*Z),  Z ~ N(0,1)

quantized to integer feed answers (FEED_DECIMALS decimals). The path is a
list of (timestamp, answer) tuples, which is what TimeSeriesPriceFeed takes.

PriceShockSimulation walks the ledger clock along one or more paths, pushes
each price into its feed, and records the system's solvency at every step.
It only reads the engine through EngineView; it never liquidates.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Tuple, Any
import logging

import numpy as np

from .core import EngineView, MIN_HEALTH_FACTOR, StalePriceData, InvalidPrice
from .ledger import Ledger

logger = logging.getLogger(__name__)

# Seconds in a 365-day year, the time unit of volatility and drift
SECONDS_PER_YEAR = 365 * 24 * 60 * 60


def simulate_price_path(
    start_price: int,
    start_time: datetime,
    num_steps: int,
    step: timedelta = timedelta(hours=1),
    volatility: float = 0.8,
    drift: float = 0.0,
    seed: Optional[int] = None,
) -> List[Tuple[datetime, int]]:
    """
    Generate a GBM price path.

    Args:
        start_price: S(0) as an integer feed answer (e.g., 2000_00000000)
        start_time: Timestamp of the first observation
        num_steps: Number of observations, start included
        step: Time between observations
        volatility: Annualized volatility (e.g., 0.8 for 80%)
        drift: Annualized drift
        seed: Seed for numpy's generator; the same seed yields the same path

    Returns:
        List of (timestamp, answer) tuples; every answer is at least 1
    """
    if start_price <= 0:
        raise ValueError(f"start_price must be positive, got {start_price}")
    if num_steps < 1:
        raise ValueError(f"num_steps must be at least 1, got {num_steps}")
    if volatility < 0:
        raise ValueError(f"volatility cannot be negative, got {volatility}")

    rng = np.random.default_rng(seed)
    dt = step.total_seconds() / SECONDS_PER_YEAR
    z = rng.standard_normal(num_steps - 1)
    log_returns = (drift - 0.5 * volatility ** 2) * dt + volatility * np.sqrt(dt) * z
    log_path = np.concatenate(([0.0], np.cumsum(log_returns)))
    prices = np.maximum(np.rint(start_price * np.exp(log_path)), 1)

    answers = [int(p) for p in prices]
    answers[0] = start_price
    return [(start_time + step * i, answer) for i, answer in enumerate(answers)]


@dataclass(frozen=True, slots=True)
class SimulationStep:
    """
    System state after one price update.

    Attributes:
        timestamp: Ledger time of the step
        prices: Feed answers pushed at this step
        collateral_value: USD value of priced users' collateral (18 decimals)
        total_debt: Sum of priced users' debt
        liquidatable: Users whose health factor is below the minimum
        stale: True if a feed could not be read at this step; users it
            blocks are left out of both totals
    """
    timestamp: datetime
    prices: Mapping[str, int]
    collateral_value: int
    total_debt: int
    liquidatable: Tuple[str, ...]
    stale: bool = False

    @property
    def collateralization(self) -> Optional[float]:
        """Collateral value over debt, or None without debt."""
        if self.total_debt == 0:
            return None
        return self.collateral_value / self.total_debt


class PriceShockSimulation:
    """
    Replays price paths against a deployed engine.

    Feeds are driven with update_answer() when they have one (static mock
    feeds) and add_price() otherwise (time-series feeds).

    Example:
        path = simulate_price_path(2000_00000000, ledger.current_time, 48, seed=7)
        sim = PriceShockSimulation(engine, ledger, {"WETH": weth_feed})
        steps = sim.run({"WETH": path})
        sim.summary()
    """

    def __init__(self, engine: EngineView, ledger: Ledger, feeds: Mapping[str, Any]):
        self.engine = engine
        self.ledger = ledger
        self.feeds = dict(feeds)
        self.steps: List[SimulationStep] = []

    def _push(self, asset: str, timestamp: datetime, answer: int) -> None:
        feed = self.feeds[asset]
        if hasattr(feed, 'update_answer'):
            feed.update_answer(answer)
        else:
            feed.add_price(timestamp, answer)

    def observe(self, prices: Mapping[str, int]) -> SimulationStep:
        """Measure the system at the ledger's current time."""
        users = sorted(self.engine.list_users())
        collateral_value = 0
        total_debt = 0
        liquidatable = []
        stale = False
        for user in users:
            try:
                user_value = 0
                for asset in self.engine.get_collateral_tokens():
                    amount = self.engine.get_collateral_balance_of_user(user, asset)
                    if amount:
                        user_value += self.engine.get_usd_value(asset, amount)
                unhealthy = self.engine.get_health_factor(user) < MIN_HEALTH_FACTOR
            except (StalePriceData, InvalidPrice) as exc:
                # An unreadable feed marks the step, the run continues
                logger.warning("Could not price %s at %s: %s", user, self.ledger.current_time, exc)
                stale = True
                continue
            # Totals cover fully priced users only
            collateral_value += user_value
            total_debt += self.engine.get_debt(user)
            if unhealthy:
                liquidatable.append(user)

        step = SimulationStep(
            timestamp=self.ledger.current_time,
            prices=dict(prices),
            collateral_value=collateral_value,
            total_debt=total_debt,
            liquidatable=tuple(liquidatable),
            stale=stale,
        )
        self.steps.append(step)
        return step

    def step(self, timestamp: datetime, prices: Mapping[str, int]) -> SimulationStep:
        """Advance the clock, push prices, and observe."""
        self.ledger.advance_time(timestamp)
        for asset, answer in prices.items():
            self._push(asset, timestamp, answer)
        return self.observe(prices)

    def run(self, paths: Mapping[str, List[Tuple[datetime, int]]]) -> List[SimulationStep]:
        """
        Step through paths that share the same timestamps.

        Raises:
            ValueError: If the paths have different timestamps
        """
        if not paths:
            return []
        assets = list(paths)
        timelines = [[ts for ts, _ in paths[a]] for a in assets]
        if any(t != timelines[0] for t in timelines[1:]):
            raise ValueError("All price paths must share the same timestamps")

        steps = []
        for i, timestamp in enumerate(timelines[0]):
            prices = {a: paths[a][i][1] for a in assets}
            steps.append(self.step(timestamp, prices))
        logger.info("Simulated %d steps over %s", len(steps), ", ".join(assets))
        return steps

    def summary(self) -> Dict[str, Any]:
        """
        Aggregate the recorded steps.

        Returns:
            Dict with keys:
            - 'steps': number of recorded steps
            - 'min_collateralization': lowest collateral/debt ratio over fresh
              steps (None without any)
            - 'max_liquidatable': most users liquidatable at once
            - 'first_liquidatable_at': timestamp of the first step with a liquidatable user
            - 'stale_steps': number of steps with an unreadable feed
        """
        ratios = np.array(
            [s.collateral_value / s.total_debt for s in self.steps if s.total_debt and not s.stale],
            dtype=np.float64,
        )
        counts = np.array([len(s.liquidatable) for s in self.steps], dtype=np.int64)
        first = next((s.timestamp for s in self.steps if s.liquidatable), None)
        return {
            'steps': len(self.steps),
            'min_collateralization': float(ratios.min()) if ratios.size else None,
            'max_liquidatable': int(counts.max()) if counts.size else 0,
            'first_liquidatable_at': first,
            'stale_steps': sum(1 for s in self.steps if s.stale),
        }
