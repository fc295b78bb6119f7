"""
pricing_source.py - Price feeds consumed by the oracle adapter

Provides per-asset price feeds that answer latest_round_data() with a
RoundData record. Answers are integers with FEED_DECIMALS (8) decimals.

Classes:
- StaticPriceFeed: Manually updated feed (a mock aggregator). Every update
  opens a new round stamped with the ledger's current time.
- TimeSeriesPriceFeed: Feed driven by a historical price path and a clock.
  Uses the most recent observation at or before the clock's current time.
"""

from datetime import datetime
from typing import Dict, Optional, List, Tuple
from bisect import bisect_right

from .core import RoundData, LedgerView, FEED_DECIMALS


class StaticPriceFeed:
    """
    Price feed holding the answer it was last given.

    Rounds are numbered from 1. update_answer() stamps the round with the
    clock's current time unless an explicit timestamp is passed, which lets
    tests backdate a round to simulate a stale feed.
    """
    version = 4

    def __init__(
        self,
        clock: LedgerView,
        initial_answer: int,
        decimals: int = FEED_DECIMALS,
        description: str = "",
    ):
        """
        Initialize with a first round.

        Args:
            clock: Anything exposing current_time (normally the Ledger)
            initial_answer: First price, FEED_DECIMALS decimals
            decimals: Decimals of the answer
            description: Free text (e.g., "ETH / USD")
        """
        self.clock = clock
        self.decimals = decimals
        self.description = description
        self.latest_round = 0
        self._rounds: Dict[int, RoundData] = {}
        self.update_answer(initial_answer)

    @property
    def latest_answer(self) -> int:
        return self._rounds[self.latest_round].answer

    def update_answer(self, answer: int, timestamp: Optional[datetime] = None) -> RoundData:
        """Open a new round with answer, stamped now (or at timestamp)."""
        when = timestamp if timestamp is not None else self.clock.current_time
        self.latest_round += 1
        round_data = RoundData(
            round_id=self.latest_round,
            answer=answer,
            started_at=when,
            updated_at=when,
            answered_in_round=self.latest_round,
        )
        self._rounds[self.latest_round] = round_data
        return round_data

    def update_round_data(
        self,
        round_id: int,
        answer: int,
        timestamp: datetime,
        started_at: datetime,
    ) -> RoundData:
        """
        Write a round and make it the latest.

        Raises:
            ValueError: If round_id is below the current latest round
        """
        if round_id < self.latest_round:
            raise ValueError(f"Round {round_id} is behind latest round {self.latest_round}")
        self.latest_round = round_id
        round_data = RoundData(
            round_id=round_id,
            answer=answer,
            started_at=started_at,
            updated_at=timestamp,
            answered_in_round=round_id,
        )
        self._rounds[round_id] = round_data
        return round_data

    def get_round_data(self, round_id: int) -> RoundData:
        """
        Return a past round.

        Raises:
            KeyError: If the round was never written
        """
        if round_id not in self._rounds:
            raise KeyError(f"No data for round {round_id}")
        return self._rounds[round_id]

    def latest_round_data(self) -> RoundData:
        return self._rounds[self.latest_round]

    def __repr__(self):
        return f"StaticPriceFeed({self.description or 'feed'}, answer={self.latest_answer}, round={self.latest_round})"


class TimeSeriesPriceFeed:
    """
    Price feed with time-varying prices.

    Stores historical observations and answers with the most recent one at
    or before the clock's current time, so advancing the ledger clock walks
    the feed along its path. Round ids are 1-based positions in the history.

    Supports two initialization patterns:
    - Empty initialization for incremental price addition via add_price()
    - Batch initialization with a complete price path for simulations
    """

    def __init__(
        self,
        clock: LedgerView,
        price_path: Optional[List[Tuple[datetime, int]]] = None,
        decimals: int = FEED_DECIMALS,
        description: str = "",
    ):
        """
        Initialize price feed.

        Args:
            clock: Anything exposing current_time (normally the Ledger)
            price_path: Optional list of (timestamp, answer) tuples
            decimals: Decimals of the answers
            description: Free text

        Examples:
            feed = TimeSeriesPriceFeed(ledger)
            feed.add_price(datetime(2025, 1, 15), 2000_00000000)

            feed = TimeSeriesPriceFeed(ledger, [(t0, 2000_00000000), (t1, 1800_00000000)])
        """
        self.clock = clock
        self.decimals = decimals
        self.description = description
        self.price_history: List[Tuple[datetime, int]] = []
        if price_path:
            # Sort by timestamp to ensure chronological order
            self.price_history = sorted(price_path, key=lambda x: x[0])

    def add_price(self, timestamp: datetime, answer: int):
        """Add an observation, keeping the history sorted by timestamp."""
        self.price_history.append((timestamp, answer))
        self.price_history.sort(key=lambda x: x[0])

    def _index_at(self, timestamp: datetime) -> int:
        """Index one past the last observation at or before timestamp (binary search)."""
        timestamps = [ts for ts, _ in self.price_history]
        return bisect_right(timestamps, timestamp)

    def get_price(self, timestamp: datetime) -> Optional[int]:
        """
        Get the answer at or before the specified timestamp.

        Returns None if no observation is available before the timestamp.
        """
        idx = self._index_at(timestamp)
        if idx == 0:
            return None
        return self.price_history[idx - 1][1]

    def latest_round_data(self) -> RoundData:
        """
        Round for the clock's current time.

        Before the first observation the round is empty: answer 0 and no
        updated_at, which the oracle adapter treats as stale.
        """
        idx = self._index_at(self.clock.current_time)
        if idx == 0:
            return RoundData(0, 0, None, None, 0)
        timestamp, answer = self.price_history[idx - 1]
        return RoundData(
            round_id=idx,
            answer=answer,
            started_at=timestamp,
            updated_at=timestamp,
            answered_in_round=idx,
        )

    def get_all_timestamps(self) -> List[datetime]:
        return [ts for ts, _ in self.price_history]

    def __repr__(self):
        return f"TimeSeriesPriceFeed({self.description or 'feed'}, {len(self.price_history)} observations)"
