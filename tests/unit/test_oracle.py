"""
test_oracle.py - Unit tests for oracle.py

Tests:
- Staleness window (boundary, never-updated feeds)
- Fixed-point conversions in both directions
- OracleAdapter reading through a clock
"""

import pytest
from datetime import datetime, timedelta

from stableledger import (
    OracleAdapter, StaticPriceFeed, TimeSeriesPriceFeed,
    stale_check_latest_round_data, usd_value, token_amount_from_usd,
    StalePriceData, InvalidPrice, UnsupportedFeedDecimals,
    ORACLE_TIMEOUT, to_base_units,
)
from tests.fake_view import FakeClock


T0 = datetime(2024, 1, 1)


class TestStaleCheck:
    """Tests for stale_check_latest_round_data()."""

    def test_fresh_round_returned(self):
        feed = StaticPriceFeed(FakeClock(T0), 2000_00000000)
        data = stale_check_latest_round_data(feed, T0 + timedelta(minutes=1))
        assert data.answer == 2000_00000000

    def test_exactly_at_timeout_is_fresh(self):
        feed = StaticPriceFeed(FakeClock(T0), 2000_00000000)
        stale_check_latest_round_data(feed, T0 + ORACLE_TIMEOUT)

    def test_past_timeout_is_stale(self):
        feed = StaticPriceFeed(FakeClock(T0), 2000_00000000)
        now = T0 + ORACLE_TIMEOUT + timedelta(seconds=1)
        with pytest.raises(StalePriceData) as exc_info:
            stale_check_latest_round_data(feed, now)
        assert exc_info.value.updated_at == T0
        assert exc_info.value.now == now

    def test_never_updated_is_stale(self):
        feed = TimeSeriesPriceFeed(FakeClock(T0))
        with pytest.raises(StalePriceData):
            stale_check_latest_round_data(feed, T0)

    def test_custom_timeout(self):
        feed = StaticPriceFeed(FakeClock(T0), 1)
        with pytest.raises(StalePriceData):
            stale_check_latest_round_data(feed, T0 + timedelta(minutes=2), timedelta(minutes=1))


class TestConversions:
    """Tests for usd_value() and token_amount_from_usd()."""

    def test_usd_value(self):
        # 10 units at $2000
        assert usd_value(2000_00000000, to_base_units(10)) == to_base_units(20_000)

    def test_usd_value_after_crash(self):
        assert usd_value(18_00000000, to_base_units(10)) == to_base_units(180)

    def test_token_amount_from_usd(self):
        assert token_amount_from_usd(2000_00000000, to_base_units(100)) == to_base_units("0.05")

    def test_token_amount_truncates(self):
        # $100 at $18 is 5.5555... units, truncated
        assert token_amount_from_usd(18_00000000, to_base_units(100)) == 5555555555555555555

    def test_zero_amount(self):
        assert usd_value(2000_00000000, 0) == 0
        assert token_amount_from_usd(2000_00000000, 0) == 0


class TestOracleAdapter:
    """Tests for OracleAdapter."""

    def test_reads_at_clock_time(self):
        clock = FakeClock(T0)
        feed = StaticPriceFeed(clock, 2000_00000000)
        adapter = OracleAdapter(feed, clock)
        assert adapter.to_usd_value(to_base_units(1)) == to_base_units(2000)
        assert adapter.from_usd_value(to_base_units(1000)) == to_base_units("0.5")

    def test_becomes_stale_as_clock_advances(self):
        clock = FakeClock(T0)
        adapter = OracleAdapter(StaticPriceFeed(clock, 2000_00000000), clock)
        clock.advance(timedelta(hours=4))
        with pytest.raises(StalePriceData):
            adapter.latest_price()

    def test_non_positive_answer_rejected(self):
        clock = FakeClock(T0)
        adapter = OracleAdapter(StaticPriceFeed(clock, 0), clock)
        with pytest.raises(InvalidPrice, match="non-positive") as exc_info:
            adapter.latest_price()
        assert exc_info.value.answer == 0

    def test_negative_answer_after_update_rejected(self):
        clock = FakeClock(T0)
        feed = StaticPriceFeed(clock, 2000_00000000)
        adapter = OracleAdapter(feed, clock)
        feed.update_answer(-1)
        with pytest.raises(InvalidPrice):
            adapter.to_usd_value(to_base_units(1))

    @pytest.mark.parametrize("decimals", [6, 18])
    def test_feed_with_other_decimals_refused(self, decimals):
        clock = FakeClock(T0)
        feed = StaticPriceFeed(clock, 2000 * 10 ** decimals, decimals=decimals)
        with pytest.raises(UnsupportedFeedDecimals) as exc_info:
            OracleAdapter(feed, clock)
        assert exc_info.value.decimals == decimals

    def test_follows_time_series(self):
        clock = FakeClock(T0)
        feed = TimeSeriesPriceFeed(clock, [(T0, 2000_00000000), (T0 + timedelta(hours=1), 1000_00000000)])
        adapter = OracleAdapter(feed, clock)
        assert adapter.latest_price() == 2000_00000000
        clock.advance(timedelta(hours=2))
        assert adapter.latest_price() == 1000_00000000
