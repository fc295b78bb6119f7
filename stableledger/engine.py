"""
engine.py - Collateralized-debt engine

StableEngine owns the position ledger (per-user deposited collateral and
per-user minted debt) and is the only account allowed to mint and burn the
stable unit. Users lock collateral, mint stable units against it, and must
keep their health factor at or above MIN_HEALTH_FACTOR. Positions that fall
below it can be liquidated by anyone willing to repay their debt in exchange
for the collateral plus a bonus.

Every public operation:
    1. takes the reentrancy guard (a nested call raises ReentrantCall)
    2. journals engine state, ledger balances and token allowances
    3. validates, applies ledger effects, then calls out to tokens
    4. on any exception restores the journal and re-raises

so an operation either applies all of its effects or none of them.

Example:
    engine = StableEngine([weth, wbtc], [eth_feed, btc_feed], dsc)
    dsc.transfer_ownership("deployer", engine.address)

    weth.approve("alice", engine.address, 10 * 10**18)
    engine.deposit_and_mint("alice", "WETH", 10 * 10**18, 100 * 10**18)
    engine.get_health_factor("alice")      # 100 * 10**18 at $2000
"""

from __future__ import annotations
from collections import defaultdict
from datetime import timedelta
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence, Set, Tuple, Any, Iterator
import logging

from .core import (
    # Types
    AccountInformation, Position, PriceFeed, LedgerView,
    CollateralDeposited, CollateralRedeemed,
    # Constants
    PRECISION, ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_THRESHOLD, LIQUIDATION_PRECISION, LIQUIDATION_BONUS,
    MIN_HEALTH_FACTOR, ORACLE_TIMEOUT,
    # Exceptions
    NeedsMoreThanZero, RedeemExceedsDeposited, DebtUnderflow,
    HealthFactorBroken, HealthFactorAboveThreshold, HealthFactorNotImproved,
    CollateralTransferFailed, TransferFailed, MintFailed,
    TokenAddressesAndPriceFeedAddressesMustBeSameLength,
)
from .guard import ReentrancyGuard, AtomicBoundary, non_reentrant_atomic
from .health import calculate_health_factor, position_status
from .liquidation import LiquidationQuote, quote_liquidation
from .registry import CollateralRegistry
from .token import Token, StableUnitToken

logger = logging.getLogger(__name__)


def _require_more_than_zero(amount: int) -> None:
    if amount <= 0:
        raise NeedsMoreThanZero(f"Amount must be more than zero, got {amount}")


class StableEngine:
    """
    Position ledger and liquidation engine for one stable unit.

    Implements the EngineView protocol. Users are plain account identifiers;
    every public operation takes the acting account as its first argument.
    """

    def __init__(
        self,
        collateral_tokens: Sequence[Token],
        price_feeds: Sequence[PriceFeed],
        stable_token: StableUnitToken,
        address: str = "engine",
        clock: Optional[LedgerView] = None,
        oracle_timeout: timedelta = ORACLE_TIMEOUT,
    ):
        """
        Create the engine.

        Args:
            collateral_tokens: Allowed collateral tokens, parallel to price_feeds
            price_feeds: One price feed per collateral token
            stable_token: The stable unit; ownership must be transferred to
                `address` before mint_debt can succeed
            address: Account identifier of the engine
            clock: Source of current_time (default: the stable token's ledger)
            oracle_timeout: Maximum accepted price age

        Raises:
            TokenAddressesAndPriceFeedAddressesMustBeSameLength: If the lists differ
            UnsupportedFeedDecimals: If a feed does not answer with FEED_DECIMALS decimals
        """
        if len(collateral_tokens) != len(price_feeds):
            raise TokenAddressesAndPriceFeedAddressesMustBeSameLength(
                f"{len(collateral_tokens)} collateral tokens but {len(price_feeds)} price feeds"
            )
        self.address = address
        self.clock: LedgerView = clock if clock is not None else stable_token.ledger
        self._stable = stable_token
        self._registry = CollateralRegistry(
            [token.symbol for token in collateral_tokens],
            list(price_feeds),
            self.clock,
            oracle_timeout,
        )
        self._tokens = MappingProxyType({token.symbol: token for token in collateral_tokens})

        # Position ledger: user -> asset -> amount, user -> debt
        self._collateral_deposited: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._debt_minted: Dict[str, int] = defaultdict(int)
        self._events: List[Any] = []

        self._guard = ReentrancyGuard()
        self._boundary = AtomicBoundary(self._transaction_participants)

    # ========================================================================
    # PUBLIC OPERATIONS
    # ========================================================================

    @non_reentrant_atomic
    def deposit_collateral(self, user: str, asset: str, amount: int) -> None:
        """
        Lock amount of asset as collateral. The engine must hold an
        allowance of at least amount from user on the asset token.
        """
        self._deposit_collateral(user, asset, amount)

    @non_reentrant_atomic
    def mint_debt(self, user: str, amount: int) -> None:
        """Mint amount stable units to user against their collateral."""
        self._mint_debt(user, amount)

    @non_reentrant_atomic
    def deposit_and_mint(self, user: str, asset: str, collateral_amount: int, debt_amount: int) -> None:
        """Deposit collateral then mint, as one operation."""
        self._deposit_collateral(user, asset, collateral_amount)
        self._mint_debt(user, debt_amount)

    @non_reentrant_atomic
    def redeem_collateral(self, user: str, asset: str, amount: int) -> None:
        """Withdraw amount of asset; the resulting health factor must stay healthy."""
        _require_more_than_zero(amount)
        self._redeem_collateral(asset, amount, user, user)
        self._revert_if_health_factor_is_broken(user)

    @non_reentrant_atomic
    def burn_debt(self, user: str, amount: int) -> None:
        """
        Repay amount of user's debt with user's stable units. The engine
        must hold an allowance of at least amount on the stable token.
        """
        _require_more_than_zero(amount)
        self._burn_debt(amount, user, user)
        self._revert_if_health_factor_is_broken(user)

    @non_reentrant_atomic
    def redeem_for_burn(self, user: str, asset: str, collateral_amount: int, debt_amount: int) -> None:
        """Burn debt then redeem collateral, as one operation."""
        _require_more_than_zero(collateral_amount)
        _require_more_than_zero(debt_amount)
        self._burn_debt(debt_amount, user, user)
        self._redeem_collateral(asset, collateral_amount, user, user)
        self._revert_if_health_factor_is_broken(user)

    @non_reentrant_atomic
    def liquidate(self, liquidator: str, asset: str, user: str, debt_to_cover: int) -> LiquidationQuote:
        """
        Repay debt_to_cover of an insolvent user's debt out of the
        liquidator's stable units, and pay the liquidator the equivalent
        amount of asset plus the liquidation bonus.

        The liquidation must bring user back to a healthy position and must
        not leave the liquidator's own position unhealthy.

        Returns:
            The quote that was paid out

        Raises:
            HealthFactorAboveThreshold: If user is not liquidatable
            RedeemExceedsDeposited: If user has less of asset than the payout
            HealthFactorNotImproved: If user is still unhealthy afterwards
            HealthFactorBroken: If the liquidator ends up unhealthy
        """
        _require_more_than_zero(debt_to_cover)
        self._registry.require(asset)

        starting_health_factor = self._health_factor(user)
        if starting_health_factor >= MIN_HEALTH_FACTOR:
            raise HealthFactorAboveThreshold(
                f"{user} health factor {starting_health_factor} is not below {MIN_HEALTH_FACTOR}"
            )

        quote = self.quote_liquidation(asset, debt_to_cover)
        self._redeem_collateral(asset, quote.total_collateral, user, liquidator)
        self._burn_debt(debt_to_cover, user, liquidator)

        ending_health_factor = self._health_factor(user)
        if ending_health_factor < MIN_HEALTH_FACTOR:
            raise HealthFactorNotImproved(
                f"{user} health factor {ending_health_factor} still below {MIN_HEALTH_FACTOR}"
            )
        self._revert_if_health_factor_is_broken(liquidator)

        logger.info(
            "%s liquidated %s: covered %d debt for %d %s (bonus %d)",
            liquidator, user, debt_to_cover, quote.total_collateral, asset, quote.bonus,
        )
        return quote

    # ========================================================================
    # INTERNAL PRIMITIVES (checks -> effects -> interactions)
    # ========================================================================

    def _deposit_collateral(self, user: str, asset: str, amount: int) -> None:
        _require_more_than_zero(amount)
        self._registry.require(asset)

        self._collateral_deposited[user][asset] += amount
        self._events.append(CollateralDeposited(user=user, asset=asset, amount=amount))

        if not self._tokens[asset].transfer_from(self.address, user, self.address, amount):
            raise CollateralTransferFailed(f"Transfer of {amount} {asset} from {user} failed")
        logger.debug("%s deposited %d %s", user, amount, asset)

    def _mint_debt(self, user: str, amount: int) -> None:
        _require_more_than_zero(amount)

        self._debt_minted[user] += amount
        self._revert_if_health_factor_is_broken(user)

        if not self._stable.mint(self.address, user, amount):
            raise MintFailed(f"Minting {amount} to {user} failed")
        logger.debug("%s minted %d", user, amount)

    def _redeem_collateral(self, asset: str, amount: int, redeemed_from: str, redeemed_to: str) -> None:
        self._registry.require(asset)
        deposited = self._collateral_deposited.get(redeemed_from, {}).get(asset, 0)
        if amount > deposited:
            raise RedeemExceedsDeposited(redeemed_from, asset, amount, deposited)

        self._collateral_deposited[redeemed_from][asset] = deposited - amount
        self._events.append(CollateralRedeemed(
            redeemed_from=redeemed_from,
            redeemed_to=redeemed_to,
            asset=asset,
            amount=amount,
        ))

        if not self._tokens[asset].transfer(self.address, redeemed_to, amount):
            raise CollateralTransferFailed(f"Transfer of {amount} {asset} to {redeemed_to} failed")
        logger.debug("%d %s redeemed from %s to %s", amount, asset, redeemed_from, redeemed_to)

    def _burn_debt(self, amount: int, on_behalf_of: str, funded_by: str) -> None:
        """
        Decrease on_behalf_of's debt, paid with funded_by's stable units.

        The caller is responsible for the health factor check.
        """
        minted = self._debt_minted.get(on_behalf_of, 0)
        if amount > minted:
            raise DebtUnderflow(f"{on_behalf_of} owes {minted}, cannot burn {amount}")
        self._debt_minted[on_behalf_of] = minted - amount

        if not self._stable.transfer_from(self.address, funded_by, self.address, amount):
            raise TransferFailed(f"Transfer of {amount} stable units from {funded_by} failed")
        self._stable.burn(self.address, amount)
        logger.debug("burned %d of %s debt funded by %s", amount, on_behalf_of, funded_by)

    def _health_factor(self, user: str) -> int:
        info = self.get_account_information(user)
        return calculate_health_factor(info.total_debt, info.collateral_value_usd)

    def _revert_if_health_factor_is_broken(self, user: str) -> None:
        health_factor = self._health_factor(user)
        if health_factor < MIN_HEALTH_FACTOR:
            raise HealthFactorBroken(user, health_factor)

    # ========================================================================
    # TRANSACTIONAL PROTOCOL
    # ========================================================================

    def _transaction_participants(self) -> Iterator[Any]:
        yield self
        yield self.clock
        for token in (self._stable, *self._tokens.values()):
            yield token
            yield getattr(token, "ledger", None)

    def snapshot(self) -> Tuple[Any, ...]:
        """Capture the position ledger and event log (used by the atomic boundary)."""
        deposits = {user: dict(assets) for user, assets in self._collateral_deposited.items()}
        return deposits, dict(self._debt_minted), len(self._events)

    def restore(self, snapshot: Tuple[Any, ...]) -> None:
        deposits, debts, events_length = snapshot
        self._collateral_deposited = defaultdict(lambda: defaultdict(int))
        for user, assets in deposits.items():
            self._collateral_deposited[user] = defaultdict(int, assets)
        self._debt_minted = defaultdict(int, debts)
        del self._events[events_length:]

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    def get_account_information(self, user: str) -> AccountInformation:
        return AccountInformation(
            total_debt=self.get_debt(user),
            collateral_value_usd=self.get_account_collateral_value(user),
        )

    def get_account_collateral_value(self, user: str) -> int:
        """
        USD value of everything user has deposited.

        Only assets with a non-zero deposit are priced, so a stale feed only
        blocks users holding that asset.
        """
        total = 0
        deposits = self._collateral_deposited.get(user, {})
        for asset in self._registry.assets:
            amount = deposits.get(asset, 0)
            if amount:
                total += self.get_usd_value(asset, amount)
        return total

    def get_usd_value(self, asset: str, amount: int) -> int:
        return self._registry.adapter(asset).to_usd_value(amount)

    def get_token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        return self._registry.adapter(asset).from_usd_value(usd_amount)

    def get_health_factor(self, user: str) -> int:
        return self._health_factor(user)

    def get_position_status(self, user: str) -> str:
        return position_status(self._health_factor(user))

    def is_liquidatable(self, user: str) -> bool:
        return self._health_factor(user) < MIN_HEALTH_FACTOR

    @staticmethod
    def calculate_health_factor(total_debt: int, collateral_value_usd: int) -> int:
        return calculate_health_factor(total_debt, collateral_value_usd)

    def quote_liquidation(self, asset: str, debt_to_cover: int) -> LiquidationQuote:
        """Collateral a liquidator would receive for covering debt_to_cover at the current price."""
        _require_more_than_zero(debt_to_cover)
        price = self._registry.adapter(asset).latest_price()
        return quote_liquidation(asset, price, debt_to_cover)

    def get_collateral_balance_of_user(self, user: str, asset: str) -> int:
        return self._collateral_deposited.get(user, {}).get(asset, 0)

    def get_debt(self, user: str) -> int:
        return self._debt_minted.get(user, 0)

    def get_position(self, user: str) -> Position:
        deposits = self._collateral_deposited.get(user, {})
        return Position(
            user=user,
            collateral=MappingProxyType({a: deposits.get(a, 0) for a in self._registry.assets}),
            debt=self.get_debt(user),
        )

    def list_users(self) -> Set[str]:
        """Users with any collateral or debt."""
        users = {u for u, d in self._debt_minted.items() if d}
        users.update(u for u, c in self._collateral_deposited.items() if any(c.values()))
        return users

    def total_debt(self) -> int:
        return sum(self._debt_minted.values())

    def total_collateral_value(self) -> int:
        """System-wide USD value of deposited collateral."""
        total = 0
        for asset in self._registry.assets:
            amount = sum(d.get(asset, 0) for d in self._collateral_deposited.values())
            if amount:
                total += self.get_usd_value(asset, amount)
        return total

    def get_events(self) -> Tuple[Any, ...]:
        return tuple(self._events)

    def get_collateral_tokens(self) -> Tuple[str, ...]:
        return self._registry.assets

    def get_collateral_token(self, asset: str) -> Token:
        self._registry.require(asset)
        return self._tokens[asset]

    def get_collateral_token_price_feed(self, asset: str) -> PriceFeed:
        return self._registry.price_feed(asset)

    def get_stable_token(self) -> StableUnitToken:
        return self._stable

    # Protocol constants

    @staticmethod
    def get_precision() -> int:
        return PRECISION

    @staticmethod
    def get_additional_feed_precision() -> int:
        return ADDITIONAL_FEED_PRECISION

    @staticmethod
    def get_liquidation_threshold() -> int:
        return LIQUIDATION_THRESHOLD

    @staticmethod
    def get_liquidation_bonus() -> int:
        return LIQUIDATION_BONUS

    @staticmethod
    def get_liquidation_precision() -> int:
        return LIQUIDATION_PRECISION

    @staticmethod
    def get_min_health_factor() -> int:
        return MIN_HEALTH_FACTOR

    def __repr__(self):
        return f"StableEngine({self.address}, collateral={list(self._registry.assets)}, users={len(self.list_users())})"
