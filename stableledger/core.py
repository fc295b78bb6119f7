"""
Core types and pure functions for the collateralized-debt engine.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView, EngineView, PriceFeed and Transactional
2. Immutable data structures: Move, Transaction, Unit, RoundData,
   CollateralAssetConfig, Position, AccountInformation and the engine events
3. Exceptions: LedgerError and domain-specific error types
4. Protocol constants (fixed-point precisions, liquidation parameters)
5. Unit helpers: conversion between human amounts and integer base units

All amounts are integers expressed in base units (18 decimals for tokens,
8 decimals for feed prices). Integer division truncates toward zero.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_DOWN
from enum import Enum
from typing import (
    Dict, Set, Optional, Any, Protocol,
    Tuple, FrozenSet, runtime_checkable, Mapping
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet that is the counterparty of every mint and burn.
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

# Decimals of every fungible token and of the USD values computed from them.
TOKEN_DECIMALS = 18

# Decimals of every price feed answer (e.g. 2000_00000000 == $2000).
FEED_DECIMALS = 8

# Fixed-point scale of token amounts, USD values and health factors.
PRECISION = 10 ** 18

# Scales an 8-decimal feed answer up to PRECISION.
ADDITIONAL_FEED_PRECISION = 10 ** 10

# Only LIQUIDATION_THRESHOLD / LIQUIDATION_PRECISION of collateral value
# counts toward solvency (50% => 200% over-collateralization).
LIQUIDATION_THRESHOLD = 50
LIQUIDATION_PRECISION = 100

# Extra collateral awarded to a liquidator, in LIQUIDATION_PRECISION units.
LIQUIDATION_BONUS = 10

# Health factor at or above which a position is solvent (1.0).
MIN_HEALTH_FACTOR = 10 ** 18

# Health factor of a position without debt.
MAX_HEALTH_FACTOR = 2 ** 256 - 1

# Maximum age of a price reading before it is treated as unusable.
ORACLE_TIMEOUT = timedelta(hours=3)


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, int]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, int]


# ============================================================================
# UNIT HELPERS
# ============================================================================

def to_base_units(amount: Any, decimals: int = TOKEN_DECIMALS) -> int:
    """
    Convert a human-readable amount into integer base units.

    Goes through Decimal so that to_base_units("0.1") is exact; anything
    below the smallest base unit is truncated.

    Example:
        to_base_units(10) == 10 * 10**18
        to_base_units("2000", FEED_DECIMALS) == 2000_00000000
    """
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    scaled = (amount * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def from_base_units(amount: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    """Convert integer base units back into a Decimal human-readable amount."""
    return Decimal(amount) / (Decimal(10) ** decimals)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to world-state balances.

    Token and oracle code that only needs to observe balances or the logical
    clock accepts a LedgerView, declaring its read-only intent. The Ledger
    class implements this protocol but also provides mutation methods.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """Return the balance of a unit in a wallet (0 if never touched)."""
        ...

    def get_positions(self, unit_symbol: str) -> Positions:
        """Return all non-zero positions for a unit across all wallets."""
        ...

    def total_supply(self, unit_symbol: str) -> int:
        """Return the issued supply of a unit (all wallets except the system wallet)."""
        ...


@runtime_checkable
class PriceFeed(Protocol):
    """
    Per-asset price feed, consumed read-only by the oracle adapter.

    Answers carry FEED_DECIMALS decimals.
    """
    decimals: int

    def latest_round_data(self) -> 'RoundData':
        """Return the most recent round."""
        ...


@runtime_checkable
class Transactional(Protocol):
    """
    A collaborator whose state can be journaled and rolled back.

    snapshot() captures enough state for restore() to put the object back
    exactly as it was. Used by the engine's commit/rollback boundary.
    """

    def snapshot(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


@runtime_checkable
class EngineView(Protocol):
    """
    Read-only interface to the engine's position ledger.

    Simulations and monitoring code accept an EngineView so they can only
    query positions, never change them.
    """

    @property
    def address(self) -> str:
        ...

    def get_collateral_tokens(self) -> Tuple[str, ...]:
        ...

    def get_collateral_balance_of_user(self, user: str, asset: str) -> int:
        ...

    def get_debt(self, user: str) -> int:
        ...

    def get_health_factor(self, user: str) -> int:
        ...

    def get_usd_value(self, asset: str, amount: int) -> int:
        ...

    def list_users(self) -> Set[str]:
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a ledger execution attempt.

    APPLIED: Moves were validated and applied.
    REJECTED: Moves failed validation (insufficient funds, unregistered unit).
    """
    APPLIED = "applied"
    REJECTED = "rejected"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all errors raised by this package."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when operating on a unit that has not been registered with the ledger."""
    pass


# --- token errors -----------------------------------------------------------

class TokenError(LedgerError):
    """Base exception for fungible token errors."""
    pass


class Unauthorized(TokenError):
    """Raised when a restricted token operation is called by a non-owner."""
    pass


class OwnershipLocked(TokenError):
    """Raised when ownership of the stable token is transferred a second time."""
    pass


class MustBeMoreThanZero(TokenError):
    """Raised when minting or burning a non-positive amount."""
    pass


class BurnAmountExceedsBalance(TokenError):
    """Raised when burning more than the caller holds."""
    pass


class InvalidRecipient(TokenError):
    """Raised when minting to an empty account identifier."""
    pass


# --- engine errors ----------------------------------------------------------

class EngineError(LedgerError):
    """Base exception for collateralized-debt engine errors."""
    pass


class NeedsMoreThanZero(EngineError):
    """Raised when an operation amount is zero or negative."""
    pass


class TokenNotAllowed(EngineError):
    """Raised when an asset is not a configured collateral asset."""

    def __init__(self, asset: str):
        super().__init__(f"Collateral asset {asset!r} is not allowed")
        self.asset = asset


class TokenAddressesAndPriceFeedAddressesMustBeSameLength(EngineError):
    """Raised at initialization when the asset and feed lists differ in length."""
    pass


class RedeemExceedsDeposited(EngineError):
    """Raised when redeeming more collateral than is deposited."""

    def __init__(self, user: str, asset: str, requested: int, deposited: int):
        super().__init__(
            f"{user} cannot redeem {requested} {asset}: only {deposited} deposited"
        )
        self.user = user
        self.asset = asset
        self.requested = requested
        self.deposited = deposited


class DebtUnderflow(EngineError):
    """Raised when burning more debt than a position owes. Always a hard abort."""
    pass


class HealthFactorBroken(EngineError):
    """Raised when an operation would leave a position below the minimum health factor."""

    def __init__(self, user: str, health_factor: int):
        super().__init__(f"Health factor of {user} would be {health_factor}")
        self.user = user
        self.health_factor = health_factor


class HealthFactorAboveThreshold(EngineError):
    """Raised when liquidating a position that is not liquidatable."""
    pass


class HealthFactorNotImproved(EngineError):
    """Raised when a liquidation does not restore the target's solvency."""
    pass


class CollateralTransferFailed(EngineError):
    """Raised when a collateral token transfer reports failure."""
    pass


class TransferFailed(EngineError):
    """Raised when pulling stable units into the engine reports failure."""
    pass


class MintFailed(EngineError):
    """Raised when the stable token reports a failed mint."""
    pass


class StalePriceData(EngineError):
    """Raised when a price reading is older than the staleness window."""

    def __init__(self, updated_at: Optional[datetime], now: datetime):
        super().__init__(f"Stale price: updated at {updated_at}, now {now}")
        self.updated_at = updated_at
        self.now = now


class InvalidPrice(EngineError):
    """Raised when a feed answers a non-positive price."""

    def __init__(self, feed: Any, answer: int):
        super().__init__(f"Feed {feed!r} answered non-positive price {answer}")
        self.answer = answer


class UnsupportedFeedDecimals(EngineError):
    """Raised when a feed's answers do not carry FEED_DECIMALS decimals."""

    def __init__(self, feed: Any, decimals: int):
        super().__init__(f"Feed {feed!r} has {decimals} decimals, expected {FEED_DECIMALS}")
        self.decimals = decimals


class ReentrantCall(EngineError):
    """Raised when a guarded operation is entered while another is in progress."""
    pass


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: Amount in base units (must be a positive int).
        unit_symbol: Symbol of the unit being transferred (e.g., "WETH", "DSC").
        source: Wallet debited.
        dest: Wallet credited.
        memo: Short label for the audit trail (e.g., "transfer", "mint").
    """
    quantity: int
    unit_symbol: str
    source: str
    dest: str
    memo: str = "transfer"

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of applied moves.

    Attributes:
        moves: Tuple of value transfers between wallets
        exec_id: Unique execution identifier (ledger + sequence)
        ledger_name: Name of the ledger that executed this
        execution_time: Logical time at execution
        sequence_number: Monotonic sequence within the ledger
    """
    moves: Tuple[Move, ...]
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    units: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")
        if self.units is None:
            object.__setattr__(self, 'units', frozenset(m.unit_symbol for m in self.moves))

    def __repr__(self) -> str:
        moves = ", ".join(repr(m) for m in self.moves)
        return f"Transaction({self.exec_id}: {moves})"


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a fungible unit (token) held in the ledger.

    Attributes:
        symbol: Short identifier (e.g., "WETH", "DSC").
        name: Human-readable name.
        decimals: Number of decimals of one whole token.
    """
    symbol: str
    name: str
    decimals: int = TOKEN_DECIMALS

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Unit symbol cannot be empty")
        if self.decimals < 0:
            raise ValueError(f"Unit decimals cannot be negative, got {self.decimals}")


@dataclass(frozen=True, slots=True)
class RoundData:
    """
    One price feed round.

    Attributes:
        round_id: Identifier of the round.
        answer: Price with FEED_DECIMALS decimals.
        started_at: When the round started.
        updated_at: When the answer was last written (None if never).
        answered_in_round: Round in which the answer was computed.
    """
    round_id: int
    answer: int
    started_at: Optional[datetime]
    updated_at: Optional[datetime]
    answered_in_round: int


@dataclass(frozen=True, slots=True)
class CollateralAssetConfig:
    """Binding of one allowed collateral asset to its price feed."""
    asset: str
    price_feed: PriceFeed

    def __post_init__(self):
        if not self.asset or not self.asset.strip():
            raise ValueError("Collateral asset cannot be empty")
        if self.price_feed is None:
            raise ValueError(f"Collateral asset {self.asset} has no price feed")


@dataclass(frozen=True, slots=True)
class Position:
    """
    Read-only snapshot of one user's position.

    A position with no collateral and no debt is indistinguishable from one
    that never existed.
    """
    user: str
    collateral: Mapping[str, int]
    debt: int

    def is_empty(self) -> bool:
        return self.debt == 0 and not any(self.collateral.values())


@dataclass(frozen=True, slots=True)
class AccountInformation:
    """Debt and collateral USD value of one user (both 18-decimal fixed point)."""
    total_debt: int
    collateral_value_usd: int


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class CollateralDeposited:
    user: str
    asset: str
    amount: int


@dataclass(frozen=True, slots=True)
class CollateralRedeemed:
    """
    Emitted on every collateral redemption.

    redeemed_from == redeemed_to for a user redemption; for a liquidation
    redeemed_from is the target and redeemed_to the liquidator.
    """
    redeemed_from: str
    redeemed_to: str
    asset: str
    amount: int
