"""
ledger.py - World-State Balance Ledger

The Ledger class holds the balances of every fungible unit (collateral tokens
and the stable unit) for every account, together with the logical clock.
Tokens are thin views over it, so a single snapshot of the ledger captures
every holder balance in the system.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access
    - Executes moves atomically (all moves succeed or all fail)
    - Mints and burns by moving value out of / into SYSTEM_WALLET
    - Tracks time (advance_time) for oracle staleness checks
    - Supports snapshot/restore so callers can roll back a failed operation
"""

from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Any, Iterable
import logging

from .core import (
    # Types
    Move, Transaction, Unit,
    ExecuteResult,
    Positions, BalanceMap,
    # Constants
    SYSTEM_WALLET,
    # Exceptions
    LedgerError, UnitNotRegistered,
)

logger = logging.getLogger(__name__)


class Ledger:
    """
    Double-entry balance ledger with full validation and audit trail.

    Every unit sums to zero across all wallets: issuance is a move out of
    SYSTEM_WALLET, so the system wallet carries the negative of the issued
    supply. Wallets are created lazily on first touch.

    Thread Safety:
        Not thread-safe. Operations are expected to be submitted sequentially.

    Example:
        ledger = Ledger("main")
        ledger.register_unit(Unit("WETH", "Wrapped Ether"))
        ledger.execute([Move(10**18, "WETH", SYSTEM_WALLET, "alice", "mint")])
        ledger.execute([Move(10**17, "WETH", "alice", "bob")])
    """

    def __init__(self, name: str, initial_time: Optional[datetime] = None):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting time for the ledger (default: 1970-01-01)
        """
        self.name = name
        self.balances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self.units: Dict[str, Unit] = {}
        self.transaction_log: List[Transaction] = []
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        # Monotonic sequence counter for execution ordering
        self._next_sequence: int = 0
        # Inverted index mapping unit -> {wallet -> quantity} for O(1) position lookups
        self._positions_by_unit: Dict[str, Dict[str, int]] = defaultdict(dict)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Get the balance of a specific unit in a wallet.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        if wallet_id not in self.balances:
            return 0
        return self.balances[wallet_id].get(unit_symbol, 0)

    def get_positions(self, unit_symbol: str) -> Positions:
        """
        Get all non-zero positions for a specific unit across all wallets.

        Uses an inverted index for O(1) lookup performance. The system wallet
        is included (it holds the negative issued supply).
        """
        return dict(self._positions_by_unit.get(unit_symbol, {}))

    def list_wallets(self) -> List[str]:
        """List every wallet that has ever held a balance."""
        return sorted(self.balances.keys())

    def list_units(self) -> List[str]:
        """List all registered unit symbols."""
        return sorted(self.units.keys())

    def get_unit(self, symbol: str) -> Unit:
        """Return the Unit object for a given symbol."""
        if symbol not in self.units:
            raise UnitNotRegistered(f"Unit {symbol} not registered")
        return self.units[symbol]

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        """Get all non-zero balances for a wallet."""
        if wallet_id not in self.balances:
            return {}
        return {u: q for u, q in self.balances[wallet_id].items() if q != 0}

    def total_supply(self, unit_symbol: str) -> int:
        """
        Issued supply of a unit: the sum over all wallets except SYSTEM_WALLET.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return sum(
            qty for wallet, qty in self._positions_by_unit.get(unit_symbol, {}).items()
            if wallet != SYSTEM_WALLET
        )

    def verify_double_entry(self) -> Dict[str, Any]:
        """
        Verify that conservation laws hold for all units.

        Every unit must sum to zero across all wallets, the system wallet
        included, and the system wallet must mirror the issued supply.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all conservation laws hold
            - 'supplies': Dict[str, int] - Issued supply for each unit
            - 'discrepancies': List[Dict] - Details of any violations

        Example:
            result = ledger.verify_double_entry()
            assert result['valid'], f"Conservation violated: {result['discrepancies']}"
        """
        supplies = {}
        discrepancies = []

        for unit_symbol in self.units:
            net = sum(
                self.balances[w].get(unit_symbol, 0) for w in sorted(self.balances)
            )
            supplies[unit_symbol] = self.total_supply(unit_symbol)
            if net != 0:
                discrepancies.append({
                    'unit': unit_symbol,
                    'net': net,
                })

        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the ledger's logical clock to a new time.

        Time can only move forward, never backward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_unit(self, unit: Unit) -> None:
        """
        Register a new unit (token) in the ledger.

        Raises:
            ValueError: If unit symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        logger.debug("Registered unit %s (%s), %d decimals", unit.symbol, unit.name, unit.decimals)

    # ========================================================================
    # EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{ledger_name}:{sequence:012d}
        """
        return f"exec:{self.name}:{sequence:012d}"

    def execute(self, moves: Iterable[Move]) -> ExecuteResult:
        """
        Execute a batch of moves atomically.

        All moves succeed together or all fail together. A batch is rejected
        if a unit is not registered or if any wallet other than SYSTEM_WALLET
        would end with a negative balance.

        Args:
            moves: Moves to apply

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.REJECTED if validation failed
        """
        moves = tuple(moves)
        if not moves:
            return ExecuteResult.APPLIED

        valid, reason = self._validate(moves)
        if not valid:
            logger.debug("REJECTED on %s: %s", self.name, reason)
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1
        tx = Transaction(
            moves=moves,
            exec_id=self._generate_exec_id(sequence),
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
        )

        self._execute_moves(tx.moves)
        self.transaction_log.append(tx)
        return ExecuteResult.APPLIED

    def _validate(self, moves: Tuple[Move, ...]) -> Tuple[bool, str]:
        """
        Validate moves against registration and balance constraints.

        Returns:
            Tuple of (success: bool, reason: str)
        """
        for move in moves:
            if move.unit_symbol not in self.units:
                return False, f"unit not registered: {move.unit_symbol}"

        # Net balance changes per (wallet, unit)
        net: Dict[Tuple[str, str], int] = {}
        for move in moves:
            key_src = (move.source, move.unit_symbol)
            key_dst = (move.dest, move.unit_symbol)
            net[key_src] = net.get(key_src, 0) - move.quantity
            net[key_dst] = net.get(key_dst, 0) + move.quantity

        # SYSTEM_WALLET is exempt: it is the issuance counterparty
        for (wallet, unit_sym), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            proposed = self.get_balance(wallet, unit_sym) + delta
            if proposed < 0:
                return False, f"{wallet} {unit_sym}: {proposed} < 0"

        return True, ""

    def _update_position_index(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        """Keep the unit -> {wallet -> quantity} index in step with balances."""
        if quantity != 0:
            self._positions_by_unit[unit_symbol][wallet_id] = quantity
        else:
            self._positions_by_unit[unit_symbol].pop(wallet_id, None)

    def _execute_moves(self, moves: Tuple[Move, ...]) -> None:
        """Apply all moves to wallet balances and update the position index."""
        for move in moves:
            new_src_balance = self.balances[move.source][move.unit_symbol] - move.quantity
            self.balances[move.source][move.unit_symbol] = new_src_balance
            self._update_position_index(move.source, move.unit_symbol, new_src_balance)

            new_dst_balance = self.balances[move.dest][move.unit_symbol] + move.quantity
            self.balances[move.dest][move.unit_symbol] = new_dst_balance
            self._update_position_index(move.dest, move.unit_symbol, new_dst_balance)

    # ========================================================================
    # SNAPSHOT / ROLLBACK
    # ========================================================================

    def snapshot(self) -> Tuple[Any, ...]:
        """
        Capture balances, position index and log position.

        The clock is not captured: time is external to any single operation.
        """
        balances = {w: dict(b) for w, b in self.balances.items()}
        positions = {u: dict(p) for u, p in self._positions_by_unit.items()}
        return balances, positions, len(self.transaction_log), self._next_sequence

    def restore(self, snapshot: Tuple[Any, ...]) -> None:
        """Put the ledger back to the state captured by snapshot()."""
        balances, positions, log_length, next_sequence = snapshot
        self.balances = defaultdict(lambda: defaultdict(int))
        for wallet, bals in balances.items():
            self.balances[wallet] = defaultdict(int, bals)
        self._positions_by_unit = defaultdict(dict)
        for unit_symbol, unit_positions in positions.items():
            self._positions_by_unit[unit_symbol] = dict(unit_positions)
        del self.transaction_log[log_length:]
        self._next_sequence = next_sequence

    def clone(self) -> Ledger:
        """
        Create a deep copy of this ledger.

        Modifications to the clone do not affect the original and vice versa.
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned._current_time = self._current_time
        cloned.units = dict(self.units)
        cloned.transaction_log = []
        cloned.restore(self.snapshot())
        cloned.transaction_log = list(self.transaction_log)
        return cloned

    def replay(self) -> Ledger:
        """
        Create a new ledger by replaying the transaction log from scratch.

        Useful to check that the audit trail alone explains current balances.

        Raises:
            LedgerError: If a logged transaction is rejected during replay
        """
        new_ledger = Ledger(name=f"{self.name}_replayed")
        for unit in self.units.values():
            new_ledger.register_unit(unit)

        for tx in self.transaction_log:
            if tx.execution_time > new_ledger.current_time:
                new_ledger.advance_time(tx.execution_time)
            if new_ledger.execute(tx.moves) == ExecuteResult.REJECTED:
                raise LedgerError(f"Replay failed at tx {tx.exec_id}")

        return new_ledger
