"""
token.py - Fungible tokens backed by the world-state Ledger

Token implements the standard fungible-token surface (balance_of, transfer,
approve, allowance, transfer_from, total_supply) on top of a shared Ledger.
Balances live in the ledger; allowances live on the token.

StableUnitToken adds the burnable, owner-restricted mint/burn surface used by
the engine. Ownership is the capability that authorizes minting and burning:
it is handed over exactly once (to the engine) and is then locked.

Transfers report failure by returning False rather than raising, so callers
must check the result.
"""

from __future__ import annotations
from typing import Dict, Tuple, Any

from .core import (
    Move, Unit, ExecuteResult,
    SYSTEM_WALLET, TOKEN_DECIMALS,
    Unauthorized, OwnershipLocked, MustBeMoreThanZero,
    BurnAmountExceedsBalance, InvalidRecipient,
)
from .ledger import Ledger


class Token:
    """
    Fungible token whose balances are held in a Ledger.

    Example:
        weth = CollateralToken(ledger, "WETH", "Wrapped Ether")
        weth.mint("alice", 10 * 10**18)
        weth.approve("alice", "engine", 10 * 10**18)
        weth.transfer_from("engine", "alice", "engine", 10**18)
    """

    def __init__(self, ledger: Ledger, symbol: str, name: str, decimals: int = TOKEN_DECIMALS):
        self.ledger = ledger
        self.symbol = symbol
        self.name = name
        self.decimals = decimals
        self._allowances: Dict[Tuple[str, str], int] = {}
        ledger.register_unit(Unit(symbol, name, decimals))

    def balance_of(self, account: str) -> int:
        return self.ledger.get_balance(account, self.symbol)

    def total_supply(self) -> int:
        return self.ledger.total_supply(self.symbol)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set the amount spender may move out of owner's balance."""
        if amount < 0:
            raise ValueError(f"Allowance cannot be negative, got {amount}")
        self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer amount from sender to recipient.

        Returns:
            True if applied, False if the ledger rejected the move
        """
        if amount < 0 or not recipient:
            return False
        if amount == 0:
            return True
        if sender == recipient:
            return self.balance_of(sender) >= amount
        result = self.ledger.execute([Move(amount, self.symbol, sender, recipient, "transfer")])
        return result == ExecuteResult.APPLIED

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        """
        Transfer amount from owner to recipient using spender's allowance.

        Returns:
            True if applied, False if the allowance or the balance is short
        """
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            return False
        if not self.transfer(owner, recipient, amount):
            return False
        self._allowances[(owner, spender)] = allowed - amount
        return True

    def _issue(self, account: str, amount: int) -> bool:
        result = self.ledger.execute([Move(amount, self.symbol, SYSTEM_WALLET, account, "mint")])
        return result == ExecuteResult.APPLIED

    def _retire(self, account: str, amount: int) -> bool:
        result = self.ledger.execute([Move(amount, self.symbol, account, SYSTEM_WALLET, "burn")])
        return result == ExecuteResult.APPLIED

    # Transactional protocol: only allowances live here, balances are the ledger's
    def snapshot(self) -> Any:
        return dict(self._allowances)

    def restore(self, snapshot: Any) -> None:
        self._allowances = dict(snapshot)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol}, supply={self.total_supply()})"


class CollateralToken(Token):
    """Collateral asset token with open issuance (a faucet for local networks and tests)."""

    def mint(self, account: str, amount: int) -> bool:
        return self._issue(account, amount)


class StableUnitToken(Token):
    """
    The USD-pegged stable unit.

    Only the owner may mint or burn. The deployer starts as owner and hands
    ownership to the engine once; any later transfer raises OwnershipLocked.
    """

    def __init__(
        self,
        ledger: Ledger,
        owner: str,
        symbol: str = "DSC",
        name: str = "Decentralized Stable Coin",
    ):
        super().__init__(ledger, symbol, name, TOKEN_DECIMALS)
        if not owner:
            raise ValueError("Stable token owner cannot be empty")
        self.owner = owner
        self._ownership_transferred = False

    def only_owner(self, caller: str) -> None:
        """
        Guard for restricted operations.

        Raises:
            Unauthorized: If caller is not the current owner
        """
        if caller != self.owner:
            raise Unauthorized(f"{caller} is not the owner of {self.symbol}")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """
        Hand the mint/burn capability to new_owner.

        Raises:
            Unauthorized: If caller is not the owner
            OwnershipLocked: If ownership was already transferred once
            InvalidRecipient: If new_owner is empty
        """
        self.only_owner(caller)
        if self._ownership_transferred:
            raise OwnershipLocked(f"Ownership of {self.symbol} was already transferred")
        if not new_owner:
            raise InvalidRecipient("New owner cannot be empty")
        self.owner = new_owner
        self._ownership_transferred = True

    def mint(self, caller: str, to: str, amount: int) -> bool:
        """
        Issue amount new stable units to `to`.

        Raises:
            Unauthorized: If caller is not the owner
            InvalidRecipient: If to is empty
            MustBeMoreThanZero: If amount <= 0
        """
        self.only_owner(caller)
        if not to:
            raise InvalidRecipient("Cannot mint to an empty account")
        if amount <= 0:
            raise MustBeMoreThanZero(f"Mint amount must be positive, got {amount}")
        return self._issue(to, amount)

    def burn(self, caller: str, amount: int) -> None:
        """
        Destroy amount stable units held by the caller.

        Raises:
            Unauthorized: If caller is not the owner
            MustBeMoreThanZero: If amount <= 0
            BurnAmountExceedsBalance: If the caller holds less than amount
        """
        self.only_owner(caller)
        if amount <= 0:
            raise MustBeMoreThanZero(f"Burn amount must be positive, got {amount}")
        balance = self.balance_of(caller)
        if balance < amount:
            raise BurnAmountExceedsBalance(f"{caller} holds {balance}, cannot burn {amount}")
        self._retire(caller, amount)

    # Ownership must roll back with everything else
    def snapshot(self) -> Any:
        return super().snapshot(), self.owner, self._ownership_transferred

    def restore(self, snapshot: Any) -> None:
        allowances, self.owner, self._ownership_transferred = snapshot
        super().restore(allowances)
