"""
test_token.py - Unit tests for token.py

Tests:
- Token: balances, transfers, allowances, snapshot/restore
- CollateralToken: open issuance
- StableUnitToken: owner guard, one-time ownership transfer, mint/burn rules
"""

import pytest

from stableledger import (
    Ledger, CollateralToken, StableUnitToken, SYSTEM_WALLET,
    Unauthorized, OwnershipLocked, MustBeMoreThanZero,
    BurnAmountExceedsBalance, InvalidRecipient,
)


@pytest.fixture
def weth(ledger):
    token = CollateralToken(ledger, "WETH", "Wrapped Ether")
    token.mint("alice", 100)
    return token


@pytest.fixture
def stable(ledger):
    return StableUnitToken(ledger, owner="deployer")


class TestToken:
    """Tests for the fungible token surface."""

    def test_registers_unit(self, ledger, weth):
        assert ledger.get_unit("WETH").name == "Wrapped Ether"

    def test_balance_and_supply(self, weth):
        assert weth.balance_of("alice") == 100
        assert weth.balance_of("bob") == 0
        assert weth.total_supply() == 100

    def test_transfer(self, weth):
        assert weth.transfer("alice", "bob", 40)
        assert weth.balance_of("alice") == 60
        assert weth.balance_of("bob") == 40

    def test_transfer_insufficient_returns_false(self, weth):
        assert not weth.transfer("alice", "bob", 101)
        assert weth.balance_of("alice") == 100

    def test_transfer_zero_is_noop_success(self, weth, ledger):
        log_length = len(ledger.transaction_log)
        assert weth.transfer("alice", "bob", 0)
        assert len(ledger.transaction_log) == log_length

    def test_transfer_negative_or_empty_recipient_fails(self, weth):
        assert not weth.transfer("alice", "bob", -1)
        assert not weth.transfer("alice", "", 1)

    def test_self_transfer(self, weth):
        assert weth.transfer("alice", "alice", 100)
        assert not weth.transfer("alice", "alice", 101)
        assert weth.balance_of("alice") == 100

    def test_approve_and_allowance(self, weth):
        assert weth.allowance("alice", "engine") == 0
        weth.approve("alice", "engine", 30)
        assert weth.allowance("alice", "engine") == 30

    def test_negative_allowance_rejected(self, weth):
        with pytest.raises(ValueError):
            weth.approve("alice", "engine", -1)

    def test_transfer_from_spends_allowance(self, weth):
        weth.approve("alice", "engine", 30)
        assert weth.transfer_from("engine", "alice", "engine", 20)
        assert weth.balance_of("engine") == 20
        assert weth.allowance("alice", "engine") == 10

    def test_transfer_from_over_allowance_fails(self, weth):
        weth.approve("alice", "engine", 30)
        assert not weth.transfer_from("engine", "alice", "engine", 31)
        assert weth.allowance("alice", "engine") == 30

    def test_transfer_from_over_balance_keeps_allowance(self, weth):
        weth.approve("alice", "engine", 500)
        assert not weth.transfer_from("engine", "alice", "bob", 101)
        assert weth.allowance("alice", "engine") == 500

    def test_snapshot_restore_allowances(self, weth):
        weth.approve("alice", "engine", 30)
        snap = weth.snapshot()
        weth.approve("alice", "engine", 0)
        weth.approve("alice", "bob", 5)
        weth.restore(snap)
        assert weth.allowance("alice", "engine") == 30
        assert weth.allowance("alice", "bob") == 0

    def test_mint_is_issuance_from_system_wallet(self, ledger, weth):
        assert ledger.get_balance(SYSTEM_WALLET, "WETH") == -100
        assert ledger.verify_double_entry()['valid']


class TestStableUnitToken:
    """Tests for the owner-restricted stable unit."""

    def test_defaults(self, stable):
        assert stable.symbol == "DSC"
        assert stable.name == "Decentralized Stable Coin"
        assert stable.decimals == 18
        assert stable.owner == "deployer"

    def test_empty_owner_rejected(self, ledger):
        with pytest.raises(ValueError):
            StableUnitToken(ledger, owner="")

    def test_owner_mints(self, stable):
        assert stable.mint("deployer", "alice", 50)
        assert stable.balance_of("alice") == 50
        assert stable.total_supply() == 50

    def test_non_owner_cannot_mint(self, stable):
        with pytest.raises(Unauthorized):
            stable.mint("alice", "alice", 50)

    def test_mint_to_empty_account(self, stable):
        with pytest.raises(InvalidRecipient):
            stable.mint("deployer", "", 50)

    def test_mint_zero(self, stable):
        with pytest.raises(MustBeMoreThanZero):
            stable.mint("deployer", "alice", 0)

    def test_owner_burns_own_balance(self, stable):
        stable.mint("deployer", "deployer", 50)
        stable.burn("deployer", 20)
        assert stable.balance_of("deployer") == 30
        assert stable.total_supply() == 30

    def test_burn_more_than_balance(self, stable):
        stable.mint("deployer", "deployer", 50)
        with pytest.raises(BurnAmountExceedsBalance):
            stable.burn("deployer", 51)

    def test_burn_zero(self, stable):
        with pytest.raises(MustBeMoreThanZero):
            stable.burn("deployer", 0)

    def test_non_owner_cannot_burn(self, stable):
        stable.mint("deployer", "alice", 50)
        with pytest.raises(Unauthorized):
            stable.burn("alice", 10)

    def test_ownership_transfers_once(self, stable):
        stable.transfer_ownership("deployer", "engine")
        assert stable.owner == "engine"
        with pytest.raises(Unauthorized):
            stable.mint("deployer", "alice", 1)
        with pytest.raises(OwnershipLocked):
            stable.transfer_ownership("engine", "someone")

    def test_only_owner_transfers_ownership(self, stable):
        with pytest.raises(Unauthorized):
            stable.transfer_ownership("alice", "alice")

    def test_snapshot_restores_ownership(self, stable):
        snap = stable.snapshot()
        stable.transfer_ownership("deployer", "engine")
        stable.restore(snap)
        assert stable.owner == "deployer"
        stable.transfer_ownership("deployer", "engine")
        assert stable.owner == "engine"

    def test_holders_transfer_freely(self, stable):
        stable.mint("deployer", "alice", 50)
        assert stable.transfer("alice", "bob", 50)
        assert stable.balance_of("bob") == 50
