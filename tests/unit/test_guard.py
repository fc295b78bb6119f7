"""
test_guard.py - Unit tests for guard.py

Tests:
- ReentrancyGuard: nested entry rejected, release on every exit path
- AtomicBoundary: restore on exception, skip non-transactional objects
- non_reentrant_atomic decorator
"""

import pytest

from stableledger import ReentrancyGuard, AtomicBoundary, non_reentrant_atomic, ReentrantCall


class Counter:
    """Transactional test double."""

    def __init__(self):
        self.value = 0
        self.restores = 0

    def snapshot(self):
        return self.value

    def restore(self, snapshot):
        self.value = snapshot
        self.restores += 1


class Vault:
    """Minimal owner of a guard and a boundary, like the engine."""

    def __init__(self):
        self.counter = Counter()
        self._guard = ReentrancyGuard()
        self._boundary = AtomicBoundary(lambda: [self.counter])

    @non_reentrant_atomic
    def add(self, amount, fail=False):
        self.counter.value += amount
        if fail:
            raise RuntimeError("boom")
        return self.counter.value

    @non_reentrant_atomic
    def add_twice(self, amount):
        self.counter.value += amount
        return self.add(amount)


class TestReentrancyGuard:

    def test_hold_sets_flag(self):
        guard = ReentrancyGuard()
        with guard.hold():
            assert guard.entered
        assert not guard.entered

    def test_nested_hold_rejected(self):
        guard = ReentrancyGuard()
        with guard.hold("outer"):
            with pytest.raises(ReentrantCall, match="inner"):
                with guard.hold("inner"):
                    pass
            assert guard.entered

    def test_released_after_exception(self):
        guard = ReentrancyGuard()
        with pytest.raises(RuntimeError):
            with guard.hold():
                raise RuntimeError("boom")
        assert not guard.entered


class TestAtomicBoundary:

    def test_commit_keeps_changes(self):
        counter = Counter()
        boundary = AtomicBoundary(lambda: [counter])
        with boundary.transaction():
            counter.value = 5
        assert counter.value == 5
        assert counter.restores == 0

    def test_exception_restores_and_propagates(self):
        counter = Counter()
        boundary = AtomicBoundary(lambda: [counter])
        with pytest.raises(ValueError):
            with boundary.transaction():
                counter.value = 5
                raise ValueError("bad")
        assert counter.value == 0

    def test_duplicates_journaled_once(self):
        counter = Counter()
        boundary = AtomicBoundary(lambda: [counter, counter])
        with pytest.raises(ValueError):
            with boundary.transaction():
                raise ValueError("bad")
        assert counter.restores == 1

    def test_non_transactional_participants_skipped(self):
        counter = Counter()
        boundary = AtomicBoundary(lambda: [None, object(), counter])
        with pytest.raises(ValueError):
            with boundary.transaction():
                counter.value = 3
                raise ValueError("bad")
        assert counter.value == 0


class TestNonReentrantAtomic:

    def test_success(self):
        vault = Vault()
        assert vault.add(3) == 3

    def test_failure_rolls_back_and_releases(self):
        vault = Vault()
        vault.add(3)
        with pytest.raises(RuntimeError):
            vault.add(4, fail=True)
        assert vault.counter.value == 3
        assert not vault._guard.entered
        assert vault.add(1) == 4

    def test_reentry_rejected_and_rolled_back(self):
        vault = Vault()
        with pytest.raises(ReentrantCall, match="add"):
            vault.add_twice(2)
        assert vault.counter.value == 0

    def test_preserves_name(self):
        assert Vault.add.__name__ == "add"
