"""
guard.py - Reentrancy guard and commit/rollback boundary

ReentrancyGuard is an in-progress flag: entering while already inside raises
ReentrantCall immediately, and the flag is released on every exit path.

AtomicBoundary journals every Transactional participant before an operation
and restores all of them if the operation raises, so a failed operation
leaves no trace in engine state, ledger balances, allowances or events.
"""

from __future__ import annotations
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterable, Iterator, List, Tuple
import logging

from .core import ReentrantCall, Transactional

logger = logging.getLogger(__name__)


class ReentrancyGuard:

    def __init__(self):
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    @contextmanager
    def hold(self, operation: str = "operation") -> Iterator[None]:
        """
        Raises:
            ReentrantCall: If the guard is already held
        """
        if self._entered:
            raise ReentrantCall(f"Reentrant call to {operation}")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False


class AtomicBoundary:
    """
    Commit/rollback journal over a dynamic set of participants.

    participants is a callable so that the set is re-evaluated per
    operation. Participants that do not implement Transactional are
    skipped; the same object listed twice is journaled once.
    """

    def __init__(self, participants: Callable[[], Iterable[Any]]):
        self._participants = participants

    def _enrolled(self) -> List[Any]:
        seen = set()
        enrolled = []
        for participant in self._participants():
            if id(participant) in seen or not isinstance(participant, Transactional):
                continue
            seen.add(id(participant))
            enrolled.append(participant)
        return enrolled

    @contextmanager
    def transaction(self, operation: str = "operation") -> Iterator[None]:
        journal: List[Tuple[Any, Any]] = [(p, p.snapshot()) for p in self._enrolled()]
        try:
            yield
        except Exception as exc:
            for participant, snapshot in reversed(journal):
                participant.restore(snapshot)
            logger.debug("Rolled back %s after %s: %s", operation, type(exc).__name__, exc)
            raise


def non_reentrant_atomic(method: Callable) -> Callable:
    """
    Decorate a public engine method.

    The owner object must expose `_guard` (ReentrancyGuard) and `_boundary`
    (AtomicBoundary). The guard is taken first so that a rejected re-entry
    does not journal anything.
    """
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._guard.hold(method.__name__):
            with self._boundary.transaction(method.__name__):
                return method(self, *args, **kwargs)
    return wrapper
