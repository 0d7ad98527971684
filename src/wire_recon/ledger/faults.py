"""Fault strategies deciding when the ledger simulator fails a call."""

from __future__ import annotations

import random
from collections.abc import Iterable
from typing import Protocol


class FaultStrategy(Protocol):
    """Decides whether a single ledger call fails."""

    def should_fail(self, operation: str, reference: str) -> bool:
        """Return True to fail the call.

        Args:
            operation: "post" or "reverse"
            reference: contract id for postings, transaction id for reversals
        """
        ...


class NoFaults:
    """Every call succeeds."""

    def should_fail(self, operation: str, reference: str) -> bool:
        return False


class AlwaysFail:
    """Every call (optionally only one operation kind) fails."""

    def __init__(self, operation: str | None = None):
        self.operation = operation

    def should_fail(self, operation: str, reference: str) -> bool:
        return self.operation is None or self.operation == operation


class RandomFaults:
    """Fail each call independently with a fixed probability."""

    def __init__(self, rate: float = 0.05, seed: int | None = None):
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"Failure rate must be between 0 and 1, got {rate}")
        self.rate = rate
        self._rng = random.Random(seed)

    def should_fail(self, operation: str, reference: str) -> bool:
        return self._rng.random() < self.rate


class ScriptedFaults:
    """Deterministic outcomes, one per call, in order.

    Once the script is exhausted every further call succeeds.

    Usage:
        # second posting of a batch fails
        ScriptedFaults([False, True])
    """

    def __init__(self, outcomes: Iterable[bool]):
        self._outcomes = list(outcomes)
        self.calls: list[tuple[str, str]] = []

    def should_fail(self, operation: str, reference: str) -> bool:
        self.calls.append((operation, reference))
        if not self._outcomes:
            return False
        return self._outcomes.pop(0)


class FailOnReferences:
    """Fail calls whose contract or transaction id is in a fixed set."""

    def __init__(self, references: Iterable[str]):
        self.references = set(references)

    def should_fail(self, operation: str, reference: str) -> bool:
        return reference in self.references
