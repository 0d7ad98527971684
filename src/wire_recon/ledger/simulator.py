"""Simulated general-ledger backend for local development and testing.

Replace with a real GL system adapter for production.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import random
import secrets
import string
import time
from decimal import Decimal
from typing import Any

from wire_recon.ledger.base import (
    LedgerUnavailableError,
    PostingContext,
    PostResult,
    ReversalResult,
)
from wire_recon.ledger.faults import FaultStrategy, NoFaults, RandomFaults

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_uppercase + string.digits


def _transaction_id(prefix: str) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class LedgerSimulator:
    """Stand-in for the downstream GL system.

    Models an unreliable dependency: every call waits a random latency and
    may fail according to the injected fault strategy. Postings and
    reversals are kept in an in-memory journal; reversing the same
    transaction twice returns the first reversal.
    """

    def __init__(
        self,
        gl_account: str = "1100-ACCOUNTS-RECEIVABLE",
        faults: FaultStrategy | None = None,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        throttle_delay: float = 0.0,
    ):
        """Initialize simulator.

        Args:
            gl_account: Account tag every posting is booked against.
            faults: Failure strategy; defaults to never failing.
            min_latency: Lower bound of simulated network delay (seconds).
            max_latency: Upper bound of simulated network delay (seconds).
            throttle_delay: Pause after each successful posting (seconds).
        """
        if max_latency < min_latency:
            raise ValueError("max_latency must be >= min_latency")
        self.gl_account = gl_account
        self.faults = faults or NoFaults()
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.throttle_delay = throttle_delay
        # In-memory tracking for the simulator
        self._postings: dict[str, dict[str, Any]] = {}
        self._reversals: dict[str, ReversalResult] = {}

    @classmethod
    def from_settings(cls, settings: Any) -> LedgerSimulator:
        """Build the randomized simulator described by application settings."""
        return cls(
            gl_account=settings.gl_account,
            faults=RandomFaults(settings.ledger_failure_rate),
            min_latency=settings.ledger_min_latency,
            max_latency=settings.ledger_max_latency,
            throttle_delay=settings.ledger_throttle_delay,
        )

    async def _latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    async def post(
        self,
        contract_id: str,
        amount: Decimal,
        merchant_dba: str,
        context: PostingContext,
    ) -> PostResult:
        """Post an amount against a contract (simulated)."""
        await self._latency()

        if self.faults.should_fail("post", contract_id):
            raise LedgerUnavailableError(
                f"Backend GL system temporarily unavailable for contract {contract_id}"
            )

        transaction_id = _transaction_id("GL")
        now = datetime.datetime.now(datetime.timezone.utc)
        self._postings[transaction_id] = {
            "contract_id": contract_id,
            "amount": amount,
            "merchant_dba": merchant_dba,
            "payment_id": context.payment_id,
            "gl_account": self.gl_account,
            "description": (
                f"Wire payment manual posting for {merchant_dba} - Contract {contract_id}"
            ),
            "posted_at": now,
        }
        logger.debug("Simulated GL posting %s for contract %s", transaction_id, contract_id)

        if self.throttle_delay > 0:
            await asyncio.sleep(self.throttle_delay)

        return PostResult(
            transaction_id=transaction_id,
            gl_account=self.gl_account,
            timestamp=now,
        )

    async def reverse(
        self,
        transaction_id: str,
        context: PostingContext,
    ) -> ReversalResult:
        """Reverse a posted transaction (simulated)."""
        await self._latency()

        if self.faults.should_fail("reverse", transaction_id):
            raise LedgerUnavailableError("Backend reversal system temporarily unavailable")

        # Reversals are idempotent so a partially failed batch can be retried
        if transaction_id in self._reversals:
            return self._reversals[transaction_id]

        result = ReversalResult(
            reversal_transaction_id=_transaction_id("REV"),
            original_transaction_id=transaction_id,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
        )
        self._reversals[transaction_id] = result
        logger.debug(
            "Simulated GL reversal %s of %s", result.reversal_transaction_id, transaction_id
        )
        return result

    def get_posting(self, transaction_id: str) -> dict[str, Any] | None:
        """Look up a journal entry (for testing)."""
        return self._postings.get(transaction_id)

    def is_reversed(self, transaction_id: str) -> bool:
        """Check whether a transaction has been reversed (for testing)."""
        return transaction_id in self._reversals

    @property
    def posting_count(self) -> int:
        return len(self._postings)
