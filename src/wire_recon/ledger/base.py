"""Base protocol and types for general-ledger backends.

All ledger adapters must implement the LedgerBackend protocol.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import UUID


class LedgerUnavailableError(Exception):
    """Raised when the ledger backend rejects or cannot process a call."""


@dataclass(frozen=True)
class PostingContext:
    """Payment details forwarded with every ledger call."""

    payment_id: UUID
    actual_amount: Decimal
    date_received: datetime.datetime | None = None
    reason: str | None = None


@dataclass(frozen=True)
class PostResult:
    """Result of posting an amount against a contract."""

    transaction_id: str
    gl_account: str
    timestamp: datetime.datetime


@dataclass(frozen=True)
class ReversalResult:
    """Result of reversing a previously posted transaction."""

    reversal_transaction_id: str
    original_transaction_id: str
    timestamp: datetime.datetime


class LedgerBackend(Protocol):
    """Protocol for general-ledger backends.

    The posting and reversal processors use these adapters without knowing
    how the ledger is reached.
    """

    async def post(
        self,
        contract_id: str,
        amount: Decimal,
        merchant_dba: str,
        context: PostingContext,
    ) -> PostResult:
        """Post an amount to the receivables account of a contract.

        Raises:
            LedgerUnavailableError: If the ledger did not accept the posting.
        """
        ...

    async def reverse(
        self,
        transaction_id: str,
        context: PostingContext,
    ) -> ReversalResult:
        """Reverse a transaction returned by post().

        Raises:
            LedgerUnavailableError: If the ledger did not accept the reversal.
        """
        ...
