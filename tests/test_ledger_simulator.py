"""Tests for the ledger simulator and its fault strategies.

Tests verify:
1. Transaction id formats
2. Journal bookkeeping
3. Deterministic failure injection
4. Idempotent reversal
"""

import re
from decimal import Decimal
from uuid import uuid4

import pytest

from wire_recon.ledger import (
    AlwaysFail,
    FailOnReferences,
    LedgerSimulator,
    LedgerUnavailableError,
    NoFaults,
    PostingContext,
    RandomFaults,
    ScriptedFaults,
)

GL_ID = re.compile(r"^GL-\d{13}-[A-Z0-9]{9}$")
REV_ID = re.compile(r"^REV-\d{13}-[A-Z0-9]{9}$")


@pytest.fixture
def context() -> PostingContext:
    return PostingContext(payment_id=uuid4(), actual_amount=Decimal("750.00"))


class TestLedgerSimulator:
    """Test simulated GL postings and reversals."""

    async def test_post(self, context):
        """Posting returns a GL transaction id and journals the entry."""
        ledger = LedgerSimulator(gl_account="1100-AR")

        result = await ledger.post("C-1", Decimal("500.00"), "Acme Corp", context)

        assert GL_ID.match(result.transaction_id)
        assert result.gl_account == "1100-AR"
        assert result.timestamp.tzinfo is not None

        posting = ledger.get_posting(result.transaction_id)
        assert posting["contract_id"] == "C-1"
        assert posting["amount"] == Decimal("500.00")
        assert posting["description"] == (
            "Wire payment manual posting for Acme Corp - Contract C-1"
        )
        assert ledger.posting_count == 1

    async def test_post_failure(self, context):
        ledger = LedgerSimulator(faults=AlwaysFail())

        with pytest.raises(LedgerUnavailableError, match="for contract C-1"):
            await ledger.post("C-1", Decimal("500.00"), "Acme Corp", context)

        assert ledger.posting_count == 0

    async def test_reverse(self, context):
        ledger = LedgerSimulator()
        posted = await ledger.post("C-1", Decimal("500.00"), "Acme Corp", context)

        reversal = await ledger.reverse(posted.transaction_id, context)

        assert REV_ID.match(reversal.reversal_transaction_id)
        assert reversal.original_transaction_id == posted.transaction_id
        assert ledger.is_reversed(posted.transaction_id)

    async def test_reverse_is_idempotent(self, context):
        """Retrying a reversal returns the first result."""
        ledger = LedgerSimulator()
        posted = await ledger.post("C-1", Decimal("500.00"), "Acme Corp", context)

        first = await ledger.reverse(posted.transaction_id, context)
        second = await ledger.reverse(posted.transaction_id, context)

        assert second == first

    async def test_reverse_failure(self, context):
        ledger = LedgerSimulator(faults=AlwaysFail(operation="reverse"))
        posted = await ledger.post("C-1", Decimal("500.00"), "Acme Corp", context)

        with pytest.raises(LedgerUnavailableError, match="reversal system"):
            await ledger.reverse(posted.transaction_id, context)

        assert not ledger.is_reversed(posted.transaction_id)

    def test_invalid_latency_bounds(self):
        with pytest.raises(ValueError):
            LedgerSimulator(min_latency=2.0, max_latency=1.0)

    def test_from_settings(self, settings):
        ledger = LedgerSimulator.from_settings(settings)

        assert ledger.gl_account == settings.gl_account
        assert isinstance(ledger.faults, RandomFaults)
        assert ledger.faults.rate == 0.0


class TestFaultStrategies:
    """Deterministic failure injection."""

    def test_no_faults(self):
        assert NoFaults().should_fail("post", "C-1") is False

    def test_always_fail_by_operation(self):
        faults = AlwaysFail(operation="post")
        assert faults.should_fail("post", "C-1") is True
        assert faults.should_fail("reverse", "GL-1") is False

    def test_scripted_faults(self):
        faults = ScriptedFaults([False, True])

        assert faults.should_fail("post", "C-1") is False
        assert faults.should_fail("post", "C-2") is True
        # Script exhausted
        assert faults.should_fail("post", "C-3") is False
        assert faults.calls == [("post", "C-1"), ("post", "C-2"), ("post", "C-3")]

    def test_fail_on_references(self):
        faults = FailOnReferences({"C-2"})
        assert faults.should_fail("post", "C-1") is False
        assert faults.should_fail("post", "C-2") is True

    def test_random_faults_seeded(self):
        first = RandomFaults(rate=0.5, seed=42)
        second = RandomFaults(rate=0.5, seed=42)

        outcomes = [first.should_fail("post", "C") for _ in range(20)]
        assert outcomes == [second.should_fail("post", "C") for _ in range(20)]

    def test_random_faults_bounds(self):
        assert RandomFaults(rate=0.0).should_fail("post", "C") is False
        assert RandomFaults(rate=1.0).should_fail("post", "C") is True
        with pytest.raises(ValueError):
            RandomFaults(rate=1.5)
