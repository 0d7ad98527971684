"""Manual posting of wire payments to the general ledger.

Posting is multi-step and not atomic: each allocation is sent to the ledger
in turn and the first failure aborts the batch. Allocations already
accepted by the ledger are not rolled back; the BACKEND_POST_FAILED audit
entry lists them so treasury can reconcile by hand.
"""

from __future__ import annotations

import asyncio
import datetime
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wire_recon.ledger import LedgerBackend, LedgerUnavailableError, PostingContext
from wire_recon.models import AuditAction, ContractAllocation, PaymentStatus, WirePayment
from wire_recon.services.allocation import AllocationPlan, ResolvedAllocation
from wire_recon.services.audit import AuditTrail
from wire_recon.services.errors import (
    BackendUnavailableError,
    ConflictError,
    ValidationError,
)
from wire_recon.services.payment_service import require_payment
from wire_recon.services.state_machine import PaymentStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractPostResult:
    """Ledger outcome for one allocation."""

    contract_id: str
    amount: Decimal
    transaction_id: str
    gl_account: str
    timestamp: datetime.datetime

    def to_json_dict(self) -> dict[str, str]:
        return {
            "contractId": self.contract_id,
            "amount": str(self.amount),
            "transactionId": self.transaction_id,
            "glAccount": self.gl_account,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class BackendPostResponse:
    """Aggregate ledger response for a manual posting."""

    success: bool
    total_amount: Decimal
    contract_results: list[ContractPostResult]
    timestamp: datetime.datetime


@dataclass
class PostingOutcome:
    """Result of a successful manual posting."""

    payment: WirePayment
    contract_allocations: list[ContractAllocation]
    backend_response: BackendPostResponse


class ManualPostingProcessor:
    """Validates a contract allocation and posts it to the ledger.

    Constraints:
    - Allocations must sum to the payment amount (within the tolerance)
    - Reverted payments cannot be posted
    - Posting starts only from PENDING, UNCLEARED or REVIEW_REQUIRED
    - Ledger calls are sequential and individually time-limited
    """

    def __init__(
        self,
        session: AsyncSession,
        ledger: LedgerBackend,
        *,
        tolerance: Decimal = Decimal("0.01"),
        ledger_timeout: float | None = None,
    ):
        self.session = session
        self.ledger = ledger
        self.tolerance = tolerance
        self.ledger_timeout = ledger_timeout
        self.audit = AuditTrail(session)

    async def post(
        self,
        payment_id: UUID,
        *,
        user_id: str,
        merchant_dba: str | None,
        contract_allocations: Iterable[Any] | None = None,
        contract_id: str | None = None,
        notes: str | None = None,
    ) -> PostingOutcome:
        """Post a payment to the ledger across one or more contracts.

        Args:
            payment_id: Payment to post
            user_id: Acting treasury user
            merchant_dba: Merchant DBA name (required)
            contract_allocations: Items with `contract_id` and `amount`
            contract_id: Legacy single contract id (full amount implied)
            notes: Optional notes for treasury

        Returns:
            PostingOutcome with the updated payment and created allocations

        Raises:
            ValidationError: Missing input or allocations not matching the amount
            NotFoundError: Payment does not exist
            ConflictError: Payment is reverted or not in a postable status
            BackendUnavailableError: The ledger rejected one of the postings
        """
        plan = AllocationPlan.from_request(contract_allocations, contract_id)
        merchant_dba = (merchant_dba or "").strip()
        if plan.is_empty or not merchant_dba:
            raise ValidationError("Contract allocations and Merchant DBA are required")

        payment = await require_payment(self.session, payment_id)

        if payment.is_reverted:
            raise ConflictError("Cannot post reverted payment")
        PaymentStateMachine.validate_transition(payment.status, PaymentStatus.MANUAL_POSTED)

        resolved = plan.resolve(payment.actual_amount, self.tolerance)

        context = PostingContext(
            payment_id=payment.id,
            actual_amount=payment.actual_amount,
            date_received=payment.actual_date_received,
        )
        backend_response = await self._post_to_ledger(
            payment, resolved, merchant_dba, context, user_id
        )

        previous_status = payment.status
        previous_dba = payment.dba
        previous_notes = payment.notes_for_treasury

        allocations = [
            ContractAllocation(
                wire_payment_id=payment.id,
                sequence=index,
                contract_id=allocation.contract_id,
                amount=allocation.amount,
                percentage=allocation.percentage,
                gl_account=result.gl_account,
                transaction_id=result.transaction_id,
            )
            for index, (allocation, result) in enumerate(
                zip(resolved, backend_response.contract_results)
            )
        ]
        self.session.add_all(allocations)

        payment.dba = merchant_dba
        payment.status = PaymentStatus.MANUAL_POSTED.value
        payment.notes_for_treasury = notes or previous_notes
        payment.processed_by = user_id
        payment.has_multiple_contracts = len(allocations) > 1

        self._record_success(
            payment.id,
            user_id=user_id,
            resolved=resolved,
            backend_response=backend_response,
            previous_status=previous_status,
        )
        if previous_dba != merchant_dba:
            self.audit.record(
                payment.id,
                user_id=user_id,
                action=AuditAction.DBA_UPDATED,
                previous_value=previous_dba,
                new_value=merchant_dba,
                details="Merchant DBA updated during manual posting",
            )
        if notes and notes != previous_notes:
            self.audit.record(
                payment.id,
                user_id=user_id,
                action=AuditAction.NOTES_UPDATED,
                previous_value=previous_notes,
                new_value=notes,
                details="Notes updated during manual posting",
            )

        await self.audit.flush(payment.id)
        logger.info(
            "Payment %s manually posted by %s across %d contract(s)",
            payment.id,
            user_id,
            len(allocations),
        )

        return PostingOutcome(
            payment=await require_payment(self.session, payment.id),
            contract_allocations=allocations,
            backend_response=backend_response,
        )

    async def _post_to_ledger(
        self,
        payment: WirePayment,
        resolved: list[ResolvedAllocation],
        merchant_dba: str,
        context: PostingContext,
        user_id: str,
    ) -> BackendPostResponse:
        posted: list[ContractPostResult] = []
        for allocation in resolved:
            try:
                result = await asyncio.wait_for(
                    self.ledger.post(allocation.contract_id, allocation.amount, merchant_dba, context),
                    timeout=self.ledger_timeout,
                )
            except (LedgerUnavailableError, asyncio.TimeoutError) as exc:
                await self._record_failure(payment, user_id, exc, posted)
                raise BackendUnavailableError(
                    "Backend posting failed. Please try again later.",
                    error=_describe(exc),
                ) from exc

            posted.append(
                ContractPostResult(
                    contract_id=allocation.contract_id,
                    amount=allocation.amount,
                    transaction_id=result.transaction_id,
                    gl_account=result.gl_account,
                    timestamp=result.timestamp,
                )
            )

        return BackendPostResponse(
            success=True,
            total_amount=sum((a.amount for a in resolved), Decimal("0")),
            contract_results=posted,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
        )

    async def _record_failure(
        self,
        payment: WirePayment,
        user_id: str,
        exc: BaseException,
        posted: list[ContractPostResult],
    ) -> None:
        logger.exception("Backend posting failed for payment %s", payment.id)

        details = f"Backend posting failed: {_describe(exc)}"
        if posted:
            summary = ", ".join(f"{r.contract_id} ({r.transaction_id})" for r in posted)
            details += f". Already posted before failure, reconcile manually: {summary}"

        self.audit.record(
            payment.id,
            user_id=user_id,
            action=AuditAction.BACKEND_POST_FAILED,
            details=details,
        )
        await self.audit.flush(payment.id)

    def _record_success(
        self,
        payment_id: UUID,
        *,
        user_id: str,
        resolved: list[ResolvedAllocation],
        backend_response: BackendPostResponse,
        previous_status: str,
    ) -> None:
        contract_summary = ", ".join(f"{a.contract_id}: ${a.amount:.2f}" for a in resolved)

        self.audit.record(
            payment_id,
            user_id=user_id,
            action=AuditAction.MANUAL_POST,
            new_value=contract_summary,
            details=f"Manual posting completed - {len(resolved)} contract(s): {contract_summary}",
            revertible=True,
        )
        self.audit.record(
            payment_id,
            user_id=user_id,
            action=AuditAction.STATUS_CHANGED,
            previous_value=previous_status,
            new_value=PaymentStatus.MANUAL_POSTED.value,
            details="Status updated after successful manual posting",
        )
        self.audit.record(
            payment_id,
            user_id=user_id,
            action=AuditAction.BACKEND_POST_SUCCESS,
            new_value=json.dumps(
                [r.to_json_dict() for r in backend_response.contract_results]
            ),
            details=f"Successfully posted {len(resolved)} contract(s) to backend GL system.",
            revertible=True,
        )


def _describe(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "Backend GL system did not respond in time"
    return str(exc) or exc.__class__.__name__
