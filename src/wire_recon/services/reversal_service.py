"""Reversal of previously audited payment actions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wire_recon.ledger import LedgerBackend, LedgerUnavailableError, PostingContext, ReversalResult
from wire_recon.models import AuditAction, AuditLog, PaymentStatus, WirePayment, utcnow
from wire_recon.services.audit import AuditTrail
from wire_recon.services.errors import (
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from wire_recon.services.payment_service import require_payment
from wire_recon.services.state_machine import PaymentStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendReversalResponse:
    """Ledger reversals performed while reverting BACKEND_POST_SUCCESS."""

    success: bool
    reversals: list[ReversalResult]


@dataclass
class ReversalOutcome:
    """Result of a successful reversal."""

    payment: WirePayment
    reverted_action: str
    backend_reversal: BackendReversalResponse | None


class ReversalProcessor:
    """Reverts one revertible audit log entry of a payment.

    An entry can be reverted at most once. Reverting MANUAL_POST or
    BACKEND_POST_SUCCESS reverts the whole payment (terminal REVERTED
    status); reverting AUTO_CLEARED or CLEARED puts it back to PENDING.
    """

    def __init__(
        self,
        session: AsyncSession,
        ledger: LedgerBackend,
        *,
        ledger_timeout: float | None = None,
    ):
        self.session = session
        self.ledger = ledger
        self.ledger_timeout = ledger_timeout
        self.audit = AuditTrail(session)

    async def revert(
        self,
        payment_id: UUID,
        audit_log_id: UUID | None,
        *,
        user_id: str,
        reason: str | None = None,
    ) -> ReversalOutcome:
        """Revert an audited action.

        Args:
            payment_id: Payment the audit entry belongs to
            audit_log_id: Audit entry to revert
            user_id: Acting treasury user
            reason: Optional free-text reason

        Returns:
            ReversalOutcome with the updated payment

        Raises:
            ValidationError: No audit log id given
            NotFoundError: Payment or audit entry not found
            ConflictError: Entry not revertible, already reverted, or payment reverted
            BackendUnavailableError: Ledger reversal failed; nothing was changed
        """
        if audit_log_id is None:
            raise ValidationError("Audit log ID is required for reversal")

        payment = await require_payment(self.session, payment_id)

        entry = next((log for log in payment.audit_logs if log.id == audit_log_id), None)
        if entry is None:
            raise NotFoundError("Audit log not found", auditLogId=str(audit_log_id))

        errors = PaymentStateMachine.validate_reversal(payment, entry)
        if errors:
            raise ConflictError(errors[0])

        previous_status = payment.status
        new_status = PaymentStateMachine.reversal_target(entry.action)
        PaymentStateMachine.validate_transition(previous_status, new_status)

        backend_reversal = None
        if entry.action == AuditAction.BACKEND_POST_SUCCESS:
            backend_reversal = await self._reverse_in_ledger(payment, user_id, reason)

        reverted_at = utcnow()
        entry.reverted_at = reverted_at
        entry.reverted_by = user_id

        payment.status = new_status.value
        payment.processed_by = user_id
        if new_status == PaymentStatus.REVERTED:
            payment.is_reverted = True
            payment.original_status = previous_status
            payment.reverted_at = reverted_at
            payment.reverted_by = user_id
        if entry.action == AuditAction.AUTO_CLEARED:
            payment.auto_cleared = False

        self._record_reversal(payment, entry, user_id, previous_status, new_status, reason)
        if backend_reversal is not None:
            original_ids = ", ".join(r.original_transaction_id for r in backend_reversal.reversals)
            reversal_ids = ", ".join(r.reversal_transaction_id for r in backend_reversal.reversals)
            self.audit.record(
                payment.id,
                user_id=user_id,
                action=AuditAction.BACKEND_REVERSAL_SUCCESS,
                previous_value=original_ids,
                new_value=reversal_ids,
                details=(
                    f"Backend transaction reversed. Original ID: {original_ids}, "
                    f"Reversal ID: {reversal_ids}"
                ),
            )

        await self.audit.flush(payment.id)
        logger.info(
            "Reverted %s on payment %s (%s -> %s) by %s",
            entry.action,
            payment.id,
            previous_status,
            new_status.value,
            user_id,
        )

        return ReversalOutcome(
            payment=await require_payment(self.session, payment.id),
            reverted_action=entry.action,
            backend_reversal=backend_reversal,
        )

    async def _reverse_in_ledger(
        self,
        payment: WirePayment,
        user_id: str,
        reason: str | None,
    ) -> BackendReversalResponse | None:
        transaction_ids = [
            a.transaction_id for a in payment.contract_allocations if a.transaction_id
        ]
        if not transaction_ids:
            return None

        context = PostingContext(
            payment_id=payment.id,
            actual_amount=payment.actual_amount,
            date_received=payment.actual_date_received,
            reason=reason or "Manual reversal requested by treasury user",
        )
        reversals: list[ReversalResult] = []
        for transaction_id in transaction_ids:
            try:
                reversal = await asyncio.wait_for(
                    self.ledger.reverse(transaction_id, context),
                    timeout=self.ledger_timeout,
                )
            except (LedgerUnavailableError, asyncio.TimeoutError) as exc:
                logger.exception("Backend reversal failed for payment %s", payment.id)
                message = (
                    "Backend reversal system did not respond in time"
                    if isinstance(exc, asyncio.TimeoutError)
                    else str(exc)
                )
                details = f"Backend reversal failed for {transaction_id}: {message}"
                if reversals:
                    summary = ", ".join(
                        f"{r.original_transaction_id} ({r.reversal_transaction_id})"
                        for r in reversals
                    )
                    details += f". Already reversed before failure, reconcile manually: {summary}"
                self.audit.record(
                    payment.id,
                    user_id=user_id,
                    action=AuditAction.BACKEND_REVERSAL_FAILED,
                    details=details,
                )
                await self.audit.flush(payment.id)
                raise BackendUnavailableError(
                    "Backend reversal failed. Please contact system administrator.",
                    error=message,
                ) from exc
            reversals.append(reversal)

        return BackendReversalResponse(success=True, reversals=reversals)

    def _record_reversal(
        self,
        payment: WirePayment,
        entry: AuditLog,
        user_id: str,
        previous_status: str,
        new_status: PaymentStatus,
        reason: str | None,
    ) -> None:
        self.audit.record(
            payment.id,
            user_id=user_id,
            action=AuditAction.REVERTED,
            previous_value=previous_status,
            new_value=new_status.value,
            details=f"Reverted action: {entry.action}. Reason: {reason or 'No reason provided'}",
        )
        self.audit.record(
            payment.id,
            user_id=user_id,
            action=AuditAction.STATUS_CHANGED,
            previous_value=previous_status,
            new_value=new_status.value,
            details=f"Status changed due to reversal of {entry.action}",
        )
