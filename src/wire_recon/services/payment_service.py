"""Wire payment queries and the human clear action."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wire_recon.models import AuditAction, PaymentStatus, WirePayment
from wire_recon.services.audit import AuditTrail
from wire_recon.services.auto_clear import AutoClearEvaluator
from wire_recon.services.errors import ConcurrentModificationError, NotFoundError
from wire_recon.services.state_machine import PaymentStateMachine

logger = logging.getLogger(__name__)


def _payment_query():
    return (
        select(WirePayment)
        .options(
            selectinload(WirePayment.audit_logs),
            selectinload(WirePayment.contract_allocations),
        )
        .execution_options(populate_existing=True)
    )


async def load_payment(session: AsyncSession, payment_id: UUID) -> WirePayment | None:
    """Load a payment with audit logs and allocations, refreshing any cached copy."""
    result = await session.execute(_payment_query().where(WirePayment.id == payment_id))
    return result.scalar_one_or_none()


async def require_payment(session: AsyncSession, payment_id: UUID) -> WirePayment:
    """Load a payment or raise NotFoundError."""
    payment = await load_payment(session, payment_id)
    if payment is None:
        raise NotFoundError("Payment not found", paymentId=str(payment_id))
    return payment


class PaymentService:
    """Read side of the payment store plus the manual clear transition.

    Listing is not side-effect free: it runs the auto-clear evaluator over
    every payment before returning the refreshed collection.
    """

    def __init__(self, session: AsyncSession, system_user: str = "system_auto"):
        self.session = session
        self.system_user = system_user
        self.audit = AuditTrail(session)

    async def list_payments(self) -> Sequence[WirePayment]:
        """List all payments, newest received first, after auto-clearing."""
        payments = await self._load_all()

        evaluator = AutoClearEvaluator(self.session, system_user=self.system_user)
        try:
            cleared = await evaluator.evaluate(payments)
        except ConcurrentModificationError:
            # Another listing auto-cleared the same payments first
            logger.info("Auto-clear lost a race with another request, re-reading payments")
            await self.session.rollback()
            return await self._load_all()
        if not cleared:
            return payments

        return await self._load_all()

    async def get_payment(self, payment_id: UUID) -> WirePayment:
        """Get a single payment with its history."""
        return await require_payment(self.session, payment_id)

    async def clear_payment(self, payment_id: UUID, user_id: str) -> WirePayment:
        """Mark a pending payment as cleared.

        This is a human-authorized override: no amount check is performed.
        It is typically used for PTP payments whose amounts do not match
        exactly (exact matches are auto-cleared on listing).

        Raises:
            NotFoundError: If the payment does not exist.
            InvalidTransitionError: If the payment is not PENDING.
        """
        payment = await require_payment(self.session, payment_id)
        previous_status = payment.status
        PaymentStateMachine.validate_transition(previous_status, PaymentStatus.CLEARED)

        payment.status = PaymentStatus.CLEARED.value
        payment.processed_by = user_id

        self.audit.record(
            payment.id,
            user_id=user_id,
            action=AuditAction.CLEARED,
            previous_value=previous_status,
            new_value=PaymentStatus.CLEARED.value,
            details=(
                f"Cleared by treasury override without amount check "
                f"(expected ${payment.expected_amount:.2f}, "
                f"actual ${payment.actual_amount:.2f}, PTP: {'yes' if payment.ptp else 'no'})"
            ),
            revertible=True,
        )
        self.audit.record(
            payment.id,
            user_id=user_id,
            action=AuditAction.STATUS_CHANGED,
            previous_value=previous_status,
            new_value=PaymentStatus.CLEARED.value,
            details="Payment marked as cleared by treasury",
        )
        await self.audit.flush(payment.id)

        logger.info("Payment %s cleared by %s", payment.id, user_id)
        return await require_payment(self.session, payment.id)

    async def _load_all(self) -> Sequence[WirePayment]:
        result = await self.session.execute(
            _payment_query().order_by(WirePayment.actual_date_received.desc())
        )
        return result.scalars().all()
