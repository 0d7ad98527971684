"""Auto-clear evaluation of exactly matching pending payments."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from wire_recon.models import AuditAction, PaymentStatus, WirePayment
from wire_recon.services.audit import AuditTrail
from wire_recon.services.state_machine import PaymentStateMachine

logger = logging.getLogger(__name__)


class AutoClearEvaluator:
    """Transitions PENDING payments whose actual amount equals the expected
    amount to AUTO_CLEARED.

    Equality is exact (no tolerance). Runs whenever payments are listed;
    there is no independent schedule.
    """

    def __init__(self, session: AsyncSession, system_user: str = "system_auto"):
        self.session = session
        self.system_user = system_user
        self.audit = AuditTrail(session)

    async def evaluate(self, payments: Iterable[WirePayment]) -> list[WirePayment]:
        """Auto-clear every eligible payment.

        Returns:
            The payments that were transitioned.
        """
        cleared = [p for p in payments if PaymentStateMachine.is_auto_clear_eligible(p)]
        for payment in cleared:
            self._auto_clear(payment)

        if cleared:
            await self.audit.flush()
            logger.info("Auto-cleared %d payment(s)", len(cleared))
        return cleared

    def _auto_clear(self, payment: WirePayment) -> None:
        PaymentStateMachine.validate_transition(payment.status, PaymentStatus.AUTO_CLEARED)

        payment.status = PaymentStatus.AUTO_CLEARED.value
        payment.auto_cleared = True
        payment.processed_by = self.system_user

        self.audit.record(
            payment.id,
            user_id=self.system_user,
            action=AuditAction.AUTO_CLEARED,
            previous_value=PaymentStatus.PENDING.value,
            new_value=PaymentStatus.AUTO_CLEARED.value,
            details=(
                f"Auto-cleared: Actual amount (${payment.actual_amount:.2f}) matches "
                f"expected amount (${payment.expected_amount:.2f})"
            ),
            revertible=True,
        )
