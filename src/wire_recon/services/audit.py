"""Audit trail writer."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from wire_recon.models import AuditAction, AuditLog, utcnow
from wire_recon.services.errors import ConcurrentModificationError

logger = logging.getLogger(__name__)


class AuditTrail:
    """Appends audit log entries for a unit of work.

    Entries are added to the session, never to a loaded payment's
    collection; callers re-read the payment after `flush()` to see them in
    timestamp order.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def record(
        self,
        payment_id: UUID,
        *,
        user_id: str,
        action: AuditAction,
        details: str,
        previous_value: str | None = None,
        new_value: str | None = None,
        revertible: bool = False,
    ) -> AuditLog:
        """Add one audit entry stamped with the current time."""
        entry = AuditLog(
            wire_payment_id=payment_id,
            user_id=user_id,
            action=action.value,
            previous_value=previous_value,
            new_value=new_value,
            details=details,
            timestamp=utcnow(),
            is_revertible=revertible,
        )
        self.session.add(entry)
        return entry

    async def flush(self, payment_id: UUID | None = None) -> None:
        """Flush pending changes, surfacing version conflicts.

        Raises:
            ConcurrentModificationError: If a payment row was updated by
                another request since it was read.
        """
        try:
            await self.session.flush()
        except StaleDataError as exc:
            logger.warning("Concurrent modification of wire payment %s: %s", payment_id, exc)
            raise ConcurrentModificationError(
                "Payment was modified by another request. Reload and try again.",
                paymentId=str(payment_id) if payment_id else None,
            ) from exc
