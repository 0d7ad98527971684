"""Enumerations shared by the ORM models and the services."""

from __future__ import annotations

from enum import Enum


class PaymentStatus(str, Enum):
    """Wire payment status values."""

    PENDING = "PENDING"
    CLEARED = "CLEARED"
    AUTO_CLEARED = "AUTO_CLEARED"
    UNCLEARED = "UNCLEARED"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    MANUAL_POSTED = "MANUAL_POSTED"
    REVERTED = "REVERTED"


class AuditAction(str, Enum):
    """Audit log action tags."""

    AUTO_CLEARED = "AUTO_CLEARED"
    CLEARED = "CLEARED"
    STATUS_CHANGED = "STATUS_CHANGED"
    MANUAL_POST = "MANUAL_POST"
    BACKEND_POST_SUCCESS = "BACKEND_POST_SUCCESS"
    BACKEND_POST_FAILED = "BACKEND_POST_FAILED"
    DBA_UPDATED = "DBA_UPDATED"
    NOTES_UPDATED = "NOTES_UPDATED"
    REVERTED = "REVERTED"
    BACKEND_REVERSAL_SUCCESS = "BACKEND_REVERSAL_SUCCESS"
    BACKEND_REVERSAL_FAILED = "BACKEND_REVERSAL_FAILED"


def _sql_in(values: type[Enum]) -> str:
    return ", ".join(f"'{member.value}'" for member in values)


PAYMENT_STATUS_SQL = _sql_in(PaymentStatus)
AUDIT_ACTION_SQL = _sql_in(AuditAction)
