"""Wire payment state machine with transition validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from wire_recon.models.enums import AuditAction, PaymentStatus
from wire_recon.services.errors import ConflictError

if TYPE_CHECKING:
    from wire_recon.models import AuditLog, WirePayment


class InvalidTransitionError(ConflictError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, fromStatus=from_status, toStatus=to_status)


class PaymentStateMachine:
    """State machine for wire payment status transitions.

    Allowed transitions:
    - PENDING → AUTO_CLEARED (exact amount match, system)
    - PENDING → CLEARED (human override)
    - PENDING / UNCLEARED / REVIEW_REQUIRED → MANUAL_POSTED
    - AUTO_CLEARED / CLEARED → PENDING (reversal)
    - MANUAL_POSTED / AUTO_CLEARED / CLEARED → REVERTED (reversal)
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PaymentStatus.PENDING: [
            PaymentStatus.AUTO_CLEARED,
            PaymentStatus.CLEARED,
            PaymentStatus.MANUAL_POSTED,
        ],
        PaymentStatus.UNCLEARED: [PaymentStatus.MANUAL_POSTED],
        PaymentStatus.REVIEW_REQUIRED: [PaymentStatus.MANUAL_POSTED],
        PaymentStatus.AUTO_CLEARED: [PaymentStatus.PENDING, PaymentStatus.REVERTED],
        PaymentStatus.CLEARED: [PaymentStatus.PENDING, PaymentStatus.REVERTED],
        PaymentStatus.MANUAL_POSTED: [PaymentStatus.REVERTED],
        PaymentStatus.REVERTED: [],  # Terminal state
    }

    # Statuses a manual posting may start from
    MANUAL_POST_ALLOWED = {
        PaymentStatus.PENDING,
        PaymentStatus.UNCLEARED,
        PaymentStatus.REVIEW_REQUIRED,
    }

    # Audit actions a reversal may target, regardless of is_revertible
    REVERTIBLE_ACTIONS = {
        AuditAction.MANUAL_POST,
        AuditAction.AUTO_CLEARED,
        AuditAction.CLEARED,
        AuditAction.BACKEND_POST_SUCCESS,
    }

    # Status a payment lands in when the given action is reverted
    REVERSAL_TARGETS: dict[str, PaymentStatus] = {
        AuditAction.AUTO_CLEARED: PaymentStatus.PENDING,
        AuditAction.CLEARED: PaymentStatus.PENDING,
        AuditAction.MANUAL_POST: PaymentStatus.REVERTED,
        AuditAction.BACKEND_POST_SUCCESS: PaymentStatus.REVERTED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check if no transition leaves this status."""
        return not cls.VALID_TRANSITIONS.get(status, [])

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def can_manual_post(cls, payment: WirePayment) -> bool:
        """Check if a payment may be manually posted."""
        return not payment.is_reverted and payment.status in cls.MANUAL_POST_ALLOWED

    @classmethod
    def is_auto_clear_eligible(cls, payment: WirePayment) -> bool:
        """Exact amount match on an untouched pending payment."""
        return (
            payment.is_exact_match
            and payment.status == PaymentStatus.PENDING
            and not payment.auto_cleared
            and not payment.is_reverted
        )

    @classmethod
    def reversal_target(cls, action: str) -> PaymentStatus:
        """Status a payment moves to when `action` is reverted."""
        try:
            return cls.REVERSAL_TARGETS[action]
        except KeyError:
            raise ConflictError(f"Action '{action}' cannot be reverted") from None

    @classmethod
    def validate_reversal(cls, payment: WirePayment, audit_log: AuditLog) -> list[str]:
        """Validate that an audit log entry may be reverted.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []

        if not audit_log.is_revertible:
            errors.append("This action cannot be reverted")
            return errors

        if audit_log.reverted_at is not None:
            errors.append("This action has already been reverted")
            return errors

        if payment.is_reverted:
            errors.append("Payment has already been reverted")
            return errors

        if audit_log.action not in cls.REVERTIBLE_ACTIONS:
            errors.append(f"Action '{audit_log.action}' cannot be reverted")

        return errors
