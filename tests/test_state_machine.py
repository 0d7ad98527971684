"""Tests for wire payment state machine."""

from decimal import Decimal

import pytest

from wire_recon.models import AuditAction, AuditLog, PaymentStatus, WirePayment, utcnow
from wire_recon.services.errors import ConflictError
from wire_recon.services.state_machine import InvalidTransitionError, PaymentStateMachine


def _payment(**overrides) -> WirePayment:
    values = {
        "expected_amount": Decimal("750.00"),
        "actual_amount": Decimal("750.00"),
        "status": PaymentStatus.PENDING.value,
        "auto_cleared": False,
        "is_reverted": False,
    }
    values.update(overrides)
    return WirePayment(**values)


def _entry(action: AuditAction, **overrides) -> AuditLog:
    values = {
        "user_id": "treasury_user",
        "action": action.value,
        "details": "test",
        "is_revertible": True,
        "reverted_at": None,
    }
    values.update(overrides)
    return AuditLog(**values)


class TestPaymentStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # PENDING → AUTO_CLEARED (system)
        assert PaymentStateMachine.can_transition("PENDING", "AUTO_CLEARED") is True

        # PENDING → CLEARED (human override)
        assert PaymentStateMachine.can_transition("PENDING", "CLEARED") is True

        # Manual posting from every open status
        assert PaymentStateMachine.can_transition("PENDING", "MANUAL_POSTED") is True
        assert PaymentStateMachine.can_transition("UNCLEARED", "MANUAL_POSTED") is True
        assert PaymentStateMachine.can_transition("REVIEW_REQUIRED", "MANUAL_POSTED") is True

        # Reversals
        assert PaymentStateMachine.can_transition("AUTO_CLEARED", "PENDING") is True
        assert PaymentStateMachine.can_transition("CLEARED", "PENDING") is True
        assert PaymentStateMachine.can_transition("MANUAL_POSTED", "REVERTED") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Manual posting is never re-entered
        assert PaymentStateMachine.can_transition("MANUAL_POSTED", "MANUAL_POSTED") is False
        assert PaymentStateMachine.can_transition("AUTO_CLEARED", "MANUAL_POSTED") is False

        # Clearing only from PENDING
        assert PaymentStateMachine.can_transition("CLEARED", "CLEARED") is False
        assert PaymentStateMachine.can_transition("UNCLEARED", "CLEARED") is False

        # Reverted is terminal
        for status in PaymentStatus:
            assert PaymentStateMachine.can_transition("REVERTED", status.value) is False

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PaymentStateMachine.validate_transition("REVERTED", "PENDING")

        assert exc_info.value.from_status == "REVERTED"
        assert exc_info.value.to_status == "PENDING"
        assert exc_info.value.status_code == 400
        assert exc_info.value.to_dict()["fromStatus"] == "REVERTED"

    def test_invalid_transition_is_conflict(self):
        assert issubclass(InvalidTransitionError, ConflictError)

    def test_is_terminal(self):
        assert PaymentStateMachine.is_terminal("REVERTED") is True
        assert PaymentStateMachine.is_terminal("MANUAL_POSTED") is False
        assert PaymentStateMachine.is_terminal("PENDING") is False

    def test_get_next_statuses(self):
        assert set(PaymentStateMachine.get_next_statuses("MANUAL_POSTED")) == {"REVERTED"}
        assert PaymentStateMachine.get_next_statuses("REVERTED") == []

    def test_can_manual_post(self):
        """Only open, unreverted payments may be posted."""
        assert PaymentStateMachine.can_manual_post(_payment()) is True
        assert PaymentStateMachine.can_manual_post(_payment(status="REVIEW_REQUIRED")) is True
        assert PaymentStateMachine.can_manual_post(_payment(status="MANUAL_POSTED")) is False
        assert (
            PaymentStateMachine.can_manual_post(
                _payment(status="REVERTED", is_reverted=True, original_status="MANUAL_POSTED")
            )
            is False
        )


class TestAutoClearEligibility:
    """Exact-match rule for auto-clearing."""

    def test_exact_match_pending(self):
        assert PaymentStateMachine.is_auto_clear_eligible(_payment()) is True

    def test_one_cent_difference(self):
        payment = _payment(actual_amount=Decimal("749.99"))
        assert PaymentStateMachine.is_auto_clear_eligible(payment) is False

    def test_not_pending(self):
        payment = _payment(status=PaymentStatus.REVIEW_REQUIRED.value)
        assert PaymentStateMachine.is_auto_clear_eligible(payment) is False

    def test_already_auto_cleared_flag(self):
        payment = _payment(auto_cleared=True)
        assert PaymentStateMachine.is_auto_clear_eligible(payment) is False


class TestReversalPolicy:
    """Reversal validation and targets."""

    def test_reversal_targets(self):
        assert PaymentStateMachine.reversal_target("AUTO_CLEARED") == PaymentStatus.PENDING
        assert PaymentStateMachine.reversal_target("CLEARED") == PaymentStatus.PENDING
        assert PaymentStateMachine.reversal_target("MANUAL_POST") == PaymentStatus.REVERTED
        assert (
            PaymentStateMachine.reversal_target("BACKEND_POST_SUCCESS")
            == PaymentStatus.REVERTED
        )

    def test_reversal_target_unknown_action(self):
        with pytest.raises(ConflictError):
            PaymentStateMachine.reversal_target("NOTES_UPDATED")

    def test_valid_reversal(self):
        errors = PaymentStateMachine.validate_reversal(
            _payment(status="MANUAL_POSTED"), _entry(AuditAction.MANUAL_POST)
        )
        assert errors == []

    def test_not_revertible(self):
        errors = PaymentStateMachine.validate_reversal(
            _payment(), _entry(AuditAction.STATUS_CHANGED, is_revertible=False)
        )
        assert errors == ["This action cannot be reverted"]

    def test_already_reverted_entry(self):
        errors = PaymentStateMachine.validate_reversal(
            _payment(), _entry(AuditAction.AUTO_CLEARED, reverted_at=utcnow())
        )
        assert errors == ["This action has already been reverted"]

    def test_payment_already_reverted(self):
        payment = _payment(status="REVERTED", is_reverted=True, original_status="MANUAL_POSTED")
        errors = PaymentStateMachine.validate_reversal(
            payment, _entry(AuditAction.BACKEND_POST_SUCCESS)
        )
        assert errors == ["Payment has already been reverted"]

    def test_revertible_flag_outside_policy(self):
        """A revertible flag alone is not enough."""
        errors = PaymentStateMachine.validate_reversal(
            _payment(), _entry(AuditAction.NOTES_UPDATED)
        )
        assert errors == ["Action 'NOTES_UPDATED' cannot be reverted"]
