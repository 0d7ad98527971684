"""Reconciliation services."""

from wire_recon.services.allocation import AllocationPlan, ResolvedAllocation
from wire_recon.services.audit import AuditTrail
from wire_recon.services.auto_clear import AutoClearEvaluator
from wire_recon.services.errors import (
    BackendUnavailableError,
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    ReconciliationError,
    ValidationError,
)
from wire_recon.services.payment_service import PaymentService
from wire_recon.services.posting_service import ManualPostingProcessor, PostingOutcome
from wire_recon.services.reversal_service import ReversalOutcome, ReversalProcessor
from wire_recon.services.state_machine import InvalidTransitionError, PaymentStateMachine

__all__ = [
    "AllocationPlan",
    "ResolvedAllocation",
    "AuditTrail",
    "AutoClearEvaluator",
    "BackendUnavailableError",
    "ConcurrentModificationError",
    "ConflictError",
    "NotFoundError",
    "ReconciliationError",
    "ValidationError",
    "PaymentService",
    "ManualPostingProcessor",
    "PostingOutcome",
    "ReversalOutcome",
    "ReversalProcessor",
    "InvalidTransitionError",
    "PaymentStateMachine",
]
