"""Pydantic schemas for API request/response models.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# ============================================================================
# Base schemas
# ============================================================================


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(CamelModel):
    """Schema for error responses."""

    message: str
    code: str


# ============================================================================
# Payment schemas
# ============================================================================


class AuditLogResponse(CamelModel):
    """Schema for an audit log entry."""

    id: UUID
    wire_payment_id: UUID
    user_id: str
    action: str
    previous_value: str | None = None
    new_value: str | None = None
    details: str | None = None
    timestamp: datetime
    is_revertible: bool
    reverted_at: datetime | None = None
    reverted_by: str | None = None


class ContractAllocationResponse(CamelModel):
    """Schema for a contract allocation."""

    id: UUID
    wire_payment_id: UUID
    contract_id: str
    amount: Decimal
    percentage: Decimal
    gl_account: str
    transaction_id: str | None = None
    created_at: datetime


class PaymentResponse(CamelModel):
    """Schema for a wire payment with its history."""

    id: UUID
    dba: str | None = None
    cid: str | None = None
    expected_amount: Decimal
    actual_amount: Decimal
    expected_date: date | None = None
    actual_date_received: datetime
    ptp: bool
    auto_cleared: bool
    is_reverted: bool
    has_multiple_contracts: bool
    status: str
    processed_by: str | None = None
    notes_for_treasury: str | None = None
    backend_transaction_id: str | None = None
    original_status: str | None = None
    reverted_at: datetime | None = None
    reverted_by: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime
    audit_logs: list[AuditLogResponse] = []
    contract_allocations: list[ContractAllocationResponse] = []


# ============================================================================
# Manual posting schemas
# ============================================================================


class ContractAllocationIn(CamelModel):
    """One requested contract allocation."""

    contract_id: str = ""
    amount: Decimal


class ManualPostRequest(CamelModel):
    """Manual posting request.

    Either `contractAllocations` or the legacy `contractId` (full amount
    implied) must be given. Presence checks happen in the service so that
    they surface as validation errors with a descriptive message.
    """

    contract_allocations: list[ContractAllocationIn] | None = None
    contract_id: str | None = None
    merchant_dba: str | None = None
    notes: str | None = None


class ContractPostResultResponse(CamelModel):
    """Ledger outcome for one allocation."""

    contract_id: str
    amount: Decimal
    transaction_id: str
    gl_account: str
    timestamp: datetime


class BackendPostResponseSchema(CamelModel):
    """Raw ledger response for a manual posting."""

    success: bool
    total_amount: Decimal
    contract_results: list[ContractPostResultResponse]
    timestamp: datetime


class ManualPostResponse(CamelModel):
    """Schema for manual posting response."""

    payment: PaymentResponse
    contract_allocations: list[ContractAllocationResponse]
    backend_response: BackendPostResponseSchema


# ============================================================================
# Reversal schemas
# ============================================================================


class RevertRequest(CamelModel):
    """Reversal request."""

    audit_log_id: UUID | None = None
    reason: str | None = None


class ReversalResultResponse(CamelModel):
    """One ledger reversal."""

    reversal_transaction_id: str
    original_transaction_id: str
    timestamp: datetime


class BackendReversalResponseSchema(CamelModel):
    """Ledger reversals performed for the reverted action."""

    success: bool
    reversals: list[ReversalResultResponse]


class RevertResponse(CamelModel):
    """Schema for reversal response."""

    payment: PaymentResponse
    reverted_action: str
    backend_reversal_response: BackendReversalResponseSchema | None = None
