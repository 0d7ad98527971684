"""Wire payment API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from wire_recon.api.dependencies import AppSettings, CurrentUser, DbSession, Ledger
from wire_recon.api.schemas import (
    BackendPostResponseSchema,
    BackendReversalResponseSchema,
    ContractAllocationResponse,
    ErrorResponse,
    ManualPostRequest,
    ManualPostResponse,
    PaymentResponse,
    RevertRequest,
    RevertResponse,
)
from wire_recon.services.errors import BackendUnavailableError
from wire_recon.services.payment_service import PaymentService
from wire_recon.services.posting_service import ManualPostingProcessor
from wire_recon.services.reversal_service import ReversalProcessor

router = APIRouter(prefix="/payments", tags=["payments"])


# ============================================================================
# Queries
# ============================================================================


@router.get("", response_model=list[PaymentResponse])
async def list_payments(db: DbSession, settings: AppSettings) -> list[PaymentResponse]:
    """List all payments, auto-clearing exact matches first."""
    service = PaymentService(db, system_user=settings.auto_clear_user)
    payments = await service.list_payments()
    await db.commit()
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payment(
    db: DbSession,
    settings: AppSettings,
    payment_id: Annotated[UUID, Path()],
) -> PaymentResponse:
    """Get a specific payment with its audit history."""
    service = PaymentService(db, system_user=settings.auto_clear_user)
    payment = await service.get_payment(payment_id)
    return PaymentResponse.model_validate(payment)


# ============================================================================
# Payment actions
# ============================================================================


@router.post(
    "/{payment_id}/clear",
    response_model=PaymentResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def clear_payment(
    db: DbSession,
    settings: AppSettings,
    user_id: CurrentUser,
    payment_id: Annotated[UUID, Path()],
) -> PaymentResponse:
    """Mark a pending payment as cleared (human override, no amount check)."""
    service = PaymentService(db, system_user=settings.auto_clear_user)
    payment = await service.clear_payment(payment_id, user_id)
    await db.commit()
    return PaymentResponse.model_validate(payment)


@router.post(
    "/{payment_id}/manual-post",
    response_model=ManualPostResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def manual_post(
    db: DbSession,
    settings: AppSettings,
    ledger: Ledger,
    user_id: CurrentUser,
    payment_id: Annotated[UUID, Path()],
    payload: ManualPostRequest,
) -> ManualPostResponse:
    """Post a payment to the GL across one or more contracts."""
    processor = ManualPostingProcessor(
        db,
        ledger,
        tolerance=settings.allocation_tolerance,
        ledger_timeout=settings.ledger_timeout,
    )
    try:
        outcome = await processor.post(
            payment_id,
            user_id=user_id,
            merchant_dba=payload.merchant_dba,
            contract_allocations=payload.contract_allocations,
            contract_id=payload.contract_id,
            notes=payload.notes,
        )
    except BackendUnavailableError:
        # Keep the BACKEND_POST_FAILED audit entry
        await db.commit()
        raise
    await db.commit()

    return ManualPostResponse(
        payment=PaymentResponse.model_validate(outcome.payment),
        contract_allocations=[
            ContractAllocationResponse.model_validate(a) for a in outcome.contract_allocations
        ],
        backend_response=BackendPostResponseSchema.model_validate(outcome.backend_response),
    )


@router.post(
    "/{payment_id}/revert",
    response_model=RevertResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def revert_action(
    db: DbSession,
    settings: AppSettings,
    ledger: Ledger,
    user_id: CurrentUser,
    payment_id: Annotated[UUID, Path()],
    payload: RevertRequest,
) -> RevertResponse:
    """Revert a previously audited action on a payment."""
    processor = ReversalProcessor(db, ledger, ledger_timeout=settings.ledger_timeout)
    try:
        outcome = await processor.revert(
            payment_id,
            payload.audit_log_id,
            user_id=user_id,
            reason=payload.reason,
        )
    except BackendUnavailableError:
        # Keep the BACKEND_REVERSAL_FAILED audit entry
        await db.commit()
        raise
    await db.commit()

    backend_reversal = None
    if outcome.backend_reversal is not None:
        backend_reversal = BackendReversalResponseSchema.model_validate(outcome.backend_reversal)

    return RevertResponse(
        payment=PaymentResponse.model_validate(outcome.payment),
        reverted_action=outcome.reverted_action,
        backend_reversal_response=backend_reversal,
    )
