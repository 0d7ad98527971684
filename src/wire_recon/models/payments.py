"""Wire payment, contract allocation and audit log models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wire_recon.models.base import Base, TimestampMixin, utcnow
from wire_recon.models.enums import (
    AUDIT_ACTION_SQL,
    PAYMENT_STATUS_SQL,
    PaymentStatus,
)


# =============================================================================
# Allocation views
# =============================================================================


@dataclass(frozen=True)
class Unposted:
    """Payment has no contract allocations yet."""


@dataclass(frozen=True)
class SingleContract:
    """Payment posted in full against one contract."""

    allocation: ContractAllocation


@dataclass(frozen=True)
class MultiContract:
    """Payment split across several contracts."""

    allocations: tuple[ContractAllocation, ...]


Posting = Unposted | SingleContract | MultiContract


# =============================================================================
# Models
# =============================================================================


class WirePayment(Base, TimestampMixin):
    """Incoming wire payment awaiting reconciliation.

    Payments are ingested externally in PENDING status and are never
    deleted. The `version` column guards every UPDATE so that two requests
    racing on the same payment cannot both commit.
    """

    __tablename__ = "wire_payment"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    dba: Mapped[str | None] = mapped_column(String, nullable=True)
    expected_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    actual_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    expected_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_date_received: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    ptp: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_cleared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_reverted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_multiple_contracts: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=PaymentStatus.PENDING.value
    )
    processed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    notes_for_treasury: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_status: Mapped[str | None] = mapped_column(String, nullable=True)
    reverted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reverted_by: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            f"status IN ({PAYMENT_STATUS_SQL})",
            name="wire_payment_status_check",
        ),
        CheckConstraint(
            "NOT is_reverted OR (status = 'REVERTED' AND original_status IS NOT NULL)",
            name="wire_payment_reverted_check",
        ),
        Index("ix_wire_payment_status", "status"),
        Index("ix_wire_payment_received", "actual_date_received"),
    )

    # Relationships
    audit_logs: Mapped[list[AuditLog]] = relationship(
        back_populates="payment",
        order_by=lambda: AuditLog.timestamp.desc(),
    )
    contract_allocations: Mapped[list[ContractAllocation]] = relationship(
        back_populates="payment",
        order_by=lambda: [ContractAllocation.created_at, ContractAllocation.sequence],
    )

    @property
    def posting(self) -> Posting:
        """Allocation set as a tagged variant."""
        allocations = tuple(self.contract_allocations)
        if not allocations:
            return Unposted()
        if len(allocations) == 1:
            return SingleContract(allocations[0])
        return MultiContract(allocations)

    @property
    def cid(self) -> str | None:
        """Legacy single contract id, set only for single-contract postings."""
        posting = self.posting
        if isinstance(posting, SingleContract):
            return posting.allocation.contract_id
        return None

    @property
    def backend_transaction_id(self) -> str | None:
        """Legacy single ledger transaction id."""
        posting = self.posting
        if isinstance(posting, SingleContract):
            return posting.allocation.transaction_id
        return None

    @property
    def is_exact_match(self) -> bool:
        """Actual amount equals expected amount to the cent."""
        return self.actual_amount == self.expected_amount

    def __repr__(self) -> str:
        return (
            f"<WirePayment(id={self.id}, status='{self.status}', "
            f"actual={self.actual_amount}, expected={self.expected_amount})>"
        )


class ContractAllocation(Base, TimestampMixin):
    """Portion of a wire payment posted against one contract."""

    __tablename__ = "contract_allocation"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    wire_payment_id: Mapped[UUID] = mapped_column(
        ForeignKey("wire_payment.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    contract_id: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    gl_account: Mapped[str] = mapped_column(String, nullable=False)
    transaction_id: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="contract_allocation_amount_check"),
    )

    # Relationships
    payment: Mapped[WirePayment] = relationship(back_populates="contract_allocations")


class AuditLog(Base):
    """Append-only record of an action taken on a wire payment.

    The only mutation allowed after insert is stamping reverted_at and
    reverted_by, exactly once.
    """

    __tablename__ = "audit_log"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    wire_payment_id: Mapped[UUID] = mapped_column(
        ForeignKey("wire_payment.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    previous_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    is_revertible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reverted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reverted_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            f"action IN ({AUDIT_ACTION_SQL})",
            name="audit_log_action_check",
        ),
        CheckConstraint(
            "reverted_at IS NULL OR is_revertible",
            name="audit_log_revert_check",
        ),
    )

    # Relationships
    payment: Mapped[WirePayment] = relationship(back_populates="audit_logs")

    @property
    def is_reverted(self) -> bool:
        return self.reverted_at is not None

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action='{self.action}', user='{self.user_id}')>"
