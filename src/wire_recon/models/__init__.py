"""ORM models."""

from wire_recon.models.base import Base, TimestampMixin, utcnow
from wire_recon.models.enums import AuditAction, PaymentStatus
from wire_recon.models.payments import (
    AuditLog,
    ContractAllocation,
    MultiContract,
    Posting,
    SingleContract,
    Unposted,
    WirePayment,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "AuditAction",
    "PaymentStatus",
    "AuditLog",
    "ContractAllocation",
    "MultiContract",
    "Posting",
    "SingleContract",
    "Unposted",
    "WirePayment",
]
