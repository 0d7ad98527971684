"""Contract allocation parsing and validation for manual postings."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from wire_recon.services.errors import ValidationError

PERCENT_QUANTUM = Decimal("0.0001")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class AllocationRequest:
    """One requested (contract, amount) pair.

    `amount` is None for the legacy single-contract request shape, where the
    full payment amount is implied.
    """

    contract_id: str
    amount: Decimal | None


@dataclass(frozen=True)
class ResolvedAllocation:
    """Validated allocation ready to be posted."""

    contract_id: str
    amount: Decimal
    percentage: Decimal


def allocation_percentage(amount: Decimal, actual_amount: Decimal) -> Decimal:
    """Share of the payment total, in percent."""
    return (amount / actual_amount * 100).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class AllocationPlan:
    """Requested split of a payment across contracts."""

    allocations: tuple[AllocationRequest, ...]
    legacy: bool = False

    @classmethod
    def from_request(
        cls,
        contract_allocations: Iterable[Any] | None,
        contract_id: str | None = None,
    ) -> AllocationPlan:
        """Build a plan from either request shape.

        Args:
            contract_allocations: Items with `contract_id` and `amount`
                attributes (multi-contract shape).
            contract_id: Legacy single contract id, used only when no
                allocation list is given.
        """
        if contract_allocations is not None:
            return cls(
                allocations=tuple(
                    AllocationRequest(
                        contract_id=(item.contract_id or "").strip(),
                        amount=Decimal(str(item.amount)),
                    )
                    for item in contract_allocations
                )
            )
        if contract_id:
            return cls(
                allocations=(AllocationRequest(contract_id=contract_id.strip(), amount=None),),
                legacy=True,
            )
        return cls(allocations=())

    @property
    def is_empty(self) -> bool:
        return not self.allocations

    def resolve(self, actual_amount: Decimal, tolerance: Decimal) -> list[ResolvedAllocation]:
        """Validate the plan against the payment amount.

        The legacy shape is expanded to one full-amount allocation. The sum of
        amounts must be within `tolerance` of the payment amount (a full cent
        of difference is rejected), and every allocation needs a contract id
        and a positive amount in whole cents.

        Raises:
            ValidationError: If any check fails.
        """
        if actual_amount <= 0:
            raise ValidationError(
                f"Payment amount (${actual_amount:.2f}) cannot be allocated"
            )

        requested: Sequence[AllocationRequest] = [
            AllocationRequest(a.contract_id, actual_amount if a.amount is None else a.amount)
            for a in self.allocations
        ]

        fractional = [a for a in requested if a.amount != a.amount.quantize(CENT)]
        if fractional:
            raise ValidationError(
                "Allocation amounts cannot have more than 2 decimal places",
                contractIds=[a.contract_id for a in fractional],
            )

        total_allocated = sum((a.amount for a in requested), Decimal("0"))
        if abs(total_allocated - actual_amount) >= tolerance:
            raise ValidationError(
                f"Total allocated amount (${total_allocated:.2f}) must equal "
                f"actual payment amount (${actual_amount:.2f})",
                totalAllocated=str(total_allocated),
                actualAmount=str(actual_amount),
            )

        invalid = [a for a in requested if not a.contract_id or a.amount <= 0]
        if invalid:
            raise ValidationError(
                "All contract IDs must be provided and amounts must be positive"
            )

        return [
            ResolvedAllocation(
                contract_id=a.contract_id,
                amount=a.amount,
                percentage=allocation_percentage(a.amount, actual_amount),
            )
            for a in requested
        ]
