"""Order-preserving, all-or-nothing allocation of a sell quantity across lots."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from uuid import UUID

from commodity_ledger.db.interfaces import InventoryLotRecord
from commodity_ledger.domain.errors import InsufficientInventoryError, LedgerValidationError
from commodity_ledger.domain.values import domain_require_quantity


@dataclass(frozen=True)
class LotAllocationCandidate:
    """One lot offered to the allocator.

    Attributes:
        lot_id: Lot identifier.
        available_quantity: Quantity on hand; zero or negative candidates are skipped.
    """

    lot_id: UUID
    available_quantity: int


@dataclass(frozen=True)
class LotAllocation:
    """Quantity taken from one lot.

    Attributes:
        lot_id: Lot identifier.
        quantity_taken: Positive quantity drawn from the lot.
    """

    lot_id: UUID
    quantity_taken: int


def allocator_allocate_for_sell(
    required_quantity: int,
    candidates: Sequence[LotAllocationCandidate],
) -> tuple[LotAllocation, ...]:
    """Allocate a required quantity across candidate lots in the order supplied.

    Each candidate with positive quantity contributes `min(available, remaining)`
    until the required quantity is covered. Either the full quantity is
    allocated or nothing is.

    Args:
        required_quantity: Positive whole-unit quantity to cover.
        candidates: Lots in the caller's preferred consumption order.

    Returns:
        tuple[LotAllocation, ...]: Allocations whose quantities sum to `required_quantity`.

    Raises:
        LedgerValidationError: Raised when the quantity is invalid or a lot id repeats.
        InsufficientInventoryError: Raised when the candidates cannot cover the quantity.
    """

    required = domain_require_quantity(required_quantity, "required_quantity")

    seen_lot_ids: set[UUID] = set()
    for candidate in candidates:
        if candidate.lot_id in seen_lot_ids:
            raise LedgerValidationError(f"duplicate lot_id in allocation candidates: {candidate.lot_id}")
        seen_lot_ids.add(candidate.lot_id)

    allocations: list[LotAllocation] = []
    remaining = required
    for candidate in candidates:
        if remaining == 0:
            break
        if candidate.available_quantity <= 0:
            continue
        quantity_taken = min(candidate.available_quantity, remaining)
        allocations.append(LotAllocation(lot_id=candidate.lot_id, quantity_taken=quantity_taken))
        remaining -= quantity_taken

    if remaining > 0:
        available = required - remaining
        raise InsufficientInventoryError(
            f"insufficient inventory: required={required} available={available}"
        )
    return tuple(allocations)


def allocator_candidates_from_lots(lots: Iterable[InventoryLotRecord]) -> list[LotAllocationCandidate]:
    """Project lot records to allocation candidates, preserving order."""

    return [LotAllocationCandidate(lot_id=lot.lot_id, available_quantity=lot.quantity) for lot in lots]
