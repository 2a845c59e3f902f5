"""Regression tests for order-preserving, all-or-nothing lot allocation."""

from __future__ import annotations

from uuid import uuid4

import pytest

from commodity_ledger.domain.errors import InsufficientInventoryError, LedgerValidationError
from commodity_ledger.ledger import LotAllocation, LotAllocationCandidate, allocator_allocate_for_sell


def test_allocator_consumes_candidates_in_supplied_order() -> None:
    """Draw from the first lot fully before touching the next one.

    Returns:
        None: Assertions validate allocation order and quantities.

    Raises:
        AssertionError: Raised when allocations deviate from supplied order.
    """

    first_lot_id, second_lot_id, third_lot_id = uuid4(), uuid4(), uuid4()
    candidates = [
        LotAllocationCandidate(lot_id=first_lot_id, available_quantity=40),
        LotAllocationCandidate(lot_id=second_lot_id, available_quantity=50),
        LotAllocationCandidate(lot_id=third_lot_id, available_quantity=100),
    ]

    allocations = allocator_allocate_for_sell(70, candidates)

    assert allocations == (
        LotAllocation(lot_id=first_lot_id, quantity_taken=40),
        LotAllocation(lot_id=second_lot_id, quantity_taken=30),
    )


def test_allocator_skips_empty_candidates() -> None:
    """Ignore lots with zero or negative quantity.

    Returns:
        None: Assertions validate skipped candidates.

    Raises:
        AssertionError: Raised when an empty lot appears in the allocation.
    """

    empty_lot_id, stocked_lot_id = uuid4(), uuid4()
    candidates = [
        LotAllocationCandidate(lot_id=empty_lot_id, available_quantity=0),
        LotAllocationCandidate(lot_id=uuid4(), available_quantity=-5),
        LotAllocationCandidate(lot_id=stocked_lot_id, available_quantity=25),
    ]

    allocations = allocator_allocate_for_sell(25, candidates)

    assert allocations == (LotAllocation(lot_id=stocked_lot_id, quantity_taken=25),)


def test_allocator_rejects_shortfall_without_partial_result() -> None:
    """Raise with required and available totals when candidates cannot cover the quantity.

    Returns:
        None: Assertions validate the typed failure.

    Raises:
        AssertionError: Raised when the allocator returns a partial allocation.
    """

    candidates = [
        LotAllocationCandidate(lot_id=uuid4(), available_quantity=10),
        LotAllocationCandidate(lot_id=uuid4(), available_quantity=15),
    ]

    with pytest.raises(InsufficientInventoryError) as error_info:
        allocator_allocate_for_sell(30, candidates)

    assert "required=30" in str(error_info.value)
    assert "available=25" in str(error_info.value)
    assert error_info.value.error_code == "INSUFFICIENT_INVENTORY"


def test_allocator_rejects_empty_candidate_list() -> None:
    """Treat no candidates as zero available inventory.

    Returns:
        None: Assertions validate the typed failure.

    Raises:
        AssertionError: Raised when the empty list is accepted.
    """

    with pytest.raises(InsufficientInventoryError):
        allocator_allocate_for_sell(1, [])


@pytest.mark.parametrize("required_quantity", [0, -3, True, 2.5])
def test_allocator_rejects_invalid_required_quantity(required_quantity) -> None:
    """Reject zero, negative, boolean and fractional quantities.

    Returns:
        None: Assertions validate input validation.

    Raises:
        AssertionError: Raised when an invalid quantity is accepted.
    """

    candidates = [LotAllocationCandidate(lot_id=uuid4(), available_quantity=100)]

    with pytest.raises(LedgerValidationError):
        allocator_allocate_for_sell(required_quantity, candidates)


def test_allocator_rejects_duplicate_lot_ids() -> None:
    """Reject candidate lists that name the same lot twice.

    Returns:
        None: Assertions validate duplicate detection.

    Raises:
        AssertionError: Raised when duplicate lots are accepted.
    """

    lot_id = uuid4()
    candidates = [
        LotAllocationCandidate(lot_id=lot_id, available_quantity=5),
        LotAllocationCandidate(lot_id=lot_id, available_quantity=5),
    ]

    with pytest.raises(LedgerValidationError):
        allocator_allocate_for_sell(8, candidates)
