"""Inventory movement engine: quantity and weighted-average cost updates for one lot.

The arithmetic lives in `movement_compute`, a pure function over one lot
snapshot. `InventoryMovementEngine` wraps it with the persistence steps: lock
the lot, compute, write the new position, append the movement row. The
engine never opens its own transaction; it always runs inside the caller's
unit of work.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from commodity_ledger.db.interfaces import (
    InventoryLotRecord,
    InventoryMovementInsertRequest,
    LedgerUnitOfWorkPort,
)
from commodity_ledger.domain import InventoryMovementKind, MovementReference
from commodity_ledger.domain.errors import (
    InsufficientQuantityError,
    InvalidMovementKindError,
    LedgerValidationError,
    LotNotFoundError,
    NegativeResultingQuantityError,
)
from commodity_ledger.domain.values import (
    QUANTITY_MAX,
    domain_parse_enum,
    domain_quantize_cost_basis,
    domain_quantize_price,
    domain_require_non_negative_price,
    domain_require_quantity,
    domain_require_text,
)

from .interfaces import InventoryMovementRequest, MovementApplyResult
from .lot_allocator import LotAllocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovementComputation:
    """Computed effect of one movement on one lot.

    Attributes:
        movement_kind: Applied movement kind.
        quantity_delta: Signed quantity change.
        resulting_quantity: Lot quantity after the movement.
        cost_basis: Lot cost basis after the movement.
        market_value: Lot unit market value after the movement.
        recorded_unit_cost: Unit cost stored on the movement row.
        recorded_unit_market_value: Unit market value stored on the movement row.
    """

    movement_kind: InventoryMovementKind
    quantity_delta: int
    resulting_quantity: int
    cost_basis: Decimal
    market_value: Decimal
    recorded_unit_cost: Decimal
    recorded_unit_market_value: Decimal


def movement_parse_kind(value: object) -> InventoryMovementKind:
    """Parse a movement kind, raising `InvalidMovementKindError` for unknown values."""

    return domain_parse_enum(InventoryMovementKind, value, "movement_kind", error_type=InvalidMovementKindError)


def movement_compute(
    lot: InventoryLotRecord,
    movement_kind: InventoryMovementKind | str,
    quantity: int,
    unit_cost: Decimal | None = None,
    unit_market_value: Decimal | None = None,
) -> MovementComputation:
    """Compute the new lot position for one movement without touching storage.

    Args:
        lot: Current lot snapshot.
        movement_kind: IN, OUT or ADJUSTMENT.
        quantity: Positive delta for IN/OUT; target quantity for ADJUSTMENT.
        unit_cost: Optional unit cost; blended on IN, replacing on ADJUSTMENT, ignored on OUT.
        unit_market_value: Optional unit market value overwriting the lot's.

    Returns:
        MovementComputation: Deterministic movement effect.

    Raises:
        InvalidMovementKindError: Raised when the kind is unknown.
        LedgerValidationError: Raised when quantity or prices are invalid.
        InsufficientQuantityError: Raised when an OUT exceeds the lot quantity.
        NegativeResultingQuantityError: Raised when an ADJUSTMENT target is negative.
    """

    kind = movement_parse_kind(movement_kind)

    supplied_unit_cost = None
    if unit_cost is not None:
        supplied_unit_cost = domain_require_non_negative_price(unit_cost, "unit_cost")
    supplied_market_value = None
    if unit_market_value is not None:
        supplied_market_value = domain_require_non_negative_price(unit_market_value, "unit_market_value")

    cost_basis = lot.cost_basis
    if kind is InventoryMovementKind.IN:
        quantity_delta = domain_require_quantity(quantity, "quantity")
        resulting_quantity = lot.quantity + quantity_delta
        if resulting_quantity > QUANTITY_MAX:
            raise LedgerValidationError(f"lot {lot.lot_id} quantity would exceed {QUANTITY_MAX}")
        if supplied_unit_cost is not None:
            blended_cost = (Decimal(lot.quantity) * lot.cost_basis + Decimal(quantity_delta) * supplied_unit_cost) / Decimal(
                resulting_quantity
            )
            cost_basis = domain_quantize_cost_basis(blended_cost, "cost_basis")
    elif kind is InventoryMovementKind.OUT:
        requested_quantity = domain_require_quantity(quantity, "quantity")
        resulting_quantity = lot.quantity - requested_quantity
        if resulting_quantity < 0:
            raise InsufficientQuantityError(
                f"insufficient quantity in lot {lot.lot_id}: available={lot.quantity} requested={requested_quantity}"
            )
        quantity_delta = -requested_quantity
    else:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise LedgerValidationError("quantity must be an integer")
        if quantity < 0:
            raise NegativeResultingQuantityError(f"adjustment target quantity must be >= 0, got {quantity}")
        if quantity > QUANTITY_MAX:
            raise LedgerValidationError(f"adjustment target quantity must be <= {QUANTITY_MAX}")
        resulting_quantity = quantity
        quantity_delta = quantity - lot.quantity
        if supplied_unit_cost is not None:
            cost_basis = domain_quantize_cost_basis(supplied_unit_cost)

    market_value = lot.market_value if supplied_market_value is None else supplied_market_value
    recorded_unit_cost = lot.cost_basis if supplied_unit_cost is None else supplied_unit_cost

    return MovementComputation(
        movement_kind=kind,
        quantity_delta=quantity_delta,
        resulting_quantity=resulting_quantity,
        cost_basis=cost_basis,
        market_value=domain_quantize_price(market_value, "unit_market_value"),
        recorded_unit_cost=recorded_unit_cost,
        recorded_unit_market_value=domain_quantize_price(market_value, "unit_market_value"),
    )


class InventoryMovementEngine:
    """Applies movements to lots inside a caller-owned unit of work."""

    def ledger_apply_movement(
        self,
        unit_of_work: LedgerUnitOfWorkPort,
        request: InventoryMovementRequest,
    ) -> MovementApplyResult:
        """Apply one movement to one lot and append its movement row.

        Args:
            unit_of_work: Active unit of work owned by the caller.
            request: Movement input.

        Returns:
            MovementApplyResult: Updated lot and the appended movement.

        Raises:
            LotNotFoundError: Raised when the lot does not exist.
            LedgerValidationError: Raised when the request is invalid.
            InsufficientQuantityError: Raised when an OUT exceeds the lot quantity.
            NegativeResultingQuantityError: Raised when an ADJUSTMENT target is negative.
        """

        if unit_of_work is None:
            raise ValueError("unit_of_work must not be None")
        reason = domain_require_text(request.reason, "reason")
        kind = movement_parse_kind(request.movement_kind)

        lot = unit_of_work.inventory_lots.db_inventory_lot_get(request.lot_id, for_update=True)
        if lot is None:
            raise LotNotFoundError(f"inventory lot not found: {request.lot_id}")

        computation = movement_compute(
            lot=lot,
            movement_kind=kind,
            quantity=request.quantity,
            unit_cost=request.unit_cost,
            unit_market_value=request.unit_market_value,
        )

        updated_lot = unit_of_work.inventory_lots.db_inventory_lot_update_position(
            lot_id=lot.lot_id,
            quantity=computation.resulting_quantity,
            cost_basis=computation.cost_basis,
            market_value=computation.market_value,
        )
        movement = unit_of_work.inventory_movements.db_inventory_movement_insert(
            InventoryMovementInsertRequest(
                lot_id=lot.lot_id,
                movement_kind=computation.movement_kind,
                quantity_delta=computation.quantity_delta,
                resulting_quantity=computation.resulting_quantity,
                unit_cost=computation.recorded_unit_cost,
                unit_market_value=computation.recorded_unit_market_value,
                reason=reason,
                reference_kind=None if request.reference is None else request.reference.reference_kind,
                reference_id=None if request.reference is None else request.reference.reference_id,
            )
        )

        logger.debug(
            "inventory movement applied",
            extra={
                "lot_id": lot.lot_id,
                "movement_kind": computation.movement_kind.value,
                "quantity_delta": computation.quantity_delta,
                "resulting_quantity": computation.resulting_quantity,
            },
        )
        return MovementApplyResult(lot=updated_lot, movement=movement)

    def ledger_apply_sell_allocation(
        self,
        unit_of_work: LedgerUnitOfWorkPort,
        allocations: Sequence[LotAllocation],
        reason: str,
        reference: MovementReference,
        unit_market_value: Decimal,
    ) -> tuple[MovementApplyResult, ...]:
        """Apply one OUT movement per allocation, in allocation order.

        Args:
            unit_of_work: Active unit of work owned by the caller.
            allocations: Allocator output.
            reason: Reason stored on every movement.
            reference: Reference stored on every movement.
            unit_market_value: Unit market value applied to every drawn lot.

        Returns:
            tuple[MovementApplyResult, ...]: One result per allocation.
        """

        results: list[MovementApplyResult] = []
        for allocation in allocations:
            results.append(
                self.ledger_apply_movement(
                    unit_of_work,
                    InventoryMovementRequest(
                        lot_id=allocation.lot_id,
                        movement_kind=InventoryMovementKind.OUT,
                        quantity=allocation.quantity_taken,
                        reason=reason,
                        reference=reference,
                        unit_market_value=unit_market_value,
                    ),
                )
            )
        return tuple(results)
