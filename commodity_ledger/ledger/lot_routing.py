"""Lot selection shared by the buy-side and sell-side ledger commands."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from commodity_ledger.db.interfaces import (
    InventoryLotFilter,
    InventoryLotIdentity,
    InventoryLotInsertRequest,
    InventoryLotRecord,
    LedgerUnitOfWorkPort,
)
from commodity_ledger.domain import MovementReference
from commodity_ledger.domain.values import domain_normalize_optional_text, domain_quantize_cost_basis, domain_quantize_price

from .interfaces import InventoryRouting, MovementApplyResult
from .lot_allocator import allocator_allocate_for_sell, allocator_candidates_from_lots
from .movement_engine import InventoryMovementEngine


def ledger_find_or_create_lot(
    unit_of_work: LedgerUnitOfWorkPort,
    identity: InventoryLotIdentity,
    unit: str,
    cost_basis: Decimal,
    market_value: Decimal,
) -> tuple[InventoryLotRecord, bool]:
    """Return the lot for one identity tuple, inserting an empty lot when none exists.

    The lookup runs first and the insert only happens on a miss. A concurrent
    insert of the same tuple surfaces from the store as a concurrency conflict.

    Args:
        unit_of_work: Active unit of work.
        identity: Lot identity tuple.
        unit: Unit of measure for a new lot.
        cost_basis: Opening cost basis for a new lot.
        market_value: Opening unit market value for a new lot.

    Returns:
        tuple[InventoryLotRecord, bool]: Lot and whether it was created.
    """

    existing_lot = unit_of_work.inventory_lots.db_inventory_lot_find_by_identity(identity, for_update=True)
    if existing_lot is not None:
        return existing_lot, False

    created_lot = unit_of_work.inventory_lots.db_inventory_lot_insert(
        InventoryLotInsertRequest(
            identity=identity,
            unit=unit,
            quantity=0,
            cost_basis=domain_quantize_cost_basis(cost_basis),
            market_value=domain_quantize_price(market_value),
        )
    )
    return created_lot, True


def ledger_resolve_identity(
    commodity_id: UUID,
    routing: InventoryRouting | None,
    default_warehouse: str,
    default_location: str,
    default_quality: str,
) -> InventoryLotIdentity:
    """Merge caller routing overrides over configured defaults into one identity tuple."""

    override = routing or InventoryRouting()
    return InventoryLotIdentity(
        commodity_id=commodity_id,
        warehouse=domain_normalize_optional_text(override.warehouse) or default_warehouse,
        location=domain_normalize_optional_text(override.location) or default_location,
        quality=domain_normalize_optional_text(override.quality) or default_quality,
    )


def ledger_sell_from_lots(
    unit_of_work: LedgerUnitOfWorkPort,
    movement_engine: InventoryMovementEngine,
    commodity_id: UUID,
    quantity: int,
    routing: InventoryRouting | None,
    reason: str,
    reference: MovementReference,
    unit_market_value: Decimal,
) -> tuple[MovementApplyResult, ...]:
    """Draw a sell-side quantity from the commodity's lots, oldest first.

    Candidate lots are listed and locked, allocated all-or-nothing, then
    posted as OUT movements in allocation order.

    Raises:
        InsufficientInventoryError: Raised when the matching lots cannot cover the quantity.
    """

    sell_filter = routing or InventoryRouting()
    lots = unit_of_work.inventory_lots.db_inventory_lot_list(
        InventoryLotFilter(
            commodity_id=commodity_id,
            warehouse=domain_normalize_optional_text(sell_filter.warehouse),
            location=domain_normalize_optional_text(sell_filter.location),
            quality=domain_normalize_optional_text(sell_filter.quality),
            min_quantity=1,
        ),
        for_update=True,
    )
    allocations = allocator_allocate_for_sell(quantity, allocator_candidates_from_lots(lots))
    return movement_engine.ledger_apply_sell_allocation(
        unit_of_work,
        allocations,
        reason=reason,
        reference=reference,
        unit_market_value=unit_market_value,
    )
