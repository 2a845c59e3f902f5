"""Top-level inventory commands: post movements, receive stock, history and valuation."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from commodity_ledger.db.interfaces import (
    InventoryLotFilter,
    InventoryLotIdentity,
    InventoryLotRecord,
    InventoryMovementRecord,
)
from commodity_ledger.domain import InventoryMovementKind, MovementReference, MovementReferenceKind
from commodity_ledger.domain.errors import CommodityNotFoundError, LedgerValidationError, LotNotFoundError
from commodity_ledger.domain.values import (
    domain_normalize_optional_text,
    domain_parse_enum,
    domain_quantize_money,
    domain_quantize_percent,
    domain_require_non_negative_price,
    domain_require_quantity,
    domain_require_text,
)

from .command_logging import ledger_log_rejections
from .interfaces import (
    InventoryMovementRequest,
    InventoryReceiptRequest,
    InventoryReceiptResult,
    InventoryValuationFilter,
    InventoryValuationSummary,
    LedgerUnitOfWorkFactory,
    MovementApplyResult,
)
from .lot_routing import ledger_find_or_create_lot
from .movement_engine import InventoryMovementEngine

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class InventoryLedgerService:
    """Inventory command service; each command runs in its own unit of work."""

    def __init__(
        self,
        unit_of_work_factory: LedgerUnitOfWorkFactory,
        movement_engine: InventoryMovementEngine | None = None,
    ):
        if unit_of_work_factory is None:
            raise ValueError("unit_of_work_factory must not be None")
        self._unit_of_work_factory = unit_of_work_factory
        self._movement_engine = movement_engine or InventoryMovementEngine()

    def ledger_inventory_post_movement(
        self,
        lot_id: UUID,
        movement_kind: InventoryMovementKind | str,
        quantity: int,
        reason: str,
        reference_kind: MovementReferenceKind | str | None = None,
        reference_id: str | None = None,
        unit_cost: Decimal | None = None,
        unit_market_value: Decimal | None = None,
    ) -> MovementApplyResult:
        """Post one movement against one lot as a standalone command.

        Args:
            lot_id: Target lot.
            movement_kind: IN, OUT or ADJUSTMENT.
            quantity: Delta for IN/OUT, target quantity for ADJUSTMENT.
            reason: Movement reason.
            reference_kind: Optional reference kind; MANUAL when only an id is supplied.
            reference_id: Optional reference identifier.
            unit_cost: Optional unit cost.
            unit_market_value: Optional unit market value.

        Returns:
            MovementApplyResult: Updated lot and appended movement.

        Raises:
            LotNotFoundError: Raised when the lot does not exist.
            LedgerValidationError: Raised when the input is invalid.
            InsufficientQuantityError: Raised when an OUT exceeds the lot quantity.
            NegativeResultingQuantityError: Raised when an ADJUSTMENT target is negative.
        """

        with ledger_log_rejections(logger, "inventory_post_movement", lot_id=lot_id):
            reference = self._ledger_inventory_build_reference(reference_kind, reference_id)
            request = InventoryMovementRequest(
                lot_id=lot_id,
                movement_kind=movement_kind,
                quantity=quantity,
                reason=reason,
                reference=reference,
                unit_cost=unit_cost,
                unit_market_value=unit_market_value,
            )
            with self._unit_of_work_factory() as unit_of_work:
                result = self._movement_engine.ledger_apply_movement(unit_of_work, request)

        logger.info(
            "inventory movement posted",
            extra={
                "lot_id": lot_id,
                "movement_id": result.movement.movement_id,
                "movement_kind": result.movement.movement_kind.value,
                "resulting_quantity": result.movement.resulting_quantity,
            },
        )
        return result

    def ledger_inventory_receive(self, request: InventoryReceiptRequest) -> InventoryReceiptResult:
        """Receive stock into the lot matching an identity tuple, creating it on first receipt.

        The lot is looked up by identity first; a new lot starts empty so the
        receipt itself is logged as an IN movement and blended into the cost basis.

        Raises:
            CommodityNotFoundError: Raised when the commodity does not exist.
            LedgerValidationError: Raised when the input is invalid.
        """

        with ledger_log_rejections(logger, "inventory_receive", commodity_id=request.commodity_id):
            quantity = domain_require_quantity(request.quantity, "quantity")
            unit_cost = domain_require_non_negative_price(request.unit_cost, "unit_cost")
            identity_warehouse = domain_require_text(request.warehouse, "warehouse")
            identity_location = domain_require_text(request.location, "location")
            identity_quality = domain_require_text(request.quality, "quality")
            reason = domain_normalize_optional_text(request.reason) or "Inventory receipt"

            with self._unit_of_work_factory() as unit_of_work:
                commodity = unit_of_work.commodities.db_commodity_get(request.commodity_id)
                if commodity is None:
                    raise CommodityNotFoundError(f"commodity not found: {request.commodity_id}")
                unit_market_value = commodity.current_price
                if request.unit_market_value is not None:
                    unit_market_value = domain_require_non_negative_price(request.unit_market_value, "unit_market_value")

                lot, lot_created = ledger_find_or_create_lot(
                    unit_of_work,
                    InventoryLotIdentity(
                        commodity_id=request.commodity_id,
                        warehouse=identity_warehouse,
                        location=identity_location,
                        quality=identity_quality,
                    ),
                    unit=domain_normalize_optional_text(request.unit) or commodity.unit,
                    cost_basis=unit_cost,
                    market_value=unit_market_value,
                )
                result = self._movement_engine.ledger_apply_movement(
                    unit_of_work,
                    InventoryMovementRequest(
                        lot_id=lot.lot_id,
                        movement_kind=InventoryMovementKind.IN,
                        quantity=quantity,
                        reason=reason,
                        reference=request.reference,
                        unit_cost=unit_cost,
                        unit_market_value=unit_market_value,
                    ),
                )

        logger.info(
            "inventory received",
            extra={"lot_id": result.lot.lot_id, "lot_created": lot_created, "quantity": quantity},
        )
        return InventoryReceiptResult(lot=result.lot, movement=result.movement, lot_created=lot_created)

    def ledger_inventory_get_lot(self, lot_id: UUID) -> InventoryLotRecord:
        with self._unit_of_work_factory() as unit_of_work:
            lot = unit_of_work.inventory_lots.db_inventory_lot_get(lot_id)
        if lot is None:
            raise LotNotFoundError(f"inventory lot not found: {lot_id}")
        return lot

    def ledger_inventory_list_movements(self, lot_id: UUID, limit: int, offset: int = 0) -> list[InventoryMovementRecord]:
        """List one lot's movement history, newest first.

        Raises:
            LotNotFoundError: Raised when the lot does not exist.
            LedgerValidationError: Raised when pagination arguments are invalid.
        """

        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise LedgerValidationError("limit must be an integer >= 1")
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise LedgerValidationError("offset must be an integer >= 0")

        with self._unit_of_work_factory() as unit_of_work:
            if unit_of_work.inventory_lots.db_inventory_lot_get(lot_id) is None:
                raise LotNotFoundError(f"inventory lot not found: {lot_id}")
            return unit_of_work.inventory_movements.db_inventory_movement_list_for_lot(lot_id, limit, offset)

    def ledger_inventory_valuation(self, valuation_filter: InventoryValuationFilter | None = None) -> InventoryValuationSummary:
        """Aggregate cost value, market value and unrealized PnL over matching lots.

        Args:
            valuation_filter: Optional commodity, warehouse and location filter.

        Returns:
            InventoryValuationSummary: Totals rounded to money precision.
        """

        active_filter = valuation_filter or InventoryValuationFilter()
        with self._unit_of_work_factory() as unit_of_work:
            lots = unit_of_work.inventory_lots.db_inventory_lot_list(
                InventoryLotFilter(
                    commodity_id=active_filter.commodity_id,
                    warehouse=domain_normalize_optional_text(active_filter.warehouse),
                    location=domain_normalize_optional_text(active_filter.location),
                )
            )

        total_cost_value = sum((Decimal(lot.quantity) * lot.cost_basis for lot in lots), _ZERO)
        total_market_value = sum((Decimal(lot.quantity) * lot.market_value for lot in lots), _ZERO)
        unrealized_pnl = total_market_value - total_cost_value
        unrealized_pnl_percent = _ZERO
        if total_cost_value > _ZERO:
            unrealized_pnl_percent = unrealized_pnl / total_cost_value * _HUNDRED

        return InventoryValuationSummary(
            lot_count=len(lots),
            total_quantity=sum(lot.quantity for lot in lots),
            total_cost_value=domain_quantize_money(total_cost_value),
            total_market_value=domain_quantize_money(total_market_value),
            unrealized_pnl=domain_quantize_money(unrealized_pnl),
            unrealized_pnl_percent=domain_quantize_percent(unrealized_pnl_percent),
        )

    def _ledger_inventory_build_reference(
        self,
        reference_kind: MovementReferenceKind | str | None,
        reference_id: str | None,
    ) -> MovementReference | None:
        normalized_reference_id = domain_normalize_optional_text(reference_id)
        if normalized_reference_id is None:
            if reference_kind is not None:
                raise LedgerValidationError("reference_id is required when reference_kind is supplied")
            return None
        if reference_kind is None:
            return MovementReference(MovementReferenceKind.MANUAL, normalized_reference_id)
        kind = domain_parse_enum(MovementReferenceKind, reference_kind, "reference_kind")
        return MovementReference(kind, normalized_reference_id)
