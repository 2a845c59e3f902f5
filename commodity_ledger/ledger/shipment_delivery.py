"""Shipment registration and status transitions with delivery inventory postings.

DELIVERED and CANCELLED are terminal. A DELIVERED transition posts exactly
one movement in the same unit of work as the status change: OUT from the
origin lot when the shipment carries a SELL trade, otherwise IN to the
destination lot.

Every registration and status change appends a tracking event; events
without a status are recorded against the current one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from uuid import UUID

from commodity_ledger.db.interfaces import (
    InventoryLotIdentity,
    InventoryMovementRecord,
    LedgerUnitOfWorkPort,
    ShipmentEventInsertRequest,
    ShipmentEventRecord,
    ShipmentInsertRequest,
    ShipmentRecord,
)
from commodity_ledger.domain import (
    InventoryMovementKind,
    MovementReference,
    MovementReferenceKind,
    ShipmentStatus,
    TradeDirection,
    TradeStatus,
)
from commodity_ledger.domain.errors import (
    CommodityNotFoundError,
    DuplicateReferenceDataError,
    ExceedsRemainingBalanceError,
    InvalidShipmentStateError,
    InvalidTradeStateError,
    LedgerValidationError,
    ShipmentNotFoundError,
    TradeNotFoundError,
)
from commodity_ledger.domain.values import (
    domain_normalize_optional_text,
    domain_parse_enum,
    domain_require_quantity,
    domain_require_text,
)

from .command_logging import ledger_log_rejections
from .interfaces import (
    InventoryMovementRequest,
    LedgerUnitOfWorkFactory,
    ShipmentEventRequest,
    ShipmentRegisterRequest,
    ShipmentStatusUpdateResult,
)
from .lot_routing import ledger_find_or_create_lot
from .movement_engine import InventoryMovementEngine

logger = logging.getLogger(__name__)

_TERMINAL_STATUSES = frozenset({ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED})


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class ShipmentDeliveryService:
    """Shipment command service over a unit-of-work factory."""

    def __init__(
        self,
        unit_of_work_factory: LedgerUnitOfWorkFactory,
        movement_engine: InventoryMovementEngine | None = None,
        default_quality: str = "Standard",
        today: Callable[[], date] | None = None,
    ):
        """Initialize shipment command service.

        Args:
            unit_of_work_factory: Factory returning a fresh unit of work per command.
            movement_engine: Movement engine used for delivery postings.
            default_quality: Quality grade of lots touched by deliveries.
            today: Optional UTC business-date provider for departure and arrival stamps.

        Raises:
            ValueError: Raised when the factory is None or the quality is blank.
        """

        if unit_of_work_factory is None:
            raise ValueError("unit_of_work_factory must not be None")
        if not default_quality.strip():
            raise ValueError("default_quality must not be blank")
        self._unit_of_work_factory = unit_of_work_factory
        self._movement_engine = movement_engine or InventoryMovementEngine()
        self._default_quality = default_quality.strip()
        self._today = today or _utc_today

    def ledger_shipment_register(self, request: ShipmentRegisterRequest) -> ShipmentRecord:
        """Register one PREPARING shipment.

        Args:
            request: Shipment input.

        Returns:
            ShipmentRecord: Registered shipment.

        Raises:
            LedgerValidationError: Raised when the input is invalid or the trade is for another commodity.
            CommodityNotFoundError: Raised when the commodity does not exist.
            TradeNotFoundError: Raised when a linked trade does not exist.
            InvalidTradeStateError: Raised when a linked trade is CANCELLED.
            ExceedsRemainingBalanceError: Raised when shipments would exceed the trade quantity.
            DuplicateReferenceDataError: Raised when the tracking number already exists.
        """

        with ledger_log_rejections(logger, "shipment_register", trade_id=request.trade_id):
            quantity = domain_require_quantity(request.quantity, "quantity")
            origin = domain_require_text(request.origin, "origin")
            destination = domain_require_text(request.destination, "destination")
            carrier = domain_require_text(request.carrier, "carrier")
            tracking_number = domain_require_text(request.tracking_number, "tracking_number")
            if not isinstance(request.expected_arrival, date):
                raise LedgerValidationError("expected_arrival must be a date")

            with self._unit_of_work_factory() as unit_of_work:
                if unit_of_work.commodities.db_commodity_get(request.commodity_id) is None:
                    raise CommodityNotFoundError(f"commodity not found: {request.commodity_id}")
                if request.trade_id is not None:
                    self._ledger_shipment_check_trade_capacity(unit_of_work, request, quantity)
                if unit_of_work.shipments.db_shipment_get_by_tracking_number(tracking_number) is not None:
                    raise DuplicateReferenceDataError(f"tracking number already exists: {tracking_number}")

                shipment = unit_of_work.shipments.db_shipment_insert(
                    ShipmentInsertRequest(
                        trade_id=request.trade_id,
                        commodity_id=request.commodity_id,
                        quantity=quantity,
                        origin=origin,
                        destination=destination,
                        carrier=carrier,
                        tracking_number=tracking_number,
                        expected_arrival=request.expected_arrival,
                        departure_date=request.departure_date,
                    )
                )
                unit_of_work.shipments.db_shipment_event_insert(
                    ShipmentEventInsertRequest(
                        shipment_id=shipment.shipment_id,
                        status=shipment.status,
                        location=origin,
                        notes="Shipment registered",
                    )
                )

        logger.info("shipment registered", extra={"shipment_id": shipment.shipment_id, "tracking_number": tracking_number})
        return shipment

    def ledger_shipment_update_status(
        self,
        shipment_id: UUID,
        status: ShipmentStatus | str,
        location: str | None = None,
        notes: str | None = None,
    ) -> ShipmentStatusUpdateResult:
        """Move one shipment to a new status, posting the delivery movement on DELIVERED.

        Args:
            shipment_id: Shipment identifier.
            status: Target status.
            location: Optional reported position stored on the tracking event.
            notes: Optional notes stored on the tracking event.

        Returns:
            ShipmentStatusUpdateResult: Updated shipment, its tracking event and the delivery movement, if any.

        Raises:
            ShipmentNotFoundError: Raised when the shipment does not exist.
            InvalidShipmentStateError: Raised when the shipment is already DELIVERED or CANCELLED.
            InsufficientQuantityError: Raised when the origin lot cannot cover an outbound delivery.
        """

        return self.ledger_shipment_add_event(
            shipment_id,
            ShipmentEventRequest(status=status, location=location, notes=notes),
        )

    def ledger_shipment_add_event(self, shipment_id: UUID, request: ShipmentEventRequest) -> ShipmentStatusUpdateResult:
        """Append one tracking event, applying its status transition when it carries one.

        An event without a status is recorded against the current status and
        is accepted in any state, including the terminal ones. An event with a
        status is a transition and follows the terminal-state rules.

        Args:
            shipment_id: Shipment identifier.
            request: Tracking report.

        Returns:
            ShipmentStatusUpdateResult: Shipment after the event, the event row and the delivery movement, if any.

        Raises:
            ShipmentNotFoundError: Raised when the shipment does not exist.
            InvalidShipmentStateError: Raised when a transition targets a DELIVERED or CANCELLED shipment.
            LedgerValidationError: Raised when the status is unknown.
            InsufficientQuantityError: Raised when the origin lot cannot cover an outbound delivery.
        """

        with ledger_log_rejections(logger, "shipment_add_event", shipment_id=shipment_id):
            target_status = None
            if request.status is not None:
                target_status = domain_parse_enum(ShipmentStatus, request.status, "status")
            location = domain_normalize_optional_text(request.location)
            notes = domain_normalize_optional_text(request.notes)

            with self._unit_of_work_factory() as unit_of_work:
                shipment = unit_of_work.shipments.db_shipment_get(shipment_id, for_update=True)
                if shipment is None:
                    raise ShipmentNotFoundError(f"shipment not found: {shipment_id}")

                updated_shipment = shipment
                movement = None
                if target_status is not None:
                    updated_shipment, movement = self._ledger_shipment_transition(unit_of_work, shipment, target_status)

                event = unit_of_work.shipments.db_shipment_event_insert(
                    ShipmentEventInsertRequest(
                        shipment_id=shipment.shipment_id,
                        status=updated_shipment.status,
                        location=location,
                        notes=notes,
                    )
                )

        logger.info(
            "shipment event recorded",
            extra={
                "shipment_id": shipment_id,
                "previous_status": shipment.status.value,
                "status": updated_shipment.status.value,
                "movement_posted": movement is not None,
            },
        )
        return ShipmentStatusUpdateResult(
            shipment=updated_shipment,
            movement=movement,
            previous_status=shipment.status,
            event=event,
        )

    def ledger_shipment_get(self, shipment_id: UUID) -> ShipmentRecord:
        with self._unit_of_work_factory() as unit_of_work:
            shipment = unit_of_work.shipments.db_shipment_get(shipment_id)
        if shipment is None:
            raise ShipmentNotFoundError(f"shipment not found: {shipment_id}")
        return shipment

    def ledger_shipment_list_events(self, shipment_id: UUID) -> list[ShipmentEventRecord]:
        """Return the tracking history of one shipment, oldest first.

        Raises:
            ShipmentNotFoundError: Raised when the shipment does not exist.
        """

        with self._unit_of_work_factory() as unit_of_work:
            if unit_of_work.shipments.db_shipment_get(shipment_id) is None:
                raise ShipmentNotFoundError(f"shipment not found: {shipment_id}")
            return unit_of_work.shipments.db_shipment_event_list(shipment_id)

    def _ledger_shipment_transition(
        self,
        unit_of_work: LedgerUnitOfWorkPort,
        shipment: ShipmentRecord,
        target_status: ShipmentStatus,
    ) -> tuple[ShipmentRecord, InventoryMovementRecord | None]:
        if shipment.status in _TERMINAL_STATUSES:
            raise InvalidShipmentStateError(
                f"shipment {shipment.shipment_id} is {shipment.status.value} and cannot change status"
            )

        departure_date = shipment.departure_date
        if target_status is ShipmentStatus.IN_TRANSIT and departure_date is None:
            departure_date = self._today()
        actual_arrival = shipment.actual_arrival
        if target_status is ShipmentStatus.DELIVERED and actual_arrival is None:
            actual_arrival = self._today()

        updated_shipment = unit_of_work.shipments.db_shipment_update_status(
            shipment.shipment_id,
            target_status,
            departure_date=departure_date,
            actual_arrival=actual_arrival,
        )

        movement = None
        if target_status is ShipmentStatus.DELIVERED:
            movement = self._ledger_shipment_post_delivery(unit_of_work, updated_shipment)
        return updated_shipment, movement

    def _ledger_shipment_check_trade_capacity(
        self,
        unit_of_work: LedgerUnitOfWorkPort,
        request: ShipmentRegisterRequest,
        quantity: int,
    ) -> None:
        trade = unit_of_work.trades.db_trade_get(request.trade_id, for_update=True)
        if trade is None:
            raise TradeNotFoundError(f"trade not found: {request.trade_id}")
        if trade.commodity_id != request.commodity_id:
            raise LedgerValidationError(f"trade {trade.trade_id} is not for the shipment commodity")
        if trade.status is TradeStatus.CANCELLED:
            raise InvalidTradeStateError(f"trade {trade.trade_id} is cancelled and cannot be shipped")
        shipped_quantity = unit_of_work.shipments.db_shipment_sum_quantity_for_trade(trade.trade_id)
        if shipped_quantity + quantity > trade.quantity:
            raise ExceedsRemainingBalanceError(
                f"shipment quantity {quantity} exceeds unshipped trade quantity {trade.quantity - shipped_quantity}"
            )

    def _ledger_shipment_post_delivery(
        self,
        unit_of_work: LedgerUnitOfWorkPort,
        shipment: ShipmentRecord,
    ) -> InventoryMovementRecord:
        """Post the single delivery movement for one shipment."""

        commodity = unit_of_work.commodities.db_commodity_get(shipment.commodity_id)
        if commodity is None:
            raise CommodityNotFoundError(f"commodity not found: {shipment.commodity_id}")
        trade = None
        if shipment.trade_id is not None:
            trade = unit_of_work.trades.db_trade_get(shipment.trade_id)

        outbound = trade is not None and trade.direction is TradeDirection.SELL
        lot_site = shipment.origin if outbound else shipment.destination
        unit_cost = commodity.current_price if trade is None else trade.price

        lot, _ = ledger_find_or_create_lot(
            unit_of_work,
            InventoryLotIdentity(
                commodity_id=shipment.commodity_id,
                warehouse=lot_site,
                location=lot_site,
                quality=self._default_quality,
            ),
            unit=commodity.unit,
            cost_basis=unit_cost,
            market_value=commodity.current_price,
        )
        result = self._movement_engine.ledger_apply_movement(
            unit_of_work,
            InventoryMovementRequest(
                lot_id=lot.lot_id,
                movement_kind=InventoryMovementKind.OUT if outbound else InventoryMovementKind.IN,
                quantity=shipment.quantity,
                reason=f"Shipment {shipment.tracking_number} delivered",
                reference=MovementReference(MovementReferenceKind.SHIPMENT, str(shipment.shipment_id)),
                unit_cost=None if outbound else unit_cost,
                unit_market_value=commodity.current_price,
            ),
        )
        return result.movement
