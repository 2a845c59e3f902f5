"""Trade lifecycle commands: create with credit reservation, execute, cancel, settle.

States move `OPEN -> EXECUTED -> SETTLED` or `OPEN -> CANCELLED`. Every
command runs in one unit of work, so a failed execution leaves the trade
OPEN with no movements and no lot changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from commodity_ledger.db.interfaces import LedgerUnitOfWorkPort, TradeInsertRequest, TradeRecord, TradeTermsWrite
from commodity_ledger.domain import (
    InventoryMovementKind,
    MovementReference,
    MovementReferenceKind,
    TradeDirection,
    TradeStatus,
)
from commodity_ledger.domain.errors import (
    CommodityNotFoundError,
    CounterpartyNotFoundError,
    InvalidTradeStateError,
    LedgerValidationError,
    TradeNotFoundError,
)
from commodity_ledger.domain.values import (
    domain_normalize_optional_text,
    domain_parse_enum,
    domain_quantize_money,
    domain_require_positive_price,
    domain_require_quantity,
    domain_require_text,
)

from .command_logging import ledger_log_rejections
from .credit_control import credit_adjust_trade, credit_release_trade, credit_reserve_trade
from .interfaces import (
    InventoryMovementRequest,
    InventoryRouting,
    LedgerUnitOfWorkFactory,
    TradeCreateRequest,
    TradeExecutionResult,
    TradeTermsUpdateRequest,
)
from .lot_routing import ledger_find_or_create_lot, ledger_resolve_identity, ledger_sell_from_lots
from .movement_engine import InventoryMovementEngine

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradeExecutionService:
    """Trade command service over a unit-of-work factory."""

    def __init__(
        self,
        unit_of_work_factory: LedgerUnitOfWorkFactory,
        movement_engine: InventoryMovementEngine | None = None,
        default_warehouse: str = "Main Warehouse",
        default_quality: str = "Standard",
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize trade command service.

        Args:
            unit_of_work_factory: Factory returning a fresh unit of work per command.
            movement_engine: Movement engine used for inventory effects.
            default_warehouse: Warehouse receiving BUY executions unless overridden.
            default_quality: Quality grade of BUY executions unless overridden.
            clock: Optional UTC clock used for trade timestamps.

        Raises:
            ValueError: Raised when the factory is None or a default is blank.
        """

        if unit_of_work_factory is None:
            raise ValueError("unit_of_work_factory must not be None")
        if not default_warehouse.strip():
            raise ValueError("default_warehouse must not be blank")
        if not default_quality.strip():
            raise ValueError("default_quality must not be blank")
        self._unit_of_work_factory = unit_of_work_factory
        self._movement_engine = movement_engine or InventoryMovementEngine()
        self._default_warehouse = default_warehouse.strip()
        self._default_quality = default_quality.strip()
        self._clock = clock or _utc_now

    def ledger_trade_create(self, request: TradeCreateRequest) -> TradeRecord:
        """Create one OPEN trade and reserve counterparty credit for it.

        Args:
            request: Trade input.

        Returns:
            TradeRecord: Created trade.

        Raises:
            LedgerValidationError: Raised when the input is invalid.
            CommodityNotFoundError: Raised when the commodity does not exist.
            CounterpartyNotFoundError: Raised when the counterparty does not exist.
            CreditLimitExceededError: Raised when the trade would exceed the credit limit.
        """

        with ledger_log_rejections(logger, "trade_create", counterparty_id=request.counterparty_id):
            direction = domain_parse_enum(TradeDirection, request.direction, "direction")
            quantity = domain_require_quantity(request.quantity, "quantity")
            price = domain_require_positive_price(request.price, "price")
            location = domain_require_text(request.location, "location")
            if not isinstance(request.settlement_date, date):
                raise LedgerValidationError("settlement_date must be a date")
            total_value = domain_quantize_money(Decimal(quantity) * price, "total_value")
            traded_at_utc = self._clock()

            with self._unit_of_work_factory() as unit_of_work:
                if unit_of_work.commodities.db_commodity_get(request.commodity_id) is None:
                    raise CommodityNotFoundError(f"commodity not found: {request.commodity_id}")
                counterparty = unit_of_work.counterparties.db_counterparty_get(request.counterparty_id, for_update=True)
                if counterparty is None:
                    raise CounterpartyNotFoundError(f"counterparty not found: {request.counterparty_id}")

                exposure = credit_reserve_trade(counterparty, total_value, quantity, traded_at_utc)
                trade = unit_of_work.trades.db_trade_insert(
                    TradeInsertRequest(
                        commodity_id=request.commodity_id,
                        counterparty_id=request.counterparty_id,
                        direction=direction,
                        quantity=quantity,
                        price=price,
                        total_value=total_value,
                        traded_at_utc=traded_at_utc,
                        settlement_date=request.settlement_date,
                        location=location,
                    )
                )
                unit_of_work.counterparties.db_counterparty_update_exposure(counterparty.counterparty_id, exposure)

        logger.info(
            "trade created",
            extra={"trade_id": trade.trade_id, "direction": direction.value, "total_value": total_value},
        )
        return trade

    def ledger_trade_update_terms(self, trade_id: UUID, request: TradeTermsUpdateRequest) -> TradeRecord:
        """Amend the terms of one OPEN trade and re-reserve its credit.

        The counterparty row is locked and the previous reservation is swapped
        for the new total value in the same unit of work, so a rejected update
        leaves both the trade and the exposure untouched.

        Args:
            trade_id: Trade identifier.
            request: Fields to change; None keeps the current value.

        Returns:
            TradeRecord: Updated trade.

        Raises:
            TradeNotFoundError: Raised when the trade does not exist.
            InvalidTradeStateError: Raised when the trade is not OPEN.
            LedgerValidationError: Raised when a supplied value is invalid.
            CreditLimitExceededError: Raised when the new value would exceed the credit limit.
        """

        with ledger_log_rejections(logger, "trade_update_terms", trade_id=trade_id):
            with self._unit_of_work_factory() as unit_of_work:
                trade = self._ledger_trade_get_locked(unit_of_work, trade_id)
                if trade.status is not TradeStatus.OPEN:
                    raise InvalidTradeStateError(f"trade {trade_id} cannot be updated from status {trade.status.value}")

                quantity = trade.quantity
                if request.quantity is not None:
                    quantity = domain_require_quantity(request.quantity, "quantity")
                price = trade.price
                if request.price is not None:
                    price = domain_require_positive_price(request.price, "price")
                settlement_date = trade.settlement_date
                if request.settlement_date is not None:
                    if not isinstance(request.settlement_date, date):
                        raise LedgerValidationError("settlement_date must be a date")
                    settlement_date = request.settlement_date
                location = trade.location
                if request.location is not None:
                    location = domain_require_text(request.location, "location")

                total_value = trade.total_value
                if quantity != trade.quantity or price != trade.price:
                    total_value = domain_quantize_money(Decimal(quantity) * price, "total_value")

                counterparty = unit_of_work.counterparties.db_counterparty_get(trade.counterparty_id, for_update=True)
                if counterparty is None:
                    raise CounterpartyNotFoundError(f"counterparty not found: {trade.counterparty_id}")
                exposure = credit_adjust_trade(counterparty, trade.total_value, trade.quantity, total_value, quantity)
                unit_of_work.counterparties.db_counterparty_update_exposure(counterparty.counterparty_id, exposure)
                updated_trade = unit_of_work.trades.db_trade_update_terms(
                    trade.trade_id,
                    TradeTermsWrite(
                        quantity=quantity,
                        price=price,
                        total_value=total_value,
                        settlement_date=settlement_date,
                        location=location,
                    ),
                )

        logger.info(
            "trade terms updated",
            extra={"trade_id": trade_id, "total_value": total_value, "credit_delta": total_value - trade.total_value},
        )
        return updated_trade

    def ledger_trade_execute(self, trade_id: UUID, routing: InventoryRouting | None = None) -> TradeExecutionResult:
        """Execute one OPEN trade and post its inventory effect.

        BUY receives the trade quantity into the routed lot at the trade price.
        SELL draws the quantity from the commodity's lots, oldest first.

        Args:
            trade_id: Trade identifier.
            routing: Optional lot identity overrides (BUY) or lot filters (SELL).

        Returns:
            TradeExecutionResult: Executed trade and its movements.

        Raises:
            TradeNotFoundError: Raised when the trade does not exist.
            InvalidTradeStateError: Raised when the trade is not OPEN.
            InsufficientInventoryError: Raised when a SELL cannot be covered.
        """

        with ledger_log_rejections(logger, "trade_execute", trade_id=trade_id):
            with self._unit_of_work_factory() as unit_of_work:
                trade = self._ledger_trade_get_locked(unit_of_work, trade_id)
                if trade.status is not TradeStatus.OPEN:
                    raise InvalidTradeStateError(f"trade {trade_id} cannot be executed from status {trade.status.value}")
                commodity = unit_of_work.commodities.db_commodity_get(trade.commodity_id)
                if commodity is None:
                    raise CommodityNotFoundError(f"commodity not found: {trade.commodity_id}")

                reason = f"Trade {trade.trade_id} execution"
                reference = MovementReference(MovementReferenceKind.TRADE, str(trade.trade_id))

                if trade.direction is TradeDirection.BUY:
                    identity = ledger_resolve_identity(
                        commodity_id=trade.commodity_id,
                        routing=routing,
                        default_warehouse=self._default_warehouse,
                        default_location=trade.location,
                        default_quality=self._default_quality,
                    )
                    lot, _ = ledger_find_or_create_lot(
                        unit_of_work,
                        identity,
                        unit=commodity.unit,
                        cost_basis=trade.price,
                        market_value=commodity.current_price,
                    )
                    results = (
                        self._movement_engine.ledger_apply_movement(
                            unit_of_work,
                            InventoryMovementRequest(
                                lot_id=lot.lot_id,
                                movement_kind=InventoryMovementKind.IN,
                                quantity=trade.quantity,
                                reason=reason,
                                reference=reference,
                                unit_cost=trade.price,
                                unit_market_value=commodity.current_price,
                            ),
                        ),
                    )
                else:
                    results = ledger_sell_from_lots(
                        unit_of_work,
                        self._movement_engine,
                        commodity_id=trade.commodity_id,
                        quantity=trade.quantity,
                        routing=routing,
                        reason=reason,
                        reference=reference,
                        unit_market_value=trade.price,
                    )

                executed_trade = unit_of_work.trades.db_trade_update_status(trade.trade_id, TradeStatus.EXECUTED)

        logger.info(
            "trade executed",
            extra={"trade_id": trade_id, "direction": trade.direction.value, "movement_count": len(results)},
        )
        return TradeExecutionResult(trade=executed_trade, movements=tuple(result.movement for result in results))

    def ledger_trade_cancel(self, trade_id: UUID, reason: str | None = None) -> TradeRecord:
        """Cancel one OPEN trade and release its reserved credit exactly.

        Raises:
            TradeNotFoundError: Raised when the trade does not exist.
            InvalidTradeStateError: Raised when the trade is not OPEN.
        """

        with ledger_log_rejections(logger, "trade_cancel", trade_id=trade_id):
            with self._unit_of_work_factory() as unit_of_work:
                trade = self._ledger_trade_get_locked(unit_of_work, trade_id)
                if trade.status is not TradeStatus.OPEN:
                    raise InvalidTradeStateError(f"trade {trade_id} cannot be cancelled from status {trade.status.value}")
                counterparty = unit_of_work.counterparties.db_counterparty_get(trade.counterparty_id, for_update=True)
                if counterparty is None:
                    raise CounterpartyNotFoundError(f"counterparty not found: {trade.counterparty_id}")

                exposure = credit_release_trade(counterparty, trade.total_value, trade.quantity)
                unit_of_work.counterparties.db_counterparty_update_exposure(counterparty.counterparty_id, exposure)
                cancelled_trade = unit_of_work.trades.db_trade_update_status(
                    trade.trade_id,
                    TradeStatus.CANCELLED,
                    cancellation_reason=domain_normalize_optional_text(reason),
                )

        logger.info("trade cancelled", extra={"trade_id": trade_id, "released_credit": trade.total_value})
        return cancelled_trade

    def ledger_trade_settle(self, trade_id: UUID) -> TradeRecord:
        """Settle one EXECUTED trade; no ledger side effects."""

        with ledger_log_rejections(logger, "trade_settle", trade_id=trade_id):
            with self._unit_of_work_factory() as unit_of_work:
                trade = self._ledger_trade_get_locked(unit_of_work, trade_id)
                if trade.status is not TradeStatus.EXECUTED:
                    raise InvalidTradeStateError(f"trade {trade_id} cannot be settled from status {trade.status.value}")
                settled_trade = unit_of_work.trades.db_trade_update_status(trade.trade_id, TradeStatus.SETTLED)

        logger.info("trade settled", extra={"trade_id": trade_id})
        return settled_trade

    def ledger_trade_get(self, trade_id: UUID) -> TradeRecord:
        with self._unit_of_work_factory() as unit_of_work:
            trade = unit_of_work.trades.db_trade_get(trade_id)
        if trade is None:
            raise TradeNotFoundError(f"trade not found: {trade_id}")
        return trade

    def _ledger_trade_get_locked(self, unit_of_work: LedgerUnitOfWorkPort, trade_id: UUID) -> TradeRecord:
        trade = unit_of_work.trades.db_trade_get(trade_id, for_update=True)
        if trade is None:
            raise TradeNotFoundError(f"trade not found: {trade_id}")
        return trade
