"""Contract lifecycle commands: create, update terms, execute tranches, cancel.

A contract moves `ACTIVE -> COMPLETED` when its remaining quantity reaches
zero, or `ACTIVE -> CANCELLED`. Every committed command keeps
`executed + remaining == quantity`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from commodity_ledger.db.interfaces import (
    ContractInsertRequest,
    ContractRecord,
    ContractTermsWrite,
    ContractTrancheInsertRequest,
    ContractTrancheRecord,
    LedgerUnitOfWorkPort,
)
from commodity_ledger.domain import (
    ContractDirection,
    ContractStatus,
    InventoryMovementKind,
    MovementReference,
    MovementReferenceKind,
    TradeStatus,
)
from commodity_ledger.domain.errors import (
    CommodityNotFoundError,
    ContractNotFoundError,
    CounterpartyNotFoundError,
    ExceedsRemainingBalanceError,
    InvalidContractStateError,
    InvalidDateRangeError,
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
from .interfaces import (
    ContractCreateRequest,
    ContractTermsUpdateRequest,
    ContractTrancheRequest,
    ContractTrancheResult,
    InventoryMovementRequest,
    LedgerUnitOfWorkFactory,
)
from .lot_routing import ledger_find_or_create_lot, ledger_resolve_identity, ledger_sell_from_lots
from .movement_engine import InventoryMovementEngine

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _contract_require_date_range(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise InvalidDateRangeError(f"end_date {end_date.isoformat()} must be after start_date {start_date.isoformat()}")


class ContractExecutionService:
    """Contract command service over a unit-of-work factory."""

    def __init__(
        self,
        unit_of_work_factory: LedgerUnitOfWorkFactory,
        movement_engine: InventoryMovementEngine | None = None,
        default_warehouse: str = "Contract Delivery",
        default_location: str = "Main Location",
        default_quality: str = "Contract Grade",
        today: Callable[[], date] | None = None,
    ):
        """Initialize contract command service.

        Args:
            unit_of_work_factory: Factory returning a fresh unit of work per command.
            movement_engine: Movement engine used for inventory effects.
            default_warehouse: Warehouse receiving PURCHASE tranches unless overridden.
            default_location: Location receiving PURCHASE tranches unless overridden.
            default_quality: Quality grade of PURCHASE tranches unless overridden.
            today: Optional UTC business-date provider for tranche execution dates.

        Raises:
            ValueError: Raised when the factory is None or a default is blank.
        """

        if unit_of_work_factory is None:
            raise ValueError("unit_of_work_factory must not be None")
        for field_name, value in (
            ("default_warehouse", default_warehouse),
            ("default_location", default_location),
            ("default_quality", default_quality),
        ):
            if not value.strip():
                raise ValueError(f"{field_name} must not be blank")
        self._unit_of_work_factory = unit_of_work_factory
        self._movement_engine = movement_engine or InventoryMovementEngine()
        self._default_warehouse = default_warehouse.strip()
        self._default_location = default_location.strip()
        self._default_quality = default_quality.strip()
        self._today = today or _utc_today

    def ledger_contract_create(self, request: ContractCreateRequest) -> ContractRecord:
        """Create one ACTIVE contract with its full quantity remaining.

        Args:
            request: Contract input.

        Returns:
            ContractRecord: Created contract.

        Raises:
            LedgerValidationError: Raised when the input is invalid.
            InvalidDateRangeError: Raised when the end date is not after the start date.
            CommodityNotFoundError: Raised when the commodity does not exist.
            CounterpartyNotFoundError: Raised when the counterparty does not exist.
        """

        with ledger_log_rejections(logger, "contract_create", counterparty_id=request.counterparty_id):
            direction = domain_parse_enum(ContractDirection, request.direction, "direction")
            quantity = domain_require_quantity(request.quantity, "quantity")
            price = domain_require_positive_price(request.price, "price")
            delivery_terms = domain_require_text(request.delivery_terms, "delivery_terms")
            payment_terms = domain_require_text(request.payment_terms, "payment_terms")
            _contract_require_date_range(request.start_date, request.end_date)

            with self._unit_of_work_factory() as unit_of_work:
                if unit_of_work.commodities.db_commodity_get(request.commodity_id) is None:
                    raise CommodityNotFoundError(f"commodity not found: {request.commodity_id}")
                if unit_of_work.counterparties.db_counterparty_get(request.counterparty_id) is None:
                    raise CounterpartyNotFoundError(f"counterparty not found: {request.counterparty_id}")
                contract = unit_of_work.contracts.db_contract_insert(
                    ContractInsertRequest(
                        commodity_id=request.commodity_id,
                        counterparty_id=request.counterparty_id,
                        direction=direction,
                        quantity=quantity,
                        price=price,
                        total_value=domain_quantize_money(Decimal(quantity) * price, "total_value"),
                        start_date=request.start_date,
                        end_date=request.end_date,
                        delivery_terms=delivery_terms,
                        payment_terms=payment_terms,
                    )
                )

        logger.info("contract created", extra={"contract_id": contract.contract_id, "direction": direction.value})
        return contract

    def ledger_contract_update_terms(self, contract_id: UUID, request: ContractTermsUpdateRequest) -> ContractRecord:
        """Apply a partial terms update to one ACTIVE contract.

        A quantity change shifts `remaining` by the same delta. A quantity below
        the executed quantity is rejected; a quantity equal to it completes the
        contract.

        Args:
            contract_id: Contract identifier.
            request: Fields to change; None keeps the current value.

        Returns:
            ContractRecord: Updated contract.

        Raises:
            ContractNotFoundError: Raised when the contract does not exist.
            InvalidContractStateError: Raised when the contract is not ACTIVE.
            InvalidDateRangeError: Raised when the merged dates are out of order.
            LedgerValidationError: Raised when a supplied value is invalid.
        """

        with ledger_log_rejections(logger, "contract_update_terms", contract_id=contract_id):
            with self._unit_of_work_factory() as unit_of_work:
                contract = self._ledger_contract_get_locked(unit_of_work, contract_id)
                if contract.status is not ContractStatus.ACTIVE:
                    raise InvalidContractStateError(
                        f"contract {contract_id} cannot be updated from status {contract.status.value}"
                    )

                quantity = contract.quantity
                if request.quantity is not None:
                    quantity = domain_require_quantity(request.quantity, "quantity")
                    if quantity < contract.executed:
                        raise LedgerValidationError(
                            f"quantity {quantity} is below executed quantity {contract.executed}"
                        )
                price = contract.price
                if request.price is not None:
                    price = domain_require_positive_price(request.price, "price")

                start_date = request.start_date or contract.start_date
                end_date = request.end_date or contract.end_date
                _contract_require_date_range(start_date, end_date)

                delivery_terms = contract.delivery_terms
                if request.delivery_terms is not None:
                    delivery_terms = domain_require_text(request.delivery_terms, "delivery_terms")
                payment_terms = contract.payment_terms
                if request.payment_terms is not None:
                    payment_terms = domain_require_text(request.payment_terms, "payment_terms")

                remaining = max(0, contract.remaining + (quantity - contract.quantity))
                status = ContractStatus.COMPLETED if remaining == 0 else ContractStatus.ACTIVE
                total_value = contract.total_value
                if quantity != contract.quantity or price != contract.price:
                    total_value = domain_quantize_money(Decimal(quantity) * price, "total_value")

                updated_contract = unit_of_work.contracts.db_contract_update_terms(
                    contract.contract_id,
                    ContractTermsWrite(
                        quantity=quantity,
                        price=price,
                        total_value=total_value,
                        remaining=remaining,
                        status=status,
                        start_date=start_date,
                        end_date=end_date,
                        delivery_terms=delivery_terms,
                        payment_terms=payment_terms,
                    ),
                )

        logger.info(
            "contract terms updated",
            extra={"contract_id": contract_id, "quantity": quantity, "status": status.value},
        )
        return updated_contract

    def ledger_contract_execute_tranche(self, contract_id: UUID, request: ContractTrancheRequest) -> ContractTrancheResult:
        """Execute one tranche of an ACTIVE contract and post its inventory effect.

        PURCHASE receives the tranche into the routed contract delivery lot at
        the contract price. SALE draws the tranche from the commodity's lots,
        oldest first, all-or-nothing.

        Args:
            contract_id: Contract identifier.
            request: Tranche input.

        Returns:
            ContractTrancheResult: Updated contract, tranche row and movements.

        Raises:
            ContractNotFoundError: Raised when the contract does not exist.
            InvalidContractStateError: Raised when the contract is not ACTIVE.
            ExceedsRemainingBalanceError: Raised when the tranche exceeds the remaining quantity.
            TradeNotFoundError: Raised when a linked trade does not exist.
            InvalidTradeStateError: Raised when a linked trade is CANCELLED.
            InsufficientInventoryError: Raised when a SALE tranche cannot be covered.
        """

        with ledger_log_rejections(logger, "contract_execute_tranche", contract_id=contract_id):
            quantity = domain_require_quantity(request.quantity, "quantity")
            execution_date = request.execution_date or self._today()
            notes = domain_normalize_optional_text(request.notes)

            with self._unit_of_work_factory() as unit_of_work:
                contract = self._ledger_contract_get_locked(unit_of_work, contract_id)
                if contract.status is not ContractStatus.ACTIVE:
                    raise InvalidContractStateError(
                        f"contract {contract_id} cannot be executed from status {contract.status.value}"
                    )
                if quantity > contract.remaining:
                    raise ExceedsRemainingBalanceError(
                        f"tranche quantity {quantity} exceeds remaining contract quantity {contract.remaining}"
                    )
                commodity = unit_of_work.commodities.db_commodity_get(contract.commodity_id)
                if commodity is None:
                    raise CommodityNotFoundError(f"commodity not found: {contract.commodity_id}")

                if request.trade_id is not None:
                    self._ledger_contract_link_trade(unit_of_work, contract, request.trade_id)

                reason = f"Contract {contract.contract_id} tranche execution"
                reference = MovementReference(MovementReferenceKind.CONTRACT, str(contract.contract_id))
                if contract.direction is ContractDirection.PURCHASE:
                    identity = ledger_resolve_identity(
                        commodity_id=contract.commodity_id,
                        routing=request.routing,
                        default_warehouse=self._default_warehouse,
                        default_location=self._default_location,
                        default_quality=self._default_quality,
                    )
                    lot, _ = ledger_find_or_create_lot(
                        unit_of_work,
                        identity,
                        unit=commodity.unit,
                        cost_basis=contract.price,
                        market_value=commodity.current_price,
                    )
                    results = (
                        self._movement_engine.ledger_apply_movement(
                            unit_of_work,
                            InventoryMovementRequest(
                                lot_id=lot.lot_id,
                                movement_kind=InventoryMovementKind.IN,
                                quantity=quantity,
                                reason=reason,
                                reference=reference,
                                unit_cost=contract.price,
                                unit_market_value=commodity.current_price,
                            ),
                        ),
                    )
                else:
                    results = ledger_sell_from_lots(
                        unit_of_work,
                        self._movement_engine,
                        commodity_id=contract.commodity_id,
                        quantity=quantity,
                        routing=request.routing,
                        reason=reason,
                        reference=reference,
                        unit_market_value=contract.price,
                    )

                executed = contract.executed + quantity
                remaining = contract.remaining - quantity
                status = ContractStatus.COMPLETED if remaining == 0 else ContractStatus.ACTIVE
                updated_contract = unit_of_work.contracts.db_contract_update_execution(
                    contract.contract_id,
                    executed=executed,
                    remaining=remaining,
                    status=status,
                )
                tranche = unit_of_work.contracts.db_contract_tranche_insert(
                    ContractTrancheInsertRequest(
                        contract_id=contract.contract_id,
                        quantity=quantity,
                        price=contract.price,
                        execution_date=execution_date,
                        trade_id=request.trade_id,
                        notes=notes,
                    )
                )

        logger.info(
            "contract tranche executed",
            extra={
                "contract_id": contract_id,
                "tranche_id": tranche.tranche_id,
                "quantity": quantity,
                "remaining": remaining,
                "status": status.value,
            },
        )
        return ContractTrancheResult(
            contract=updated_contract,
            tranche=tranche,
            movements=tuple(result.movement for result in results),
        )

    def ledger_contract_cancel(self, contract_id: UUID, reason: str | None = None) -> ContractRecord:
        """Cancel one ACTIVE contract; executed tranches are not reversed."""

        with ledger_log_rejections(logger, "contract_cancel", contract_id=contract_id):
            with self._unit_of_work_factory() as unit_of_work:
                contract = self._ledger_contract_get_locked(unit_of_work, contract_id)
                if contract.status is not ContractStatus.ACTIVE:
                    raise InvalidContractStateError(
                        f"contract {contract_id} cannot be cancelled from status {contract.status.value}"
                    )
                cancelled_contract = unit_of_work.contracts.db_contract_update_status(
                    contract.contract_id,
                    ContractStatus.CANCELLED,
                    cancellation_reason=domain_normalize_optional_text(reason),
                )

        logger.info("contract cancelled", extra={"contract_id": contract_id})
        return cancelled_contract

    def ledger_contract_get(self, contract_id: UUID) -> ContractRecord:
        with self._unit_of_work_factory() as unit_of_work:
            contract = unit_of_work.contracts.db_contract_get(contract_id)
        if contract is None:
            raise ContractNotFoundError(f"contract not found: {contract_id}")
        return contract

    def ledger_contract_list_tranches(self, contract_id: UUID) -> list[ContractTrancheRecord]:
        with self._unit_of_work_factory() as unit_of_work:
            if unit_of_work.contracts.db_contract_get(contract_id) is None:
                raise ContractNotFoundError(f"contract not found: {contract_id}")
            return unit_of_work.contracts.db_contract_tranche_list(contract_id)

    def _ledger_contract_get_locked(self, unit_of_work: LedgerUnitOfWorkPort, contract_id: UUID) -> ContractRecord:
        contract = unit_of_work.contracts.db_contract_get(contract_id, for_update=True)
        if contract is None:
            raise ContractNotFoundError(f"contract not found: {contract_id}")
        return contract

    def _ledger_contract_link_trade(
        self,
        unit_of_work: LedgerUnitOfWorkPort,
        contract: ContractRecord,
        trade_id: UUID,
    ) -> None:
        """Validate a linked trade and mark it EXECUTED when still OPEN.

        Raises:
            TradeNotFoundError: Raised when the trade does not exist.
            LedgerValidationError: Raised when the trade is for another commodity.
            InvalidTradeStateError: Raised when the trade is CANCELLED.
        """

        trade = unit_of_work.trades.db_trade_get(trade_id, for_update=True)
        if trade is None:
            raise TradeNotFoundError(f"trade not found: {trade_id}")
        if trade.commodity_id != contract.commodity_id:
            raise LedgerValidationError(f"trade {trade_id} is not for the contract commodity")
        if trade.status is TradeStatus.CANCELLED:
            raise InvalidTradeStateError(f"trade {trade_id} is cancelled and cannot be linked")
        if trade.status is TradeStatus.OPEN:
            unit_of_work.trades.db_trade_update_status(trade.trade_id, TradeStatus.EXECUTED)
