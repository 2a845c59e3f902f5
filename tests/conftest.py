"""Shared in-memory ledger store and unit-of-work doubles for service tests.

The doubles implement every repository port over plain dictionaries. A unit
of work snapshots the whole store on enter and restores it when the scope
exits with an exception, which gives the same all-or-nothing visibility as a
database transaction.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import TracebackType
from uuid import UUID, uuid4

import pytest

from commodity_ledger.db.interfaces import (
    CommodityInsertRequest,
    CommodityRecord,
    ContractInsertRequest,
    ContractRecord,
    ContractTermsWrite,
    ContractTrancheInsertRequest,
    ContractTrancheRecord,
    CounterpartyExposureUpdate,
    CounterpartyInsertRequest,
    CounterpartyRecord,
    InventoryLotFilter,
    InventoryLotIdentity,
    InventoryLotInsertRequest,
    InventoryLotRecord,
    InventoryMovementInsertRequest,
    InventoryMovementRecord,
    ShipmentEventInsertRequest,
    ShipmentEventRecord,
    ShipmentInsertRequest,
    ShipmentRecord,
    TradeInsertRequest,
    TradeRecord,
    TradeTermsWrite,
)
from commodity_ledger.domain import ContractStatus, ShipmentStatus, TradeStatus
from commodity_ledger.domain.errors import LedgerConcurrencyConflictError

_BASE_TIMESTAMP = datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)


class InMemoryLedgerStore:
    """Dictionary-backed ledger state shared by all units of work in one test."""

    def __init__(self):
        self.commodities: dict[UUID, CommodityRecord] = {}
        self.counterparties: dict[UUID, CounterpartyRecord] = {}
        self.lots: dict[UUID, InventoryLotRecord] = {}
        self.movements: list[InventoryMovementRecord] = []
        self.trades: dict[UUID, TradeRecord] = {}
        self.contracts: dict[UUID, ContractRecord] = {}
        self.tranches: list[ContractTrancheRecord] = []
        self.shipments: dict[UUID, ShipmentRecord] = {}
        self.shipment_events: list[ShipmentEventRecord] = []
        self.locked_rows: list[tuple[str, UUID]] = []
        self.commits = 0
        self.rollbacks = 0
        self._tick = 0

    def store_next_timestamp(self) -> datetime:
        """Return a strictly increasing UTC timestamp."""

        self._tick += 1
        return _BASE_TIMESTAMP + timedelta(seconds=self._tick)

    def store_snapshot(self) -> dict:
        return {
            "commodities": dict(self.commodities),
            "counterparties": dict(self.counterparties),
            "lots": dict(self.lots),
            "movements": list(self.movements),
            "trades": dict(self.trades),
            "contracts": dict(self.contracts),
            "tranches": list(self.tranches),
            "shipments": dict(self.shipments),
            "shipment_events": list(self.shipment_events),
        }

    def store_restore(self, snapshot: dict) -> None:
        for attribute_name, value in snapshot.items():
            setattr(self, attribute_name, value)

    def seed_commodity(
        self,
        name: str = "Wheat",
        current_price: Decimal = Decimal("250.000000"),
        unit: str = "MT",
        category: str = "AGRICULTURAL",
    ) -> CommodityRecord:
        """Insert one commodity directly, bypassing services.

        Returns:
            CommodityRecord: Seeded commodity.

        Raises:
            AssertionError: Never raised by this helper.
        """

        timestamp = self.store_next_timestamp()
        commodity = CommodityRecord(
            commodity_id=uuid4(),
            name=name,
            category=category,
            unit=unit,
            current_price=current_price,
            price_change=Decimal("0"),
            price_change_percent=Decimal("0"),
            created_at_utc=timestamp,
            updated_at_utc=timestamp,
        )
        self.commodities[commodity.commodity_id] = commodity
        return commodity

    def seed_counterparty(
        self,
        name: str = "Atlas Grain",
        credit_limit: Decimal = Decimal("1000000.00"),
        credit_used: Decimal = Decimal("0.00"),
        rating: str = "A",
    ) -> CounterpartyRecord:
        timestamp = self.store_next_timestamp()
        counterparty = CounterpartyRecord(
            counterparty_id=uuid4(),
            name=name,
            country="NL",
            rating=rating,
            credit_limit=credit_limit,
            credit_used=credit_used,
            total_trades=0,
            total_volume=0,
            last_trade_date=None,
            created_at_utc=timestamp,
            updated_at_utc=timestamp,
        )
        self.counterparties[counterparty.counterparty_id] = counterparty
        return counterparty

    def seed_lot(
        self,
        commodity_id: UUID,
        quantity: int,
        cost_basis: Decimal = Decimal("200"),
        market_value: Decimal = Decimal("250"),
        warehouse: str = "Rotterdam",
        location: str = "Bay 1",
        quality: str = "Standard",
        unit: str = "MT",
    ) -> InventoryLotRecord:
        timestamp = self.store_next_timestamp()
        lot = InventoryLotRecord(
            lot_id=uuid4(),
            commodity_id=commodity_id,
            quantity=quantity,
            unit=unit,
            warehouse=warehouse,
            location=location,
            quality=quality,
            cost_basis=cost_basis,
            market_value=market_value,
            created_at_utc=timestamp,
            last_updated_utc=timestamp,
        )
        self.lots[lot.lot_id] = lot
        return lot

    def movements_for_lot(self, lot_id: UUID) -> list[InventoryMovementRecord]:
        return [movement for movement in self.movements if movement.lot_id == lot_id]


class _InMemoryCommodityRepository:
    def __init__(self, store: InMemoryLedgerStore):
        self._store = store

    def db_commodity_insert(self, request: CommodityInsertRequest) -> CommodityRecord:
        if self.db_commodity_get_by_name(request.name) is not None:
            raise LedgerConcurrencyConflictError("duplicate commodity name")
        return self._store.seed_commodity(
            name=request.name,
            current_price=request.current_price,
            unit=request.unit,
            category=request.category,
        )

    def db_commodity_get(self, commodity_id: UUID, for_update: bool = False) -> CommodityRecord | None:
        if for_update:
            self._store.locked_rows.append(("commodity", commodity_id))
        return self._store.commodities.get(commodity_id)

    def db_commodity_get_by_name(self, name: str) -> CommodityRecord | None:
        return next((row for row in self._store.commodities.values() if row.name == name), None)

    def db_commodity_update_price(
        self,
        commodity_id: UUID,
        current_price: Decimal,
        price_change: Decimal,
        price_change_percent: Decimal,
    ) -> CommodityRecord:
        commodity = self._store.commodities.get(commodity_id)
        if commodity is None:
            raise LookupError("commodity not found")
        updated = replace(
            commodity,
            current_price=current_price,
            price_change=price_change,
            price_change_percent=price_change_percent,
            updated_at_utc=self._store.store_next_timestamp(),
        )
        self._store.commodities[commodity_id] = updated
        return updated


class _InMemoryCounterpartyRepository:
    def __init__(self, store: InMemoryLedgerStore):
        self._store = store

    def db_counterparty_insert(self, request: CounterpartyInsertRequest) -> CounterpartyRecord:
        if self.db_counterparty_get_by_name(request.name) is not None:
            raise LedgerConcurrencyConflictError("duplicate counterparty name")
        counterparty = self._store.seed_counterparty(
            name=request.name,
            credit_limit=request.credit_limit,
            rating=request.rating,
        )
        counterparty = replace(counterparty, country=request.country)
        self._store.counterparties[counterparty.counterparty_id] = counterparty
        return counterparty

    def db_counterparty_get(self, counterparty_id: UUID, for_update: bool = False) -> CounterpartyRecord | None:
        if for_update:
            self._store.locked_rows.append(("counterparty", counterparty_id))
        return self._store.counterparties.get(counterparty_id)

    def db_counterparty_get_by_name(self, name: str) -> CounterpartyRecord | None:
        return next((row for row in self._store.counterparties.values() if row.name == name), None)

    def db_counterparty_update_exposure(
        self,
        counterparty_id: UUID,
        exposure: CounterpartyExposureUpdate,
    ) -> CounterpartyRecord:
        counterparty = self._store.counterparties.get(counterparty_id)
        if counterparty is None:
            raise LookupError("counterparty not found")
        updated = replace(
            counterparty,
            credit_used=exposure.credit_used,
            total_trades=exposure.total_trades,
            total_volume=exposure.total_volume,
            last_trade_date=exposure.last_trade_date,
        )
        self._store.counterparties[counterparty_id] = updated
        return updated

    def db_counterparty_update_credit_terms(
        self,
        counterparty_id: UUID,
        credit_limit: Decimal,
        rating: str,
    ) -> CounterpartyRecord:
        counterparty = self._store.counterparties.get(counterparty_id)
        if counterparty is None:
            raise LookupError("counterparty not found")
        updated = replace(counterparty, credit_limit=credit_limit, rating=rating)
        self._store.counterparties[counterparty_id] = updated
        return updated


class _InMemoryInventoryLotRepository:
    def __init__(self, store: InMemoryLedgerStore):
        self._store = store

    def db_inventory_lot_get(self, lot_id: UUID, for_update: bool = False) -> InventoryLotRecord | None:
        if for_update:
            self._store.locked_rows.append(("inventory_lot", lot_id))
        return self._store.lots.get(lot_id)

    def db_inventory_lot_find_by_identity(
        self,
        identity: InventoryLotIdentity,
        for_update: bool = False,
    ) -> InventoryLotRecord | None:
        lot = next((row for row in self._store.lots.values() if row.identity == identity), None)
        if lot is not None and for_update:
            self._store.locked_rows.append(("inventory_lot", lot.lot_id))
        return lot

    def db_inventory_lot_insert(self, request: InventoryLotInsertRequest) -> InventoryLotRecord:
        if self.db_inventory_lot_find_by_identity(request.identity) is not None:
            raise LedgerConcurrencyConflictError("duplicate lot identity")
        return self._store.seed_lot(
            commodity_id=request.identity.commodity_id,
            quantity=request.quantity,
            cost_basis=request.cost_basis,
            market_value=request.market_value,
            warehouse=request.identity.warehouse,
            location=request.identity.location,
            quality=request.identity.quality,
            unit=request.unit,
        )

    def db_inventory_lot_update_position(
        self,
        lot_id: UUID,
        quantity: int,
        cost_basis: Decimal,
        market_value: Decimal,
    ) -> InventoryLotRecord:
        lot = self._store.lots.get(lot_id)
        if lot is None:
            raise LookupError("inventory lot not found")
        assert quantity >= 0, "lot quantity check constraint violated"
        updated = replace(
            lot,
            quantity=quantity,
            cost_basis=cost_basis,
            market_value=market_value,
            last_updated_utc=self._store.store_next_timestamp(),
        )
        self._store.lots[lot_id] = updated
        return updated

    def db_inventory_lot_list(self, lot_filter: InventoryLotFilter, for_update: bool = False) -> list[InventoryLotRecord]:
        matching_lots = [
            lot
            for lot in self._store.lots.values()
            if (lot_filter.commodity_id is None or lot.commodity_id == lot_filter.commodity_id)
            and (lot_filter.warehouse is None or lot.warehouse == lot_filter.warehouse)
            and (lot_filter.location is None or lot.location == lot_filter.location)
            and (lot_filter.quality is None or lot.quality == lot_filter.quality)
            and (lot_filter.min_quantity is None or lot.quantity >= lot_filter.min_quantity)
        ]
        matching_lots.sort(key=lambda lot: (lot.created_at_utc, str(lot.lot_id)))
        if for_update:
            self._store.locked_rows.extend(("inventory_lot", lot.lot_id) for lot in matching_lots)
        return matching_lots

    def db_inventory_lot_update_market_value_for_commodity(self, commodity_id: UUID, market_value: Decimal) -> int:
        updated_count = 0
        for lot_id, lot in list(self._store.lots.items()):
            if lot.commodity_id == commodity_id:
                self._store.lots[lot_id] = replace(lot, market_value=market_value)
                updated_count += 1
        return updated_count


class _InMemoryInventoryMovementRepository:
    def __init__(self, store: InMemoryLedgerStore):
        self._store = store

    def db_inventory_movement_insert(self, request: InventoryMovementInsertRequest) -> InventoryMovementRecord:
        movement = InventoryMovementRecord(
            movement_id=uuid4(),
            lot_id=request.lot_id,
            movement_kind=request.movement_kind,
            quantity_delta=request.quantity_delta,
            resulting_quantity=request.resulting_quantity,
            unit_cost=request.unit_cost,
            unit_market_value=request.unit_market_value,
            reason=request.reason,
            reference_kind=request.reference_kind,
            reference_id=request.reference_id,
            created_at_utc=self._store.store_next_timestamp(),
        )
        self._store.movements.append(movement)
        return movement

    def db_inventory_movement_list_for_lot(self, lot_id: UUID, limit: int, offset: int) -> list[InventoryMovementRecord]:
        newest_first = list(reversed(self._store.movements_for_lot(lot_id)))
        return newest_first[offset : offset + limit]


class _InMemoryTradeRepository:
    def __init__(self, store: InMemoryLedgerStore):
        self._store = store

    def db_trade_insert(self, request: TradeInsertRequest) -> TradeRecord:
        timestamp = self._store.store_next_timestamp()
        trade = TradeRecord(
            trade_id=uuid4(),
            commodity_id=request.commodity_id,
            counterparty_id=request.counterparty_id,
            direction=request.direction,
            quantity=request.quantity,
            price=request.price,
            total_value=request.total_value,
            status=TradeStatus.OPEN,
            traded_at_utc=request.traded_at_utc,
            settlement_date=request.settlement_date,
            location=request.location,
            cancellation_reason=None,
            created_at_utc=timestamp,
            updated_at_utc=timestamp,
        )
        self._store.trades[trade.trade_id] = trade
        return trade

    def db_trade_get(self, trade_id: UUID, for_update: bool = False) -> TradeRecord | None:
        if for_update:
            self._store.locked_rows.append(("trade", trade_id))
        return self._store.trades.get(trade_id)

    def db_trade_update_terms(self, trade_id: UUID, terms: TradeTermsWrite) -> TradeRecord:
        trade = self._store.trades.get(trade_id)
        if trade is None:
            raise LookupError("trade not found")
        updated = replace(
            trade,
            quantity=terms.quantity,
            price=terms.price,
            total_value=terms.total_value,
            settlement_date=terms.settlement_date,
            location=terms.location,
            updated_at_utc=self._store.store_next_timestamp(),
        )
        self._store.trades[trade_id] = updated
        return updated

    def db_trade_update_status(
        self,
        trade_id: UUID,
        status: TradeStatus,
        cancellation_reason: str | None = None,
    ) -> TradeRecord:
        trade = self._store.trades.get(trade_id)
        if trade is None:
            raise LookupError("trade not found")
        updated = replace(
            trade,
            status=status,
            cancellation_reason=cancellation_reason if cancellation_reason is not None else trade.cancellation_reason,
            updated_at_utc=self._store.store_next_timestamp(),
        )
        self._store.trades[trade_id] = updated
        return updated


class _InMemoryContractRepository:
    def __init__(self, store: InMemoryLedgerStore):
        self._store = store

    def db_contract_insert(self, request: ContractInsertRequest) -> ContractRecord:
        timestamp = self._store.store_next_timestamp()
        contract = ContractRecord(
            contract_id=uuid4(),
            commodity_id=request.commodity_id,
            counterparty_id=request.counterparty_id,
            direction=request.direction,
            quantity=request.quantity,
            price=request.price,
            total_value=request.total_value,
            executed=0,
            remaining=request.quantity,
            status=ContractStatus.ACTIVE,
            start_date=request.start_date,
            end_date=request.end_date,
            delivery_terms=request.delivery_terms,
            payment_terms=request.payment_terms,
            cancellation_reason=None,
            created_at_utc=timestamp,
            updated_at_utc=timestamp,
        )
        self._store.contracts[contract.contract_id] = contract
        return contract

    def db_contract_get(self, contract_id: UUID, for_update: bool = False) -> ContractRecord | None:
        if for_update:
            self._store.locked_rows.append(("contract", contract_id))
        return self._store.contracts.get(contract_id)

    def _contract_write(self, contract_id: UUID, **changes) -> ContractRecord:
        contract = self._store.contracts.get(contract_id)
        if contract is None:
            raise LookupError("contract not found")
        updated = replace(contract, updated_at_utc=self._store.store_next_timestamp(), **changes)
        assert updated.executed + updated.remaining == updated.quantity, "contract balance check constraint violated"
        assert updated.remaining >= 0, "contract remaining check constraint violated"
        self._store.contracts[contract_id] = updated
        return updated

    def db_contract_update_terms(self, contract_id: UUID, terms: ContractTermsWrite) -> ContractRecord:
        return self._contract_write(
            contract_id,
            quantity=terms.quantity,
            price=terms.price,
            total_value=terms.total_value,
            remaining=terms.remaining,
            status=terms.status,
            start_date=terms.start_date,
            end_date=terms.end_date,
            delivery_terms=terms.delivery_terms,
            payment_terms=terms.payment_terms,
        )

    def db_contract_update_execution(
        self,
        contract_id: UUID,
        executed: int,
        remaining: int,
        status: ContractStatus,
    ) -> ContractRecord:
        return self._contract_write(contract_id, executed=executed, remaining=remaining, status=status)

    def db_contract_update_status(
        self,
        contract_id: UUID,
        status: ContractStatus,
        cancellation_reason: str | None = None,
    ) -> ContractRecord:
        return self._contract_write(contract_id, status=status, cancellation_reason=cancellation_reason)

    def db_contract_tranche_insert(self, request: ContractTrancheInsertRequest) -> ContractTrancheRecord:
        tranche = ContractTrancheRecord(
            tranche_id=uuid4(),
            contract_id=request.contract_id,
            quantity=request.quantity,
            price=request.price,
            execution_date=request.execution_date,
            trade_id=request.trade_id,
            notes=request.notes,
            created_at_utc=self._store.store_next_timestamp(),
        )
        self._store.tranches.append(tranche)
        return tranche

    def db_contract_tranche_list(self, contract_id: UUID) -> list[ContractTrancheRecord]:
        return [tranche for tranche in self._store.tranches if tranche.contract_id == contract_id]


class _InMemoryShipmentRepository:
    def __init__(self, store: InMemoryLedgerStore):
        self._store = store

    def db_shipment_insert(self, request: ShipmentInsertRequest) -> ShipmentRecord:
        if self.db_shipment_get_by_tracking_number(request.tracking_number) is not None:
            raise LedgerConcurrencyConflictError("duplicate tracking number")
        timestamp = self._store.store_next_timestamp()
        shipment = ShipmentRecord(
            shipment_id=uuid4(),
            trade_id=request.trade_id,
            commodity_id=request.commodity_id,
            quantity=request.quantity,
            origin=request.origin,
            destination=request.destination,
            carrier=request.carrier,
            tracking_number=request.tracking_number,
            status=ShipmentStatus.PREPARING,
            expected_arrival=request.expected_arrival,
            departure_date=request.departure_date,
            actual_arrival=None,
            created_at_utc=timestamp,
            updated_at_utc=timestamp,
        )
        self._store.shipments[shipment.shipment_id] = shipment
        return shipment

    def db_shipment_get(self, shipment_id: UUID, for_update: bool = False) -> ShipmentRecord | None:
        if for_update:
            self._store.locked_rows.append(("shipment", shipment_id))
        return self._store.shipments.get(shipment_id)

    def db_shipment_get_by_tracking_number(self, tracking_number: str) -> ShipmentRecord | None:
        return next(
            (row for row in self._store.shipments.values() if row.tracking_number == tracking_number),
            None,
        )

    def db_shipment_sum_quantity_for_trade(self, trade_id: UUID) -> int:
        return sum(
            row.quantity
            for row in self._store.shipments.values()
            if row.trade_id == trade_id and row.status is not ShipmentStatus.CANCELLED
        )

    def db_shipment_update_status(
        self,
        shipment_id: UUID,
        status: ShipmentStatus,
        departure_date: date | None,
        actual_arrival: date | None,
    ) -> ShipmentRecord:
        shipment = self._store.shipments.get(shipment_id)
        if shipment is None:
            raise LookupError("shipment not found")
        updated = replace(
            shipment,
            status=status,
            departure_date=departure_date,
            actual_arrival=actual_arrival,
            updated_at_utc=self._store.store_next_timestamp(),
        )
        self._store.shipments[shipment_id] = updated
        return updated

    def db_shipment_event_insert(self, request: ShipmentEventInsertRequest) -> ShipmentEventRecord:
        event = ShipmentEventRecord(
            event_id=uuid4(),
            event_seq=len(self._store.shipment_events) + 1,
            shipment_id=request.shipment_id,
            status=request.status,
            location=request.location,
            notes=request.notes,
            recorded_at_utc=self._store.store_next_timestamp(),
        )
        self._store.shipment_events.append(event)
        return event

    def db_shipment_event_list(self, shipment_id: UUID) -> list[ShipmentEventRecord]:
        return [event for event in self._store.shipment_events if event.shipment_id == shipment_id]


class InMemoryLedgerUnitOfWork:
    """Unit-of-work double that restores the store snapshot on failure."""

    def __init__(self, store: InMemoryLedgerStore):
        self._store = store
        self._snapshot: dict | None = None
        self.commodities = _InMemoryCommodityRepository(store)
        self.counterparties = _InMemoryCounterpartyRepository(store)
        self.inventory_lots = _InMemoryInventoryLotRepository(store)
        self.inventory_movements = _InMemoryInventoryMovementRepository(store)
        self.trades = _InMemoryTradeRepository(store)
        self.contracts = _InMemoryContractRepository(store)
        self.shipments = _InMemoryShipmentRepository(store)

    def __enter__(self) -> InMemoryLedgerUnitOfWork:
        self._snapshot = self._store.store_snapshot()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self._store.commits += 1
        else:
            self._store.store_restore(self._snapshot)
            self._store.rollbacks += 1
        self._snapshot = None


@pytest.fixture
def ledger_store() -> InMemoryLedgerStore:
    """Provide an empty in-memory ledger store.

    Returns:
        InMemoryLedgerStore: Fresh store.
    """

    return InMemoryLedgerStore()


@pytest.fixture
def unit_of_work_factory(ledger_store: InMemoryLedgerStore):
    """Provide a unit-of-work factory bound to the test store.

    Returns:
        Callable[[], InMemoryLedgerUnitOfWork]: Zero-argument factory.
    """

    def _create_unit_of_work() -> InMemoryLedgerUnitOfWork:
        return InMemoryLedgerUnitOfWork(ledger_store)

    return _create_unit_of_work
