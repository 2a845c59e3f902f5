"""Typed interfaces for database-layer services.

All SQL access must remain in the db package and its submodules. Ledger
services only see the records, requests and ports declared here, and reach
every repository through one `LedgerUnitOfWorkPort` per command.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from types import TracebackType
from typing import Protocol
from uuid import UUID

from commodity_ledger.domain import (
    ContractDirection,
    ContractStatus,
    HealthStatus,
    InventoryMovementKind,
    MovementReferenceKind,
    ShipmentStatus,
    TradeDirection,
    TradeStatus,
)


class DatabaseHealthPort(Protocol):
    """Port definition for database connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active database connection target.

        Returns:
            str: Database target label for diagnostics.

        Raises:
            RuntimeError: Raised when connection metadata is unavailable.
        """

    def db_check_health(self) -> HealthStatus:
        """Check database connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Database health status payload.

        Raises:
            ConnectionError: Raised when database cannot be reached.
        """


@dataclass(frozen=True)
class CommodityRecord:
    """Persistence model for one commodity row.

    Attributes:
        commodity_id: Unique commodity identifier.
        name: Unique commodity name.
        category: Commodity category (for example `AGRICULTURAL`).
        unit: Unit of measure for quantities.
        current_price: Latest unit price.
        price_change: Absolute change applied by the latest price update.
        price_change_percent: Percentage change applied by the latest price update.
        created_at_utc: Row creation timestamp in UTC.
        updated_at_utc: Last update timestamp in UTC.
    """

    commodity_id: UUID
    name: str
    category: str
    unit: str
    current_price: Decimal
    price_change: Decimal
    price_change_percent: Decimal
    created_at_utc: datetime
    updated_at_utc: datetime


@dataclass(frozen=True)
class CommodityInsertRequest:
    name: str
    category: str
    unit: str
    current_price: Decimal


@dataclass(frozen=True)
class CounterpartyRecord:
    """Persistence model for one counterparty row.

    Attributes:
        counterparty_id: Unique counterparty identifier.
        name: Unique counterparty name.
        country: Country of registration.
        rating: Credit rating label.
        credit_limit: Maximum aggregate trade exposure.
        credit_used: Exposure currently reserved by trades.
        total_trades: Number of non-cancelled trades.
        total_volume: Quantity traded across non-cancelled trades.
        last_trade_date: Timestamp of the latest trade creation.
        created_at_utc: Row creation timestamp in UTC.
        updated_at_utc: Last update timestamp in UTC.
    """

    counterparty_id: UUID
    name: str
    country: str
    rating: str
    credit_limit: Decimal
    credit_used: Decimal
    total_trades: int
    total_volume: int
    last_trade_date: datetime | None
    created_at_utc: datetime
    updated_at_utc: datetime


@dataclass(frozen=True)
class CounterpartyInsertRequest:
    name: str
    country: str
    rating: str
    credit_limit: Decimal


@dataclass(frozen=True)
class CounterpartyExposureUpdate:
    """Recomputed counterparty exposure written alongside a trade mutation.

    Attributes:
        credit_used: New reserved exposure.
        total_trades: New trade counter.
        total_volume: New traded quantity counter.
        last_trade_date: New latest trade timestamp.
    """

    credit_used: Decimal
    total_trades: int
    total_volume: int
    last_trade_date: datetime | None


@dataclass(frozen=True)
class InventoryLotIdentity:
    """Identity tuple of an inventory lot; at most one lot exists per tuple.

    Attributes:
        commodity_id: Commodity held in the lot.
        warehouse: Warehouse name.
        location: Location within or around the warehouse.
        quality: Quality grade.
    """

    commodity_id: UUID
    warehouse: str
    location: str
    quality: str


@dataclass(frozen=True)
class InventoryLotRecord:
    """Persistence model for one inventory lot row.

    Attributes:
        lot_id: Unique lot identifier.
        commodity_id: Commodity held in the lot.
        quantity: Whole units on hand, never negative.
        unit: Unit of measure.
        warehouse: Warehouse name.
        location: Location name.
        quality: Quality grade.
        cost_basis: Weighted-average unit cost.
        market_value: Unit market value.
        created_at_utc: Row creation timestamp in UTC.
        last_updated_utc: Last position change timestamp in UTC.
    """

    lot_id: UUID
    commodity_id: UUID
    quantity: int
    unit: str
    warehouse: str
    location: str
    quality: str
    cost_basis: Decimal
    market_value: Decimal
    created_at_utc: datetime
    last_updated_utc: datetime

    @property
    def identity(self) -> InventoryLotIdentity:
        return InventoryLotIdentity(
            commodity_id=self.commodity_id,
            warehouse=self.warehouse,
            location=self.location,
            quality=self.quality,
        )


@dataclass(frozen=True)
class InventoryLotInsertRequest:
    """Input payload for one new inventory lot.

    Attributes:
        identity: Lot identity tuple.
        unit: Unit of measure.
        quantity: Opening quantity, normally 0 so the receipt is logged as a movement.
        cost_basis: Opening unit cost basis.
        market_value: Opening unit market value.
    """

    identity: InventoryLotIdentity
    unit: str
    quantity: int
    cost_basis: Decimal
    market_value: Decimal


@dataclass(frozen=True)
class InventoryLotFilter:
    """Typed lot query filter; None fields do not constrain the query.

    Attributes:
        commodity_id: Exact commodity match.
        warehouse: Exact warehouse match.
        location: Exact location match.
        quality: Exact quality match.
        min_quantity: Inclusive lower quantity bound.
    """

    commodity_id: UUID | None = None
    warehouse: str | None = None
    location: str | None = None
    quality: str | None = None
    min_quantity: int | None = None


@dataclass(frozen=True)
class InventoryMovementRecord:
    """Persistence model for one immutable inventory movement row.

    Attributes:
        movement_id: Unique movement identifier.
        lot_id: Lot whose quantity changed.
        movement_kind: IN, OUT or ADJUSTMENT.
        quantity_delta: Signed quantity change.
        resulting_quantity: Lot quantity after the change.
        unit_cost: Unit cost in effect for the moved units.
        unit_market_value: Unit market value in effect after the movement.
        reason: Free-text reason.
        reference_kind: Optional triggering object kind.
        reference_id: Optional triggering object identifier.
        created_at_utc: Row creation timestamp in UTC.
    """

    movement_id: UUID
    lot_id: UUID
    movement_kind: InventoryMovementKind
    quantity_delta: int
    resulting_quantity: int
    unit_cost: Decimal | None
    unit_market_value: Decimal | None
    reason: str
    reference_kind: MovementReferenceKind | None
    reference_id: str | None
    created_at_utc: datetime


@dataclass(frozen=True)
class InventoryMovementInsertRequest:
    lot_id: UUID
    movement_kind: InventoryMovementKind
    quantity_delta: int
    resulting_quantity: int
    unit_cost: Decimal | None
    unit_market_value: Decimal | None
    reason: str
    reference_kind: MovementReferenceKind | None
    reference_id: str | None


@dataclass(frozen=True)
class TradeRecord:
    """Persistence model for one trade row.

    Attributes:
        trade_id: Unique trade identifier.
        commodity_id: Traded commodity.
        counterparty_id: Trade counterparty.
        direction: BUY or SELL.
        quantity: Whole units traded.
        price: Unit price.
        total_value: `quantity * price`.
        status: Lifecycle state.
        traded_at_utc: Trade creation timestamp.
        settlement_date: Contractual settlement date.
        location: Delivery location.
        cancellation_reason: Optional reason captured on cancellation.
        created_at_utc: Row creation timestamp in UTC.
        updated_at_utc: Last update timestamp in UTC.
    """

    trade_id: UUID
    commodity_id: UUID
    counterparty_id: UUID
    direction: TradeDirection
    quantity: int
    price: Decimal
    total_value: Decimal
    status: TradeStatus
    traded_at_utc: datetime
    settlement_date: date
    location: str
    cancellation_reason: str | None
    created_at_utc: datetime
    updated_at_utc: datetime


@dataclass(frozen=True)
class TradeInsertRequest:
    commodity_id: UUID
    counterparty_id: UUID
    direction: TradeDirection
    quantity: int
    price: Decimal
    total_value: Decimal
    traded_at_utc: datetime
    settlement_date: date
    location: str


@dataclass(frozen=True)
class TradeTermsWrite:
    """Full set of term values written by a trade terms update."""

    quantity: int
    price: Decimal
    total_value: Decimal
    settlement_date: date
    location: str


@dataclass(frozen=True)
class ContractRecord:
    """Persistence model for one contract row.

    Attributes:
        contract_id: Unique contract identifier.
        commodity_id: Contracted commodity.
        counterparty_id: Contract counterparty.
        direction: PURCHASE or SALE.
        quantity: Total committed quantity.
        price: Unit price.
        total_value: `quantity * price`.
        executed: Quantity already executed through tranches.
        remaining: `quantity - executed`.
        status: Lifecycle state.
        start_date: Contract start date.
        end_date: Contract end date, strictly after start.
        delivery_terms: Delivery terms text.
        payment_terms: Payment terms text.
        cancellation_reason: Optional reason captured on cancellation.
        created_at_utc: Row creation timestamp in UTC.
        updated_at_utc: Last update timestamp in UTC.
    """

    contract_id: UUID
    commodity_id: UUID
    counterparty_id: UUID
    direction: ContractDirection
    quantity: int
    price: Decimal
    total_value: Decimal
    executed: int
    remaining: int
    status: ContractStatus
    start_date: date
    end_date: date
    delivery_terms: str
    payment_terms: str
    cancellation_reason: str | None
    created_at_utc: datetime
    updated_at_utc: datetime


@dataclass(frozen=True)
class ContractInsertRequest:
    commodity_id: UUID
    counterparty_id: UUID
    direction: ContractDirection
    quantity: int
    price: Decimal
    total_value: Decimal
    start_date: date
    end_date: date
    delivery_terms: str
    payment_terms: str


@dataclass(frozen=True)
class ContractTermsWrite:
    """Full set of term values written by a contract terms update.

    Attributes:
        quantity: New committed quantity.
        price: New unit price.
        total_value: Recomputed total value.
        remaining: Adjusted remaining quantity.
        status: Status after the update.
        start_date: New start date.
        end_date: New end date.
        delivery_terms: New delivery terms.
        payment_terms: New payment terms.
    """

    quantity: int
    price: Decimal
    total_value: Decimal
    remaining: int
    status: ContractStatus
    start_date: date
    end_date: date
    delivery_terms: str
    payment_terms: str


@dataclass(frozen=True)
class ContractTrancheRecord:
    """Persistence model for one immutable contract tranche row.

    Attributes:
        tranche_id: Unique tranche identifier.
        contract_id: Executed contract.
        quantity: Tranche quantity.
        price: Unit price the tranche executed at.
        execution_date: Business date of the execution.
        trade_id: Optional linked trade.
        notes: Optional free-text notes.
        created_at_utc: Row creation timestamp in UTC.
    """

    tranche_id: UUID
    contract_id: UUID
    quantity: int
    price: Decimal
    execution_date: date
    trade_id: UUID | None
    notes: str | None
    created_at_utc: datetime


@dataclass(frozen=True)
class ContractTrancheInsertRequest:
    contract_id: UUID
    quantity: int
    price: Decimal
    execution_date: date
    trade_id: UUID | None
    notes: str | None


@dataclass(frozen=True)
class ShipmentRecord:
    """Persistence model for one shipment row.

    Attributes:
        shipment_id: Unique shipment identifier.
        trade_id: Optional originating trade.
        commodity_id: Shipped commodity.
        quantity: Shipped quantity.
        origin: Origin warehouse/location.
        destination: Destination warehouse/location.
        carrier: Carrier name.
        tracking_number: Unique tracking number.
        status: Lifecycle state.
        expected_arrival: Planned arrival date.
        departure_date: Date the shipment left the origin.
        actual_arrival: Date the shipment was delivered.
        created_at_utc: Row creation timestamp in UTC.
        updated_at_utc: Last update timestamp in UTC.
    """

    shipment_id: UUID
    trade_id: UUID | None
    commodity_id: UUID
    quantity: int
    origin: str
    destination: str
    carrier: str
    tracking_number: str
    status: ShipmentStatus
    expected_arrival: date
    departure_date: date | None
    actual_arrival: date | None
    created_at_utc: datetime
    updated_at_utc: datetime


@dataclass(frozen=True)
class ShipmentInsertRequest:
    trade_id: UUID | None
    commodity_id: UUID
    quantity: int
    origin: str
    destination: str
    carrier: str
    tracking_number: str
    expected_arrival: date
    departure_date: date | None


@dataclass(frozen=True)
class ShipmentEventRecord:
    """Persistence model for one append-only shipment tracking event.

    Attributes:
        event_id: Unique event identifier.
        event_seq: Monotonic insertion sequence used for ordering.
        shipment_id: Shipment the event belongs to.
        status: Shipment status reported by the event.
        location: Optional reported position.
        notes: Optional free-text notes.
        recorded_at_utc: Event timestamp in UTC.
    """

    event_id: UUID
    event_seq: int
    shipment_id: UUID
    status: ShipmentStatus
    location: str | None
    notes: str | None
    recorded_at_utc: datetime


@dataclass(frozen=True)
class ShipmentEventInsertRequest:
    shipment_id: UUID
    status: ShipmentStatus
    location: str | None
    notes: str | None


class CommodityRepositoryPort(Protocol):
    """Port definition for commodity persistence inside one unit of work."""

    def db_commodity_insert(self, request: CommodityInsertRequest) -> CommodityRecord:
        """Insert one commodity with zero price change."""

    def db_commodity_get(self, commodity_id: UUID, for_update: bool = False) -> CommodityRecord | None:
        """Fetch one commodity by id, optionally under a row lock."""

    def db_commodity_get_by_name(self, name: str) -> CommodityRecord | None:
        """Fetch one commodity by unique name."""

    def db_commodity_update_price(
        self,
        commodity_id: UUID,
        current_price: Decimal,
        price_change: Decimal,
        price_change_percent: Decimal,
    ) -> CommodityRecord:
        """Persist a new current price and its change figures.

        Raises:
            LookupError: Raised when the commodity does not exist.
        """


class CounterpartyRepositoryPort(Protocol):
    """Port definition for counterparty persistence inside one unit of work."""

    def db_counterparty_insert(self, request: CounterpartyInsertRequest) -> CounterpartyRecord:
        """Insert one counterparty with zero exposure."""

    def db_counterparty_get(self, counterparty_id: UUID, for_update: bool = False) -> CounterpartyRecord | None:
        """Fetch one counterparty by id, optionally under a row lock."""

    def db_counterparty_get_by_name(self, name: str) -> CounterpartyRecord | None:
        """Fetch one counterparty by unique name."""

    def db_counterparty_update_exposure(
        self,
        counterparty_id: UUID,
        exposure: CounterpartyExposureUpdate,
    ) -> CounterpartyRecord:
        """Write recomputed exposure counters for one counterparty.

        Args:
            counterparty_id: Counterparty identifier.
            exposure: Recomputed exposure values.

        Returns:
            CounterpartyRecord: Updated counterparty row.

        Raises:
            LookupError: Raised when the counterparty does not exist.
        """

    def db_counterparty_update_credit_terms(
        self,
        counterparty_id: UUID,
        credit_limit: Decimal,
        rating: str,
    ) -> CounterpartyRecord:
        """Write a new credit limit and rating for one counterparty."""


class InventoryLotRepositoryPort(Protocol):
    """Port definition for inventory lot persistence inside one unit of work."""

    def db_inventory_lot_get(self, lot_id: UUID, for_update: bool = False) -> InventoryLotRecord | None:
        """Fetch one lot by id, optionally under a row lock."""

    def db_inventory_lot_find_by_identity(
        self,
        identity: InventoryLotIdentity,
        for_update: bool = False,
    ) -> InventoryLotRecord | None:
        """Fetch the lot matching one identity tuple, optionally under a row lock."""

    def db_inventory_lot_insert(self, request: InventoryLotInsertRequest) -> InventoryLotRecord:
        """Insert one new lot.

        Raises:
            LedgerConcurrencyConflictError: Raised when a concurrent insert won the identity tuple.
        """

    def db_inventory_lot_update_position(
        self,
        lot_id: UUID,
        quantity: int,
        cost_basis: Decimal,
        market_value: Decimal,
    ) -> InventoryLotRecord:
        """Write the post-movement quantity, cost basis and market value of one lot.

        Raises:
            LookupError: Raised when the lot does not exist.
        """

    def db_inventory_lot_list(self, lot_filter: InventoryLotFilter, for_update: bool = False) -> list[InventoryLotRecord]:
        """List lots matching a filter, oldest first (`created_at_utc`, then `lot_id`).

        Args:
            lot_filter: Typed filter values.
            for_update: Lock every returned row.

        Returns:
            list[InventoryLotRecord]: Deterministically ordered lots.
        """

    def db_inventory_lot_update_market_value_for_commodity(self, commodity_id: UUID, market_value: Decimal) -> int:
        """Overwrite the unit market value of every lot of one commodity.

        Returns:
            int: Number of updated lots.
        """


class InventoryMovementRepositoryPort(Protocol):
    """Port definition for the append-only movement log."""

    def db_inventory_movement_insert(self, request: InventoryMovementInsertRequest) -> InventoryMovementRecord:
        """Append one movement row."""

    def db_inventory_movement_list_for_lot(self, lot_id: UUID, limit: int, offset: int) -> list[InventoryMovementRecord]:
        """List movements of one lot, newest first.

        Raises:
            ValueError: Raised when pagination arguments are invalid.
        """


class TradeRepositoryPort(Protocol):
    """Port definition for trade persistence inside one unit of work."""

    def db_trade_insert(self, request: TradeInsertRequest) -> TradeRecord:
        """Insert one trade in OPEN status."""

    def db_trade_get(self, trade_id: UUID, for_update: bool = False) -> TradeRecord | None:
        """Fetch one trade by id, optionally under a row lock."""

    def db_trade_update_terms(self, trade_id: UUID, terms: TradeTermsWrite) -> TradeRecord:
        """Write updated terms for one trade.

        Raises:
            LookupError: Raised when the trade does not exist.
        """

    def db_trade_update_status(
        self,
        trade_id: UUID,
        status: TradeStatus,
        cancellation_reason: str | None = None,
    ) -> TradeRecord:
        """Write a new lifecycle status for one trade.

        Raises:
            LookupError: Raised when the trade does not exist.
        """


class ContractRepositoryPort(Protocol):
    """Port definition for contract and tranche persistence inside one unit of work."""

    def db_contract_insert(self, request: ContractInsertRequest) -> ContractRecord:
        """Insert one ACTIVE contract with `remaining = quantity`."""

    def db_contract_get(self, contract_id: UUID, for_update: bool = False) -> ContractRecord | None:
        """Fetch one contract by id, optionally under a row lock."""

    def db_contract_update_terms(self, contract_id: UUID, terms: ContractTermsWrite) -> ContractRecord:
        """Write updated terms for one contract."""

    def db_contract_update_execution(
        self,
        contract_id: UUID,
        executed: int,
        remaining: int,
        status: ContractStatus,
    ) -> ContractRecord:
        """Write executed/remaining quantities and status after a tranche."""

    def db_contract_update_status(
        self,
        contract_id: UUID,
        status: ContractStatus,
        cancellation_reason: str | None = None,
    ) -> ContractRecord:
        """Write a new lifecycle status for one contract."""

    def db_contract_tranche_insert(self, request: ContractTrancheInsertRequest) -> ContractTrancheRecord:
        """Append one tranche row."""

    def db_contract_tranche_list(self, contract_id: UUID) -> list[ContractTrancheRecord]:
        """List tranches of one contract in execution order."""


class ShipmentRepositoryPort(Protocol):
    """Port definition for shipment persistence inside one unit of work."""

    def db_shipment_insert(self, request: ShipmentInsertRequest) -> ShipmentRecord:
        """Insert one shipment in PREPARING status."""

    def db_shipment_get(self, shipment_id: UUID, for_update: bool = False) -> ShipmentRecord | None:
        """Fetch one shipment by id, optionally under a row lock."""

    def db_shipment_get_by_tracking_number(self, tracking_number: str) -> ShipmentRecord | None:
        """Fetch one shipment by unique tracking number."""

    def db_shipment_sum_quantity_for_trade(self, trade_id: UUID) -> int:
        """Return the total quantity of non-cancelled shipments linked to one trade."""

    def db_shipment_update_status(
        self,
        shipment_id: UUID,
        status: ShipmentStatus,
        departure_date: date | None,
        actual_arrival: date | None,
    ) -> ShipmentRecord:
        """Write a new status and transition dates for one shipment."""

    def db_shipment_event_insert(self, request: ShipmentEventInsertRequest) -> ShipmentEventRecord:
        """Append one tracking event to a shipment."""

    def db_shipment_event_list(self, shipment_id: UUID) -> list[ShipmentEventRecord]:
        """Return the tracking events of one shipment, oldest first."""


class LedgerUnitOfWorkPort(Protocol):
    """One atomic ledger transaction exposing every repository.

    Entering the context begins the transaction. Leaving it without an
    exception commits; leaving it with an exception rolls back and lets the
    exception propagate.
    """

    commodities: CommodityRepositoryPort
    counterparties: CounterpartyRepositoryPort
    inventory_lots: InventoryLotRepositoryPort
    inventory_movements: InventoryMovementRepositoryPort
    trades: TradeRepositoryPort
    contracts: ContractRepositoryPort
    shipments: ShipmentRepositoryPort

    def __enter__(self) -> LedgerUnitOfWorkPort:
        """Begin the transaction and bind repositories to it."""

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Commit on clean exit, roll back otherwise."""
