"""Typed request and result contracts for ledger-layer commands."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from commodity_ledger.db.interfaces import (
    CommodityRecord,
    ContractRecord,
    ContractTrancheRecord,
    CounterpartyRecord,
    InventoryLotRecord,
    InventoryMovementRecord,
    LedgerUnitOfWorkPort,
    ShipmentEventRecord,
    ShipmentRecord,
    TradeRecord,
)
from commodity_ledger.domain import (
    ContractDirection,
    InventoryMovementKind,
    MovementReference,
    ShipmentStatus,
    TradeDirection,
)

LedgerUnitOfWorkFactory = Callable[[], LedgerUnitOfWorkPort]


@dataclass(frozen=True)
class InventoryMovementRequest:
    """Input contract for one movement against one lot.

    Attributes:
        lot_id: Target lot.
        movement_kind: IN, OUT or ADJUSTMENT (enum member or its text).
        quantity: Delta for IN/OUT, target quantity for ADJUSTMENT.
        reason: Free-text reason stored on the movement.
        reference: Optional triggering business object.
        unit_cost: Optional unit cost; blends on IN, replaces on ADJUSTMENT.
        unit_market_value: Optional unit market value that overwrites the lot's.
    """

    lot_id: UUID
    movement_kind: InventoryMovementKind | str
    quantity: int
    reason: str
    reference: MovementReference | None = None
    unit_cost: Decimal | None = None
    unit_market_value: Decimal | None = None


@dataclass(frozen=True)
class MovementApplyResult:
    """Lot state after one movement and the movement row that recorded it."""

    lot: InventoryLotRecord
    movement: InventoryMovementRecord


@dataclass(frozen=True)
class InventoryRouting:
    """Optional lot identity overrides supplied by a caller.

    For buy-side commands the fields replace configured defaults when
    choosing the receiving lot. For sell-side commands they narrow the
    candidate lots.
    """

    warehouse: str | None = None
    location: str | None = None
    quality: str | None = None


@dataclass(frozen=True)
class InventoryReceiptRequest:
    """Input contract for receiving stock into a lot identified by its identity tuple.

    Attributes:
        commodity_id: Received commodity.
        quantity: Positive received quantity.
        warehouse: Receiving warehouse.
        location: Receiving location.
        quality: Quality grade.
        unit_cost: Unit cost of the receipt.
        unit: Optional unit of measure; defaults to the commodity unit.
        unit_market_value: Optional unit market value; defaults to the commodity price.
        reason: Optional movement reason.
        reference: Optional triggering business object.
    """

    commodity_id: UUID
    quantity: int
    warehouse: str
    location: str
    quality: str
    unit_cost: Decimal
    unit: str | None = None
    unit_market_value: Decimal | None = None
    reason: str | None = None
    reference: MovementReference | None = None


@dataclass(frozen=True)
class InventoryReceiptResult:
    lot: InventoryLotRecord
    movement: InventoryMovementRecord
    lot_created: bool


@dataclass(frozen=True)
class InventoryValuationFilter:
    commodity_id: UUID | None = None
    warehouse: str | None = None
    location: str | None = None


@dataclass(frozen=True)
class InventoryValuationSummary:
    """Aggregate valuation over the lots matching one filter.

    Attributes:
        lot_count: Number of matching lots.
        total_quantity: Sum of lot quantities.
        total_cost_value: Sum of `quantity * cost_basis`.
        total_market_value: Sum of `quantity * market_value`.
        unrealized_pnl: `total_market_value - total_cost_value`.
        unrealized_pnl_percent: Unrealized PnL as a percentage of cost, 0 when cost is 0.
    """

    lot_count: int
    total_quantity: int
    total_cost_value: Decimal
    total_market_value: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_percent: Decimal


@dataclass(frozen=True)
class TradeCreateRequest:
    commodity_id: UUID
    counterparty_id: UUID
    direction: TradeDirection | str
    quantity: int
    price: Decimal
    settlement_date: date
    location: str


@dataclass(frozen=True)
class TradeTermsUpdateRequest:
    """Partial trade terms update; None fields keep their current value."""

    quantity: int | None = None
    price: Decimal | None = None
    settlement_date: date | None = None
    location: str | None = None


@dataclass(frozen=True)
class TradeExecutionResult:
    """Executed trade and the inventory movements it produced, in posting order."""

    trade: TradeRecord
    movements: tuple[InventoryMovementRecord, ...]


@dataclass(frozen=True)
class ContractCreateRequest:
    commodity_id: UUID
    counterparty_id: UUID
    direction: ContractDirection | str
    quantity: int
    price: Decimal
    start_date: date
    end_date: date
    delivery_terms: str
    payment_terms: str


@dataclass(frozen=True)
class ContractTermsUpdateRequest:
    """Partial contract terms update; None fields keep their current value."""

    quantity: int | None = None
    price: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    delivery_terms: str | None = None
    payment_terms: str | None = None


@dataclass(frozen=True)
class ContractTrancheRequest:
    """Input contract for one partial contract execution.

    Attributes:
        quantity: Positive tranche quantity.
        execution_date: Business date of the execution; defaults to today (UTC).
        trade_id: Optional trade linked to this tranche.
        notes: Optional free-text notes.
        routing: Optional lot identity overrides or sell-side filters.
    """

    quantity: int
    execution_date: date | None = None
    trade_id: UUID | None = None
    notes: str | None = None
    routing: InventoryRouting | None = None


@dataclass(frozen=True)
class ContractTrancheResult:
    contract: ContractRecord
    tranche: ContractTrancheRecord
    movements: tuple[InventoryMovementRecord, ...]


@dataclass(frozen=True)
class CommodityCreateRequest:
    name: str
    category: str
    unit: str
    current_price: Decimal


@dataclass(frozen=True)
class CommodityPriceUpdateResult:
    """Repriced commodity and the number of lots whose market value was cascaded."""

    commodity: CommodityRecord
    lots_revalued: int


@dataclass(frozen=True)
class CounterpartyCreateRequest:
    name: str
    country: str
    rating: str
    credit_limit: Decimal


@dataclass(frozen=True)
class CounterpartyCreditAssessmentRequest:
    rating: str
    credit_limit: Decimal


@dataclass(frozen=True)
class CounterpartyCreditAssessmentResult:
    counterparty: CounterpartyRecord
    available_credit: Decimal


@dataclass(frozen=True)
class ShipmentRegisterRequest:
    """Input contract for one new shipment.

    Attributes:
        commodity_id: Shipped commodity.
        quantity: Positive shipped quantity.
        origin: Origin warehouse/location name.
        destination: Destination warehouse/location name.
        carrier: Carrier name.
        tracking_number: Unique tracking number.
        expected_arrival: Planned arrival date.
        trade_id: Optional originating trade.
        departure_date: Optional departure date known at registration.
    """

    commodity_id: UUID
    quantity: int
    origin: str
    destination: str
    carrier: str
    tracking_number: str
    expected_arrival: date
    trade_id: UUID | None = None
    departure_date: date | None = None


@dataclass(frozen=True)
class ShipmentEventRequest:
    """One tracking report for a shipment.

    Attributes:
        status: Optional new status; None records the event against the current status.
        location: Optional reported position.
        notes: Optional free-text notes.
    """

    status: ShipmentStatus | str | None = None
    location: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ShipmentStatusUpdateResult:
    """Shipment after a tracking event, the event row and the delivery movement, if one was posted."""

    shipment: ShipmentRecord
    movement: InventoryMovementRecord | None
    previous_status: ShipmentStatus
    event: ShipmentEventRecord
