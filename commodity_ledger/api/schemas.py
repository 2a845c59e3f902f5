"""Pydantic request bodies for ledger command endpoints.

Bodies only carry and type-check transport values; every business rule is
enforced by the ledger services.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StrictInt


class _CommandBody(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class InventoryRoutingBody(_CommandBody):
    warehouse: str | None = None
    location: str | None = None
    quality: str | None = None


class TradeCreateBody(_CommandBody):
    commodity_id: UUID
    counterparty_id: UUID
    direction: str
    quantity: StrictInt
    price: Decimal
    settlement_date: date
    location: str


class TradeTermsUpdateBody(_CommandBody):
    quantity: StrictInt | None = None
    price: Decimal | None = None
    settlement_date: date | None = None
    location: str | None = None


class TradeExecuteBody(_CommandBody):
    routing: InventoryRoutingBody | None = None


class CancelBody(_CommandBody):
    reason: str | None = None


class ContractCreateBody(_CommandBody):
    commodity_id: UUID
    counterparty_id: UUID
    direction: str
    quantity: StrictInt
    price: Decimal
    start_date: date
    end_date: date
    delivery_terms: str
    payment_terms: str


class ContractTermsUpdateBody(_CommandBody):
    quantity: StrictInt | None = None
    price: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    delivery_terms: str | None = None
    payment_terms: str | None = None


class ContractTrancheBody(_CommandBody):
    quantity: StrictInt
    execution_date: date | None = None
    trade_id: UUID | None = None
    notes: str | None = None
    routing: InventoryRoutingBody | None = None


class InventoryMovementBody(_CommandBody):
    movement_kind: str
    quantity: StrictInt
    reason: str
    reference_kind: str | None = None
    reference_id: str | None = None
    unit_cost: Decimal | None = None
    unit_market_value: Decimal | None = None


class InventoryReceiptBody(_CommandBody):
    commodity_id: UUID
    quantity: StrictInt
    warehouse: str
    location: str
    quality: str
    unit_cost: Decimal
    unit: str | None = None
    unit_market_value: Decimal | None = None
    reason: str | None = None


class CommodityCreateBody(_CommandBody):
    name: str
    category: str
    unit: str
    current_price: Decimal


class CommodityPriceBody(_CommandBody):
    current_price: Decimal


class CounterpartyCreateBody(_CommandBody):
    name: str
    country: str
    rating: str
    credit_limit: Decimal


class CreditAssessmentBody(_CommandBody):
    rating: str
    credit_limit: Decimal


class ShipmentRegisterBody(_CommandBody):
    commodity_id: UUID
    quantity: StrictInt
    origin: str
    destination: str
    carrier: str
    tracking_number: str
    expected_arrival: date
    trade_id: UUID | None = None
    departure_date: date | None = None


class ShipmentStatusBody(_CommandBody):
    status: str
    location: str | None = None
    notes: str | None = None


class ShipmentEventBody(_CommandBody):
    status: str | None = None
    location: str | None = None
    notes: str | None = None
