"""JSON serializers for ledger records.

Decimals are rendered as strings so no precision is lost in transit; UUIDs,
dates and timestamps are rendered as ISO strings.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from commodity_ledger.db.interfaces import (
    CommodityRecord,
    ContractRecord,
    ContractTrancheRecord,
    CounterpartyRecord,
    InventoryLotRecord,
    InventoryMovementRecord,
    ShipmentEventRecord,
    ShipmentRecord,
    TradeRecord,
)
from commodity_ledger.ledger.interfaces import InventoryValuationSummary


def _decimal_text(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _uuid_text(value: UUID | None) -> str | None:
    return None if value is None else str(value)


def _iso_text(value: date | datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def api_serialize_commodity(commodity: CommodityRecord) -> dict[str, object]:
    return {
        "commodity_id": str(commodity.commodity_id),
        "name": commodity.name,
        "category": commodity.category,
        "unit": commodity.unit,
        "current_price": _decimal_text(commodity.current_price),
        "price_change": _decimal_text(commodity.price_change),
        "price_change_percent": _decimal_text(commodity.price_change_percent),
        "created_at_utc": _iso_text(commodity.created_at_utc),
        "updated_at_utc": _iso_text(commodity.updated_at_utc),
    }


def api_serialize_counterparty(counterparty: CounterpartyRecord) -> dict[str, object]:
    return {
        "counterparty_id": str(counterparty.counterparty_id),
        "name": counterparty.name,
        "country": counterparty.country,
        "rating": counterparty.rating,
        "credit_limit": _decimal_text(counterparty.credit_limit),
        "credit_used": _decimal_text(counterparty.credit_used),
        "total_trades": counterparty.total_trades,
        "total_volume": counterparty.total_volume,
        "last_trade_date": _iso_text(counterparty.last_trade_date),
        "created_at_utc": _iso_text(counterparty.created_at_utc),
        "updated_at_utc": _iso_text(counterparty.updated_at_utc),
    }


def api_serialize_lot(lot: InventoryLotRecord) -> dict[str, object]:
    return {
        "lot_id": str(lot.lot_id),
        "commodity_id": str(lot.commodity_id),
        "quantity": lot.quantity,
        "unit": lot.unit,
        "warehouse": lot.warehouse,
        "location": lot.location,
        "quality": lot.quality,
        "cost_basis": _decimal_text(lot.cost_basis),
        "market_value": _decimal_text(lot.market_value),
        "created_at_utc": _iso_text(lot.created_at_utc),
        "last_updated_utc": _iso_text(lot.last_updated_utc),
    }


def api_serialize_movement(movement: InventoryMovementRecord) -> dict[str, object]:
    return {
        "movement_id": str(movement.movement_id),
        "lot_id": str(movement.lot_id),
        "movement_kind": movement.movement_kind.value,
        "quantity_delta": movement.quantity_delta,
        "resulting_quantity": movement.resulting_quantity,
        "unit_cost": _decimal_text(movement.unit_cost),
        "unit_market_value": _decimal_text(movement.unit_market_value),
        "reason": movement.reason,
        "reference_kind": None if movement.reference_kind is None else movement.reference_kind.value,
        "reference_id": movement.reference_id,
        "created_at_utc": _iso_text(movement.created_at_utc),
    }


def api_serialize_valuation(summary: InventoryValuationSummary) -> dict[str, object]:
    return {
        "lot_count": summary.lot_count,
        "total_quantity": summary.total_quantity,
        "total_cost_value": _decimal_text(summary.total_cost_value),
        "total_market_value": _decimal_text(summary.total_market_value),
        "unrealized_pnl": _decimal_text(summary.unrealized_pnl),
        "unrealized_pnl_percent": _decimal_text(summary.unrealized_pnl_percent),
    }


def api_serialize_trade(trade: TradeRecord) -> dict[str, object]:
    return {
        "trade_id": str(trade.trade_id),
        "commodity_id": str(trade.commodity_id),
        "counterparty_id": str(trade.counterparty_id),
        "direction": trade.direction.value,
        "quantity": trade.quantity,
        "price": _decimal_text(trade.price),
        "total_value": _decimal_text(trade.total_value),
        "status": trade.status.value,
        "traded_at_utc": _iso_text(trade.traded_at_utc),
        "settlement_date": _iso_text(trade.settlement_date),
        "location": trade.location,
        "cancellation_reason": trade.cancellation_reason,
        "created_at_utc": _iso_text(trade.created_at_utc),
        "updated_at_utc": _iso_text(trade.updated_at_utc),
    }


def api_serialize_contract(contract: ContractRecord) -> dict[str, object]:
    return {
        "contract_id": str(contract.contract_id),
        "commodity_id": str(contract.commodity_id),
        "counterparty_id": str(contract.counterparty_id),
        "direction": contract.direction.value,
        "quantity": contract.quantity,
        "price": _decimal_text(contract.price),
        "total_value": _decimal_text(contract.total_value),
        "executed": contract.executed,
        "remaining": contract.remaining,
        "status": contract.status.value,
        "start_date": _iso_text(contract.start_date),
        "end_date": _iso_text(contract.end_date),
        "delivery_terms": contract.delivery_terms,
        "payment_terms": contract.payment_terms,
        "cancellation_reason": contract.cancellation_reason,
        "created_at_utc": _iso_text(contract.created_at_utc),
        "updated_at_utc": _iso_text(contract.updated_at_utc),
    }


def api_serialize_tranche(tranche: ContractTrancheRecord) -> dict[str, object]:
    return {
        "tranche_id": str(tranche.tranche_id),
        "contract_id": str(tranche.contract_id),
        "quantity": tranche.quantity,
        "price": _decimal_text(tranche.price),
        "execution_date": _iso_text(tranche.execution_date),
        "trade_id": _uuid_text(tranche.trade_id),
        "notes": tranche.notes,
        "created_at_utc": _iso_text(tranche.created_at_utc),
    }


def api_serialize_shipment(shipment: ShipmentRecord) -> dict[str, object]:
    return {
        "shipment_id": str(shipment.shipment_id),
        "trade_id": _uuid_text(shipment.trade_id),
        "commodity_id": str(shipment.commodity_id),
        "quantity": shipment.quantity,
        "origin": shipment.origin,
        "destination": shipment.destination,
        "carrier": shipment.carrier,
        "tracking_number": shipment.tracking_number,
        "status": shipment.status.value,
        "expected_arrival": _iso_text(shipment.expected_arrival),
        "departure_date": _iso_text(shipment.departure_date),
        "actual_arrival": _iso_text(shipment.actual_arrival),
        "created_at_utc": _iso_text(shipment.created_at_utc),
        "updated_at_utc": _iso_text(shipment.updated_at_utc),
    }


def api_serialize_shipment_event(event: ShipmentEventRecord) -> dict[str, object]:
    return {
        "event_id": str(event.event_id),
        "shipment_id": str(event.shipment_id),
        "status": event.status.value,
        "location": event.location,
        "notes": event.notes,
        "recorded_at_utc": _iso_text(event.recorded_at_utc),
    }
