"""Repository for shipment rows."""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from commodity_ledger.domain import ShipmentStatus

from .errors import db_translate_sqlalchemy_error
from .interfaces import (
    ShipmentEventInsertRequest,
    ShipmentEventRecord,
    ShipmentInsertRequest,
    ShipmentRecord,
    ShipmentRepositoryPort,
)

_SHIPMENT_COLUMNS = (
    "shipment_id, trade_id, commodity_id, quantity, origin, destination, carrier, tracking_number, status, "
    "expected_arrival, departure_date, actual_arrival, created_at_utc, updated_at_utc"
)
_SHIPMENT_EVENT_COLUMNS = "event_id, event_seq, shipment_id, status, location, notes, recorded_at_utc"


class SQLAlchemyShipmentRepository(ShipmentRepositoryPort):
    """Shipment repository bound to one unit-of-work connection."""

    _GET_QUERY = f"SELECT {_SHIPMENT_COLUMNS} FROM shipment WHERE shipment_id = :shipment_id"
    _GET_FOR_UPDATE_QUERY = _GET_QUERY + " FOR UPDATE"

    def __init__(self, connection: Connection):
        if connection is None:
            raise ValueError("connection must not be None")
        self._connection = connection

    def db_shipment_insert(self, request: ShipmentInsertRequest) -> ShipmentRecord:
        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO shipment ("
                    "trade_id, commodity_id, quantity, origin, destination, carrier, tracking_number, status, "
                    "expected_arrival, departure_date"
                    ") VALUES ("
                    ":trade_id, :commodity_id, :quantity, :origin, :destination, :carrier, :tracking_number, "
                    "'PREPARING', :expected_arrival, :departure_date"
                    ") "
                    f"RETURNING {_SHIPMENT_COLUMNS}"
                ),
                {
                    "trade_id": request.trade_id,
                    "commodity_id": request.commodity_id,
                    "quantity": request.quantity,
                    "origin": request.origin,
                    "destination": request.destination,
                    "carrier": request.carrier,
                    "tracking_number": request.tracking_number,
                    "expected_arrival": request.expected_arrival,
                    "departure_date": request.departure_date,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert shipment") from error
        return _map_shipment_record(row)

    def db_shipment_get(self, shipment_id: UUID, for_update: bool = False) -> ShipmentRecord | None:
        query = self._GET_FOR_UPDATE_QUERY if for_update else self._GET_QUERY
        try:
            row = self._connection.execute(text(query), {"shipment_id": shipment_id}).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch shipment") from error
        if row is None:
            return None
        return _map_shipment_record(row)

    def db_shipment_get_by_tracking_number(self, tracking_number: str) -> ShipmentRecord | None:
        try:
            row = self._connection.execute(
                text(f"SELECT {_SHIPMENT_COLUMNS} FROM shipment WHERE tracking_number = :tracking_number"),
                {"tracking_number": tracking_number},
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch shipment by tracking number") from error
        if row is None:
            return None
        return _map_shipment_record(row)

    def db_shipment_sum_quantity_for_trade(self, trade_id: UUID) -> int:
        try:
            row = self._connection.execute(
                text(
                    "SELECT COALESCE(SUM(quantity), 0) AS shipped_quantity "
                    "FROM shipment "
                    "WHERE trade_id = :trade_id AND status <> 'CANCELLED'"
                ),
                {"trade_id": trade_id},
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "sum shipped quantity for trade") from error
        return int(row["shipped_quantity"])

    def db_shipment_update_status(
        self,
        shipment_id: UUID,
        status: ShipmentStatus,
        departure_date: date | None,
        actual_arrival: date | None,
    ) -> ShipmentRecord:
        try:
            row = self._connection.execute(
                text(
                    "UPDATE shipment SET "
                    "status = :status, "
                    "departure_date = :departure_date, "
                    "actual_arrival = :actual_arrival, "
                    "updated_at_utc = now() "
                    "WHERE shipment_id = :shipment_id "
                    f"RETURNING {_SHIPMENT_COLUMNS}"
                ),
                {
                    "shipment_id": shipment_id,
                    "status": status.value,
                    "departure_date": departure_date,
                    "actual_arrival": actual_arrival,
                },
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update shipment status") from error
        if row is None:
            raise LookupError("shipment not found")
        return _map_shipment_record(row)

    def db_shipment_event_insert(self, request: ShipmentEventInsertRequest) -> ShipmentEventRecord:
        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO shipment_event (shipment_id, status, location, notes) "
                    "VALUES (:shipment_id, :status, :location, :notes) "
                    f"RETURNING {_SHIPMENT_EVENT_COLUMNS}"
                ),
                {
                    "shipment_id": request.shipment_id,
                    "status": request.status.value,
                    "location": request.location,
                    "notes": request.notes,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert shipment event") from error
        return _map_shipment_event_record(row)

    def db_shipment_event_list(self, shipment_id: UUID) -> list[ShipmentEventRecord]:
        try:
            rows = self._connection.execute(
                text(
                    f"SELECT {_SHIPMENT_EVENT_COLUMNS} FROM shipment_event "
                    "WHERE shipment_id = :shipment_id "
                    "ORDER BY event_seq asc"
                ),
                {"shipment_id": shipment_id},
            ).mappings().all()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "list shipment events") from error
        return [_map_shipment_event_record(row) for row in rows]


def _map_shipment_record(row: Any) -> ShipmentRecord:
    return ShipmentRecord(
        shipment_id=row["shipment_id"],
        trade_id=row["trade_id"],
        commodity_id=row["commodity_id"],
        quantity=int(row["quantity"]),
        origin=str(row["origin"]),
        destination=str(row["destination"]),
        carrier=str(row["carrier"]),
        tracking_number=str(row["tracking_number"]),
        status=ShipmentStatus(row["status"]),
        expected_arrival=row["expected_arrival"],
        departure_date=row["departure_date"],
        actual_arrival=row["actual_arrival"],
        created_at_utc=row["created_at_utc"],
        updated_at_utc=row["updated_at_utc"],
    )


def _map_shipment_event_record(row: Any) -> ShipmentEventRecord:
    return ShipmentEventRecord(
        event_id=row["event_id"],
        event_seq=int(row["event_seq"]),
        shipment_id=row["shipment_id"],
        status=ShipmentStatus(row["status"]),
        location=row["location"],
        notes=row["notes"],
        recorded_at_utc=row["recorded_at_utc"],
    )
