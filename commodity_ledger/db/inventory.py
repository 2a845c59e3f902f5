"""Repositories for inventory lots and the append-only movement log."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from commodity_ledger.domain import InventoryMovementKind, MovementReferenceKind

from .errors import db_translate_sqlalchemy_error
from .interfaces import (
    InventoryLotFilter,
    InventoryLotIdentity,
    InventoryLotInsertRequest,
    InventoryLotRecord,
    InventoryLotRepositoryPort,
    InventoryMovementInsertRequest,
    InventoryMovementRecord,
    InventoryMovementRepositoryPort,
)

_LOT_COLUMNS = (
    "lot_id, commodity_id, quantity, unit, warehouse, location, quality, cost_basis, market_value, "
    "created_at_utc, last_updated_utc"
)
_MOVEMENT_COLUMNS = (
    "movement_id, lot_id, movement_kind, quantity_delta, resulting_quantity, unit_cost, unit_market_value, "
    "reason, reference_kind, reference_id, created_at_utc"
)


class SQLAlchemyInventoryLotRepository(InventoryLotRepositoryPort):
    """Inventory lot repository bound to one unit-of-work connection.

    Lot listings use one fixed SQL template per lock mode; every filter field
    is bound as a typed parameter and ignored when NULL.
    """

    _GET_QUERY = f"SELECT {_LOT_COLUMNS} FROM inventory_lot WHERE lot_id = :lot_id"
    _GET_FOR_UPDATE_QUERY = _GET_QUERY + " FOR UPDATE"

    _IDENTITY_QUERY = (
        f"SELECT {_LOT_COLUMNS} FROM inventory_lot "
        "WHERE commodity_id = :commodity_id AND warehouse = :warehouse "
        "AND location = :location AND quality = :quality"
    )
    _IDENTITY_FOR_UPDATE_QUERY = _IDENTITY_QUERY + " FOR UPDATE"

    _LIST_QUERY = (
        f"SELECT {_LOT_COLUMNS} FROM inventory_lot "
        "WHERE (CAST(:commodity_id AS uuid) IS NULL OR commodity_id = CAST(:commodity_id AS uuid)) "
        "AND (CAST(:warehouse AS text) IS NULL OR warehouse = CAST(:warehouse AS text)) "
        "AND (CAST(:location AS text) IS NULL OR location = CAST(:location AS text)) "
        "AND (CAST(:quality AS text) IS NULL OR quality = CAST(:quality AS text)) "
        "AND (CAST(:min_quantity AS bigint) IS NULL OR quantity >= CAST(:min_quantity AS bigint)) "
        "ORDER BY created_at_utc asc, lot_id asc"
    )
    _LIST_FOR_UPDATE_QUERY = _LIST_QUERY + " FOR UPDATE"

    def __init__(self, connection: Connection):
        if connection is None:
            raise ValueError("connection must not be None")
        self._connection = connection

    def db_inventory_lot_get(self, lot_id: UUID, for_update: bool = False) -> InventoryLotRecord | None:
        query = self._GET_FOR_UPDATE_QUERY if for_update else self._GET_QUERY
        try:
            row = self._connection.execute(text(query), {"lot_id": lot_id}).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch inventory lot") from error
        if row is None:
            return None
        return _map_lot_record(row)

    def db_inventory_lot_find_by_identity(
        self,
        identity: InventoryLotIdentity,
        for_update: bool = False,
    ) -> InventoryLotRecord | None:
        query = self._IDENTITY_FOR_UPDATE_QUERY if for_update else self._IDENTITY_QUERY
        try:
            row = self._connection.execute(
                text(query),
                {
                    "commodity_id": identity.commodity_id,
                    "warehouse": identity.warehouse,
                    "location": identity.location,
                    "quality": identity.quality,
                },
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch inventory lot by identity") from error
        if row is None:
            return None
        return _map_lot_record(row)

    def db_inventory_lot_insert(self, request: InventoryLotInsertRequest) -> InventoryLotRecord:
        """Insert one lot for a previously unseen identity tuple.

        Args:
            request: Lot identity and opening values.

        Returns:
            InventoryLotRecord: Inserted lot.

        Raises:
            LedgerConcurrencyConflictError: Raised when another transaction inserted the same identity.
            RuntimeError: Raised when persistence fails.
        """

        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO inventory_lot ("
                    "commodity_id, quantity, unit, warehouse, location, quality, cost_basis, market_value"
                    ") VALUES ("
                    ":commodity_id, :quantity, :unit, :warehouse, :location, :quality, :cost_basis, :market_value"
                    ") "
                    f"RETURNING {_LOT_COLUMNS}"
                ),
                {
                    "commodity_id": request.identity.commodity_id,
                    "quantity": request.quantity,
                    "unit": request.unit,
                    "warehouse": request.identity.warehouse,
                    "location": request.identity.location,
                    "quality": request.identity.quality,
                    "cost_basis": request.cost_basis,
                    "market_value": request.market_value,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert inventory lot") from error
        return _map_lot_record(row)

    def db_inventory_lot_update_position(
        self,
        lot_id: UUID,
        quantity: int,
        cost_basis: Decimal,
        market_value: Decimal,
    ) -> InventoryLotRecord:
        try:
            row = self._connection.execute(
                text(
                    "UPDATE inventory_lot SET "
                    "quantity = :quantity, "
                    "cost_basis = :cost_basis, "
                    "market_value = :market_value, "
                    "last_updated_utc = now() "
                    "WHERE lot_id = :lot_id "
                    f"RETURNING {_LOT_COLUMNS}"
                ),
                {
                    "lot_id": lot_id,
                    "quantity": quantity,
                    "cost_basis": cost_basis,
                    "market_value": market_value,
                },
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update inventory lot position") from error
        if row is None:
            raise LookupError("inventory lot not found")
        return _map_lot_record(row)

    def db_inventory_lot_list(self, lot_filter: InventoryLotFilter, for_update: bool = False) -> list[InventoryLotRecord]:
        """List lots matching a typed filter, oldest first.

        Args:
            lot_filter: Filter values; None fields are ignored.
            for_update: Lock every returned row.

        Returns:
            list[InventoryLotRecord]: Lots ordered by `created_at_utc`, then `lot_id`.

        Raises:
            ValueError: Raised when `min_quantity` is negative.
            RuntimeError: Raised when database read fails.
        """

        if lot_filter.min_quantity is not None and lot_filter.min_quantity < 0:
            raise ValueError("min_quantity must be >= 0")

        query = self._LIST_FOR_UPDATE_QUERY if for_update else self._LIST_QUERY
        try:
            rows = self._connection.execute(
                text(query),
                {
                    "commodity_id": lot_filter.commodity_id,
                    "warehouse": lot_filter.warehouse,
                    "location": lot_filter.location,
                    "quality": lot_filter.quality,
                    "min_quantity": lot_filter.min_quantity,
                },
            ).mappings().all()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "list inventory lots") from error
        return [_map_lot_record(row) for row in rows]

    def db_inventory_lot_update_market_value_for_commodity(self, commodity_id: UUID, market_value: Decimal) -> int:
        try:
            result = self._connection.execute(
                text(
                    "UPDATE inventory_lot SET market_value = :market_value, last_updated_utc = now() "
                    "WHERE commodity_id = :commodity_id"
                ),
                {"commodity_id": commodity_id, "market_value": market_value},
            )
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "cascade commodity market value to lots") from error
        return int(result.rowcount)


class SQLAlchemyInventoryMovementRepository(InventoryMovementRepositoryPort):
    """Append-only movement repository bound to one unit-of-work connection."""

    def __init__(self, connection: Connection):
        if connection is None:
            raise ValueError("connection must not be None")
        self._connection = connection

    def db_inventory_movement_insert(self, request: InventoryMovementInsertRequest) -> InventoryMovementRecord:
        reference_kind = None if request.reference_kind is None else request.reference_kind.value
        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO inventory_movement ("
                    "lot_id, movement_kind, quantity_delta, resulting_quantity, unit_cost, unit_market_value, "
                    "reason, reference_kind, reference_id"
                    ") VALUES ("
                    ":lot_id, :movement_kind, :quantity_delta, :resulting_quantity, :unit_cost, :unit_market_value, "
                    ":reason, :reference_kind, :reference_id"
                    ") "
                    f"RETURNING {_MOVEMENT_COLUMNS}"
                ),
                {
                    "lot_id": request.lot_id,
                    "movement_kind": request.movement_kind.value,
                    "quantity_delta": request.quantity_delta,
                    "resulting_quantity": request.resulting_quantity,
                    "unit_cost": request.unit_cost,
                    "unit_market_value": request.unit_market_value,
                    "reason": request.reason,
                    "reference_kind": reference_kind,
                    "reference_id": request.reference_id,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert inventory movement") from error
        return _map_movement_record(row)

    def db_inventory_movement_list_for_lot(self, lot_id: UUID, limit: int, offset: int) -> list[InventoryMovementRecord]:
        """List movements of one lot, newest first.

        Args:
            lot_id: Lot identifier.
            limit: Maximum number of rows.
            offset: Number of rows to skip.

        Returns:
            list[InventoryMovementRecord]: Movements in reverse insertion order.

        Raises:
            ValueError: Raised when limit or offset are invalid.
            RuntimeError: Raised when database read fails.
        """

        if limit < 1:
            raise ValueError("limit must be >= 1")
        if offset < 0:
            raise ValueError("offset must be >= 0")

        try:
            rows = self._connection.execute(
                text(
                    f"SELECT {_MOVEMENT_COLUMNS} FROM inventory_movement "
                    "WHERE lot_id = :lot_id "
                    "ORDER BY movement_seq desc "
                    "LIMIT :limit OFFSET :offset"
                ),
                {"lot_id": lot_id, "limit": limit, "offset": offset},
            ).mappings().all()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "list inventory movements") from error
        return [_map_movement_record(row) for row in rows]


def _map_lot_record(row: Any) -> InventoryLotRecord:
    return InventoryLotRecord(
        lot_id=row["lot_id"],
        commodity_id=row["commodity_id"],
        quantity=int(row["quantity"]),
        unit=str(row["unit"]),
        warehouse=str(row["warehouse"]),
        location=str(row["location"]),
        quality=str(row["quality"]),
        cost_basis=Decimal(row["cost_basis"]),
        market_value=Decimal(row["market_value"]),
        created_at_utc=row["created_at_utc"],
        last_updated_utc=row["last_updated_utc"],
    )


def _map_movement_record(row: Any) -> InventoryMovementRecord:
    reference_kind_value = row["reference_kind"]
    return InventoryMovementRecord(
        movement_id=row["movement_id"],
        lot_id=row["lot_id"],
        movement_kind=InventoryMovementKind(row["movement_kind"]),
        quantity_delta=int(row["quantity_delta"]),
        resulting_quantity=int(row["resulting_quantity"]),
        unit_cost=None if row["unit_cost"] is None else Decimal(row["unit_cost"]),
        unit_market_value=None if row["unit_market_value"] is None else Decimal(row["unit_market_value"]),
        reason=str(row["reason"]),
        reference_kind=None if reference_kind_value is None else MovementReferenceKind(reference_kind_value),
        reference_id=row["reference_id"],
        created_at_utc=row["created_at_utc"],
    )
