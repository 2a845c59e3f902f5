"""Repositories for commodity and counterparty reference rows."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from .errors import db_translate_sqlalchemy_error
from .interfaces import (
    CommodityInsertRequest,
    CommodityRecord,
    CommodityRepositoryPort,
    CounterpartyExposureUpdate,
    CounterpartyInsertRequest,
    CounterpartyRecord,
    CounterpartyRepositoryPort,
)

_COMMODITY_SELECT_COLUMNS = (
    "SELECT "
    "commodity_id, name, category, unit, current_price, price_change, price_change_percent, "
    "created_at_utc, updated_at_utc "
    "FROM commodity "
)

_COUNTERPARTY_SELECT_COLUMNS = (
    "SELECT "
    "counterparty_id, name, country, rating, credit_limit, credit_used, total_trades, total_volume, "
    "last_trade_date, created_at_utc, updated_at_utc "
    "FROM counterparty "
)


class SQLAlchemyCommodityRepository(CommodityRepositoryPort):
    """Commodity repository bound to one unit-of-work connection."""

    _GET_QUERY = _COMMODITY_SELECT_COLUMNS + "WHERE commodity_id = :commodity_id"
    _GET_FOR_UPDATE_QUERY = _GET_QUERY + " FOR UPDATE"

    def __init__(self, connection: Connection):
        if connection is None:
            raise ValueError("connection must not be None")
        self._connection = connection

    def db_commodity_insert(self, request: CommodityInsertRequest) -> CommodityRecord:
        """Insert one commodity with zero price change.

        Args:
            request: Validated commodity values.

        Returns:
            CommodityRecord: Inserted row.

        Raises:
            LedgerConcurrencyConflictError: Raised when the name was taken concurrently.
            RuntimeError: Raised when persistence fails.
        """

        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO commodity (name, category, unit, current_price, price_change, price_change_percent) "
                    "VALUES (:name, :category, :unit, :current_price, 0, 0) "
                    "RETURNING commodity_id, name, category, unit, current_price, price_change, "
                    "price_change_percent, created_at_utc, updated_at_utc"
                ),
                {
                    "name": request.name,
                    "category": request.category,
                    "unit": request.unit,
                    "current_price": request.current_price,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert commodity") from error
        return _map_commodity_record(row)

    def db_commodity_get(self, commodity_id: UUID, for_update: bool = False) -> CommodityRecord | None:
        query = self._GET_FOR_UPDATE_QUERY if for_update else self._GET_QUERY
        try:
            row = self._connection.execute(text(query), {"commodity_id": commodity_id}).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch commodity") from error
        if row is None:
            return None
        return _map_commodity_record(row)

    def db_commodity_get_by_name(self, name: str) -> CommodityRecord | None:
        try:
            row = self._connection.execute(
                text(_COMMODITY_SELECT_COLUMNS + "WHERE name = :name"),
                {"name": name},
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch commodity by name") from error
        if row is None:
            return None
        return _map_commodity_record(row)

    def db_commodity_update_price(
        self,
        commodity_id: UUID,
        current_price: Decimal,
        price_change: Decimal,
        price_change_percent: Decimal,
    ) -> CommodityRecord:
        try:
            row = self._connection.execute(
                text(
                    "UPDATE commodity SET "
                    "current_price = :current_price, "
                    "price_change = :price_change, "
                    "price_change_percent = :price_change_percent, "
                    "updated_at_utc = now() "
                    "WHERE commodity_id = :commodity_id "
                    "RETURNING commodity_id, name, category, unit, current_price, price_change, "
                    "price_change_percent, created_at_utc, updated_at_utc"
                ),
                {
                    "commodity_id": commodity_id,
                    "current_price": current_price,
                    "price_change": price_change,
                    "price_change_percent": price_change_percent,
                },
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update commodity price") from error
        if row is None:
            raise LookupError("commodity not found")
        return _map_commodity_record(row)


class SQLAlchemyCounterpartyRepository(CounterpartyRepositoryPort):
    """Counterparty repository bound to one unit-of-work connection."""

    _GET_QUERY = _COUNTERPARTY_SELECT_COLUMNS + "WHERE counterparty_id = :counterparty_id"
    _GET_FOR_UPDATE_QUERY = _GET_QUERY + " FOR UPDATE"
    _RETURNING_COLUMNS = (
        "RETURNING counterparty_id, name, country, rating, credit_limit, credit_used, total_trades, "
        "total_volume, last_trade_date, created_at_utc, updated_at_utc"
    )

    def __init__(self, connection: Connection):
        if connection is None:
            raise ValueError("connection must not be None")
        self._connection = connection

    def db_counterparty_insert(self, request: CounterpartyInsertRequest) -> CounterpartyRecord:
        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO counterparty (name, country, rating, credit_limit, credit_used, total_trades, total_volume) "
                    "VALUES (:name, :country, :rating, :credit_limit, 0, 0, 0) "
                    + self._RETURNING_COLUMNS
                ),
                {
                    "name": request.name,
                    "country": request.country,
                    "rating": request.rating,
                    "credit_limit": request.credit_limit,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert counterparty") from error
        return _map_counterparty_record(row)

    def db_counterparty_get(self, counterparty_id: UUID, for_update: bool = False) -> CounterpartyRecord | None:
        query = self._GET_FOR_UPDATE_QUERY if for_update else self._GET_QUERY
        try:
            row = self._connection.execute(text(query), {"counterparty_id": counterparty_id}).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch counterparty") from error
        if row is None:
            return None
        return _map_counterparty_record(row)

    def db_counterparty_get_by_name(self, name: str) -> CounterpartyRecord | None:
        try:
            row = self._connection.execute(
                text(_COUNTERPARTY_SELECT_COLUMNS + "WHERE name = :name"),
                {"name": name},
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch counterparty by name") from error
        if row is None:
            return None
        return _map_counterparty_record(row)

    def db_counterparty_update_exposure(
        self,
        counterparty_id: UUID,
        exposure: CounterpartyExposureUpdate,
    ) -> CounterpartyRecord:
        """Write recomputed exposure counters for one counterparty.

        Args:
            counterparty_id: Counterparty identifier.
            exposure: Exposure values computed from the locked row.

        Returns:
            CounterpartyRecord: Updated row.

        Raises:
            LookupError: Raised when the counterparty does not exist.
            RuntimeError: Raised when persistence fails, including CHECK violations.
        """

        try:
            row = self._connection.execute(
                text(
                    "UPDATE counterparty SET "
                    "credit_used = :credit_used, "
                    "total_trades = :total_trades, "
                    "total_volume = :total_volume, "
                    "last_trade_date = :last_trade_date, "
                    "updated_at_utc = now() "
                    "WHERE counterparty_id = :counterparty_id "
                    + self._RETURNING_COLUMNS
                ),
                {
                    "counterparty_id": counterparty_id,
                    "credit_used": exposure.credit_used,
                    "total_trades": exposure.total_trades,
                    "total_volume": exposure.total_volume,
                    "last_trade_date": exposure.last_trade_date,
                },
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update counterparty exposure") from error
        if row is None:
            raise LookupError("counterparty not found")
        return _map_counterparty_record(row)

    def db_counterparty_update_credit_terms(
        self,
        counterparty_id: UUID,
        credit_limit: Decimal,
        rating: str,
    ) -> CounterpartyRecord:
        try:
            row = self._connection.execute(
                text(
                    "UPDATE counterparty SET "
                    "credit_limit = :credit_limit, "
                    "rating = :rating, "
                    "updated_at_utc = now() "
                    "WHERE counterparty_id = :counterparty_id "
                    + self._RETURNING_COLUMNS
                ),
                {"counterparty_id": counterparty_id, "credit_limit": credit_limit, "rating": rating},
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update counterparty credit terms") from error
        if row is None:
            raise LookupError("counterparty not found")
        return _map_counterparty_record(row)


def _map_commodity_record(row: Any) -> CommodityRecord:
    return CommodityRecord(
        commodity_id=row["commodity_id"],
        name=str(row["name"]),
        category=str(row["category"]),
        unit=str(row["unit"]),
        current_price=Decimal(row["current_price"]),
        price_change=Decimal(row["price_change"]),
        price_change_percent=Decimal(row["price_change_percent"]),
        created_at_utc=row["created_at_utc"],
        updated_at_utc=row["updated_at_utc"],
    )


def _map_counterparty_record(row: Any) -> CounterpartyRecord:
    return CounterpartyRecord(
        counterparty_id=row["counterparty_id"],
        name=str(row["name"]),
        country=str(row["country"]),
        rating=str(row["rating"]),
        credit_limit=Decimal(row["credit_limit"]),
        credit_used=Decimal(row["credit_used"]),
        total_trades=int(row["total_trades"]),
        total_volume=int(row["total_volume"]),
        last_trade_date=row["last_trade_date"],
        created_at_utc=row["created_at_utc"],
        updated_at_utc=row["updated_at_utc"],
    )
