"""Repository for trade rows."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from commodity_ledger.domain import TradeDirection, TradeStatus

from .errors import db_translate_sqlalchemy_error
from .interfaces import TradeInsertRequest, TradeRecord, TradeRepositoryPort, TradeTermsWrite

_TRADE_COLUMNS = (
    "trade_id, commodity_id, counterparty_id, direction, quantity, price, total_value, status, "
    "traded_at_utc, settlement_date, location, cancellation_reason, created_at_utc, updated_at_utc"
)


class SQLAlchemyTradeRepository(TradeRepositoryPort):
    """Trade repository bound to one unit-of-work connection."""

    _GET_QUERY = f"SELECT {_TRADE_COLUMNS} FROM trade WHERE trade_id = :trade_id"
    _GET_FOR_UPDATE_QUERY = _GET_QUERY + " FOR UPDATE"

    def __init__(self, connection: Connection):
        if connection is None:
            raise ValueError("connection must not be None")
        self._connection = connection

    def db_trade_insert(self, request: TradeInsertRequest) -> TradeRecord:
        """Insert one OPEN trade.

        Args:
            request: Validated trade values with precomputed total value.

        Returns:
            TradeRecord: Inserted trade.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO trade ("
                    "commodity_id, counterparty_id, direction, quantity, price, total_value, status, "
                    "traded_at_utc, settlement_date, location"
                    ") VALUES ("
                    ":commodity_id, :counterparty_id, :direction, :quantity, :price, :total_value, 'OPEN', "
                    ":traded_at_utc, :settlement_date, :location"
                    ") "
                    f"RETURNING {_TRADE_COLUMNS}"
                ),
                {
                    "commodity_id": request.commodity_id,
                    "counterparty_id": request.counterparty_id,
                    "direction": request.direction.value,
                    "quantity": request.quantity,
                    "price": request.price,
                    "total_value": request.total_value,
                    "traded_at_utc": request.traded_at_utc,
                    "settlement_date": request.settlement_date,
                    "location": request.location,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert trade") from error
        return _map_trade_record(row)

    def db_trade_get(self, trade_id: UUID, for_update: bool = False) -> TradeRecord | None:
        query = self._GET_FOR_UPDATE_QUERY if for_update else self._GET_QUERY
        try:
            row = self._connection.execute(text(query), {"trade_id": trade_id}).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch trade") from error
        if row is None:
            return None
        return _map_trade_record(row)

    def db_trade_update_terms(self, trade_id: UUID, terms: TradeTermsWrite) -> TradeRecord:
        try:
            row = self._connection.execute(
                text(
                    "UPDATE trade SET "
                    "quantity = :quantity, "
                    "price = :price, "
                    "total_value = :total_value, "
                    "settlement_date = :settlement_date, "
                    "location = :location, "
                    "updated_at_utc = now() "
                    "WHERE trade_id = :trade_id "
                    f"RETURNING {_TRADE_COLUMNS}"
                ),
                {
                    "trade_id": trade_id,
                    "quantity": terms.quantity,
                    "price": terms.price,
                    "total_value": terms.total_value,
                    "settlement_date": terms.settlement_date,
                    "location": terms.location,
                },
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update trade terms") from error
        if row is None:
            raise LookupError("trade not found")
        return _map_trade_record(row)

    def db_trade_update_status(
        self,
        trade_id: UUID,
        status: TradeStatus,
        cancellation_reason: str | None = None,
    ) -> TradeRecord:
        try:
            row = self._connection.execute(
                text(
                    "UPDATE trade SET "
                    "status = :status, "
                    "cancellation_reason = COALESCE(:cancellation_reason, cancellation_reason), "
                    "updated_at_utc = now() "
                    "WHERE trade_id = :trade_id "
                    f"RETURNING {_TRADE_COLUMNS}"
                ),
                {"trade_id": trade_id, "status": status.value, "cancellation_reason": cancellation_reason},
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update trade status") from error
        if row is None:
            raise LookupError("trade not found")
        return _map_trade_record(row)


def _map_trade_record(row: Any) -> TradeRecord:
    return TradeRecord(
        trade_id=row["trade_id"],
        commodity_id=row["commodity_id"],
        counterparty_id=row["counterparty_id"],
        direction=TradeDirection(row["direction"]),
        quantity=int(row["quantity"]),
        price=Decimal(row["price"]),
        total_value=Decimal(row["total_value"]),
        status=TradeStatus(row["status"]),
        traded_at_utc=row["traded_at_utc"],
        settlement_date=row["settlement_date"],
        location=str(row["location"]),
        cancellation_reason=row["cancellation_reason"],
        created_at_utc=row["created_at_utc"],
        updated_at_utc=row["updated_at_utc"],
    )
