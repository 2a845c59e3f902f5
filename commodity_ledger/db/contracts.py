"""Repository for contract rows and their append-only tranche log."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from commodity_ledger.domain import ContractDirection, ContractStatus

from .errors import db_translate_sqlalchemy_error
from .interfaces import (
    ContractInsertRequest,
    ContractRecord,
    ContractRepositoryPort,
    ContractTermsWrite,
    ContractTrancheInsertRequest,
    ContractTrancheRecord,
)

_CONTRACT_COLUMNS = (
    "contract_id, commodity_id, counterparty_id, direction, quantity, price, total_value, executed, remaining, "
    "status, start_date, end_date, delivery_terms, payment_terms, cancellation_reason, created_at_utc, updated_at_utc"
)
_TRANCHE_COLUMNS = "tranche_id, contract_id, quantity, price, execution_date, trade_id, notes, created_at_utc"


class SQLAlchemyContractRepository(ContractRepositoryPort):
    """Contract repository bound to one unit-of-work connection.

    The `contract` table carries CHECK constraints for `executed + remaining =
    quantity` and `remaining >= 0`, so an inconsistent write fails at the
    database even if a service computed it.
    """

    _GET_QUERY = f"SELECT {_CONTRACT_COLUMNS} FROM contract WHERE contract_id = :contract_id"
    _GET_FOR_UPDATE_QUERY = _GET_QUERY + " FOR UPDATE"

    def __init__(self, connection: Connection):
        if connection is None:
            raise ValueError("connection must not be None")
        self._connection = connection

    def db_contract_insert(self, request: ContractInsertRequest) -> ContractRecord:
        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO contract ("
                    "commodity_id, counterparty_id, direction, quantity, price, total_value, executed, remaining, "
                    "status, start_date, end_date, delivery_terms, payment_terms"
                    ") VALUES ("
                    ":commodity_id, :counterparty_id, :direction, :quantity, :price, :total_value, 0, :quantity, "
                    "'ACTIVE', :start_date, :end_date, :delivery_terms, :payment_terms"
                    ") "
                    f"RETURNING {_CONTRACT_COLUMNS}"
                ),
                {
                    "commodity_id": request.commodity_id,
                    "counterparty_id": request.counterparty_id,
                    "direction": request.direction.value,
                    "quantity": request.quantity,
                    "price": request.price,
                    "total_value": request.total_value,
                    "start_date": request.start_date,
                    "end_date": request.end_date,
                    "delivery_terms": request.delivery_terms,
                    "payment_terms": request.payment_terms,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert contract") from error
        return _map_contract_record(row)

    def db_contract_get(self, contract_id: UUID, for_update: bool = False) -> ContractRecord | None:
        query = self._GET_FOR_UPDATE_QUERY if for_update else self._GET_QUERY
        try:
            row = self._connection.execute(text(query), {"contract_id": contract_id}).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "fetch contract") from error
        if row is None:
            return None
        return _map_contract_record(row)

    def db_contract_update_terms(self, contract_id: UUID, terms: ContractTermsWrite) -> ContractRecord:
        """Write one merged set of contract terms.

        Args:
            contract_id: Contract identifier.
            terms: Full term values after merging the caller's changes.

        Returns:
            ContractRecord: Updated contract.

        Raises:
            LookupError: Raised when the contract does not exist.
            RuntimeError: Raised when persistence fails.
        """

        try:
            row = self._connection.execute(
                text(
                    "UPDATE contract SET "
                    "quantity = :quantity, "
                    "price = :price, "
                    "total_value = :total_value, "
                    "remaining = :remaining, "
                    "status = :status, "
                    "start_date = :start_date, "
                    "end_date = :end_date, "
                    "delivery_terms = :delivery_terms, "
                    "payment_terms = :payment_terms, "
                    "updated_at_utc = now() "
                    "WHERE contract_id = :contract_id "
                    f"RETURNING {_CONTRACT_COLUMNS}"
                ),
                {
                    "contract_id": contract_id,
                    "quantity": terms.quantity,
                    "price": terms.price,
                    "total_value": terms.total_value,
                    "remaining": terms.remaining,
                    "status": terms.status.value,
                    "start_date": terms.start_date,
                    "end_date": terms.end_date,
                    "delivery_terms": terms.delivery_terms,
                    "payment_terms": terms.payment_terms,
                },
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update contract terms") from error
        if row is None:
            raise LookupError("contract not found")
        return _map_contract_record(row)

    def db_contract_update_execution(
        self,
        contract_id: UUID,
        executed: int,
        remaining: int,
        status: ContractStatus,
    ) -> ContractRecord:
        try:
            row = self._connection.execute(
                text(
                    "UPDATE contract SET "
                    "executed = :executed, "
                    "remaining = :remaining, "
                    "status = :status, "
                    "updated_at_utc = now() "
                    "WHERE contract_id = :contract_id "
                    f"RETURNING {_CONTRACT_COLUMNS}"
                ),
                {"contract_id": contract_id, "executed": executed, "remaining": remaining, "status": status.value},
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update contract execution") from error
        if row is None:
            raise LookupError("contract not found")
        return _map_contract_record(row)

    def db_contract_update_status(
        self,
        contract_id: UUID,
        status: ContractStatus,
        cancellation_reason: str | None = None,
    ) -> ContractRecord:
        try:
            row = self._connection.execute(
                text(
                    "UPDATE contract SET "
                    "status = :status, "
                    "cancellation_reason = COALESCE(:cancellation_reason, cancellation_reason), "
                    "updated_at_utc = now() "
                    "WHERE contract_id = :contract_id "
                    f"RETURNING {_CONTRACT_COLUMNS}"
                ),
                {"contract_id": contract_id, "status": status.value, "cancellation_reason": cancellation_reason},
            ).mappings().first()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "update contract status") from error
        if row is None:
            raise LookupError("contract not found")
        return _map_contract_record(row)

    def db_contract_tranche_insert(self, request: ContractTrancheInsertRequest) -> ContractTrancheRecord:
        try:
            row = self._connection.execute(
                text(
                    "INSERT INTO contract_tranche (contract_id, quantity, price, execution_date, trade_id, notes) "
                    "VALUES (:contract_id, :quantity, :price, :execution_date, :trade_id, :notes) "
                    f"RETURNING {_TRANCHE_COLUMNS}"
                ),
                {
                    "contract_id": request.contract_id,
                    "quantity": request.quantity,
                    "price": request.price,
                    "execution_date": request.execution_date,
                    "trade_id": request.trade_id,
                    "notes": request.notes,
                },
            ).mappings().one()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "insert contract tranche") from error
        return _map_tranche_record(row)

    def db_contract_tranche_list(self, contract_id: UUID) -> list[ContractTrancheRecord]:
        try:
            rows = self._connection.execute(
                text(
                    f"SELECT {_TRANCHE_COLUMNS} FROM contract_tranche "
                    "WHERE contract_id = :contract_id "
                    "ORDER BY tranche_seq asc"
                ),
                {"contract_id": contract_id},
            ).mappings().all()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "list contract tranches") from error
        return [_map_tranche_record(row) for row in rows]


def _map_contract_record(row: Any) -> ContractRecord:
    return ContractRecord(
        contract_id=row["contract_id"],
        commodity_id=row["commodity_id"],
        counterparty_id=row["counterparty_id"],
        direction=ContractDirection(row["direction"]),
        quantity=int(row["quantity"]),
        price=Decimal(row["price"]),
        total_value=Decimal(row["total_value"]),
        executed=int(row["executed"]),
        remaining=int(row["remaining"]),
        status=ContractStatus(row["status"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        delivery_terms=str(row["delivery_terms"]),
        payment_terms=str(row["payment_terms"]),
        cancellation_reason=row["cancellation_reason"],
        created_at_utc=row["created_at_utc"],
        updated_at_utc=row["updated_at_utc"],
    )


def _map_tranche_record(row: Any) -> ContractTrancheRecord:
    return ContractTrancheRecord(
        tranche_id=row["tranche_id"],
        contract_id=row["contract_id"],
        quantity=int(row["quantity"]),
        price=Decimal(row["price"]),
        execution_date=row["execution_date"],
        trade_id=row["trade_id"],
        notes=row["notes"],
        created_at_utc=row["created_at_utc"],
    )
