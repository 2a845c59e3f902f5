"""Unit of work binding one database transaction to one ledger command."""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType

from sqlalchemy import Connection, Engine, RootTransaction
from sqlalchemy.exc import SQLAlchemyError

from .contracts import SQLAlchemyContractRepository
from .errors import db_translate_sqlalchemy_error
from .interfaces import LedgerUnitOfWorkPort
from .inventory import SQLAlchemyInventoryLotRepository, SQLAlchemyInventoryMovementRepository
from .reference_data import SQLAlchemyCommodityRepository, SQLAlchemyCounterpartyRepository
from .shipments import SQLAlchemyShipmentRepository
from .trades import SQLAlchemyTradeRepository

logger = logging.getLogger(__name__)

SUPPORTED_ISOLATION_LEVELS = ("READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE")


class SQLAlchemyLedgerUnitOfWork(LedgerUnitOfWorkPort):
    """Unit of work over one SQLAlchemy connection and one root transaction.

    Repositories are bound to the connection on `__enter__`. A clean scope
    exit commits; any exception rolls back and propagates unchanged. A
    failing commit is translated the same way as a failing statement, so a
    serialization failure detected at commit time still surfaces as
    `LedgerConcurrencyConflictError`.
    """

    def __init__(self, engine: Engine, isolation_level: str = "REPEATABLE READ"):
        """Initialize the unit of work without opening a connection.

        Args:
            engine: SQLAlchemy engine used to open the connection.
            isolation_level: PostgreSQL transaction isolation level.

        Raises:
            ValueError: Raised when engine is None or the isolation level is unsupported.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        if isolation_level not in SUPPORTED_ISOLATION_LEVELS:
            raise ValueError(f"isolation_level must be one of: {', '.join(SUPPORTED_ISOLATION_LEVELS)}")
        self._engine = engine
        self._isolation_level = isolation_level
        self._connection: Connection | None = None
        self._transaction: RootTransaction | None = None

    def __enter__(self) -> SQLAlchemyLedgerUnitOfWork:
        if self._connection is not None:
            raise RuntimeError("unit of work is already active")

        try:
            connection = self._engine.connect()
        except SQLAlchemyError as error:
            raise db_translate_sqlalchemy_error(error, "open ledger connection") from error

        try:
            connection.execution_options(isolation_level=self._isolation_level)
            self._transaction = connection.begin()
        except SQLAlchemyError as error:
            connection.close()
            raise db_translate_sqlalchemy_error(error, "begin ledger transaction") from error

        self._connection = connection
        self.commodities = SQLAlchemyCommodityRepository(connection)
        self.counterparties = SQLAlchemyCounterpartyRepository(connection)
        self.inventory_lots = SQLAlchemyInventoryLotRepository(connection)
        self.inventory_movements = SQLAlchemyInventoryMovementRepository(connection)
        self.trades = SQLAlchemyTradeRepository(connection)
        self.contracts = SQLAlchemyContractRepository(connection)
        self.shipments = SQLAlchemyShipmentRepository(connection)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        connection = self._connection
        transaction = self._transaction
        self._connection = None
        self._transaction = None
        if connection is None or transaction is None:
            return

        try:
            if exc_type is None:
                try:
                    transaction.commit()
                except SQLAlchemyError as error:
                    raise db_translate_sqlalchemy_error(error, "commit ledger transaction") from error
            else:
                logger.debug("rolling back ledger transaction", extra={"error_type": exc_type.__name__})
                transaction.rollback()
        finally:
            connection.close()


def db_create_unit_of_work_factory(
    engine: Engine,
    isolation_level: str = "REPEATABLE READ",
) -> Callable[[], LedgerUnitOfWorkPort]:
    """Create a factory that returns a fresh unit of work per command.

    Args:
        engine: SQLAlchemy engine shared by all units of work.
        isolation_level: Transaction isolation level applied to each unit of work.

    Returns:
        Callable[[], LedgerUnitOfWorkPort]: Zero-argument unit-of-work factory.

    Raises:
        ValueError: Raised when engine is None or the isolation level is unsupported.
    """

    if engine is None:
        raise ValueError("engine must not be None")
    if isolation_level not in SUPPORTED_ISOLATION_LEVELS:
        raise ValueError(f"isolation_level must be one of: {', '.join(SUPPORTED_ISOLATION_LEVELS)}")

    def _create_unit_of_work() -> LedgerUnitOfWorkPort:
        return SQLAlchemyLedgerUnitOfWork(engine=engine, isolation_level=isolation_level)

    return _create_unit_of_work
