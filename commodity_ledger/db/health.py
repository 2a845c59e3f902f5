"""Database health service implementations for connectivity checks."""

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from commodity_ledger.domain import HealthStatus

from .interfaces import DatabaseHealthPort


class SQLAlchemyDatabaseHealthService(DatabaseHealthPort):
    """Database health service backed by SQLAlchemy engine connectivity checks."""

    def __init__(self, engine: Engine):
        """Initialize database health service.

        Args:
            engine: SQLAlchemy engine used for connectivity checks.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_connection_label(self) -> str:
        """Return the target database URL with the password masked."""

        return self._engine.url.render_as_string(hide_password=True)

    def db_check_health(self) -> HealthStatus:
        """Verify database connectivity and ledger schema presence.

        Returns:
            HealthStatus: Health payload with status and diagnostic detail.

        Raises:
            ConnectionError: Raised when connectivity check fails.
        """

        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                schema_row = connection.execute(
                    text("SELECT to_regclass('public.inventory_lot') IS NOT NULL AS ledger_schema_present")
                ).mappings().one()
        except SQLAlchemyError as error:
            raise ConnectionError("database connectivity check failed") from error

        if not bool(schema_row["ledger_schema_present"]):
            return HealthStatus(status="degraded", detail="database reachable but ledger schema is not migrated")
        return HealthStatus(status="ok", detail="database connectivity verified")
