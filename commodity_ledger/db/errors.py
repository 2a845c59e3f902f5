"""Translation of driver-level failures into ledger store errors."""

from sqlalchemy.exc import SQLAlchemyError

from commodity_ledger.domain.errors import LedgerConcurrencyConflictError

SERIALIZATION_FAILURE_SQLSTATE = "40001"
DEADLOCK_DETECTED_SQLSTATE = "40P01"
UNIQUE_VIOLATION_SQLSTATE = "23505"

_RETRYABLE_SQLSTATES = frozenset(
    {
        SERIALIZATION_FAILURE_SQLSTATE,
        DEADLOCK_DETECTED_SQLSTATE,
        UNIQUE_VIOLATION_SQLSTATE,
    }
)


def db_error_sqlstate(error: SQLAlchemyError) -> str | None:
    """Return the PostgreSQL SQLSTATE carried by a wrapped DBAPI error, if any."""

    original_error = getattr(error, "orig", None)
    if original_error is None:
        return None
    sqlstate = getattr(original_error, "sqlstate", None)
    if sqlstate is None:
        sqlstate = getattr(original_error, "pgcode", None)
    return sqlstate


def db_translate_sqlalchemy_error(error: SQLAlchemyError, action: str) -> Exception:
    """Map one SQLAlchemy failure to the exception a repository should raise.

    Args:
        error: Failure raised by SQLAlchemy.
        action: Short verb phrase naming the failed operation.

    Returns:
        Exception: `LedgerConcurrencyConflictError` for serialization failures,
            deadlocks and unique-key races, otherwise `RuntimeError`.
    """

    sqlstate = db_error_sqlstate(error)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return LedgerConcurrencyConflictError(f"concurrent update conflict while trying to {action} (sqlstate={sqlstate})")
    return RuntimeError(f"failed to {action}")
