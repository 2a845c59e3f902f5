"""Database layer package for all SQL and persistence boundaries."""

from .errors import db_translate_sqlalchemy_error
from .health import SQLAlchemyDatabaseHealthService
from .interfaces import (
	DatabaseHealthPort,
	LedgerUnitOfWorkPort,
)
from .session import db_create_engine
from .unit_of_work import SQLAlchemyLedgerUnitOfWork, db_create_unit_of_work_factory

__all__ = [
	"DatabaseHealthPort",
	"LedgerUnitOfWorkPort",
	"SQLAlchemyDatabaseHealthService",
	"SQLAlchemyLedgerUnitOfWork",
	"db_create_engine",
	"db_create_unit_of_work_factory",
	"db_translate_sqlalchemy_error",
]
