"""Main module entrypoint for local runtime execution.

This module validates startup configuration and launches the FastAPI service
or runs the database health check.
"""

import argparse
import logging

import uvicorn

from commodity_ledger.bootstrap import bootstrap_create_application
from commodity_ledger.config import config_load_settings
from commodity_ledger.db import SQLAlchemyDatabaseHealthService, db_create_engine
from commodity_ledger.logging_config import logging_configure

logger = logging.getLogger(__name__)


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with status 1 when `db-check` fails.
    """

    argument_parser = argparse.ArgumentParser(description="Commodity position ledger runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "db-check"),
        help="Runtime command: `api` starts server, `db-check` verifies database connectivity and ledger schema",
        type=str,
    )
    parsed_arguments = argument_parser.parse_args()

    settings = config_load_settings()
    logging_configure(level=settings.log_level, json_output=settings.log_json)

    if parsed_arguments.command == "db-check":
        main_run_db_check(settings.database_url)
        return

    application = bootstrap_create_application()
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
    )


def main_run_db_check(database_url: str) -> None:
    """Check database health and exit non-zero unless the ledger schema is reachable.

    Args:
        database_url: SQLAlchemy database URL.

    Raises:
        SystemExit: Raised with status 1 when the check fails.
    """

    health_service = SQLAlchemyDatabaseHealthService(engine=db_create_engine(database_url=database_url))
    target = health_service.db_connection_label()
    try:
        health = health_service.db_check_health()
    except ConnectionError as error:
        logger.error("database check failed", extra={"target": target, "detail": str(error)})
        raise SystemExit(1) from error

    if health.status != "ok":
        logger.error("database check degraded", extra={"target": target, "detail": health.detail})
        raise SystemExit(1)
    logger.info("database check passed", extra={"target": target, "detail": health.detail})


if __name__ == "__main__":
    main()
