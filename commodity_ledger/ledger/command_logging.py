"""Logging helper shared by ledger command services."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from commodity_ledger.domain.errors import LedgerError


@contextmanager
def ledger_log_rejections(command_logger: logging.Logger, command: str, **context: Any) -> Iterator[None]:
    """Log a typed ledger failure at WARNING with its error code, then re-raise it.

    Args:
        command_logger: Module logger of the calling service.
        command: Command name rendered in the log record.
        **context: Identifiers attached to the log record.
    """

    try:
        yield
    except LedgerError as error:
        command_logger.warning(
            "%s rejected: %s",
            command,
            error,
            extra={"command": command, "error_code": error.error_code, **context},
        )
        raise
