"""Logging setup for the ledger runtime.

Every module logs through `logging.getLogger(__name__)`; this module only
decides how records under the `commodity_ledger` namespace are rendered.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

_LOGGER_NAMESPACE = "commodity_ledger"

_STDLIB_RECORD_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _LogJSONEncoder(json.JSONEncoder):
    """Render ledger value types that the stdlib encoder rejects."""

    def default(self, o: Any) -> Any:
        if isinstance(o, (UUID, Decimal)):
            return str(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return super().default(o)


class StructuredFormatter(logging.Formatter):
    """Format each log record as a single JSON line including `extra=` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in vars(record).items():
            if key not in _STDLIB_RECORD_KEYS and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            payload["exc_type"] = type(error).__name__
            payload["exc_message"] = str(error)
            error_code = getattr(error, "error_code", None)
            if error_code is not None:
                payload["exc_code"] = error_code
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_LogJSONEncoder, default=str)


def logging_configure(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """Configure the ledger logger hierarchy once per process.

    Args:
        level: Log level name applied to the `commodity_ledger` logger.
        json_output: Render records with `StructuredFormatter` when True.

    Returns:
        logging.Logger: The configured namespace logger.

    Raises:
        ValueError: Raised when the level name is unknown.
    """

    numeric_level = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level={level}")

    namespace_logger = logging.getLogger(_LOGGER_NAMESPACE)
    for existing_handler in list(namespace_logger.handlers):
        namespace_logger.removeHandler(existing_handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    namespace_logger.addHandler(handler)
    namespace_logger.setLevel(numeric_level)
    namespace_logger.propagate = False
    return namespace_logger


__all__ = ["StructuredFormatter", "logging_configure"]
