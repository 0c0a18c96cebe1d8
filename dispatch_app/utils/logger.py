"""
Structured logging for domain events.

Task completions, dispatch creation, finalization and rollover are logged as
one JSON object per record so they can be grepped and aggregated. Handlers
and formatting come from the application's logging configuration.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class StructuredLogger:
    """Wraps a stdlib logger and renders keyword fields as JSON."""

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.context = dict(context or {})

    def bind(self, **context) -> "StructuredLogger":
        """Child logger that adds ``context`` to every record."""
        return StructuredLogger(self.logger.name, {**self.context, **context})

    def _emit(self, level: int, event: str, fields: Dict[str, Any]):
        if not self.logger.isEnabledFor(level):
            return
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event,
            **self.context,
            **{key: value for key, value in fields.items() if value is not None},
        }
        # datetimes and ids of unknown type fall back to str()
        self.logger.log(level, json.dumps(record, default=str, sort_keys=True))

    def debug(self, event: str, **fields):
        self._emit(logging.DEBUG, event, fields)

    def info(self, event: str, **fields):
        self._emit(logging.INFO, event, fields)

    def warning(self, event: str, **fields):
        self._emit(logging.WARNING, event, fields)

    def error(self, event: str, **fields):
        self._emit(logging.ERROR, event, fields)


def get_logger(name: str, **context) -> StructuredLogger:
    """
    Get a structured logger for a module.

    Args:
        name: Logger name, usually ``__name__``
        **context: Fields attached to every record

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name, context)
