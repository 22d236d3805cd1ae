from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class JsonFormatter(logging.Formatter):
    """One JSON object per record; fields passed as ``extra={"extra": {...}}`` are merged in."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "event": record.getMessage(),
            "logger": record.name,
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def get_json_logger(name: str = "trading_statement", level: Optional[int] = None) -> logging.Logger:
    """
    Return a logger emitting JSON lines.

    When the top-level logger of ``name`` already has handlers (``configure_logging``
    ran) records propagate to it. Otherwise a stdout JSON handler is attached so
    library use outside the API still produces structured output.
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    top = logging.getLogger(name.split(".", 1)[0])
    if logger.handlers or top.handlers:
        return logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    if logger.level == logging.NOTSET:
        logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger
