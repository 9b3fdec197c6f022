"""Centralized structured logging configuration for the audit backend."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

__all__ = ["configure_logging", "JSONLogFormatter", "SERVICE_NAME"]

SERVICE_NAME = "instagram-audit-backend"

_LOGGING_CONFIGURED = False

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class JSONLogFormatter(logging.Formatter):
    """Render log records as one JSON object per line (GCP Cloud Logging friendly)."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                entry[key] = value

        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = record.stack_info

        return json.dumps(entry, default=str, ensure_ascii=False)


def _resolve_level(name: Optional[str]) -> int:
    level = logging.getLevelName((name or "INFO").upper())
    # getLevelName returns a string for unknown names
    return level if isinstance(level, int) else logging.INFO


def configure_logging(*, force: bool = False) -> None:
    """Install a single stdout handler on the root logger.

    ``LOG_LEVEL`` picks the level and ``LOG_FORMAT=text`` switches to a plain
    formatter for local runs. Warnings raised through :mod:`warnings` (for
    example identity mismatches) are routed into the log stream.
    """

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED and not force:
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(_resolve_level(os.getenv("LOG_LEVEL")))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if os.getenv("LOG_FORMAT", "json").lower() == "text":
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler.setFormatter(JSONLogFormatter())
    root_logger.addHandler(handler)

    logging.captureWarnings(True)

    _LOGGING_CONFIGURED = True
