from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Iterable, Mapping, Tuple

from ..middlewares import form_session_ctx_var, principal_ctx_var, request_id_ctx_var

# Context vars copied onto every record when set.
_CONTEXT_FIELDS: Tuple[Tuple[str, ContextVar], ...] = (
    ("request_id", request_id_ctx_var),
    ("principal", principal_ctx_var),
    ("form_session", form_session_ctx_var),
)

# Libraries that log every outbound call at INFO.
NOISY_LOGGERS = ("httpx", "httpcore")


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, request context and ``extra_data`` merged in."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload = {
            "timestamp": stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name, var in _CONTEXT_FIELDS:
            value = var.get()
            if value:
                payload[name] = value
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            payload.update(extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        # Asset ids and dates may arrive as non-JSON types.
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def configure_logging(level: str = "INFO", quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel(level)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
