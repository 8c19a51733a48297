"""Single-line JSON logging with an optional per-session correlation id."""

from __future__ import annotations

import json
import logging
import sys
import time
from contextvars import ContextVar

_session_id: ContextVar[str | None] = ContextVar("session_id", default=None)


def set_session_id(sid: str | None) -> None:
    _session_id.set(sid)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "level": record.levelname,
            "ts": round(time.time(), 3),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        sid = _session_id.get()
        if sid:
            base["session_id"] = sid
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_logging(level: int | str = "INFO") -> logging.Logger:
    """Route root logging to stdout through JSONFormatter and return the package logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return logging.getLogger("tutorchat")
