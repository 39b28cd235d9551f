# sequence_engine/utils/logging.py
"""
Logging setup for the engine and lobby.

- JSONFormatter for machine-readable logs
- DevelopmentFormatter for a terminal
- room/player context carried through context variables
- JSONLLogger for append-only game records (self-play move logs)
"""
from __future__ import annotations

import json
import logging
import os
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

room_id_var: ContextVar[Optional[str]] = ContextVar("room_id", default=None)
player_id_var: ContextVar[Optional[str]] = ContextVar("player_id", default=None)

_CONTEXT_FIELDS = ("room_id", "player_id", "error_code", "team")


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    ctx: Dict[str, Any] = {}
    room_id = room_id_var.get()
    if room_id:
        ctx["room_id"] = room_id
    player_id = player_id_var.get()
    if player_id:
        ctx["player_id"] = player_id
    for name in _CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value:
            ctx[name] = value
    return ctx


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context(record))
        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        ctx = _context(record)
        context = f" [{', '.join(f'{k}={v}' for k, v in ctx.items())}]" if ctx else ""
        output = f"{timestamp} {record.levelname:8} {record.name}{context} - {record.getMessage()}"
        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)
        return output


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure the root logger once for a process."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    logging.getLogger(__name__).debug("Logging configured: level=%s json=%s", level, json_format)


def setup_logging_from_cfg(cfg: Dict[str, Any]) -> None:
    log_cfg = cfg.get("logging", {})
    setup_logging(level=log_cfg.get("level", "INFO"), json_format=bool(log_cfg.get("json", False)))


class JSONLLogger:
    def __init__(self, path: str):
        self.path = path
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        self._fh = open(self.path, "a", encoding="utf-8")

    def log(self, step: int, payload: Dict[str, Any]) -> None:
        out = {"step": int(step), "ts": int(time.time()), **payload}
        self._fh.write(json.dumps(out, ensure_ascii=False, default=str) + "\n")
        self._fh.flush()

    def close(self) -> None:
        self._fh.close()
