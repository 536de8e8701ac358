"""
utils/loggers.py

Logger setup shared by the application and structured mutation telemetry.

Public API
----------
- get_logger(name) -> logging.Logger
- log_event(logger, op, phase, message, extra: dict = {})
- JsonLineFormatter
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

__all__ = ["get_logger", "log_event", "JsonLineFormatter", "attach_json_file"]


def get_logger(name="order_backoffice"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


class JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2026-01-01T12:00:01.123Z","level":"INFO","name":"...","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def attach_json_file(logger: logging.Logger, file_path: str | Path, level: int = logging.INFO) -> None:
    """Append JSON lines for `logger` to `file_path`; no-op if already attached."""
    path = Path(file_path)
    for h in logger.handlers:
        if isinstance(h, logging.FileHandler) and Path(h.baseFilename) == path.resolve():
            return
    path.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(str(path), mode="a", encoding="utf-8", delay=True)
    fh.setLevel(level)
    fh.setFormatter(JsonLineFormatter())
    logger.addHandler(fh)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Optional[Dict[str, object]] = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured event line for one phase of an order mutation.

    Args:
        logger: Any logger; the JSON formatter picks up the payload.
        op: Operation name, e.g. "update", "create", "delete", "reorder".
        phase: Phase within the operation, e.g. "dispatch", "commit", "rollback", "notify".
        message: Human-readable short message.
        extra: Optional additional key/values (order id, scope, error text).
        level: Logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v
    logger.log(level, message, extra={"extra_payload": extra_payload})
