from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from task_tracker.config import Settings, get_settings

_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Structured extras only (we always log with `extra={...}`)
        for k, v in record.__dict__.items():
            if k in _RESERVED:
                continue
            payload[k] = v

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(settings: Optional[Settings] = None) -> Path:
    """Send JSON lines to stderr and to ``<log_dir>/tracker.jsonl``; returns the file path."""
    settings = settings or get_settings()
    log_path = Path(settings.log_dir) / "tracker.jsonl"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        # 10MB x 10 files
        RotatingFileHandler(log_path, maxBytes=10_000_000, backupCount=10, encoding="utf-8"),
    ]
    formatter = JsonFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)

    # force=True drops handlers left over from a previous app instance
    logging.basicConfig(level=settings.log_level, handlers=handlers, force=True)

    # uvicorn's access log duplicates AccessLogMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.CRITICAL)
    logging.getLogger("uvicorn.error").setLevel(settings.log_level)
    return log_path
