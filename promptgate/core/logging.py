import json
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone

from promptgate.core.config import settings


class JsonFormatter(logging.Formatter):
    """JSON log formatter with support for extra fields."""

    # Fields to extract from log record's extra dict
    EXTRA_FIELDS = (
        "session_id", "request_id", "path", "method", "status_code", "latency_ms",
        "payment_id", "subscription_id", "code", "kind", "outcome", "phase",
        "provider", "model", "error", "breaker_name", "old_state", "new_state",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    formatter = JsonFormatter()
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    handlers: list[logging.Handler] = [handler]
    if settings.log_file:
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    root.handlers = handlers


def mask_code(code: str | None) -> str | None:
    """AC-DEADBEEF-123456789 -> AC-DEADBEEF-***. Коды целиком в лог не пишем."""
    if not code:
        return code
    head, sep, _ = code.rpartition("-")
    return f"{head}{sep}***" if sep else "***"
