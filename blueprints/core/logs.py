from __future__ import annotations
import json
import logging
from datetime import datetime, UTC

# поля из extra=..., которые попадают в JSON-строку лога
EXTRA_FIELDS = ("event", "path", "method", "status", "duration_ms", "visitor_id", "user_id")


def iso_utc(ts: datetime | None = None, timespec: str = "milliseconds") -> str:
    ts = ts or datetime.now(UTC)
    return ts.astimezone(UTC).isoformat(timespec=timespec).replace("+00:00", "Z")


class JSONFormatter(logging.Formatter):
    """Одна запись = одна JSON-строка: ts, level, logger, msg + поля запроса."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": iso_utc(datetime.fromtimestamp(record.created, UTC)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update({k: getattr(record, k) for k in EXTRA_FIELDS if hasattr(record, k)})
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_json_logging(level=logging.INFO) -> logging.Handler:
    """Ставит JSON-хендлер на root один раз; app.logger и модульные логгеры всплывают туда."""
    root = logging.getLogger()
    for h in root.handlers:
        if isinstance(h.formatter, JSONFormatter):
            return h
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
    root.setLevel(level)
    return handler
