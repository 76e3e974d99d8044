import json
import logging
import os
import sys
from datetime import datetime, timezone

SERVICE_NAME = "staffloan"

# Attributes every LogRecord carries; anything else came in through extra={...}.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with transition context from ``extra`` nested under "extra"."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "env": os.getenv("ENV", "dev"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        if context:
            entry["extra"] = context
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if os.getenv("SQL_ECHO", "").strip().lower() not in {"1", "true", "yes"}:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
