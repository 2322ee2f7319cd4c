"""Logging setup for the API process and the maintenance scripts.

Console output only. With ``json_output`` every record is rendered as a single
JSON object carrying the timestamp, level, module, message and any structured
fields passed through ``extra={"extra": {...}}``.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from .config import settings


class JsonFormatter(logging.Formatter):
    """Format log records as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            log_record.update(extra)
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    level = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.log_json

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    handler.setLevel(level)
    root.addHandler(handler)
