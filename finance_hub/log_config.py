from __future__ import annotations

import json
import logging
from typing import Any, Dict


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> None:
    level = (level or "INFO").upper().strip() or "INFO"
    logging.basicConfig(level=level, format="%(message)s")

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers:
        h.setFormatter(JsonFormatter())
