"""Logging setup: diagnostics go to stderr so stdout only carries output."""

import json
import logging
import time

SERVICE = "dbtop"


class JsonFormatter(logging.Formatter):
    def __init__(self, service: str = SERVICE):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
        ts += f".{int(record.msecs):03d}Z"
        payload = {
            "ts": ts,
            "level": record.levelname,
            "svc": self.service,
            "event": getattr(record, "event", "log"),
            "msg": record.getMessage(),
        }
        for k, v in getattr(record, "extra_fields", {}).items():
            payload[k] = v
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level_name: str = "INFO", *, json_lines: bool = False) -> logging.Logger:
    """Attach a single stderr handler to the dbtop logger."""
    logger = logging.getLogger(SERVICE)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if json_lines:
            handler.setFormatter(JsonFormatter(SERVICE))
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s\t%(message)s", "%Y-%m-%dT%H:%M:%S%z"))
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))
    return logger
