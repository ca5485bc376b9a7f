"""Structured logging configuration"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict

DEFAULT_LOG_LEVEL = "INFO"


class StructuredLogger:
    """Structured JSON logger for the ledger services"""

    def __init__(self, name: str, level: str = DEFAULT_LOG_LEVEL):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))

        # Attach the console handler only once per logger name
        if not any(getattr(h, "_ledger_handler", False) for h in self.logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            handler._ledger_handler = True
            self.logger.addHandler(handler)

    def log(self, level: str, message: str, exc_info: bool = False, **kwargs):
        """Log structured message"""
        getattr(self.logger, level.lower())(
            message,
            exc_info=exc_info,
            extra={"context": kwargs},
        )

    def info(self, message: str, **kwargs):
        self.log("info", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.log("warning", message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self.log("error", message, exc_info=exc_info, **kwargs)

    def debug(self, message: str, **kwargs):
        self.log("debug", message, **kwargs)


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter"""

    def format(self, record):
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "context", {}) or {})

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_logger(name: str) -> StructuredLogger:
    """Get or create structured logger"""
    log_level = os.getenv("LEDGER_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    return StructuredLogger(name, log_level)


def set_log_level(level: str, prefix: str = "pocket_ledger") -> None:
    """Change the level of every already-created ledger logger"""
    numeric = getattr(logging, level.upper(), logging.INFO)
    for name, existing in logging.root.manager.loggerDict.items():
        if name.startswith(prefix) and isinstance(existing, logging.Logger):
            existing.setLevel(numeric)
