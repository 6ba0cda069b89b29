import json
import logging
import os
import sys
from datetime import datetime
from typing import Optional

_STRUCTURED_ENVIRONMENTS = ("production", "prod", "staging")


class ColoredFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "ENDC": "\033[0m",
    }

    def format(self, record):
        level_color = self.COLORS.get(record.levelname, "")
        end_color = self.COLORS["ENDC"]
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        colored_level = f"{level_color}{record.levelname:8s}{end_color}"
        module_name = record.name if record.name != "__main__" else "main"
        line = f"[{timestamp}] {colored_level} [{module_name}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line for log aggregation."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
            "environment": os.getenv("ENVIRONMENT", "unknown"),
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def init(level: str = "INFO", environment: Optional[str] = None) -> None:
    """
    Configure the root logger once for the whole process.

    - development: coloured human-readable lines
    - staging/production: structured JSON lines
    """
    environment = (environment or os.getenv("ENVIRONMENT", "development")).lower()
    resolved = getattr(logging, str(level).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    if environment in _STRUCTURED_ENVIRONMENTS:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ColoredFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolved)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
