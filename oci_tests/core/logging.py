"""Structured logging configuration with per-scenario case ID tracking."""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import Settings

ROOT_LOGGER = "oci_tests"

# Context variable for the scenario currently running
case_id_var: ContextVar[Optional[str]] = ContextVar("case_id", default=None)


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def __init__(self, include_location: bool = False):
        super().__init__()
        self.include_location = include_location

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        case_id = case_id_var.get()
        if case_id:
            log_data["case_id"] = case_id

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_location:
            log_data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    def format(self, record: logging.LogRecord) -> str:
        case_id = case_id_var.get()
        cid = f"[{case_id}] " if case_id else ""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} {record.levelname:8} {cid}{record.name}: {record.getMessage()}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


class SensitiveDataFilter(logging.Filter):
    """Redact credentials from log messages."""

    SENSITIVE_KEYS = {
        "password",
        "secret",
        "token",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        lowered = message.lower()
        redacted = message
        for key in self.SENSITIVE_KEYS:
            if key in lowered:
                redacted = self._redact_value(redacted, key)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True

    def _redact_value(self, text: str, key: str) -> str:
        """Redact values after sensitive keys."""
        # Matches "KEY=value", "key: value" and "'key': 'value'", also as a
        # suffix of a longer name such as MYSQL_ROOT_PASSWORD
        patterns = [
            rf"(\w*{key}\s*[=:]\s*)[^\s,}}\]]+",
            rf"('\w*{key}'\s*:\s*)[^\s,}}\]]+",
            rf'("\w*{key}"\s*:\s*)[^\s,}}\]]+',
        ]
        for pattern in patterns:
            text = re.sub(pattern, r"\1[REDACTED]", text, flags=re.IGNORECASE)
        return text


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure the suite's logger namespace.

    Only the ``oci_tests`` logger is touched, records still propagate to the
    root logger where pytest's capture handlers live. Calling it twice
    replaces the handler instead of stacking a second one.
    """
    level = getattr(logging, settings.effective_log_level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        if getattr(handler, "_oci_tests_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler._oci_tests_handler = True  # type: ignore[attr-defined]

    if settings.log_format == "json":
        handler.setFormatter(StructuredFormatter(include_location=settings.debug))
    else:
        handler.setFormatter(TextFormatter())

    handler.addFilter(SensitiveDataFilter())
    logger.addHandler(handler)

    logging.getLogger("docker").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the oci_tests prefix."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
