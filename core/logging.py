# PATH: core/logging.py
"""
Structured logging for chaincheck.

All contextual fields are passed only via extra={"context": {...}}.
The "chain" context field is promoted: a top-level key in JSON lines and
a [chain] tag in console lines, so output from concurrent chain workers
stays attributable.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Union

CHAIN_FIELD = "chain"
CONSOLE_CONTEXT_FIELDS = 4

# Chatty third-party loggers, capped at WARNING
QUIET_LOGGERS = ("httpx", "httpcore")


def _context(record: logging.LogRecord) -> dict:
    context = getattr(record, "context", None)
    return dict(context) if isinstance(context, dict) else {}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Includes context fields from extra={"context": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = _context(record)
        if CHAIN_FIELD in context:
            log_data[CHAIN_FIELD] = context[CHAIN_FIELD]
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for console output.

    2026-01-01 12:00:00 | INFO    | verification.contracts | [base] message | role=permit2
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        context = _context(record)
        chain = context.pop(CHAIN_FIELD, None)
        tag = f"[{chain}] " if chain else ""
        base = f"{timestamp} | {record.levelname:<7} | {record.name} | {tag}{record.getMessage()}"

        if context:
            items = list(context.items())
            ctx_str = ", ".join(f"{k}={v}" for k, v in items[:CONSOLE_CONTEXT_FIELDS])
            if len(items) > CONSOLE_CONTEXT_FIELDS:
                ctx_str += f", ... (+{len(items) - CONSOLE_CONTEXT_FIELDS} more)"
            base += f" | {ctx_str}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Logging level (int or name such as "DEBUG")
        log_file: Optional file path for log output (always JSON lines)
        json_format: Use JSON format (True) or console format (False)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        StructuredFormatter() if json_format else ConsoleFormatter()
    )
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically named after the module)."""
    return logging.getLogger(name)
