"""
Structured logging for RightsLedger.

Provides JSON-formatted logging for deployed servers and a colored console
format for development, selected by LOG_FORMAT.

Features:
- JSON output format for easy parsing
- Request and contract context (request_id, contract_id, ...)
- Redaction of payee personal data (tax ids, bank details, emails)
- Configurable level and optional JSON log file
"""

import json
import logging
import os
import re
import sys
import threading
from datetime import UTC, datetime
from typing import Any

# ============================================================
# Sensitive Data Redaction
# ============================================================

# Patterns for sensitive data that should be redacted in logs
SENSITIVE_PATTERNS = [
    # Secrets passed as key=value
    (re.compile(r"(api[_-]?key|token|secret|password)([\"']?\s*[:=]\s*[\"']?)([^\s\"',}{]+)", re.IGNORECASE), r"\1\2[REDACTED]"),
    # US social security numbers
    (re.compile(r"\b\d{3}-\d{2}-(\d{4})\b"), r"***-**-\1"),
    # US employer identification numbers
    (re.compile(r"\b\d{2}-\d{3}(\d{4})\b"), r"**-***\1"),
    # IBANs (keep country code and last 4)
    (re.compile(r"\b([A-Z]{2})\d{2}[A-Z0-9]{7,26}([A-Z0-9]{4})\b"), r"\1**...\2"),
    # Email addresses (partial redaction)
    (re.compile(r"([a-zA-Z0-9._%+-]+)@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})"), r"[...]@\2"),
]

# Fields that should be completely redacted
REDACTED_FIELDS = {
    "password",
    "secret",
    "api_key",
    "token",
    "authorization",
    "tax_id",
    "ssn",
    "ein",
    "bank_account",
    "account_number",
    "routing_number",
    "iban",
}

# LogRecord attributes that are not "extra" fields
_RECORD_ATTRS = frozenset((
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "exc_info",
    "exc_text",
    "thread",
    "threadName",
    "message",
    "taskName",
))


def redact_sensitive_data(data: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """
    Walk a payload and mask payee personal data.

    Dict keys named in REDACTED_FIELDS are replaced outright, strings are
    passed through redact_string, and anything nested deeper than max_depth
    collapses to a marker.
    """
    if depth > max_depth:
        return "[MAX_DEPTH_EXCEEDED]"
    if isinstance(data, str):
        return redact_string(data)
    if isinstance(data, dict):
        return {
            key: "[REDACTED]" if _is_redacted_key(key) else redact_sensitive_data(value, depth + 1, max_depth)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_sensitive_data(item, depth + 1, max_depth) for item in data]
    return data


def redact_string(text: str) -> str:
    """Redact sensitive patterns from a string."""
    if not isinstance(text, str):
        return text
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def _is_redacted_key(key: Any) -> bool:
    return str(key).lower().replace("-", "_") in REDACTED_FIELDS


# Per-thread context attached to every record (request id, contract id, ...)
_context_store = threading.local()


def get_request_context() -> dict[str, Any]:
    """Get current request context."""
    return getattr(_context_store, "values", {})


def set_request_context(**values) -> None:
    _context_store.values = {**get_request_context(), **values}


def clear_request_context() -> None:
    _context_store.values = {}


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line for log shippers.

    Example line:
        {"timestamp": "...", "level": "WARNING", "logger": "ledger_service",
         "message": "Finalize blocked", "location": {...},
         "context": {"contract_id": "contract_..."}, "work_id": "work_..."}

    Warnings and above carry their source location. Extra fields from the
    log call are merged in at the top level after redaction.
    """

    def __init__(self, include_stack_info: bool = True, redact_sensitive: bool = True):
        super().__init__()
        self.include_stack_info = include_stack_info
        self.redact_sensitive = redact_sensitive

    def _clean(self, value: Any) -> Any:
        return redact_sensitive_data(value) if self.redact_sensitive else value

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._clean(record.getMessage()),
        }

        if record.levelno >= logging.WARNING:
            entry["location"] = {"file": record.pathname, "line": record.lineno, "function": record.funcName}
        if record.exc_info and self.include_stack_info:
            entry["exception"] = self.formatException(record.exc_info)

        context = get_request_context()
        if context:
            entry["context"] = self._clean(dict(context))

        extras = _record_extras(record)
        if self.redact_sensitive:
            extras = redact_sensitive_data(extras)
        entry.update(extras)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line output for local development."""

    LEVEL_STYLES = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        style = self.LEVEL_STYLES.get(record.levelno, "")
        clock = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        parts = [f"{style}{clock} {record.levelname[0]} [{record.name}]{self.RESET}", redact_string(record.getMessage())]

        context = get_request_context()
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in context.items())
            parts.append(f"{style}({pairs}){self.RESET}")

        extras = redact_sensitive_data(_record_extras(record))
        if extras:
            parts.append("[" + ", ".join(f"{k}={v}" for k, v in extras.items()) + "]")

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _build_handlers(json_output: bool, log_file: str | None) -> list[logging.Handler]:
    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())
    handlers: list[logging.Handler] = [stream]
    if log_file:
        # Files are always JSON so they can be shipped as-is
        to_file = logging.FileHandler(log_file)
        to_file.setFormatter(JSONFormatter())
        handlers.append(to_file)
    return handlers


def configure_logging(
    level: str = "INFO",
    json_output: bool | None = None,
    log_file: str | None = None,
) -> None:
    """
    Replace the root logger's handlers.

    Args:
        level: Level name; unknown names fall back to INFO
        json_output: Force JSON or console output (LOG_FORMAT=json when None)
        log_file: Optional path that receives a JSON copy of every record
    """
    if json_output is None:
        json_output = os.getenv("LOG_FORMAT", "").lower() == "json"

    root = logging.getLogger()
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))
    root.handlers.clear()
    for handler in _build_handlers(json_output, log_file):
        root.addHandler(handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggingContext:
    """
    Scope extra context onto every record logged inside a ``with`` block.

    Contexts nest; leaving a block restores whatever the enclosing block set.

        with LoggingContext(contract_id=contract_id, operation="update_share"):
            logger.info("Share updated")
    """

    def __init__(self, **values):
        self.values = values
        self._saved: dict[str, Any] = {}

    def __enter__(self):
        self._saved = dict(get_request_context())
        set_request_context(**self.values)
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb):
        _context_store.values = self._saved
        return False


if not logging.getLogger().handlers:
    configure_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE") or None,
    )
