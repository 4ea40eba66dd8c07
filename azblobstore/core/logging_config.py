"""
Logging for azblobstore.

The library itself only creates module loggers. Applications that want
structured output call setup_logging(), which installs JSON or text
handlers that scrub account keys, signatures and tokens and tag each record
with the x-ms-client-request-id of the request being sent.
"""

import json
import logging
import logging.handlers
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Tuple

# x-ms-client-request-id of the request currently being sent
request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)

REDACTED = "***REDACTED***"

_SIZE_PATTERN = re.compile(r'^([0-9]+(?:\.[0-9]+)?)\s*([KMG]?B)?$')
_SIZE_UNITS = {None: 1, 'B': 1, 'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}


def _secret_value(name: str) -> Pattern[str]:
    """Match `name=value`, `name: value` and JSON `"name": "value"` forms."""
    return re.compile(rf'({name}["\']?\s*[:=]\s*["\']?)[^\s"\'&,;]+', re.IGNORECASE)


class SensitiveDataFilter(logging.Filter):
    """Scrub credentials from records before they reach a handler."""

    PATTERNS: List[Tuple[Pattern[str], str]] = [
        # SharedKey account:signature and Bearer tokens
        (re.compile(r'(Authorization["\']?\s*[:=]\s*["\']?)(?:(?:SharedKey|Bearer)\s+)?[^\s"\',]+', re.IGNORECASE), rf'\1{REDACTED}'),
        # Connection string fragments
        (re.compile(r'(AccountKey=)[^;]+', re.IGNORECASE), rf'\1{REDACTED}'),
        (re.compile(r'(SharedAccessSignature=)[^;&]+', re.IGNORECASE), rf'\1{REDACTED}'),
        # SAS signature in request URLs
        (re.compile(r'([?&]?sig=)[^;&\s]+', re.IGNORECASE), rf'\1{REDACTED}'),
        (_secret_value('client_secret'), rf'\1{REDACTED}'),
        (_secret_value('access_token'), rf'\1{REDACTED}'),
        (_secret_value('(?:account|access|master)_key'), rf'\1{REDACTED}'),
    ]

    @classmethod
    def redact(cls, text: str) -> str:
        for pattern, replacement in cls.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        # Secrets may arrive as %-args, so redact the merged message
        if isinstance(record.msg, str):
            record.msg = self.redact(record.getMessage())
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        current_request = request_id.get()
        if current_request:
            entry["request_id"] = current_request

        context = getattr(record, "context", None)
        if context is not None:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain single-line format for terminals."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )


def _level(name: str) -> int:
    value = logging.getLevelName(name.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {name}")
    return value


def _attach(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    handler.setFormatter(formatter)
    handler.addFilter(SensitiveDataFilter())
    root.addHandler(handler)


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: Optional[str] = None,
    rotation_size: str = "10MB",
    rotation_count: int = 5,
    module_levels: Optional[Dict[str, str]] = None
) -> None:
    """
    Replace the root logger's handlers with redacting console (and file) handlers.

    Args:
        level: Root log level name
        format_type: "json" or "text"
        log_file: Also write to this file, rotated by size
        rotation_size: Rotation threshold such as "10MB"
        rotation_count: Rotated files kept
        module_levels: Per-logger overrides, for example
            {"azblobstore.services.blob.client": "DEBUG"} to trace requests
    """
    formatter = JSONFormatter() if format_type == "json" else TextFormatter()

    root = logging.getLogger()
    root.setLevel(_level(level))
    root.handlers.clear()

    _attach(root, logging.StreamHandler(sys.stdout), formatter)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=_parse_size(rotation_size),
            backupCount=rotation_count,
            encoding="utf-8",
        )
        _attach(root, rotating, formatter)

    for name, module_level in (module_levels or {}).items():
        logging.getLogger(name).setLevel(_level(module_level))

    root.debug(f"Logging configured: level={level}, format={format_type}, file={log_file}")


def _parse_size(size_str: str) -> int:
    """Convert "512", "100B", "64KB", "10MB" or "1.5GB" to bytes."""
    match = _SIZE_PATTERN.match(size_str.strip().upper())
    if match is None:
        raise ValueError(f"Invalid size: {size_str!r}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit])


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_id(req_id: str) -> None:
    request_id.set(req_id)


def clear_request_id() -> None:
    request_id.set(None)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """Log a message with structured fields, emitted as "context" by JSONFormatter."""
    logger.log(level, message, extra={"context": context} if context else {})
