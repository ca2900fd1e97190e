"""
Structured logging for the analysis engine.

Engine components attach context to their records (document URI, analyzer
id, block range, run token) through the ``*_ctx`` methods of
:class:`StructuredLogger`. :class:`JSONFormatter` lifts those well-known
fields to the top level of each JSON line so analyzer faults can be filtered
per document or per analyzer; anything else stays under ``context``.
"""

import json
import logging
import sys
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, Optional

# Context keys promoted to top-level JSON fields
ENGINE_FIELDS = ("uri", "analyzer", "block", "token")

# Third-party loggers that are noisy below WARNING (watchdog logs every inotify event)
NOISY_LOGGERS = ("watchdog",)

_use_json_format = False


class JSONFormatter(logging.Formatter):
    """Renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        context = dict(getattr(record, "context", None) or {})
        for field in ENGINE_FIELDS:
            if field in context:
                payload[field] = context.pop(field)
        if context:
            payload["context"] = context

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_trace"] = record.stack_info

        return json.dumps(payload, default=str)


class StructuredLogger(logging.Logger):
    """
    Logger whose ``*_ctx`` methods take context as keyword arguments.

    Example:
        logger.warning_ctx("Analyzer failed", uri=doc.uri, analyzer="naming",
                           block="10-24", exc_info=error)
    """

    def _log_ctx(
        self,
        level: int,
        msg: str,
        context: Optional[Dict[str, Any]],
        exc_info: Any,
        fields: Dict[str, Any],
    ) -> None:
        if not self.isEnabledFor(level):
            return

        merged = {**(context or {}), **fields}
        # None-valued fields (e.g. no block in whole-document mode) are dropped
        merged = {key: value for key, value in merged.items() if value is not None}

        # stacklevel 3 attributes the record to whoever called the *_ctx method
        self.log(
            level,
            msg,
            exc_info=exc_info,
            extra={"context": merged} if merged else None,
            stacklevel=3,
        )

    def debug_ctx(self, msg: str, context: Optional[Dict[str, Any]] = None, **fields) -> None:
        self._log_ctx(logging.DEBUG, msg, context, None, fields)

    def info_ctx(self, msg: str, context: Optional[Dict[str, Any]] = None, **fields) -> None:
        self._log_ctx(logging.INFO, msg, context, None, fields)

    def warning_ctx(
        self,
        msg: str,
        context: Optional[Dict[str, Any]] = None,
        exc_info: Any = None,
        **fields,
    ) -> None:
        self._log_ctx(logging.WARNING, msg, context, exc_info, fields)

    def error_ctx(
        self,
        msg: str,
        context: Optional[Dict[str, Any]] = None,
        exc_info: Any = None,
        **fields,
    ) -> None:
        self._log_ctx(logging.ERROR, msg, context, exc_info, fields)


def configure_logging(
    use_json: bool = True,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
) -> None:
    """
    Configure root logging for a host process.

    Logs always go to stderr because the CLI writes diagnostics to stdout.

    Args:
        use_json: Emit JSON lines instead of plain text
        level: Root log level
        log_file: Also append logs to this file
    """
    global _use_json_format

    logging.setLoggerClass(StructuredLogger)
    _use_json_format = use_json

    if use_json:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger that supports the ``*_ctx`` methods.

    Must be called before anything else creates a logger with the same name
    (module level, as ``logger = get_logger(__name__)``).
    """
    if not issubclass(logging.getLoggerClass(), StructuredLogger):
        logging.setLoggerClass(StructuredLogger)
    return logging.getLogger(name)


def is_json_logging() -> bool:
    """Whether the last configure_logging() call selected JSON output."""
    return _use_json_format
