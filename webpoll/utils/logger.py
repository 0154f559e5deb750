# webpoll/utils/logger.py
from __future__ import annotations

"""Logging
----------
Everything webpoll logs goes through the `webpoll` logger subtree, configured
once from settings: a rich console handler on stderr and, when LOG_TO_FILE is
set, a rotating JSON-lines file. The host application's root logger is left
alone.

Context bound with bind() (run id, scenario name) rides along on every record
and ends up as top-level keys in the JSON file.
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from webpoll.utils.config import LogLevel, Settings, get_settings

__all__ = [
    "get_logger",
    "set_log_level",
    "bind",
    "unbind",
    "log_with_context",
    "attach_file_logger",
    "detach_file_logger",
]

ROOT = "webpoll"
_MB = 1024 * 1024

_lock = threading.Lock()
_configured = False
_context: Dict[str, Any] = {}

# Chatty third-party loggers: selenium logs every remote HTTP round trip at DEBUG
_QUIET = ("selenium", "urllib3")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message, bound context."""

    def format(self, record: logging.LogRecord) -> str:
        line: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            line.update(context)
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def _console_handler(settings: Settings) -> logging.Handler:
    console = Console(stderr=True, no_color=not settings.COLORIZED_OUTPUT)
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _json_file_handler(path: os.PathLike | str, backups: int) -> logging.Handler:
    p = os.fspath(path)
    os.makedirs(os.path.dirname(p) or ".", exist_ok=True)
    handler = RotatingFileHandler(p, maxBytes=5 * _MB, backupCount=backups, encoding="utf-8", delay=True)
    handler.setFormatter(JsonLineFormatter())
    return handler


def _configure() -> None:
    global _configured
    if _configured:
        return
    with _lock:
        if _configured:
            return
        settings = get_settings()
        level = getattr(logging, settings.LOG_LEVEL.value)

        root = logging.getLogger(ROOT)
        for h in list(root.handlers):
            root.removeHandler(h)
        root.addHandler(_console_handler(settings))
        if settings.LOG_TO_FILE:
            root.addHandler(_json_file_handler(settings.LOG_FILE, backups=5))
        _apply_level(level)
        _configured = True


def _apply_level(level: int) -> None:
    root = logging.getLogger(ROOT)
    root.setLevel(level)
    for h in root.handlers:
        h.setLevel(level)
    for name in _QUIET:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> logging.LoggerAdapter:
    """A logger under `webpoll` whose records carry the bound context."""
    _configure()
    return logging.LoggerAdapter(logging.getLogger(name or ROOT), extra={"context": _context})


def set_log_level(level: LogLevel | str) -> None:
    _configure()
    name = level.value if isinstance(level, LogLevel) else str(level).upper()
    _apply_level(getattr(logging, name, logging.INFO))


def bind(**kwargs: Any) -> None:
    """Attach key/values to every subsequent record, e.g. bind(run_id=...)."""
    _context.update(kwargs)


def unbind(*keys: str) -> None:
    for k in keys:
        _context.pop(k, None)


def log_with_context(logger: logging.LoggerAdapter, **kwargs: Any) -> logging.LoggerAdapter:
    """
    Adapter over the same logger with extra context for one section:

        step_log = log_with_context(log, step_index=3)
        step_log.info("clicking")
    """
    return logging.LoggerAdapter(logger.logger, extra={"context": {**_context, **kwargs}})


def attach_file_logger(path: os.PathLike | str, level: Optional[int] = None) -> logging.Handler:
    """Add a JSON-lines file (one per scenario run, say); pass the result to detach_file_logger."""
    _configure()
    root = logging.getLogger(ROOT)
    handler = _json_file_handler(path, backups=3)
    handler.setLevel(level if level is not None else root.level)
    root.addHandler(handler)
    return handler


def detach_file_logger(handler: logging.Handler) -> None:
    logging.getLogger(ROOT).removeHandler(handler)
    handler.close()
