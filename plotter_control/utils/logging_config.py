"""Logging setup shared by the CLI and host integrations.

Library modules only do ``logger = logging.getLogger(__name__)``; the
entry point calls :func:`setup_logging` once to attach handlers.

Records carry contextual fields (driver, job, profile) pushed with
:func:`push_context`.  They are stored in a ``ContextVar``, so a host
running jobs on several threads keeps the fields apart.

Line formats::

    human  2026-10-19T13:45:12.345Z | INFO     | driver=DexArm Driver | Job 'logo' complete
    json   {"t": "...", "lvl": "INFO", "name": "...", "driver": "DexArm Driver", "msg": "..."}

Calling :func:`setup_logging` again replaces the handlers it attached
earlier instead of stacking new ones; handlers added by a host stay.
"""

import contextvars
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

_context_var: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "plotter_log_context", default={}
)

_installed: List[logging.Handler] = []

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"


class ContextFormatter(logging.Formatter):
    """Render records as a human line or a JSON object.

    Parameters
    ----------
    fmt_mode : str
        ``"human"`` or ``"json"``.
    use_color : bool
        Color the level name; ignored unless stderr is a terminal.
    tz : str
        ``"UTC"`` or ``"local"`` timestamps.
    """

    def __init__(self, fmt_mode: str = "human", use_color: bool = True, tz: str = "UTC"):
        super().__init__()
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()
        self.tz = tz

    def _timestamp(self, record: logging.LogRecord) -> datetime:
        if self.tz == "UTC":
            return datetime.fromtimestamp(record.created, tz=timezone.utc)
        return datetime.fromtimestamp(record.created)

    def format(self, record: logging.LogRecord) -> str:
        ts = self._timestamp(record)
        context = _context_var.get()

        if self.fmt_mode == "json":
            payload = {
                "t": ts.isoformat(),
                "lvl": record.levelname,
                "name": record.name,
                "pid": os.getpid(),
                **context,
                "msg": record.getMessage(),
            }
            if record.exc_info:
                payload["exc"] = self.formatException(record.exc_info)
            return json.dumps(payload)

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{_LEVEL_COLORS.get(record.levelname, '')}{level}{_RESET}"
        fields = [ts.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z", level]
        if context:
            fields.append(" ".join(f"{k}={v}" for k, v in context.items()))
        fields.append(record.getMessage())

        line = " | ".join(fields)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    rotate: Optional[Dict[str, Any]] = None,
    tz: str = "UTC",
    capture_warnings: bool = True,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """Attach console and/or file handlers to the root logger.

    Parameters
    ----------
    log_level : str
        Root level name, e.g. ``"DEBUG"``.
    log_file : str, optional
        Also log to this file (parent directories are created).
    json : bool
        JSON lines in the file handler.  The console is always human.
    color : bool
        Colored level names on the console.
    to_stderr : bool
        Attach the console handler.
    rotate : dict, optional
        ``{"mode": "size", "max_bytes": ..., "backup_count": ...}`` or
        ``{"mode": "time", "when": "D", "interval": 1, "backup_count": ...}``.
    tz : str
        ``"UTC"`` or ``"local"``.
    capture_warnings : bool
        Route ``warnings.warn`` through logging.
    context : dict, optional
        Fields pushed with :func:`push_context` right away.

    Returns
    -------
    list[logging.Handler]
        The handlers now attached to the root logger.
    """
    root = logging.getLogger()
    while _installed:
        old = _installed.pop()
        root.removeHandler(old)
        old.close()
    root.setLevel(getattr(logging, log_level.upper()))

    handlers: List[logging.Handler] = []
    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", color, tz))
        handlers.append(console)
    if log_file:
        handlers.append(_create_file_handler(log_file, rotate, json, tz))
    for handler in handlers:
        root.addHandler(handler)
    _installed.extend(handlers)

    if context:
        push_context(**context)
    logging.captureWarnings(capture_warnings)

    return handlers


def _create_file_handler(
    log_file: str,
    rotate: Optional[Dict[str, Any]],
    json_format: bool,
    tz: str,
) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    mode = rotate.get("mode", "size") if rotate else None
    if mode is None:
        handler: logging.Handler = logging.FileHandler(log_file)
    elif mode == "size":
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=rotate.get("max_bytes", 5_000_000),
            backupCount=rotate.get("backup_count", 5),
        )
    elif mode == "time":
        handler = logging.handlers.TimedRotatingFileHandler(
            log_file,
            when=rotate.get("when", "D"),
            interval=rotate.get("interval", 1),
            backupCount=rotate.get("backup_count", 7),
        )
    else:
        raise ValueError(f"Unknown rotation mode {mode!r}; use 'size' or 'time'")

    handler.setFormatter(ContextFormatter("json" if json_format else "human", False, tz))
    return handler


def push_context(**kwargs: Any) -> None:
    """Add fields to every later record from this context.

    >>> push_context(driver="DexArm Driver", job="logo")
    """
    _context_var.set({**_context_var.get(), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Drop the given fields, or all of them when *keys* is None."""
    if keys is None:
        _context_var.set({})
        return
    remaining = dict(_context_var.get())
    for key in keys:
        remaining.pop(key, None)
    _context_var.set(remaining)
