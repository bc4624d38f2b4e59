"""Logging setup for the transport core.

Environment variables:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL. Default: INFO
- LOG_FORMAT: 'text' or 'json'. Default: text

Records from the action commit loop carry their process context through
``extra=``: ``sim_time`` (fm), ``id_process`` and ``process_type``. Both
formatters render it; the JSON formatter also keeps any other extra field.

Usage:
    from smash.logging_config import configure_logging
    configure_logging()  # once, before running an experiment
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import IO, Any, ClassVar

PROCESS_CONTEXT = ("sim_time", "id_process", "process_type")

# Attributes every LogRecord has; anything else came in through extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}
_WITH_SOURCE = frozenset({logging.DEBUG, logging.ERROR, logging.CRITICAL})
_FORMATS = ("text", "json")


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Fields attached to ``record`` through ``extra=``, sorted by name."""
    return {k: v for k, v in sorted(vars(record).items()) if k not in _RECORD_ATTRS}


def describe_process(extras: dict[str, Any]) -> str:
    """Short text form of a process context, e.g. ``t=1.250 #7 ELASTIC``."""
    parts = []
    if "sim_time" in extras:
        parts.append(f"t={extras['sim_time']:.3f}")
    if "id_process" in extras:
        parts.append(f"#{extras['id_process']}")
    if "process_type" in extras:
        parts.append(str(extras["process_type"]))
    return " ".join(parts)


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Process context fields sit at the top level next to the message; other
    extra fields are grouped under ``extra``. DEBUG and ERROR records carry
    their ``source`` as ``path:line``.
    """

    def format(self, record: logging.LogRecord) -> str:
        extras = record_extras(record)
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in PROCESS_CONTEXT:
            if key in extras:
                entry[key] = extras.pop(key)
        if record.levelno in _WITH_SOURCE:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if extras:
            entry["extra"] = extras
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``HH:MM:SS.mmm LEVEL [module] message {t=... #n TYPE} (file:line)``.

    Logger names lose their ``smash.`` prefix. The process context block
    appears only when the record has one, the source only for DEBUG and
    ERROR.
    """

    COLORS: ClassVar[dict[int, str]] = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self, use_colors: bool = True, stream: IO[str] | None = None) -> None:
        super().__init__(datefmt="%H:%M:%S")
        stream = stream if stream is not None else sys.stderr
        self.use_colors = use_colors and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8s}"
        if self.use_colors and record.levelno in self.COLORS:
            level = f"{self.COLORS[record.levelno]}{level}{self.RESET}"
        name = record.name.removeprefix("smash.")
        stamp = f"{self.formatTime(record, self.datefmt)}.{int(record.msecs):03d}"

        line = f"{stamp} {level} [{name}] {record.getMessage()}"
        context = describe_process(record_extras(record))
        if context:
            line += f" {{{context}}}"
        if record.levelno in _WITH_SOURCE:
            line += f" ({record.filename}:{record.lineno})"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def parse_log_level(name: str) -> int:
    """Map a level name (case-insensitive) to its constant; INFO if unknown."""
    level = logging.getLevelNamesMapping().get(name.strip().upper(), logging.NOTSET)
    return level if level != logging.NOTSET else logging.INFO


def get_log_level() -> int:
    return parse_log_level(os.environ.get("LOG_LEVEL", "INFO"))


def get_log_format() -> str:
    """LOG_FORMAT from the environment; anything unknown means 'text'."""
    name = os.environ.get("LOG_FORMAT", "text").strip().lower()
    return name if name in _FORMATS else "text"


def configure_logging(
    level: int | None = None,
    format_type: str | None = None,
    use_colors: bool = True,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Route the ``smash`` loggers (and uvicorn's access log) to one handler.

    Calling it again replaces the handler instead of adding a second one.

    Args:
        level: Log level constant. Defaults to LOG_LEVEL.
        format_type: 'text' or 'json'. Defaults to LOG_FORMAT.
        use_colors: Colour level names in text output when the stream is a TTY.
        stream: Output stream. Defaults to stderr, keeping stdout free for
            run summaries.

    Returns:
        The installed handler.
    """
    level = get_log_level() if level is None else level
    format_type = get_log_format() if format_type is None else format_type
    stream = stream if stream is not None else sys.stderr

    handler = logging.StreamHandler(stream)
    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter(use_colors=use_colors, stream=stream))

    for name in ("smash", "uvicorn.access"):
        target = logging.getLogger(name)
        target.handlers.clear()
        target.addHandler(handler)
        target.setLevel(level)
        target.propagate = False

    logging.getLogger("smash").debug(
        "Logging configured: level=%s, format=%s", logging.getLevelName(level), format_type
    )
    return handler


def get_logger(name: str) -> logging.Logger:
    """Logger inside the ``smash`` namespace; other names get the prefix."""
    if name != "smash" and not name.startswith("smash."):
        name = f"smash.{name}"
    return logging.getLogger(name)
