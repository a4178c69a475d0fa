"""Logging setup for the Sinclair client.

Library modules log through plain ``logging.getLogger(__name__)`` and attach
structured fields with ``extra={...}``. This module turns those records into
JSON lines and/or human-readable text, stamps each with the current
correlation id, and wires handlers onto the ``sinclair_ac`` package logger.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import override

from sinclair_ac.correlation import get_correlation_id

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "SinclairLogger",
    "configure_logging",
    "get_logger",
]

# Attributes every LogRecord has; anything else came in through extra={...}
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
    | {"message", "asctime", "correlation_id", "extra_data", "taskName"},
)

_handlers_by_logger: dict[str, list[logging.Handler]] = {}


def record_context(record: logging.LogRecord) -> dict[str, object]:
    """Structured fields attached to a record via extra={...}."""
    context = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS and not k.startswith("_")}
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping):
        context.update(extra_data)
    return context


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        context = record_context(record)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs text lines with a short correlation id prefix."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.correlation_id = f"[{correlation_id[:8]}]" if correlation_id else "[--------]"

        formatted = super().format(record)
        context = record_context(record)
        if context:
            context_str = " | ".join(f"{k}={v}" for k, v in context.items())
            formatted = f"{formatted} | {context_str}"
        return formatted


def _human_handler(human_output: str | None) -> logging.Handler:
    normalized_output = human_output or "stdout"
    if normalized_output == "stdout":
        return logging.StreamHandler(sys.stdout)
    if normalized_output == "stderr":
        return logging.StreamHandler(sys.stderr)
    try:
        human_path = Path(normalized_output)
        human_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(human_path, mode="a")
    except OSError as e:
        print(f"Warning: Failed to create human log file {normalized_output}: {e}", file=sys.stderr)
        return logging.StreamHandler(sys.stdout)


def configure_logging(
    level: int | str = logging.INFO,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
    name: str | None = None,
) -> logging.Logger:
    """Attach formatters and handlers to a logger (the package logger by default).

    Calling it again replaces the handlers it installed before, so the CLI can
    reconfigure after parsing flags.

    Args:
        level: Logger level (int or name such as "DEBUG")
        log_format: "json", "human" or "both" (default: SINCLAIR_LOG_FORMAT)
        json_file: File for JSON lines (default: SINCLAIR_LOG_JSON_FILE; JSON
            goes to stderr when the format asks for it and no file is set)
        human_output: "stdout", "stderr" or a file path
        name: Logger name

    Returns:
        The configured logger
    """
    from sinclair_ac.const import (
        SINCLAIR_LOG_FORMAT,
        SINCLAIR_LOG_HUMAN_OUTPUT,
        SINCLAIR_LOG_JSON_FILE,
        SINCLAIR_LOG_NAME,
    )

    name = name or SINCLAIR_LOG_NAME
    log_format = log_format or SINCLAIR_LOG_FORMAT
    json_file = json_file or SINCLAIR_LOG_JSON_FILE
    human_output = human_output or SINCLAIR_LOG_HUMAN_OUTPUT

    logger = logging.getLogger(name)
    for handler in _handlers_by_logger.pop(name, []):
        logger.removeHandler(handler)
        handler.close()

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    installed: list[logging.Handler] = []
    if log_format in ("json", "both"):
        json_handler: logging.Handler
        if json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                json_handler = logging.FileHandler(json_path, mode="a")
            except OSError as e:
                print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)
                json_handler = logging.StreamHandler(sys.stderr)
        else:
            json_handler = logging.StreamHandler(sys.stderr)
        json_handler.setFormatter(JSONFormatter())
        installed.append(json_handler)

    if log_format in ("human", "both"):
        human_handler = _human_handler(human_output)
        human_handler.setFormatter(HumanReadableFormatter())
        installed.append(human_handler)

    for handler in installed:
        logger.addHandler(handler)
    logger.propagate = False
    _handlers_by_logger[name] = installed
    return logger


class SinclairLogger:
    """Thin wrapper taking structured context as a keyword argument.

    Records carry the context under ``extra_data`` so it never collides with
    LogRecord attributes.
    """

    def __init__(self, name: str) -> None:
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload = {"extra_data": dict(extra)} if extra else None
        self.logger.log(level, msg, *args, extra=extra_payload, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR with the active exception's traceback."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra, stacklevel=2)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


def get_logger(name: str) -> SinclairLogger:
    """Return a SinclairLogger for ``name``."""
    return SinclairLogger(name)
