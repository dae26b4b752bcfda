"""Structured JSON logging wired from resolved logging directives."""

from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
from pathlib import Path
import sys
from typing import Iterable

from ircdconf.config.logging_directives import LoggingDirective


ROOT_LOGGER_NAME = "ircdconf"
WILDCARD_TYPE = "*"


def _strip_empty(value: object) -> object | None:
    if isinstance(value, dict):
        cleaned = {key: _strip_empty(item) for key, item in value.items()}
        return {key: item for key, item in cleaned.items() if item is not None} or None
    if isinstance(value, list):
        cleaned_list = [_strip_empty(item) for item in value]
        return [item for item in cleaned_list if item is not None] or None
    if value in ("", None):
        return None
    return value


def record_log_type(record: logging.LogRecord) -> str:
    explicit = getattr(record, "log_type", None)
    if explicit:
        return str(explicit)
    return record.name.rsplit(".", 1)[-1]


class JSONLogFormatter(logging.Formatter):
    def __init__(self, service_name: str = "ircdconf") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).isoformat(timespec="microseconds")
        payload: dict[str, object] = {
            "@timestamp": timestamp,
            "message": record.getMessage(),
            "log": {
                "level": record.levelname.lower(),
                "logger": record.name,
                "type": record_log_type(record),
            },
            "service": {
                "name": getattr(record, "service_name", self.service_name),
            },
            "error": {
                "message": self.formatException(record.exc_info) if record.exc_info else None,
            },
        }
        cleaned = _strip_empty(payload) or {}
        return json.dumps(cleaned, separators=(",", ":"))


class LogTypeFilter(logging.Filter):
    def __init__(self, types: Iterable[str], excluded_types: Iterable[str] = ()) -> None:
        super().__init__()
        self.types = frozenset(types)
        self.excluded_types = frozenset(excluded_types)

    def filter(self, record: logging.LogRecord) -> bool:
        log_type = record_log_type(record)
        if log_type in self.excluded_types:
            return False
        return WILDCARD_TYPE in self.types or log_type in self.types


def _directive_handlers(directive: LoggingDirective, formatter: logging.Formatter) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if directive.method_file:
        log_file = Path(directive.filename)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    if directive.method_stdout:
        handlers.append(logging.StreamHandler(sys.stdout))
    if directive.method_stderr:
        handlers.append(logging.StreamHandler(sys.stderr))
    type_filter = LogTypeFilter(directive.types, directive.excluded_types)
    for handler in handlers:
        handler.setLevel(directive.level)
        handler.setFormatter(formatter)
        handler.addFilter(type_filter)
    return handlers


def configure_logging(
    directives: Iterable[LoggingDirective],
    *,
    service_name: str = "ircdconf",
    force: bool = False,
) -> None:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if getattr(root, "_ircdconf_configured", False) and not force:
        return

    formatter = JSONLogFormatter(service_name=service_name)
    for existing in list(root.handlers):
        existing.close()
    root.handlers.clear()

    lowest = logging.CRITICAL
    for directive in directives:
        for handler in _directive_handlers(directive, formatter):
            root.addHandler(handler)
        lowest = min(lowest, directive.level)
    root.setLevel(lowest if root.handlers else logging.WARNING)

    root.propagate = False
    setattr(root, "_ircdconf_configured", True)


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        # configure_logging has not run yet; route through a bootstrap stderr
        # handler on the package root so a later configure_logging replaces it
        parent = logging.getLogger(ROOT_LOGGER_NAME)
        if not parent.handlers:
            bootstrap = logging.StreamHandler()
            bootstrap.setFormatter(JSONLogFormatter())
            parent.addHandler(bootstrap)
            parent.setLevel(level)
            parent.propagate = False
        if logger is not parent:
            logger.setLevel(logging.NOTSET)
            logger.propagate = True
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(JSONLogFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
