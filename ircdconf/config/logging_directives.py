"""Normalization of raw ``logging`` entries into resolved sink directives."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ircdconf.config.errors import ConfigSchemaError, LoggingConfigError


LOG_LEVEL_NAMES: Mapping[str, int] = MappingProxyType(
    {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "warning": logging.WARNING,
        "warnings": logging.WARNING,
        "error": logging.ERROR,
        "errors": logging.ERROR,
    }
)
EXCLUDE_MARKER = "-"


@dataclass(frozen=True, slots=True)
class RawLoggingDirective:
    method: str = ""
    level: str = ""
    types: str = ""
    filename: str = ""


@dataclass(frozen=True, slots=True)
class LoggingDirective:
    method_file: bool
    method_stdout: bool
    method_stderr: bool
    level: int
    level_name: str
    types: frozenset[str]
    excluded_types: frozenset[str]
    filename: str = ""

    def snapshot(self) -> dict[str, Any]:
        return {
            "methods": {
                "file": self.method_file,
                "stdout": self.method_stdout,
                "stderr": self.method_stderr,
            },
            "filename": self.filename,
            "level": self.level_name,
            "types": sorted(self.types),
            "excluded_types": sorted(self.excluded_types),
        }


def parse_raw_logging_directives(raw: Any) -> list[RawLoggingDirective]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigSchemaError("'logging' must be a list")
    directives: list[RawLoggingDirective] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigSchemaError(f"logging entry #{index} must be an object")
        directives.append(
            RawLoggingDirective(
                method=str(item.get("method") or ""),
                level=str(item.get("level") or ""),
                types=str(item.get("type") or ""),
                filename=str(item.get("filename") or ""),
            )
        )
    return directives


def normalize_logging_directive(raw: RawLoggingDirective) -> LoggingDirective:
    methods = {token.lower() for token in raw.method.split()}
    method_file = "file" in methods
    if method_file and not raw.filename:
        raise LoggingConfigError("logging configuration specifies 'file' method but 'filename' is empty")

    level_name = raw.level.strip().lower()
    level = LOG_LEVEL_NAMES.get(level_name)
    if level is None:
        raise LoggingConfigError(f"could not translate log level '{raw.level}'")

    included: set[str] = set()
    excluded: set[str] = set()
    for token in raw.types.split():
        if token == EXCLUDE_MARKER:
            raise LoggingConfigError("encountered logging type '-' with no type to exclude")
        if token.startswith(EXCLUDE_MARKER):
            excluded.add(token[len(EXCLUDE_MARKER):])
        else:
            included.add(token)
    if not included:
        raise LoggingConfigError("logger has no types to log")

    return LoggingDirective(
        method_file=method_file,
        method_stdout="stdout" in methods,
        method_stderr="stderr" in methods,
        level=level,
        level_name=level_name,
        types=frozenset(included),
        excluded_types=frozenset(excluded),
        filename=raw.filename,
    )


def normalize_logging_directives(items: Iterable[RawLoggingDirective]) -> tuple[LoggingDirective, ...]:
    return tuple(normalize_logging_directive(item) for item in items)
