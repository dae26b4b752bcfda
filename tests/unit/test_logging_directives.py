import logging

import pytest

from ircdconf.config.errors import ConfigSchemaError, LoggingConfigError
from ircdconf.config.logging_directives import (
    LOG_LEVEL_NAMES,
    RawLoggingDirective,
    normalize_logging_directive,
    normalize_logging_directives,
    parse_raw_logging_directives,
)


def test_directive_resolves_methods_level_and_types() -> None:
    directive = normalize_logging_directive(
        RawLoggingDirective(method="file stdout", level="info", types="server -connect", filename="ircd.log")
    )
    assert directive.method_file is True
    assert directive.method_stdout is True
    assert directive.method_stderr is False
    assert directive.level == logging.INFO
    assert directive.level_name == "info"
    assert directive.types == frozenset({"server"})
    assert directive.excluded_types == frozenset({"connect"})
    assert directive.filename == "ircd.log"


def test_methods_and_levels_are_case_insensitive() -> None:
    directive = normalize_logging_directive(
        RawLoggingDirective(method="STDERR  Stdout", level="WARNING", types="*")
    )
    assert directive.method_stderr is True
    assert directive.method_stdout is True
    assert directive.method_file is False
    assert directive.level == logging.WARNING


def test_level_aliases_share_a_level() -> None:
    assert LOG_LEVEL_NAMES["warn"] == LOG_LEVEL_NAMES["warnings"] == logging.WARNING
    assert LOG_LEVEL_NAMES["errors"] == logging.ERROR
    with pytest.raises(TypeError):
        LOG_LEVEL_NAMES["trace"] = 5  # type: ignore[index]


def test_file_method_requires_filename() -> None:
    with pytest.raises(LoggingConfigError, match="'file' method but 'filename' is empty"):
        normalize_logging_directive(RawLoggingDirective(method="file", level="info", types="server"))


def test_unknown_level_is_rejected() -> None:
    with pytest.raises(LoggingConfigError, match="could not translate log level 'verbose'"):
        normalize_logging_directive(RawLoggingDirective(method="stderr", level="verbose", types="server"))


def test_bare_exclusion_marker_is_rejected() -> None:
    with pytest.raises(LoggingConfigError, match="'-' with no type to exclude"):
        normalize_logging_directive(RawLoggingDirective(method="stderr", level="info", types="server -"))


def test_directive_with_only_exclusions_is_rejected() -> None:
    with pytest.raises(LoggingConfigError, match="no types to log"):
        normalize_logging_directive(RawLoggingDirective(method="stderr", level="info", types="-connect -server"))


def test_directive_with_no_types_is_rejected() -> None:
    with pytest.raises(LoggingConfigError, match="no types to log"):
        normalize_logging_directive(RawLoggingDirective(method="stderr", level="debug", types="   "))


def test_parse_raw_directives_from_document_list() -> None:
    raw = parse_raw_logging_directives(
        [
            {"method": "stderr", "type": "* -userinput", "level": "debug"},
            {"method": "file", "filename": "ircd.log", "type": "server", "level": "error"},
        ]
    )
    directives = normalize_logging_directives(raw)
    assert len(directives) == 2
    assert directives[0].types == frozenset({"*"})
    assert directives[0].excluded_types == frozenset({"userinput"})
    assert directives[1].level == logging.ERROR


def test_parse_raw_directives_rejects_non_list() -> None:
    assert parse_raw_logging_directives(None) == []
    with pytest.raises(ConfigSchemaError, match="'logging' must be a list"):
        parse_raw_logging_directives({"method": "stderr"})
    with pytest.raises(ConfigSchemaError, match="logging entry #0 must be an object"):
        parse_raw_logging_directives(["stderr"])


def test_snapshot_is_json_friendly() -> None:
    directive = normalize_logging_directive(
        RawLoggingDirective(method="stdout", level="info", types="server channels -connect")
    )
    assert directive.snapshot() == {
        "methods": {"file": False, "stdout": True, "stderr": False},
        "filename": "",
        "level": "info",
        "types": ["channels", "server"],
        "excluded_types": ["connect"],
    }
