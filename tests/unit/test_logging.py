import json
import logging
import sys

import pytest

from ircdconf.config.logging_directives import RawLoggingDirective, normalize_logging_directive
from ircdconf.core.logging import (
    JSONLogFormatter,
    LogTypeFilter,
    ROOT_LOGGER_NAME,
    configure_logging,
    get_logger,
    record_log_type,
)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    configure_logging([], force=True)


def test_file_directive_writes_filtered_json(tmp_path) -> None:
    log_file = tmp_path / "logs" / "ircd.log"
    directive = normalize_logging_directive(
        RawLoggingDirective(method="file", level="info", types="server opers -connect", filename=str(log_file))
    )
    configure_logging([directive], service_name="ircd-test", force=True)

    logger = get_logger("ircdconf.test.logging")
    logger.info("server starting", extra={"log_type": "server"})
    logger.info("client connected", extra={"log_type": "connect"})
    logger.info("channel created", extra={"log_type": "channels"})
    logger.debug("oper details", extra={"log_type": "opers"})
    logger.warning("oper failed", extra={"log_type": "opers"})

    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert [record["message"] for record in records] == ["server starting", "oper failed"]
    assert records[0]["@timestamp"]
    assert records[0]["service"]["name"] == "ircd-test"
    assert records[0]["log"] == {"level": "info", "logger": "ircdconf.test.logging", "type": "server"}
    assert records[1]["log"]["level"] == "warning"


def test_configure_logging_sets_lowest_directive_level(tmp_path) -> None:
    directives = [
        normalize_logging_directive(
            RawLoggingDirective(method="file", level="error", types="*", filename=str(tmp_path / "a.log"))
        ),
        normalize_logging_directive(
            RawLoggingDirective(method="file", level="debug", types="*", filename=str(tmp_path / "b.log"))
        ),
    ]
    configure_logging(directives, force=True)
    root = logging.getLogger(ROOT_LOGGER_NAME)
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2
    assert root.propagate is False


def test_configure_logging_without_force_keeps_existing_handlers(tmp_path) -> None:
    directive = normalize_logging_directive(
        RawLoggingDirective(method="file", level="info", types="*", filename=str(tmp_path / "a.log"))
    )
    configure_logging([directive], force=True)
    configure_logging([])
    assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1


def test_wildcard_filter_honours_exclusions() -> None:
    type_filter = LogTypeFilter(["*"], ["userinput"])
    assert type_filter.filter(logging.makeLogRecord({"name": "ircdconf.server", "log_type": "server"}))
    assert type_filter.filter(logging.makeLogRecord({"name": "ircdconf.opers"}))
    assert not type_filter.filter(logging.makeLogRecord({"name": "ircdconf.x", "log_type": "userinput"}))


def test_record_log_type_falls_back_to_logger_name() -> None:
    assert record_log_type(logging.makeLogRecord({"name": "ircdconf.config"})) == "config"
    assert record_log_type(logging.makeLogRecord({"name": "ircdconf.config", "log_type": "server"})) == "server"


def test_formatter_includes_exception_text() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.getLogger("ircdconf.test").makeRecord(
            "ircdconf.test", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info()
        )
    payload = json.loads(JSONLogFormatter(service_name="svc").format(record))
    assert payload["message"] == "failed"
    assert "RuntimeError: boom" in payload["error"]["message"]


def test_get_logger_routes_package_loggers_through_root() -> None:
    configure_logging([], force=True)
    logger = get_logger("ircdconf.test.bootstrap")
    root = logging.getLogger(ROOT_LOGGER_NAME)
    assert logger.handlers == []
    assert logger.propagate is True
    assert len(root.handlers) == 1


def test_get_logger_gives_foreign_loggers_their_own_handler() -> None:
    logger = get_logger("ircdconf_test_foreign.logger", level="DEBUG")
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert get_logger("ircdconf_test_foreign.logger") is logger
    assert len(logger.handlers) == 1
