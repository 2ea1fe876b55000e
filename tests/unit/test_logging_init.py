from __future__ import annotations

import logging
from io import StringIO

from coursecat_import.logging.init import (
    APP_LOGGER_NAME,
    LabeledFormatter,
    log_summary,
    set_debug,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == APP_LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_idempotent():
    logger1 = setup_logging()
    logger2 = setup_logging()
    assert logger1 is logger2
    assert len(logger1.handlers) == 1


def test_labeled_prefixes_and_child_loggers(capsys):
    """Module loggers inside the package share the labeled handler."""
    setup_logging()
    child = logging.getLogger(f"{APP_LOGGER_NAME}.services.processor")
    child.info("Importing")
    child.warning("careful")
    child.error("broken")
    log_summary("rows=1 created=1 updated=0 deleted=0 errors=0 elapsed_sec=0 throughput_rps=0")
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines == [
        "INFO Importing",
        "WARN careful",
        "ERROR broken",
        "SUMMARY rows=1 created=1 updated=0 deleted=0 errors=0 elapsed_sec=0 throughput_rps=0",
    ]


def test_log_summary_sets_up_logging(capsys):
    log_summary("rows=0")
    assert capsys.readouterr().out.strip() == "SUMMARY rows=0"
    assert len(logging.getLogger(APP_LOGGER_NAME).handlers) == 1


def test_debug_hidden_until_enabled(capsys):
    logger = setup_logging()
    logger.debug("hidden")
    set_debug(logger)
    logger.debug("shown")
    assert capsys.readouterr().out.strip() == "DEBUG shown"


def test_formatter_unknown_level_uses_level_name():
    stream = StringIO()
    logger = logging.getLogger("coursecat_import_test.formatter")
    logger.propagate = False
    handler = logging.StreamHandler(stream)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.setLevel(1)
    try:
        logging.addLevelName(15, "TRACE")
        logger.log(15, "x")
    finally:
        logger.removeHandler(handler)
    assert stream.getvalue().strip() == "TRACE x"
