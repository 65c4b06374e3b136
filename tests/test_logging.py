"""Tests for the structured log formatter."""

import logging

from maturity_engine.core.logging import StructuredFormatter, get_logger


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("engine", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_area_context_included():
    line = StructuredFormatter().format(
        _record("Area scored", run_area_id="abc", operation="evaluate_area", status="completed")
    )

    assert "message=Area scored" in line
    assert "run_area_id=abc" in line
    assert "operation=evaluate_area" in line
    assert "status=completed" in line


def test_extra_data_flattened():
    line = StructuredFormatter().format(_record("x", extra_data={"step": 2}))

    assert "step=2" in line


def test_get_logger_configures_once():
    logger = get_logger("maturity_engine.test_logger")
    handlers = list(logger.handlers)

    assert get_logger("maturity_engine.test_logger").handlers == handlers
    assert len(handlers) == 1
