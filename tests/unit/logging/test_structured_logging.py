"""Tests for logging configuration."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from extforge.core.utils.logging import StructuredJSONFormatter, configure_logging, get_logger


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging's changes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="extforge.core.coordinator.stages",
        level=logging.WARNING,
        pathname=__file__,
        lineno=12,
        msg="Build of %s failed",
        args=("notes",),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_structured_formatter_emits_json():
    entry = json.loads(StructuredJSONFormatter().format(_record(project_id="notes")))

    assert entry["level"] == "WARNING"
    assert entry["message"] == "Build of notes failed"
    assert entry["context"]["logger_name"] == "extforge.core.coordinator.stages"
    assert entry["context"]["line"] == 12
    assert entry["context"]["project_id"] == "notes"
    assert entry["timestamp"].endswith("+00:00")


def test_structured_formatter_includes_exception():
    try:
        raise RuntimeError("compile failed")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    context = json.loads(StructuredJSONFormatter().format(record))["context"]

    assert context["error_type"] == "RuntimeError"
    assert context["error_message"] == "compile failed"
    assert "Traceback" in context["stack_trace"]


def test_get_logger_binds_context():
    plain = get_logger("extforge.test")
    bound = get_logger("extforge.test", project_id="notes")

    assert isinstance(plain, logging.Logger)
    assert isinstance(bound, logging.LoggerAdapter)
    assert bound.extra == {"project_id": "notes"}


def test_configure_logging_to_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "build.jsonl"

    configure_logging(level="debug", filename=str(log_file), structured=True)
    get_logger("extforge.test", stage_id="build").info("stage started")
    logging.getLogger().handlers[0].flush()

    entry = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert logging.getLogger().level == logging.DEBUG
    assert entry["message"] == "stage started"
    assert entry["context"]["stage_id"] == "build"


def test_configure_logging_text_format(tmp_path, restore_root_logger):
    log_file = tmp_path / "build.log"

    configure_logging(
        level="INFO", format_string="%(levelname)s|%(message)s", filename=str(log_file)
    )
    logging.getLogger("extforge.test").info("hello")
    logging.getLogger("extforge.test").debug("hidden")
    logging.getLogger().handlers[0].flush()

    assert log_file.read_text() == "INFO|hello\n"
