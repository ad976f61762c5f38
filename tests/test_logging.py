"""Tests for the structured log formatter and root logger setup."""
import json
import logging

from smack_builders.utils.logging import StructuredFormatter, configure_logging


def _record(msg="hello %s", args=("world",), **extra):
    record = logging.LogRecord("smack.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_formatter_fields():
    entry = json.loads(StructuredFormatter().format(_record()))
    assert entry["level"] == "INFO"
    assert entry["logger"] == "smack.test"
    assert entry["message"] == "hello world"
    assert "timestamp" in entry
    assert "job_id" not in entry


def test_structured_formatter_job_id():
    entry = json.loads(StructuredFormatter().format(_record(job_id="job_abc")))
    assert entry["job_id"] == "job_abc"


def test_structured_formatter_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        import sys

        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    entry = json.loads(StructuredFormatter().format(record))
    assert "RuntimeError: boom" in entry["exception"]


def test_configure_logging_json():
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    try:
        configure_logging("debug", "json")
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

        configure_logging("warning", "structured")
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, StructuredFormatter)
    finally:
        root.handlers[:] = saved[1]
        root.setLevel(saved[0])
