from __future__ import annotations

import json
import logging
import sys

from app.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="app.services.moderation",
        level=level,
        pathname="moderation.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ---- setup_logging ----


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_uvicorn_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING


def test_setup_logging_json_mode_installs_json_formatter() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


# ---- container format ----


def test_container_format_omits_location_below_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.INFO))
    assert "hello" in output
    assert "[moderation.py:" not in output


def test_container_format_adds_location_for_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.WARNING, "Illegal course transition"))
    assert "Illegal course transition" in output
    assert "[moderation.py:42]" in output


def test_container_format_is_not_json() -> None:
    output = _ContainerFormatter().format(_record())
    assert "INFO" in output
    assert "app.services.moderation" in output
    assert not output.startswith("{")


# ---- JSON format ----


def test_json_format_basic_fields() -> None:
    parsed = json.loads(_JsonFormatter().format(_record(msg="Course moved")))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "app.services.moderation"
    assert parsed["message"] == "Course moved"
    assert "timestamp" in parsed


def test_json_format_lifts_request_and_workflow_context() -> None:
    record = _record(
        request_id="abc-123",
        method="PUT",
        path="/admin/courses/x/status",
        duration_ms=12.5,
        course_id="c-1",
        actor_id="u-9",
    )
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "PUT"
    assert parsed["duration_ms"] == 12.5
    assert parsed["course_id"] == "c-1"
    assert parsed["actor_id"] == "u-9"
    assert "enrollment_id" not in parsed


def test_json_format_includes_exception() -> None:
    try:
        raise RuntimeError("disk on fire")
    except RuntimeError:
        record = _record(logging.ERROR, "Unit of work failed")
        record.exc_info = sys.exc_info()
        output = _JsonFormatter().format(record)

    parsed = json.loads(output)
    assert "RuntimeError: disk on fire" in parsed["exception"]
