"""JSON log output.

Log shippers index these keys; a renamed or missing field silently
breaks every saved query that filters on it.
"""

from __future__ import annotations

import json
import logging
import sys

from app.core.logging import _JsonFormatter


def _record(level: int = logging.INFO, msg: str = "Certificate issued", args: tuple = (), exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="app.services.certificate_service",
        level=level,
        pathname="certificate_service.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


def test_output_is_one_json_object() -> None:
    output = _JsonFormatter().format(_record(msg="Learner %s enrolled", args=("abc",)))

    assert "\n" not in output
    parsed = json.loads(output)
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "app.services.certificate_service"
    assert parsed["message"] == "Learner abc enrolled"
    assert "timestamp" in parsed


def test_request_context_fields_are_top_level() -> None:
    record = _record()
    record.request_id = "req-42"  # type: ignore[attr-defined]
    record.method = "POST"  # type: ignore[attr-defined]
    record.path = "/v1/performance"  # type: ignore[attr-defined]
    record.status_code = 201  # type: ignore[attr-defined]
    record.duration_ms = 3.4  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["request_id"] == "req-42"
    assert parsed["method"] == "POST"
    assert parsed["path"] == "/v1/performance"
    assert parsed["status_code"] == 201
    assert parsed["duration_ms"] == 3.4


def test_domain_fields_are_top_level() -> None:
    logger = logging.getLogger("test.structured")
    record = logger.makeRecord(
        logger.name,
        logging.INFO,
        "x.py",
        1,
        "Enrollment active -> completed",
        (),
        None,
        extra={"enrollment_id": "e-1", "course_id": "c-1"},
    )

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["enrollment_id"] == "e-1"
    assert parsed["course_id"] == "c-1"
    assert "user_id" not in parsed  # absent fields are omitted, not null


def test_exception_is_serialized() -> None:
    try:
        raise RuntimeError("pool exhausted")
    except RuntimeError:
        record = _record(logging.ERROR, "Certificate issuance failed", exc_info=sys.exc_info())
        output = _JsonFormatter().format(record)

    parsed = json.loads(output)
    assert "RuntimeError: pool exhausted" in parsed["exception"]
