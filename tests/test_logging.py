from __future__ import annotations

import json
import logging

from webforge.utils.logging import (
    JSONFormatter,
    RequestContextFilter,
    bind_request_id,
    log_security_event,
    reset_request_id,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("webforge.test", logging.INFO, __file__, 10, "Deployed %s", ("v1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context() -> None:
    line = json.loads(JSONFormatter().format(_record(site_id="s1", request_id="r1")))
    assert line["message"] == "Deployed v1"
    assert line["site_id"] == "s1"
    assert line["request_id"] == "r1"
    assert "user_id" not in line


def test_request_context_filter_uses_bound_id() -> None:
    token = bind_request_id("req-42")
    try:
        record = _record()
        RequestContextFilter().filter(record)
    finally:
        reset_request_id(token)
    assert record.request_id == "req-42"

    record = _record()
    RequestContextFilter().filter(record)
    assert record.request_id == "-"
    assert "request_id" not in json.loads(JSONFormatter().format(record))


def test_security_events_drop_secrets(caplog) -> None:
    logger = logging.getLogger("webforge.security-test")
    with caplog.at_level(logging.WARNING, logger="webforge.security-test"):
        log_security_event("failed_login", {"email": "a@example.com", "password": "hunter2"}, logger)

    record = caplog.records[-1]
    assert record.getMessage() == "SECURITY EVENT: failed_login"
    assert record.email == "a@example.com"
    assert not hasattr(record, "password")
