"""Tests for request context in logs and the JSON formatter."""

import json
import logging

from groupbuy.api.logging_config import JSONFormatter, RequestContextFilter


def access_records(caplog):
    return [r for r in caplog.records if r.name == "groupbuy.api.access"]


def test_access_log_carries_request_and_user_id(client, vendor, caplog):
    caplog.set_level(logging.INFO, logger="groupbuy.api.access")

    response = client.get("/users/me", headers={**vendor["headers"], "X-Request-ID": "req-0001-me"})

    assert response.status_code == 200
    record = access_records(caplog)[-1]
    assert record.request_id == "req-0001-me"
    assert record.user_id == vendor["id"]
    assert record.status_code == 200
    assert record.method == "GET"
    assert record.path == "/users/me"
    assert record.duration_ms >= 0


def test_access_log_without_authentication(client, caplog):
    caplog.set_level(logging.INFO, logger="groupbuy.api.access")

    client.get("/health")

    record = access_records(caplog)[-1]
    assert record.user_id is None
    assert record.request_id


def test_domain_error_log_includes_request_context(client, vendor, caplog):
    caplog.set_level(logging.WARNING, logger="groupbuy.api.main")

    response = client.get(
        "/groups/64b7f0c2a1b2c3d4e5f60718",
        headers={**vendor["headers"], "X-Request-ID": "req-0002-missing"},
    )

    assert response.status_code == 404
    assert response.json()["error"]["requestId"] == "req-0002-missing"
    warning = [r for r in caplog.records if r.name == "groupbuy.api.main"][-1]
    assert warning.request_id == "req-0002-missing"
    assert warning.user_id == vendor["id"]
    assert warning.status_code == 404


def test_json_formatter_merges_extra_fields():
    record = logging.makeLogRecord({
        "name": "groupbuy.test",
        "levelname": "INFO",
        "levelno": logging.INFO,
        "msg": "Joined %s",
        "args": ("group",),
    })
    record.user_id = "abc"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Joined group"
    assert payload["logger"] == "groupbuy.test"
    assert payload["user_id"] == "abc"
    assert "msg" not in payload
    assert "args" not in payload


def test_context_filter_leaves_explicit_request_id():
    record = logging.makeLogRecord({"msg": "x"})
    record.request_id = "explicit-id"

    assert RequestContextFilter().filter(record) is True
    assert record.request_id == "explicit-id"


def test_context_filter_outside_request():
    record = logging.makeLogRecord({"msg": "x"})

    RequestContextFilter().filter(record)

    assert not hasattr(record, "request_id")
