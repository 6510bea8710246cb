"""Tests for error handling in the GroupBuy API.

Tests the response envelope for domain errors, validation errors, unknown
routes, rate limiting and unexpected failures.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient

from groupbuy.api.exceptions import (
    ConcurrentModificationError,
    GroupBuyException,
    PermissionDeniedError,
    ResourceNotFoundError,
    StateConflictError,
)
from groupbuy.api.main import create_app
from groupbuy.api.rate_limit import FixedWindowRateLimiter
from groupbuy.config import Environment, RateLimitSettings
from groupbuy.store.database import Store

from conftest import make_settings


def test_health_check(client):
    """Test that /health returns status, timestamp and uptime without the envelope."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert isinstance(data["timestamp"], str)
    assert data["uptime"] >= 0
    assert "success" not in data


def test_request_id_header(client):
    response = client.get("/health")
    assert response.headers.get("X-Request-ID")


def test_supplied_request_id_is_echoed(client):
    response = client.get("/does-not-exist", headers={"X-Request-ID": "trace-abc-12345"})

    assert response.headers["X-Request-ID"] == "trace-abc-12345"
    assert response.json()["error"]["requestId"] == "trace-abc-12345"


def test_unusable_request_id_is_replaced(client):
    response = client.get("/health", headers={"X-Request-ID": "x y"})
    assert response.headers["X-Request-ID"] not in ("x y", "")


def test_unknown_route(client):
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body == {
        "success": False,
        "message": "Route not found",
        "error": {"code": "http_error", "requestId": response.headers["X-Request-ID"]},
    }


def test_validation_error_structure(client, vendor):
    response = client.post("/groups", json={"category": "Vegetables"}, headers=vendor["headers"])

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "validation_error"
    fields = {e["field"] for e in body["error"]["errors"]}
    assert {"productName", "targetQuantity", "pricePerUnit", "marketPrice"} <= fields
    for error in body["error"]["errors"]:
        assert set(error) == {"field", "location", "message", "type"}


def test_malformed_json_body(client, vendor):
    response = client.post(
        "/groups",
        content="{not json",
        headers={**vendor["headers"], "Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_unhandled_error_hides_detail_outside_development(app, vendor):
    """Unexpected exceptions become a 500 envelope without internals."""

    def explode(*args, **kwargs):
        raise RuntimeError("secret internals")

    app.state.recommender.recommend = explode
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/ai/recommendations", headers=vendor["headers"])

    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "Something went wrong!"
    assert set(body["error"]) == {"code", "requestId"}
    assert body["error"]["code"] == "internal_error"


def test_unhandled_error_detail_in_development(store):
    app = create_app(settings=make_settings(environment=Environment.DEVELOPMENT), store=store)
    client = TestClient(app, raise_server_exceptions=False)
    headers = _register(client)

    def explode(*args, **kwargs):
        raise RuntimeError("secret internals")

    app.state.recommender.recommend = explode
    response = client.get("/ai/recommendations", headers=headers)

    assert response.status_code == 500
    assert response.json()["error"]["detail"] == "secret internals"


def test_rate_limit_exceeded():
    settings = make_settings(rate_limit=RateLimitSettings(enabled=True, max_requests=2, window_seconds=60))
    app = create_app(settings=settings, store=Store(mongomock.MongoClient()["rate_limit_test"]))
    client = TestClient(app)

    assert client.get("/metrics").status_code == 200
    assert client.get("/metrics").status_code == 200
    response = client.get("/metrics")

    assert response.status_code == 429
    assert response.json()["error"]["code"] == "rate_limited"
    assert int(response.headers["Retry-After"]) > 0
    assert response.json()["error"]["requestId"] == response.headers["X-Request-ID"]
    # Health checks are never limited
    assert client.get("/health").status_code == 200


def test_fixed_window_limiter():
    limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=10)

    assert limiter.hit("a", now=100.0) == 0
    assert limiter.hit("a", now=101.0) == 0
    assert limiter.hit("a", now=102.0) == 8
    assert limiter.hit("b", now=102.0) == 0
    # New window
    assert limiter.hit("a", now=110.0) == 0


def test_fixed_window_limiter_drops_expired_clients():
    limiter = FixedWindowRateLimiter(max_requests=5, window_seconds=1)

    for t in range(1000):
        limiter.hit(f"10.0.{t // 256}.{t % 256}", now=float(t))

    assert limiter.tracked_clients <= 2


def test_fixed_window_limiter_keeps_clients_inside_window():
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)

    limiter.hit("a", now=0.0)
    limiter.hit("b", now=30.0)
    # Sweep at t=60 drops "a" only; "b" is still limited
    assert limiter.hit("c", now=60.0) == 0
    assert limiter.tracked_clients == 2
    assert limiter.hit("b", now=61.0) > 0


@pytest.mark.parametrize(
    "exc,status_code,code",
    [
        (ResourceNotFoundError("Group", "x"), 404, "not_found"),
        (StateConflictError("Group is not active"), 400, "state_conflict"),
        (ConcurrentModificationError("Group", "x"), 400, "concurrent_modification"),
        (PermissionDeniedError(), 401, "authorization_error"),
    ],
)
def test_exception_hierarchy(exc, status_code, code):
    assert isinstance(exc, GroupBuyException)
    assert exc.status_code == status_code
    assert exc.error_code == code


def _register(client):
    response = client.post(
        "/auth/register",
        json={"name": "Dev User", "email": "dev@vendors.in", "phone": "8888888888", "password": "secret123"},
    )
    return {"Authorization": f"Bearer {response.json()['data']['accessToken']}"}
