"""Shared fixtures for the GroupBuy test suite.

The API runs against a mongomock database, so the pymongo query paths are
exercised without a server. Group AI metrics come from a seeded provider.
"""

import itertools
import logging
from typing import Any, Callable, Dict

import mongomock
import pytest
from fastapi.testclient import TestClient

from groupbuy.api.main import create_app
from groupbuy.config import AuthSettings, Environment, LoggingSettings, RateLimitSettings, Settings
from groupbuy.recommender.group_metrics import RandomGroupMetricsProvider
from groupbuy.store.database import Store

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)

_phone_numbers = itertools.count(9000000001)


def make_settings(**overrides: Any) -> Settings:
    """Settings for tests: no rate limiting and cheap password hashing."""
    values = {
        "environment": Environment.TESTING,
        "auth": AuthSettings(
            secret_key="test-access-secret",
            refresh_secret_key="test-refresh-secret",
            bcrypt_rounds=4,
        ),
        "rate_limit": RateLimitSettings(enabled=False),
        "logging": LoggingSettings(level="WARNING", format="text"),
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def store() -> Store:
    """Empty in-memory store with the production indexes."""
    store = Store(mongomock.MongoClient()["groupbuy_test"])
    store.ensure_indexes()
    return store


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings, store):
    return create_app(
        settings=settings,
        store=store,
        group_metrics_provider=RandomGroupMetricsProvider(seed=7),
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def register_user(client) -> Callable[..., Dict[str, Any]]:
    """Factory registering a vendor and returning its id, tokens and headers."""

    def _register(name: str = "Ravi Kumar", email: str = None, **fields: Any) -> Dict[str, Any]:
        phone = str(next(_phone_numbers))
        payload = {
            "name": name,
            "email": email or f"vendor{phone}@vendors.in",
            "phone": phone,
            "password": "secret123",
            "businessName": f"{name} Chaat Corner",
            **fields,
        }
        response = client.post("/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return {
            "id": data["user"]["id"],
            "email": payload["email"],
            "password": payload["password"],
            "access_token": data["accessToken"],
            "refresh_token": data["refreshToken"],
            "headers": {"Authorization": f"Bearer {data['accessToken']}"},
        }

    return _register


@pytest.fixture
def vendor(register_user) -> Dict[str, Any]:
    return register_user()


@pytest.fixture
def create_group(client) -> Callable[..., Dict[str, Any]]:
    """Factory creating a group through the API and returning its data."""

    def _create(headers: Dict[str, str], **fields: Any) -> Dict[str, Any]:
        payload = {
            "productName": "Basmati Rice",
            "category": "Grains & Cereals",
            "targetQuantity": 100,
            "pricePerUnit": 45,
            "marketPrice": 50,
            **fields,
        }
        response = client.post("/groups", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create
