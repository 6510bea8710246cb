"""Tests for registration, login, token refresh and logout."""

import pytest


def test_register_returns_tokens(client):
    response = client.post(
        "/auth/register",
        json={
            "name": "Meena",
            "email": "Meena@Vendors.in",
            "phone": "+91 9812345678",
            "password": "secret123",
            "businessName": "Meena Pani Puri",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    assert body["data"]["user"]["email"] == "meena@vendors.in"
    assert body["data"]["user"]["role"] == "vendor"
    assert body["data"]["accessToken"]
    assert body["data"]["refreshToken"]
    assert "password" not in body["data"]["user"]


def test_register_duplicate_email_rejected(client, register_user):
    existing = register_user()
    response = client.post(
        "/auth/register",
        json={"name": "Other", "email": existing["email"], "phone": "9123456789", "password": "secret123"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "User already exists with this email or phone"


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "A", "email": "a@vendors.in", "phone": "9123456789", "password": "secret123"},
        {"name": "Anil", "email": "not-an-email", "phone": "9123456789", "password": "secret123"},
        {"name": "Anil", "email": "a@vendors.in", "phone": "5123456789", "password": "secret123"},
        {"name": "Anil", "email": "a@vendors.in", "phone": "9123456789", "password": "123"},
    ],
)
def test_register_validation(client, payload):
    response = client.post("/auth/register", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation errors"
    assert len(body["error"]["errors"]) == 1
    assert body["error"]["errors"][0]["location"] == "body"


def test_login(client, vendor):
    response = client.post("/auth/login", json={"email": vendor["email"].upper(), "password": "secret123"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == vendor["id"]
    assert "profile" in data["user"]
    assert data["accessToken"]


def test_login_wrong_password(client, vendor):
    response = client.post("/auth/login", json={"email": vendor["email"], "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


def test_login_unknown_email(client):
    response = client.post("/auth/login", json={"email": "ghost@vendors.in", "password": "secret123"})
    assert response.status_code == 401


def test_login_updates_last_activity(client, store, vendor):
    client.post("/auth/login", json={"email": vendor["email"], "password": "secret123"})
    user = store.users.find_one({"email": vendor["email"]})
    assert user["aiProfile"]["lastActivity"] is not None


def test_refresh_rotates_token(client, vendor):
    """A refresh token works once; the rotated one replaces it."""
    first = client.post("/auth/refresh", json={"refreshToken": vendor["refresh_token"]})
    assert first.status_code == 200
    rotated = first.json()["data"]["refreshToken"]
    assert rotated != vendor["refresh_token"]

    reused = client.post("/auth/refresh", json={"refreshToken": vendor["refresh_token"]})
    assert reused.status_code == 401
    assert reused.json()["message"] == "Invalid refresh token"

    second = client.post("/auth/refresh", json={"refreshToken": rotated})
    assert second.status_code == 200


def test_refresh_requires_token(client):
    response = client.post("/auth/refresh", json={})
    assert response.status_code == 401
    assert response.json()["message"] == "Refresh token required"


def test_access_token_is_not_a_refresh_token(client, vendor):
    response = client.post("/auth/refresh", json={"refreshToken": vendor["access_token"]})
    assert response.status_code == 401


def test_refresh_token_with_malformed_subject(app, client):
    """A correctly signed refresh token naming a non-ObjectId user is rejected."""
    token = app.state.token_service.create_refresh_token("not-an-object-id")

    response = client.post("/auth/refresh", json={"refreshToken": token})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"

    response = client.post("/auth/logout", json={"refreshToken": token})
    assert response.status_code == 200


def test_logout_invalidates_refresh_token(client, vendor):
    response = client.post("/auth/logout", json={"refreshToken": vendor["refresh_token"]})
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"

    response = client.post("/auth/refresh", json={"refreshToken": vendor["refresh_token"]})
    assert response.status_code == 401


def test_logout_with_garbage_token_succeeds(client):
    response = client.post("/auth/logout", json={"refreshToken": "garbage"})
    assert response.status_code == 200


def test_protected_route_requires_token(client):
    response = client.get("/users/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Access token required"


def test_protected_route_rejects_bad_token(client):
    response = client.get("/users/me", headers={"Authorization": "Bearer nonsense"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_inactive_user_rejected(client, store, vendor):
    store.users.update_one({"email": vendor["email"]}, {"$set": {"isActive": False}})
    response = client.get("/users/me", headers=vendor["headers"])

    assert response.status_code == 401
    assert response.json()["message"] == "User not found or inactive"
