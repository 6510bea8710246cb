"""Tests for the AI endpoints."""

import pytest


def test_recommendations(client, vendor, create_group):
    create_group(vendor["headers"], pricePerUnit=30, marketPrice=50)
    create_group(vendor["headers"], productName="Onion", category="Vegetables", pricePerUnit=20, marketPrice=24)

    response = client.get("/ai/recommendations", headers=vendor["headers"])

    assert response.status_code == 200
    data = response.json()["data"]
    assert "scores" not in data
    recommendations = data["recommendations"]
    assert recommendations[0]["productName"] == "Basmati Rice"
    scores = [r["score"] for r in recommendations]
    assert scores == sorted(scores, reverse=True)


def test_recommendations_with_explain(client, vendor, create_group):
    create_group(vendor["headers"])

    data = client.get("/ai/recommendations", params={"explain": "true"}, headers=vendor["headers"]).json()["data"]

    rec = data["recommendations"][0]
    breakdown = data["scores"][rec["group"]]
    assert set(breakdown) == {"category", "savings", "completion", "location", "demand", "price_optimization"}
    assert sum(breakdown.values()) == pytest.approx(rec["score"])


def test_recommendations_counted_in_metrics(client, vendor):
    client.get("/ai/recommendations", headers=vendor["headers"])
    assert client.get("/metrics").json()["scoring"]["recommendations"]["count"] == 1


def test_predict_price(client, vendor):
    response = client.post(
        "/ai/predict-price",
        json={"productName": "Basmati Rice", "category": "Grains & Cereals", "quantity": 25},
        headers=vendor["headers"],
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["predictedPrice"] == pytest.approx(58.5)
    assert data["factors"]["quantityDiscount"] == 10


def test_demand_forecast(client, vendor):
    response = client.get(
        "/ai/demand-forecast",
        params={"timeframe": "90d", "productName": "Onion"},
        headers=vendor["headers"],
    )

    data = response.json()["data"]
    assert data["forecast"]["demand"] == "low"
    assert data["productName"] == "Onion"
    assert len(data["factors"]) == 3
