"""Tests for the dashboard and market insight endpoints."""

from bson import ObjectId

from groupbuy.api.routes.analytics import category_summary, dashboard_stats


def test_dashboard_stats():
    user_id = ObjectId()
    groups = [
        {"status": "active", "savings": 5, "members": [{"user": user_id, "quantityNeeded": 20}]},
        {"status": "completed", "savings": 2, "members": [{"user": user_id, "quantityNeeded": 10}]},
        {"status": "completed", "savings": 9, "creator": user_id, "members": []},
    ]

    stats = dashboard_stats(user_id, groups)

    assert stats == {
        "totalSavings": 120,
        "activeGroups": 1,
        "completedOrders": 2,
        "successRate": 67,
    }


def test_dashboard_stats_without_groups():
    assert dashboard_stats(ObjectId(), [])["successRate"] == 0


def test_category_summary():
    groups = [
        {"category": "Vegetables", "pricePerUnit": 20, "savings": 4, "targetQuantity": 100, "currentQuantity": 30},
        {"category": "Vegetables", "pricePerUnit": 30, "savings": 6, "targetQuantity": 50, "currentQuantity": 50},
        {"category": "Spices", "pricePerUnit": 200, "savings": 25, "targetQuantity": 10, "currentQuantity": 2},
    ]

    summary = category_summary(groups)

    assert summary == [
        {"category": "Spices", "groups": 1, "averagePrice": 200.0, "averageSavings": 25.0, "openDemand": 8.0},
        {"category": "Vegetables", "groups": 2, "averagePrice": 25.0, "averageSavings": 5.0, "openDemand": 70.0},
    ]
    assert category_summary(groups, "Fruits") == []
    assert [row["category"] for row in category_summary(groups, "Spices")] == ["Spices"]


def test_dashboard_endpoint(client, register_user, create_group):
    creator = register_user("Creator")
    member = register_user("Member")
    group = create_group(creator["headers"])
    client.post(f"/groups/{group['id']}/join", json={"quantity": 20}, headers=member["headers"])
    client.post(
        "/requests",
        json={"productName": "Toor Dal", "category": "Other", "quantity": 5},
        headers=member["headers"],
    )

    response = client.get("/analytics/dashboard", headers=member["headers"])

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["stats"]["totalSavings"] == 100
    assert data["stats"]["activeGroups"] == 1
    assert [g["id"] for g in data["recentActivity"]["groups"]] == [group["id"]]
    assert data["recentActivity"]["requests"][0]["productName"] == "Toor Dal"
    assert data["aiInsights"]["recommendations"] == 1
    assert data["aiInsights"]["behaviorScore"] == 50
    assert len(data["marketTrends"]) == 3


def test_market_insights_endpoint(client, vendor, create_group):
    create_group(vendor["headers"], productName="Onion", category="Vegetables", pricePerUnit=20, marketPrice=24)
    create_group(vendor["headers"])

    response = client.get(
        "/analytics/market-insights",
        params={"category": "Vegetables", "timeframe": "7d"},
        headers=vendor["headers"],
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["demandForecast"]["selectedTimeframe"]["demand"] == "high"
    assert len(data["priceHistory"]) == 4
    assert data["categorySummary"] == [
        {"category": "Vegetables", "groups": 1, "averagePrice": 20.0, "averageSavings": 4.0, "openDemand": 100.0}
    ]
