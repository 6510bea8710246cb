"""Analytics endpoints: the vendor dashboard and market insights.

Market trends, price history and saving opportunities are fixed sample
figures. The category summary in market insights is computed live over the
active groups with pandas.
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd
from fastapi import APIRouter, Depends

from groupbuy.api.dependencies import get_current_user, get_store
from groupbuy.api.responses import success
from groupbuy.api.schemas import Category
from groupbuy.recommender.pricing import DEFAULT_TIMEFRAME, demand_forecast
from groupbuy.recommender.utils import as_number, nested
from groupbuy.store.database import Store
from groupbuy.store.membership import find_membership

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
)

RECENT_ITEMS = 5

MARKET_TRENDS = [
    {"product": "Rice", "trend": "down", "percentage": -3.2},
    {"product": "Tomatoes", "trend": "up", "percentage": 5.1},
    {"product": "Oil", "trend": "stable", "percentage": 0.8},
]

PRICE_HISTORY = [
    {"date": "2024-01-01", "price": 45},
    {"date": "2024-01-15", "price": 43},
    {"date": "2024-02-01", "price": 47},
    {"date": "2024-02-15", "price": 45},
]

SAVING_OPPORTUNITIES = [
    {
        "product": "Basmati Rice",
        "potentialSaving": 12,
        "reason": "Group buying available with 15% discount",
    },
    {
        "product": "Cooking Oil",
        "potentialSaving": 8,
        "reason": "Bulk purchase from verified supplier",
    },
]

SUMMARY_COLUMNS = ["category", "groups", "averagePrice", "averageSavings", "openDemand"]


def dashboard_stats(user_id, groups: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Savings and group counts for the groups a user created or joined.

    Args:
        user_id: The user's ObjectId.
        groups: Groups where the user is creator or has a membership record.

    Returns:
        Dictionary with totalSavings, activeGroups, completedOrders and
        successRate (percentage of the groups that completed).
    """
    total_savings = 0.0
    for group in groups:
        idx = find_membership(group, user_id)
        if idx is not None:
            member = group["members"][idx]
            total_savings += as_number(group.get("savings")) * as_number(member.get("quantityNeeded"))

    active = sum(1 for g in groups if g.get("status") == "active")
    completed = sum(1 for g in groups if g.get("status") == "completed")
    success_rate = int(round(completed / len(groups) * 100)) if groups else 0

    return {
        "totalSavings": total_savings,
        "activeGroups": active,
        "completedOrders": completed,
        "successRate": success_rate,
    }


def category_summary(groups: List[Dict[str, Any]], category: Optional[str] = None) -> List[Dict[str, Any]]:
    """Per-category group count, average price and savings, and open demand.

    Open demand is the quantity still missing to reach each group's target.
    Categories are returned in alphabetical order.
    """
    rows = [
        {
            "category": g.get("category"),
            "pricePerUnit": as_number(g.get("pricePerUnit")),
            "savings": as_number(g.get("savings")),
            "openDemand": max(
                as_number(g.get("targetQuantity")) - as_number(g.get("currentQuantity")), 0.0
            ),
        }
        for g in groups
        if category is None or g.get("category") == category
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    summary = (
        df.groupby("category")
        .agg(
            groups=("pricePerUnit", "size"),
            averagePrice=("pricePerUnit", "mean"),
            averageSavings=("savings", "mean"),
            openDemand=("openDemand", "sum"),
        )
        .reset_index()
        .sort_values("category")
    )

    # Native types for the JSON encoder
    return [
        {
            "category": str(row.category),
            "groups": int(row.groups),
            "averagePrice": round(float(row.averagePrice), 2),
            "averageSavings": round(float(row.averageSavings), 2),
            "openDemand": float(row.openDemand),
        }
        for row in summary[SUMMARY_COLUMNS].itertuples(index=False)
    ]


@router.get("/dashboard")
def get_dashboard(
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Savings, participation and recent activity for the caller."""
    user_id = user["_id"]
    groups = list(
        store.groups.find({"$or": [{"creator": user_id}, {"members.user": user_id}]})
        .sort([("createdAt", -1), ("_id", -1)])
    )
    recent_requests = list(
        store.requests.find({"requester": user_id})
        .sort([("createdAt", -1), ("_id", -1)])
        .limit(RECENT_ITEMS)
    )

    return success({
        "stats": dashboard_stats(user_id, groups),
        "recentActivity": {
            "groups": groups[:RECENT_ITEMS],
            "requests": recent_requests,
        },
        "marketTrends": MARKET_TRENDS,
        "aiInsights": {
            "recommendations": len(nested(user, "aiProfile", "purchaseHistory") or []),
            "behaviorScore": nested(user, "aiProfile", "behaviorScore"),
            "preferredCategories": nested(user, "preferences", "categories") or [],
        },
    })


@router.get("/market-insights")
def get_market_insights(
    category: Optional[Category] = None,
    timeframe: str = DEFAULT_TIMEFRAME,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Market outlook plus a live summary of the active groups per category."""
    query: Dict[str, Any] = {"status": "active"}
    if category:
        query["category"] = category
    active_groups = list(store.groups.find(query))

    forecast = demand_forecast(timeframe)["forecast"]
    logger.debug(
        "Built market insights",
        extra={"category": category, "timeframe": timeframe, "groups": len(active_groups)},
    )

    return success({
        "category": category,
        "timeframe": timeframe,
        "priceHistory": PRICE_HISTORY,
        "demandForecast": {
            "nextWeek": "high",
            "nextMonth": "medium",
            "seasonal": "Demand typically increases during festival season",
            "selectedTimeframe": forecast,
        },
        "costSavingOpportunities": SAVING_OPPORTUNITIES,
        "categorySummary": category_summary(active_groups, category),
    })
