"""Heuristic price prediction, demand forecast and request suggestions.

Nothing here is learned: base prices come from a lookup table keyed on the
first word of the product name, with fixed quantity discounts and seasonal
factors.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from groupbuy.recommender.utils import as_dict, as_number, nested

# Configure module logger
logger = logging.getLogger(__name__)

BASE_PRICES = {
    "rice": 50,
    "basmati": 65,
    "wheat": 35,
    "tomato": 30,
    "onion": 25,
    "potato": 20,
    "oil": 150,
    "dal": 80,
}
DEFAULT_BASE_PRICE = 40

# (minimum quantity exclusive, discount percent), checked in order
QUANTITY_DISCOUNTS = [(50, 15), (20, 10), (10, 5)]

PREDICTION_CONFIDENCE = 0.85

DEMAND_FORECASTS = {
    "7d": {"demand": "high", "confidence": 0.8, "change": "+15%"},
    "30d": {"demand": "medium", "confidence": 0.7, "change": "+5%"},
    "90d": {"demand": "low", "confidence": 0.6, "change": "-10%"},
}
DEFAULT_TIMEFRAME = "30d"

DEMAND_FACTORS = [
    "Seasonal festival demand increase",
    "Local market supply constraints",
    "Weather impact on transportation",
]


def base_price(product_name: str) -> float:
    words = (product_name or "").lower().split()
    if not words:
        return DEFAULT_BASE_PRICE
    return BASE_PRICES.get(words[0], DEFAULT_BASE_PRICE)


def quantity_discount(quantity: float) -> int:
    for threshold, discount in QUANTITY_DISCOUNTS:
        if quantity > threshold:
            return discount
    return 0


def seasonal_factor(category: str, today: Optional[date] = None) -> float:
    """Price multiplier for the category in the current month.

    Vegetables carry a summer premium (April to June), fruits a harvest
    discount (October to December).
    """
    month = (today or date.today()).month
    if category == "Vegetables":
        return 1.2 if 4 <= month <= 6 else 0.9
    if category == "Fruits":
        return 0.8 if 10 <= month <= 12 else 1.1
    return 1.0


def predict_pricing(
    product_name: str,
    category: str,
    quantity: float,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Predict the per-unit market price for a bulk order.

    Args:
        product_name: Product name; only its first word is looked up.
        category: Product category, used for the seasonal factor.
        quantity: Ordered quantity, used for the bulk discount.
        today: Date used for seasonality (defaults to today).

    Returns:
        Dictionary with predictedPrice, confidence, factors and advisory
        recommendations.
    """
    price = base_price(product_name)
    discount = quantity_discount(as_number(quantity))
    discounted = price * (1 - discount / 100)
    factor = seasonal_factor(category, today)
    market_price = discounted * factor

    return {
        "predictedPrice": round(market_price, 2),
        "confidence": PREDICTION_CONFIDENCE,
        "factors": {
            "basePrice": price,
            "quantityDiscount": discount,
            "seasonalImpact": round((factor - 1) * 100, 2),
            "marketTrend": "stable",
        },
        "recommendations": [
            {
                "action": "wait",
                "reason": "Prices expected to drop by 3% next week",
                "impact": -1.5,
            },
            {
                "action": "buy_now",
                "reason": "Current group offers 12% additional discount",
                "impact": -12,
            },
        ],
    }


def demand_forecast(timeframe: str = DEFAULT_TIMEFRAME) -> Dict[str, Any]:
    """Fixed demand outlook for 7, 30 or 90 days; other values fall back to 30."""
    return {
        "timeframe": timeframe,
        "forecast": dict(DEMAND_FORECASTS.get(timeframe, DEMAND_FORECASTS[DEFAULT_TIMEFRAME])),
        "factors": list(DEMAND_FACTORS),
    }


def generate_suggestions(
    user: Optional[Dict[str, Any]],
    product_name: str,
    category: str,
    quantity: float,
    budget: Optional[float] = None,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Advice items stored on a new request, most urgent first.

    Priority 1 is the most urgent. Types are ``timing`` (1),
    ``price_optimization`` (2) and ``alternative`` (3).
    """
    suggestions = []

    prediction = predict_pricing(product_name, category, quantity, today)
    predicted = prediction["predictedPrice"]
    if budget and predicted < budget:
        suggestions.append({
            "type": "price_optimization",
            "message": (
                f"Great news! Current market price (₹{predicted:g}/kg) is "
                f"₹{round(budget - predicted)} below your budget."
            ),
            "priority": 2,
            "data": {"savings": budget - predicted},
        })

    forecast = demand_forecast("7d")
    if forecast["forecast"]["demand"] == "high":
        suggestions.append({
            "type": "timing",
            "message": "High demand expected next week. Consider placing your order now to avoid price increases.",
            "priority": 1,
            "data": {"urgency": "high"},
        })

    prefers_organic = as_dict(nested(user or {}, "aiProfile", "preferences")).get("organic")
    if prefers_organic and "organic" not in (product_name or "").lower():
        suggestions.append({
            "type": "alternative",
            "message": (
                f"Consider organic {product_name} - only ₹2-3/kg more but matches "
                "your preference for organic products."
            ),
            "priority": 3,
            "data": {"alternative": f"Organic {product_name}"},
        })

    suggestions.sort(key=lambda s: s["priority"])
    logger.debug(f"Generated {len(suggestions)} suggestions for '{product_name}'")
    return suggestions
