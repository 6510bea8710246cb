"""Matching open purchase requests to active groups.

A request is compared against every active group in its category; each pair
earns points for product similarity, spare capacity, budget fit and location,
and pairs at or above the threshold are returned best first.
"""

import logging
from typing import Any, Dict, List, Tuple

from groupbuy.recommender.utils import as_number, as_text
from groupbuy.store.database import Store

# Configure module logger
logger = logging.getLogger(__name__)

PRODUCT_MATCH_POINTS = 40
CATEGORY_MATCH_POINTS = 20
CAPACITY_POINTS = 30
NEAR_CAPACITY_POINTS = 15
NEAR_CAPACITY_FACTOR = 1.2
BUDGET_POINTS = 20
LOCATION_POINTS = 10

MIN_MATCH_SCORE = 50


def match_score(request: Dict[str, Any], group: Dict[str, Any]) -> Tuple[float, List[str]]:
    """Score one request/group pair.

    Returns:
        Tuple of (score, reasons), one reason per component that scored.
    """
    score = 0.0
    reasons = []

    request_product = as_text(request.get("productName")).lower()
    group_product = as_text(group.get("productName")).lower()
    if request_product in group_product or group_product in request_product:
        score += PRODUCT_MATCH_POINTS
        reasons.append("Exact product match")
    elif group.get("category") == request.get("category"):
        score += CATEGORY_MATCH_POINTS
        reasons.append("Same category")

    quantity = as_number(request.get("quantity"))
    remaining = as_number(group.get("targetQuantity")) - as_number(group.get("currentQuantity"))
    if quantity <= remaining:
        score += CAPACITY_POINTS
        reasons.append("Sufficient capacity available")
    elif quantity <= remaining * NEAR_CAPACITY_FACTOR:
        score += NEAR_CAPACITY_POINTS
        reasons.append("Near capacity match")

    max_price = request.get("maxPrice")
    if not max_price or as_number(group.get("pricePerUnit")) <= as_number(max_price):
        score += BUDGET_POINTS
        reasons.append("Within budget")

    # Location is not compared yet; every candidate gets the same credit
    score += LOCATION_POINTS
    reasons.append("Good location match")

    return score, reasons


def is_candidate(request: Dict[str, Any], group: Dict[str, Any]) -> bool:
    return group.get("status") == "active" and group.get("category") == request.get("category")


def rank_matches(request: Dict[str, Any], groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Score candidate groups for a request and keep the good ones.

    Groups outside the request's category or not active are skipped even if
    the caller passes them in.

    Args:
        request: Request document (productName, category, quantity, maxPrice).
        groups: Candidate group documents.

    Returns:
        Matches sorted by descending score; ties keep input order.
    """
    quantity = as_number(request.get("quantity"))
    matches = []

    for group in groups:
        if not is_candidate(request, group):
            continue

        score, reasons = match_score(request, group)
        if score < MIN_MATCH_SCORE:
            continue

        matches.append({
            "group": group.get("_id"),
            "productName": group.get("productName"),
            "pricePerUnit": as_number(group.get("pricePerUnit")),
            "matchScore": score,
            "reasons": reasons,
            "estimatedSavings": as_number(group.get("savings")) * quantity,
        })

    matches.sort(key=lambda m: m["matchScore"], reverse=True)
    return matches


def find_smart_matches(store: Store, request: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Load the active groups in the request's category and rank them."""
    candidates = list(store.groups.find({
        "status": "active",
        "category": request.get("category"),
    }))
    matches = rank_matches(request, candidates)

    logger.info(
        "Smart matching finished",
        extra={
            "request_id": str(request.get("_id")),
            "candidates": len(candidates),
            "num_matches": len(matches),
        },
    )
    return matches
