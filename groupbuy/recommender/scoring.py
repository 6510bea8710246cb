"""Personalized group recommendations.

Scores each open group against a user's profile with a weighted sum of
category affinity, savings, completion, location and the group's AI metrics,
then keeps the best few. The reasons shown to the user are derived from the
group and profile separately from the score.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from groupbuy.recommender.utils import (
    ai_metric,
    as_dict,
    as_number,
    as_text,
    nested,
    purchase_history,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Score weights
CATEGORY_FREQUENCY_WEIGHT = 10.0
SAVINGS_WEIGHT = 2.0
COMPLETION_WEIGHT = 0.5
LOCATION_BONUS = 20.0
DEMAND_WEIGHT = 0.3
PRICE_OPTIMIZATION_WEIGHT = 0.3

# Selection
MIN_RECOMMENDATION_SCORE = 30.0
DEFAULT_TOP_N = 5
HIGH_PRIORITY_SCORE = 70.0
MEDIUM_PRIORITY_SCORE = 50.0

# Reason thresholds
SAVINGS_REASON_THRESHOLD = 10.0
ALMOST_FULL_THRESHOLD = 70.0


def category_frequency(user: Dict[str, Any]) -> Counter:
    """Count purchases per category in the user's history."""
    return Counter(
        entry.get("category")
        for entry in purchase_history(user)
        if entry.get("category") is not None
    )


def score_breakdown(
    user: Dict[str, Any],
    group: Dict[str, Any],
    frequencies: Optional[Counter] = None,
) -> Dict[str, float]:
    """Individual score components for one user/group pair.

    Args:
        user: User document.
        group: Group document.
        frequencies: Precomputed category counts for the user, to avoid
            recounting the history for every group.

    Returns:
        Dictionary of component name to contribution. The score is their sum.
    """
    if frequencies is None:
        frequencies = category_frequency(user)

    savings = as_number(group.get("savings"))
    has_location = bool(nested(user, "profile", "address")) and bool(
        nested(group, "deliveryDetails", "location")
    )

    return {
        "category": frequencies.get(group.get("category"), 0) * CATEGORY_FREQUENCY_WEIGHT,
        "savings": savings * SAVINGS_WEIGHT if savings > 0 else 0.0,
        "completion": as_number(group.get("completionPercentage")) * COMPLETION_WEIGHT,
        "location": LOCATION_BONUS if has_location else 0.0,
        "demand": ai_metric(group, "demandScore") * DEMAND_WEIGHT,
        "price_optimization": ai_metric(group, "priceOptimizationScore") * PRICE_OPTIMIZATION_WEIGHT,
    }


def score_group(
    user: Dict[str, Any],
    group: Dict[str, Any],
    frequencies: Optional[Counter] = None,
) -> float:
    """Recommendation score for one group."""
    return sum(score_breakdown(user, group, frequencies).values())


def priority_label(score: float) -> str:
    if score > HIGH_PRIORITY_SCORE:
        return "high"
    if score > MEDIUM_PRIORITY_SCORE:
        return "medium"
    return "low"


def recommendation_reasons(user: Dict[str, Any], group: Dict[str, Any]) -> List[str]:
    """Human-readable reasons to join a group.

    These re-check the group and profile on their own terms; they do not
    explain which components produced the score.
    """
    reasons = []

    savings = as_number(group.get("savings"))
    if savings > SAVINGS_REASON_THRESHOLD:
        unit = as_text(group.get("unit")) or "kg"
        reasons.append(f"Save ₹{savings:g}/{unit} compared to market price")

    if as_number(group.get("completionPercentage")) > ALMOST_FULL_THRESHOLD:
        reasons.append("Group is almost full - join now to secure your order")

    product_name = as_text(group.get("productName")).lower()
    bought_similar = any(
        product_name in as_text(entry.get("product")).lower()
        or entry.get("category") == group.get("category")
        for entry in purchase_history(user)
    )
    if bought_similar:
        reasons.append("Based on your purchase history")

    if as_dict(nested(user, "aiProfile", "preferences")).get("bulkDiscount"):
        reasons.append("Matches your bulk discount preference")

    return reasons


class GroupRecommender:
    """Ranks open groups for a user.
    """

    def __init__(
        self,
        top_n: int = DEFAULT_TOP_N,
        min_score: float = MIN_RECOMMENDATION_SCORE,
    ):
        self.top_n = top_n
        self.min_score = min_score

    def recommend(
        self,
        user: Dict[str, Any],
        groups: List[Dict[str, Any]],
        return_scores: bool = False,
    ) -> List[Dict[str, Any]] | Tuple[List[Dict[str, Any]], Dict[str, Dict[str, float]]]:
        """Get recommendations for a user.

        Groups scoring above the threshold are sorted by descending score
        (ties keep input order) and cut to ``top_n``.

        Args:
            user: User document with profile and purchase history.
            groups: Candidate group documents.
            return_scores: If True, also return the per-group score breakdown
                keyed by group id string.

        Returns:
            List of recommendation dictionaries, optionally with breakdowns.
        """
        frequencies = category_frequency(user)
        recommendations = []
        breakdowns = {}

        for group in groups:
            breakdown = score_breakdown(user, group, frequencies)
            score = sum(breakdown.values())
            if score <= self.min_score:
                continue

            recommendations.append({
                "group": group.get("_id"),
                "productName": group.get("productName"),
                "category": group.get("category"),
                "savings": as_number(group.get("savings")),
                "completionPercentage": as_number(group.get("completionPercentage")),
                "score": score,
                "reasons": recommendation_reasons(user, group),
                "priority": priority_label(score),
            })
            breakdowns[str(group.get("_id"))] = breakdown

        recommendations.sort(key=lambda r: r["score"], reverse=True)
        recommendations = recommendations[: self.top_n]

        logger.debug(
            "Computed group recommendations",
            extra={
                "user_id": str(user.get("_id")),
                "candidates": len(groups),
                "num_recommendations": len(recommendations),
            },
        )

        if return_scores:
            kept = {str(r["group"]) for r in recommendations}
            return recommendations, {gid: b for gid, b in breakdowns.items() if gid in kept}
        return recommendations
