"""AI endpoints: personalized recommendations, price prediction and demand forecast."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from groupbuy.api.dependencies import (
    get_current_user,
    get_recommender,
    get_scoring_metrics,
    get_store,
)
from groupbuy.api.metrics import ScoringMetrics
from groupbuy.api.responses import success
from groupbuy.api.schemas import Category
from groupbuy.recommender.pricing import DEFAULT_TIMEFRAME, demand_forecast, predict_pricing
from groupbuy.recommender.scoring import GroupRecommender
from groupbuy.store.database import Store

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/ai",
    tags=["ai"],
)


class PricePredictionRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    productName: str = Field(..., min_length=2)
    category: Category
    quantity: float = Field(..., ge=0.1)


@router.get("/recommendations")
def get_recommendations(
    explain: bool = Query(default=False, description="Include per-group score breakdown"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
    recommender: GroupRecommender = Depends(get_recommender),
    metrics: ScoringMetrics = Depends(get_scoring_metrics),
):
    """Rank every active group for the caller.

    Args:
        explain: If True, the response carries a ``scores`` mapping from
            group id to score components.

    Returns:
        Envelope with ``recommendations`` and optionally ``scores``.
    """
    groups = list(store.groups.find({"status": "active"}))

    with metrics.track("recommendations"):
        if explain:
            recommendations, scores = recommender.recommend(user, groups, return_scores=True)
        else:
            recommendations, scores = recommender.recommend(user, groups), None

    logger.info(
        f"Served {len(recommendations)} recommendations",
        extra={"user_id": str(user["_id"]), "candidates": len(groups)},
    )

    data: Dict[str, Any] = {"recommendations": recommendations}
    if scores is not None:
        data["scores"] = scores
    return success(data)


@router.post("/predict-price")
def predict_price(
    body: PricePredictionRequest,
    user: Dict[str, Any] = Depends(get_current_user),
):
    return success(predict_pricing(body.productName, body.category, body.quantity))


@router.get("/demand-forecast")
def get_demand_forecast(
    timeframe: str = DEFAULT_TIMEFRAME,
    productName: Optional[str] = None,
    category: Optional[Category] = None,
    user: Dict[str, Any] = Depends(get_current_user),
):
    """Demand outlook for ``7d``, ``30d`` or ``90d``.

    The outlook does not depend on product or category yet; both are echoed
    back so clients can label the result.
    """
    forecast = demand_forecast(timeframe)
    forecast["productName"] = productName
    forecast["category"] = category
    return success(forecast)
