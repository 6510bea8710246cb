"""Purchase request endpoints.

A request is one vendor's standalone need. It is stored with pricing
suggestions, and smart matching against open groups runs as a background
task once the response has been sent.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from bson import ObjectId
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from groupbuy.api.dependencies import get_current_user, get_scoring_metrics, get_store
from groupbuy.api.exceptions import ResourceNotFoundError, StateConflictError
from groupbuy.api.metrics import ScoringMetrics
from groupbuy.api.responses import success
from groupbuy.api.schemas import Category, Location, paginate
from groupbuy.recommender.matching import find_smart_matches
from groupbuy.recommender.pricing import generate_suggestions
from groupbuy.store.database import Store
from groupbuy.store.documents import new_request_document, parse_object_id, utcnow

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/requests",
    tags=["requests"],
)


class PurchaseRequestCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    productName: str = Field(..., min_length=2)
    category: Category
    quantity: float = Field(..., ge=0.1)
    unit: str = "kg"
    expectedDelivery: Optional[datetime] = None
    maxPrice: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, max_length=500)
    urgency: Literal["low", "medium", "high"] = "medium"
    location: Optional[Location] = None


class ResponseCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=1, max_length=1000)
    priceQuote: Optional[float] = Field(default=None, gt=0)
    deliveryDate: Optional[datetime] = None


def _load_request(store: Store, request_id: str) -> Dict[str, Any]:
    request = store.requests.find_one({"_id": parse_object_id(request_id, "Request")})
    if request is None:
        raise ResourceNotFoundError("Request", request_id)
    return request


def run_smart_match(store: Store, request_id: ObjectId, metrics: ScoringMetrics) -> None:
    """Match a stored request against open groups and record the result.

    Runs after the create response is sent; failures are logged and dropped.
    """
    try:
        request = store.requests.find_one({"_id": request_id})
        if request is None:
            logger.warning(f"Smart match skipped, request {request_id} no longer exists")
            return

        with metrics.track("request_matching"):
            matches = find_smart_matches(store, request)

        update: Dict[str, Any] = {
            "matchedGroups": [
                {
                    "group": m["group"],
                    "matchScore": m["matchScore"],
                    "reason": "; ".join(m["reasons"]),
                    "estimatedSavings": m["estimatedSavings"],
                }
                for m in matches
            ],
            "updatedAt": utcnow(),
        }
        if matches:
            update["status"] = "matched"

        # Only an open request moves to matched
        store.requests.update_one({"_id": request_id, "status": "open"}, {"$set": update})
    except Exception:
        logger.exception("Smart match failed", extra={"request_id": str(request_id)})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_request(
    body: PurchaseRequestCreate,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
    metrics: ScoringMetrics = Depends(get_scoring_metrics),
):
    """Store a purchase request with pricing suggestions and queue matching."""
    suggestions = generate_suggestions(
        user,
        body.productName,
        body.category,
        body.quantity,
        budget=body.maxPrice,
    )

    request = new_request_document(user["_id"], body.model_dump(), suggestions)
    request["_id"] = store.requests.insert_one(request).inserted_id

    logger.info(
        "Purchase request created",
        extra={"request_id": str(request["_id"]), "user_id": str(user["_id"])},
    )

    background_tasks.add_task(run_smart_match, store, request["_id"], metrics)

    return success(
        request,
        message="Request created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("")
def list_requests(
    request_status: Optional[Literal["open", "matched", "completed", "cancelled"]] = Query(
        default=None, alias="status"
    ),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """The caller's own requests, newest first."""
    query: Dict[str, Any] = {"requester": user["_id"]}
    if request_status:
        query["status"] = request_status

    total = store.requests.count_documents(query)
    requests = list(
        store.requests.find(query)
        .sort([("createdAt", -1), ("_id", -1)])
        .skip((page - 1) * limit)
        .limit(limit)
    )
    return success({"requests": requests, "pagination": paginate(total, page, limit)})


@router.get("/{request_id}")
def get_request(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return success(_load_request(store, request_id))


@router.get("/{request_id}/matches")
def get_matches(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
    metrics: ScoringMetrics = Depends(get_scoring_metrics),
):
    """Rank the currently open groups for a request without storing anything."""
    request = _load_request(store, request_id)
    with metrics.track("request_matching"):
        matches = find_smart_matches(store, request)
    return success({"request": request["_id"], "matches": matches})


@router.post("/{request_id}/responses", status_code=status.HTTP_201_CREATED)
def respond_to_request(
    request_id: str,
    body: ResponseCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Answer another vendor's open or matched request with a message and quote."""
    request = _load_request(store, request_id)

    if request.get("requester") == user["_id"]:
        raise StateConflictError("You cannot respond to your own request")
    if request.get("status") not in ("open", "matched"):
        raise StateConflictError("Request is no longer accepting responses")

    now = utcnow()
    response = {
        "responder": user["_id"],
        "message": body.message,
        "priceQuote": body.priceQuote,
        "deliveryDate": body.deliveryDate,
        "createdAt": now,
    }
    store.requests.update_one(
        {"_id": request["_id"]},
        {"$push": {"responses": response}, "$set": {"updatedAt": now}},
    )

    logger.info(
        "Request response added",
        extra={"request_id": request_id, "user_id": str(user["_id"])},
    )

    return success(
        response,
        message="Response added successfully",
        status_code=status.HTTP_201_CREATED,
    )
