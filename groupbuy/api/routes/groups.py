"""Group endpoints: listing with recommendations, creation, join and leave."""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from groupbuy.api.dependencies import (
    get_current_user,
    get_group_metrics_provider,
    get_recommender,
    get_scoring_metrics,
    get_store,
)
from groupbuy.api.exceptions import ResourceNotFoundError
from groupbuy.api.metrics import ScoringMetrics
from groupbuy.api.responses import success
from groupbuy.api.schemas import Category, Location, paginate
from groupbuy.recommender.group_metrics import GroupMetricsProvider
from groupbuy.recommender.scoring import GroupRecommender
from groupbuy.store import membership
from groupbuy.store.database import Store
from groupbuy.store.documents import (
    new_group_document,
    parse_object_id,
    utcnow,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/groups",
    tags=["groups"],
)


class GroupCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    productName: str = Field(..., min_length=2)
    category: Category
    targetQuantity: float = Field(..., ge=1)
    pricePerUnit: float = Field(..., ge=0.01)
    marketPrice: float = Field(..., gt=0)
    unit: str = "kg"
    deliveryDate: Optional[datetime] = None
    deliveryLocation: Optional[Location] = None
    deliveryType: Literal["pickup", "delivery"] = "delivery"
    supplier: Optional[str] = None


class JoinRequest(BaseModel):
    quantity: float = Field(..., ge=0.1)


def _user_refs(store: Store, user_ids: List[Any]) -> Dict[Any, Dict[str, Any]]:
    if not user_ids:
        return {}
    cursor = store.users.find(
        {"_id": {"$in": list(set(user_ids))}},
        {"name": 1, "profile.businessName": 1},
    )
    return {
        user["_id"]: {
            "_id": user["_id"],
            "name": user.get("name"),
            "businessName": (user.get("profile") or {}).get("businessName"),
        }
        for user in cursor
    }


def populate_users(store: Store, groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Replace creator and member user ids with name references.

    Ids whose user no longer exists are left as they are.
    """
    ids = []
    for group in groups:
        ids.append(group.get("creator"))
        ids.extend(m.get("user") for m in group.get("members") or [])
    refs = _user_refs(store, [i for i in ids if i is not None])

    populated = []
    for group in groups:
        group = dict(group)
        group["creator"] = refs.get(group.get("creator"), group.get("creator"))
        group["members"] = [
            {**m, "user": refs.get(m.get("user"), m.get("user"))}
            for m in group.get("members") or []
        ]
        populated.append(group)
    return populated


@router.get("")
def list_groups(
    category: Optional[Category] = None,
    group_status: Optional[Literal["active", "completed", "cancelled", "processing"]] = Query(
        default=None, alias="status"
    ),
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
    recommender: GroupRecommender = Depends(get_recommender),
    metrics: ScoringMetrics = Depends(get_scoring_metrics),
):
    """List groups, newest first, with recommendations over the page.

    Args:
        category: Only groups in this category.
        group_status: Group status to list (defaults to active).
        search: Case-insensitive substring of the product name or title.
        page: 1-based page number.
        limit: Page size.
    """
    query: Dict[str, Any] = {"status": group_status or "active"}
    if category:
        query["category"] = category
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"productName": pattern}, {"title": pattern}]

    total = store.groups.count_documents(query)
    groups = list(
        store.groups.find(query)
        .sort([("createdAt", -1), ("_id", -1)])
        .skip((page - 1) * limit)
        .limit(limit)
    )

    with metrics.track("recommendations"):
        recommendations = recommender.recommend(user, groups)

    return success({
        "groups": populate_users(store, groups),
        "recommendations": recommendations,
        "pagination": paginate(total, page, limit),
    })


@router.post("", status_code=status.HTTP_201_CREATED)
def create_group(
    body: GroupCreateRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
    provider: GroupMetricsProvider = Depends(get_group_metrics_provider),
):
    """Open a new group. The creator is not added as a member."""
    location = body.deliveryLocation.model_dump() if body.deliveryLocation else None
    supplier_id = None
    if body.supplier:
        supplier_id = parse_object_id(body.supplier, "Supplier")
        if store.suppliers.find_one({"_id": supplier_id}, {"_id": 1}) is None:
            raise ResourceNotFoundError("Supplier", body.supplier)

    ai_metrics = provider.score({
        "productName": body.productName,
        "category": body.category,
        "targetQuantity": body.targetQuantity,
        "pricePerUnit": body.pricePerUnit,
        "marketPrice": body.marketPrice,
        "location": location,
    })

    group = new_group_document(
        creator_id=user["_id"],
        product_name=body.productName,
        category=body.category,
        target_quantity=body.targetQuantity,
        price_per_unit=body.pricePerUnit,
        market_price=body.marketPrice,
        ai_metrics=ai_metrics,
        unit=body.unit,
        delivery_date=body.deliveryDate,
        delivery_location=location,
        delivery_type=body.deliveryType,
        supplier_id=supplier_id,
    )
    group["_id"] = store.groups.insert_one(group).inserted_id

    store.users.update_one(
        {"_id": user["_id"]},
        {"$inc": {"stats.groupsJoined": 1}, "$set": {"updatedAt": utcnow()}},
    )

    logger.info(
        "Group created",
        extra={"group_id": str(group["_id"]), "user_id": str(user["_id"]), "category": body.category},
    )

    return success(
        populate_users(store, [group])[0],
        message="Group created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{group_id}")
def get_group(
    group_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Group details with creator, members and supplier resolved."""
    group = store.groups.find_one({"_id": parse_object_id(group_id, "Group")})
    if group is None:
        raise ResourceNotFoundError("Group", group_id)

    group = populate_users(store, [group])[0]
    if group.get("supplier") is not None:
        supplier = store.suppliers.find_one(
            {"_id": group["supplier"]},
            {"name": 1, "ratings": 1, "contactPerson": 1},
        )
        if supplier is not None:
            group["supplier"] = supplier

    return success(group)


@router.post("/{group_id}/join")
def join_group(
    group_id: str,
    body: JoinRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    group, savings = membership.join_group(
        store,
        parse_object_id(group_id, "Group"),
        user["_id"],
        body.quantity,
    )
    return success(
        {"group": populate_users(store, [group])[0], "savings": savings},
        message="Successfully joined the group",
    )


@router.post("/{group_id}/leave")
def leave_group(
    group_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    membership.leave_group(store, parse_object_id(group_id, "Group"), user["_id"])
    return success(message="Successfully left the group")


