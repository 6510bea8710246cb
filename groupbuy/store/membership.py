"""Group membership state machine.

Members move ``active -> left`` or ``active -> completed``; both are terminal.
A join or leave rewrites the group's member list, current quantity and
completion percentage in a single update guarded by the group's ``revision``
counter, so two writers that read the same state cannot both apply.
"""

import logging
import math
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument

from groupbuy.api.exceptions import (
    ConcurrentModificationError,
    ResourceNotFoundError,
    StateConflictError,
)
from groupbuy.store.database import Store
from groupbuy.store.documents import utcnow

# Configure module logger
logger = logging.getLogger(__name__)


def completion_percentage(current_quantity: float, target_quantity: float) -> int:
    """Share of the target already pledged, rounded half up to a whole percent."""
    if not target_quantity:
        return 0
    return int(math.floor(current_quantity / target_quantity * 100 + 0.5))


def find_membership(
    group: Dict[str, Any],
    user_id: ObjectId,
    status: Optional[str] = None,
) -> Optional[int]:
    """Index of the user's membership record, optionally with a given status."""
    for idx, member in enumerate(group.get("members") or []):
        if member.get("user") != user_id:
            continue
        if status is None or member.get("status") == status:
            return idx
    return None


def _revision_filter(group: Dict[str, Any]) -> Dict[str, Any]:
    if "revision" in group:
        return {"_id": group["_id"], "revision": group["revision"]}
    return {"_id": group["_id"], "revision": {"$exists": False}}


def _load_group(store: Store, group_id: ObjectId) -> Dict[str, Any]:
    group = store.groups.find_one({"_id": group_id})
    if group is None:
        raise ResourceNotFoundError("Group", str(group_id))
    return group


def join_group(
    store: Store,
    group_id: ObjectId,
    user_id: ObjectId,
    quantity: float,
) -> Tuple[Dict[str, Any], float]:
    """Add the user to a group with the quantity they need.

    Args:
        store: Document store.
        group_id: Group to join.
        user_id: Joining user.
        quantity: Quantity the user pledges.

    Returns:
        Tuple of the updated group document and the user's savings for this
        join (group savings per unit times quantity).

    Raises:
        ResourceNotFoundError: If the group does not exist.
        StateConflictError: If the group is not active, the user already has
            a membership record, or the quantity would overshoot the target.
        ConcurrentModificationError: If the group changed after it was read.
    """
    group = _load_group(store, group_id)

    if group.get("status") != "active":
        raise StateConflictError("Group is not active")

    # Any record counts, including one the user has left
    if find_membership(group, user_id) is not None:
        raise StateConflictError("You have already joined this group")

    current = group.get("currentQuantity") or 0
    target = group.get("targetQuantity") or 0
    if current + quantity > target:
        raise StateConflictError(
            "Quantity exceeds group target",
            details={"remaining": target - current, "requested": quantity},
        )

    now = utcnow()
    new_current = current + quantity
    member = {
        "user": user_id,
        "quantityNeeded": quantity,
        "joinedAt": now,
        "status": "active",
    }

    updated = store.groups.find_one_and_update(
        _revision_filter(group),
        {
            "$push": {"members": member},
            "$set": {
                "currentQuantity": new_current,
                "completionPercentage": completion_percentage(new_current, target),
                "updatedAt": now,
            },
            "$inc": {"revision": 1},
        },
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.warning(
            "Join lost compare-and-swap",
            extra={"group_id": str(group_id), "user_id": str(user_id)},
        )
        raise ConcurrentModificationError("Group", str(group_id))

    savings = (group.get("savings") or 0) * quantity

    store.users.update_one(
        {"_id": user_id},
        {
            "$inc": {"stats.groupsJoined": 1, "stats.totalSavings": savings},
            "$push": {
                "aiProfile.purchaseHistory": {
                    "product": group.get("productName"),
                    "category": group.get("category"),
                    "quantity": quantity,
                    "price": group.get("pricePerUnit"),
                    "date": now,
                }
            },
            "$set": {"updatedAt": now},
        },
    )

    logger.info(
        "User joined group",
        extra={
            "group_id": str(group_id),
            "user_id": str(user_id),
            "quantity": quantity,
            "completion": updated.get("completionPercentage"),
        },
    )
    return updated, savings


def leave_group(store: Store, group_id: ObjectId, user_id: ObjectId) -> Dict[str, Any]:
    """Mark the user's active membership as left and release its quantity.

    Raises:
        ResourceNotFoundError: If the group does not exist.
        StateConflictError: If the user has no active membership.
        ConcurrentModificationError: If the group changed after it was read.
    """
    group = _load_group(store, group_id)

    idx = find_membership(group, user_id, status="active")
    if idx is None:
        raise StateConflictError("You are not a member of this group")

    members = [dict(m) for m in group.get("members") or []]
    quantity = members[idx].get("quantityNeeded") or 0
    members[idx]["status"] = "left"

    new_current = (group.get("currentQuantity") or 0) - quantity
    target = group.get("targetQuantity") or 0

    updated = store.groups.find_one_and_update(
        _revision_filter(group),
        {
            "$set": {
                "members": members,
                "currentQuantity": new_current,
                "completionPercentage": completion_percentage(new_current, target),
                "updatedAt": utcnow(),
            },
            "$inc": {"revision": 1},
        },
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.warning(
            "Leave lost compare-and-swap",
            extra={"group_id": str(group_id), "user_id": str(user_id)},
        )
        raise ConcurrentModificationError("Group", str(group_id))

    logger.info(
        "User left group",
        extra={"group_id": str(group_id), "user_id": str(user_id), "quantity": quantity},
    )
    return updated
