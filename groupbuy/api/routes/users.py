"""Current-user profile endpoints."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from groupbuy.api.dependencies import get_current_user, get_store
from groupbuy.api.exceptions import StateConflictError, ValidationFailedError
from groupbuy.api.responses import success
from groupbuy.api.routes.auth import PHONE_PATTERN
from groupbuy.api.schemas import Address, Category
from groupbuy.store.database import Store
from groupbuy.store.documents import public_user, utcnow

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/users",
    tags=["users"],
)


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    businessName: Optional[str] = None
    businessType: Optional[str] = None
    address: Optional[Address] = None
    gstNumber: Optional[str] = None
    panNumber: Optional[str] = None


class NotificationPreferences(BaseModel):
    email: Optional[bool] = None
    sms: Optional[bool] = None
    push: Optional[bool] = None


class PreferencesUpdate(BaseModel):
    categories: Optional[List[Category]] = None
    maxDeliveryDistance: Optional[float] = Field(default=None, gt=0)
    preferredSuppliers: Optional[List[str]] = None
    notifications: Optional[NotificationPreferences] = None


class AIPreferencesUpdate(BaseModel):
    organic: Optional[bool] = None
    fastDelivery: Optional[bool] = None
    bulkDiscount: Optional[bool] = None
    localSuppliers: Optional[bool] = None


class UserUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=2)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    profile: Optional[ProfileUpdate] = None
    preferences: Optional[PreferencesUpdate] = None
    aiPreferences: Optional[AIPreferencesUpdate] = None


def flatten_update(changes: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turn nested changes into dotted ``$set`` paths.

    Only dictionaries are descended into, so lists and the address sub-object
    replace the stored value whole.

    Example:
        >>> flatten_update({"profile": {"gstNumber": "X"}})
        {'profile.gstNumber': 'X'}
    """
    paths = {}
    for key, value in changes.items():
        path = f"{prefix}{key}"
        if isinstance(value, dict) and key != "address":
            paths.update(flatten_update(value, f"{path}."))
        else:
            paths[path] = value
    return paths


@router.get("/me")
def get_me(user: Dict[str, Any] = Depends(get_current_user)):
    return success(public_user(user))


@router.patch("/me")
def update_me(
    body: UserUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Update name, phone, business profile and preferences.

    Only fields present in the body are written.
    """
    changes = body.model_dump(exclude_unset=True)
    # Stored under aiProfile.preferences
    ai_preferences = changes.pop("aiPreferences", None)
    if ai_preferences is not None:
        changes.setdefault("aiProfile", {})["preferences"] = ai_preferences

    paths = flatten_update(changes)
    if not paths:
        raise ValidationFailedError([], message="No fields to update")

    if "phone" in paths and paths["phone"] != user.get("phone"):
        if store.users.find_one({"phone": paths["phone"], "_id": {"$ne": user["_id"]}}):
            raise StateConflictError("Phone number already in use")

    paths["updatedAt"] = utcnow()
    try:
        updated = store.users.find_one_and_update(
            {"_id": user["_id"]},
            {"$set": paths},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise StateConflictError("Phone number already in use")

    logger.info(
        "User profile updated",
        extra={"user_id": str(user["_id"]), "fields": sorted(p for p in paths if p != "updatedAt")},
    )

    return success(public_user(updated), message="Profile updated successfully")
