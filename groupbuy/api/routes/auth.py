"""Authentication endpoints.

Register and login hand out an access/refresh token pair. The refresh token
is stored on the user; refreshing rotates it so the previous one stops
working, and logout clears it.
"""

import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pymongo.errors import DuplicateKeyError

from groupbuy.api.dependencies import get_store, get_token_service
from groupbuy.api.exceptions import AuthenticationError, StateConflictError
from groupbuy.api.responses import success
from groupbuy.api.security import TokenService
from groupbuy.store.database import Store
from groupbuy.store.documents import new_user_document, utcnow

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)

# Indian mobile numbers, optionally prefixed with +91
PHONE_PATTERN = r"^(\+91[\-\s]?)?[6-9]\d{9}$"


class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=6)
    businessName: Optional[str] = None
    businessType: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refreshToken: Optional[str] = None


def _user_summary(user: Dict[str, Any], with_profile: bool = False) -> Dict[str, Any]:
    summary = {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role"),
    }
    if with_profile:
        summary["profile"] = user.get("profile")
    return summary


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    store: Store = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Create a vendor account and log it in."""
    email = body.email.lower()

    if store.users.find_one({"$or": [{"email": email}, {"phone": body.phone}]}):
        raise StateConflictError("User already exists with this email or phone")

    user = new_user_document(
        name=body.name,
        email=email,
        phone=body.phone,
        password_hash=tokens.hash_password(body.password),
        business_name=body.businessName,
        business_type=body.businessType,
    )
    try:
        user["_id"] = store.users.insert_one(user).inserted_id
    except DuplicateKeyError:
        raise StateConflictError("User already exists with this email or phone")

    issued = tokens.issue_tokens(str(user["_id"]))
    store.users.update_one(
        {"_id": user["_id"]},
        {"$set": {"refreshToken": issued["refreshToken"]}},
    )

    logger.info("User registered", extra={"user_id": str(user["_id"])})

    return success(
        {"user": _user_summary(user), **issued},
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login")
def login(
    body: LoginRequest,
    store: Store = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Exchange email and password for a token pair."""
    user = store.users.find_one({"email": body.email.lower(), "isActive": True})
    if user is None or not tokens.verify_password(body.password, user.get("password")):
        raise AuthenticationError("Invalid credentials")

    issued = tokens.issue_tokens(str(user["_id"]))
    store.users.update_one(
        {"_id": user["_id"]},
        {"$set": {"refreshToken": issued["refreshToken"], "aiProfile.lastActivity": utcnow()}},
    )

    logger.info("User logged in", extra={"user_id": str(user["_id"])})

    return success(
        {"user": _user_summary(user, with_profile=True), **issued},
        message="Login successful",
    )


@router.post("/refresh")
def refresh(
    body: RefreshRequest,
    store: Store = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Rotate the refresh token and issue a new access token.

    The presented refresh token must be the one currently stored on the
    user; once rotated it is rejected.
    """
    if not body.refreshToken:
        raise AuthenticationError("Refresh token required")

    try:
        user_id = tokens.decode_refresh_token(body.refreshToken)
        user = store.users.find_one({"_id": ObjectId(user_id), "isActive": True})
    except (AuthenticationError, InvalidId, TypeError):
        raise AuthenticationError("Invalid refresh token")

    if user is None or user.get("refreshToken") != body.refreshToken:
        raise AuthenticationError("Invalid refresh token")

    issued = tokens.issue_tokens(user_id)
    result = store.users.update_one(
        {"_id": user["_id"], "refreshToken": body.refreshToken},
        {"$set": {"refreshToken": issued["refreshToken"]}},
    )
    if result.modified_count == 0:
        # Another refresh with the same token won the race
        raise AuthenticationError("Invalid refresh token")

    return success(issued)


@router.post("/logout")
def logout(
    body: RefreshRequest,
    store: Store = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Invalidate the stored refresh token. Always reports success."""
    if body.refreshToken:
        try:
            user_id = tokens.decode_refresh_token(body.refreshToken)
            store.users.update_one(
                {"_id": ObjectId(user_id), "refreshToken": body.refreshToken},
                {"$set": {"refreshToken": None}},
            )
        except (AuthenticationError, InvalidId, TypeError) as e:
            logger.debug(f"Ignoring unusable refresh token on logout: {e}")

    return success(message="Logged out successfully")
