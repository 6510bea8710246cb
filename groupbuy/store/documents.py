"""Document shapes and conversions for the GroupBuy collections.

Builders here produce the initial document for each top-level entity so that
every writer fills defaults the same way. ``to_public`` turns stored documents
into JSON-ready dictionaries.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from groupbuy.api.exceptions import ResourceNotFoundError

CATEGORIES = [
    "Grains & Cereals",
    "Vegetables",
    "Fruits",
    "Spices",
    "Oil & Ghee",
    "Dairy Products",
    "Other",
]

GROUP_STATUSES = ["active", "completed", "cancelled", "processing"]
MEMBER_STATUSES = ["active", "left", "completed"]
REQUEST_STATUSES = ["open", "matched", "completed", "cancelled"]
USER_ROLES = ["vendor", "supplier", "admin"]

GROUP_LIFETIME = timedelta(days=7)

CHAT_GREETING = (
    "Hello! I'm your GroupBuy AI assistant. I can help you find group buying "
    "opportunities, predict prices, and optimize your purchases. "
    "How can I help you today?"
)

# Never sent to clients
PRIVATE_USER_FIELDS = ("password", "refreshToken")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: Any, resource: str) -> ObjectId:
    """Parse a path identifier, treating malformed ids as missing documents."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ResourceNotFoundError(resource, str(value))


def to_public(value: Any) -> Any:
    """Convert a stored document (or any nested value) to JSON-ready data.

    ``_id`` becomes ``id`` and every ``ObjectId`` becomes its hex string.
    Datetimes are left for the JSON encoder.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [to_public(item) for item in value]
    if isinstance(value, dict):
        public = {}
        for key, item in value.items():
            if key == "_id":
                public["id"] = to_public(item)
            else:
                public[key] = to_public(item)
        return public
    return value


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Public view of a user document, without credentials."""
    return to_public({k: v for k, v in user.items() if k not in PRIVATE_USER_FIELDS})


def new_user_document(
    name: str,
    email: str,
    phone: str,
    password_hash: str,
    business_name: Optional[str] = None,
    business_type: Optional[str] = None,
    role: str = "vendor",
) -> Dict[str, Any]:
    now = utcnow()
    return {
        "name": name,
        "email": email,
        "phone": phone,
        "password": password_hash,
        "role": role,
        "profile": {
            "businessName": business_name,
            "businessType": business_type,
            "address": None,
            "gstNumber": None,
            "panNumber": None,
            "isVerified": False,
        },
        "preferences": {
            "categories": [],
            "maxDeliveryDistance": 10,
            "preferredSuppliers": [],
            "notifications": {"email": True, "sms": True, "push": True},
        },
        "stats": {
            "totalOrders": 0,
            "totalSavings": 0,
            "groupsJoined": 0,
            "rating": 0,
            "reviewCount": 0,
        },
        "aiProfile": {
            "purchaseHistory": [],
            "preferences": {
                "organic": False,
                "fastDelivery": False,
                "bulkDiscount": False,
                "localSuppliers": False,
            },
            "behaviorScore": 50,
            "lastActivity": None,
        },
        "refreshToken": None,
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }


def new_group_document(
    creator_id: ObjectId,
    product_name: str,
    category: str,
    target_quantity: float,
    price_per_unit: float,
    market_price: float,
    ai_metrics: Dict[str, float],
    unit: str = "kg",
    delivery_date: Optional[datetime] = None,
    delivery_location: Optional[Dict[str, Any]] = None,
    delivery_type: str = "delivery",
    supplier_id: Optional[ObjectId] = None,
) -> Dict[str, Any]:
    now = utcnow()
    return {
        "title": f"{product_name} - {target_quantity:g}{unit}",
        "productName": product_name,
        "category": category,
        "targetQuantity": target_quantity,
        "currentQuantity": 0,
        "unit": unit,
        "pricePerUnit": price_per_unit,
        "marketPrice": market_price,
        "savings": market_price - price_per_unit,
        "creator": creator_id,
        "members": [],
        "supplier": supplier_id,
        "deliveryDetails": {
            "expectedDate": delivery_date,
            "location": delivery_location,
            "deliveryType": delivery_type,
        },
        "status": "active",
        "completionPercentage": 0,
        "aiMetrics": ai_metrics,
        "revision": 0,
        "expiresAt": now + GROUP_LIFETIME,
        "createdAt": now,
        "updatedAt": now,
    }


def new_request_document(
    requester_id: ObjectId,
    fields: Dict[str, Any],
    suggestions: List[Dict[str, Any]],
) -> Dict[str, Any]:
    now = utcnow()
    document = {
        "requester": requester_id,
        "productName": fields["productName"],
        "category": fields["category"],
        "quantity": fields["quantity"],
        "unit": fields.get("unit") or "kg",
        "expectedDelivery": fields.get("expectedDelivery"),
        "maxPrice": fields.get("maxPrice"),
        "description": fields.get("description"),
        "urgency": fields.get("urgency") or "medium",
        "location": fields.get("location"),
        "status": "open",
        "matchedGroups": [],
        "aiSuggestions": suggestions,
        "responses": [],
        "createdAt": now,
        "updatedAt": now,
    }
    return document


def new_supplier_document(fields: Dict[str, Any]) -> Dict[str, Any]:
    now = utcnow()
    return {
        "name": fields["name"],
        "contactPerson": fields.get("contactPerson") or {},
        "businessDetails": fields.get("businessDetails") or {},
        "address": fields.get("address") or {},
        "serviceAreas": fields.get("serviceAreas") or [],
        "categories": fields.get("categories") or [],
        "products": fields.get("products") or [],
        "ratings": {
            "overall": 0,
            "quality": 0,
            "delivery": 0,
            "pricing": 0,
            "communication": 0,
            "totalReviews": 0,
        },
        "performance": {
            "totalOrders": 0,
            "completedOrders": 0,
            "cancelledOrders": 0,
            "onTimeDelivery": 0,
            "lastActiveDate": None,
        },
        "paymentTerms": fields.get("paymentTerms") or {},
        "aiMetrics": {
            "reliabilityScore": 50,
            "priceCompetitiveness": 50,
            "responseTime": 24,
            "qualityConsistency": 50,
        },
        "isVerified": False,
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }


def new_chat_document(user_id: ObjectId, greet: bool = True) -> Dict[str, Any]:
    """A fresh active chat session, optionally opened with the AI greeting."""
    now = utcnow()
    messages = []
    if greet:
        messages.append({
            "sender": "ai",
            "content": CHAT_GREETING,
            "timestamp": now,
            "metadata": {"intent": "greeting", "confidence": 1.0, "entities": []},
        })
    return {
        "user": user_id,
        "messages": messages,
        "context": {},
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }
