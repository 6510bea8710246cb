"""Keyword-driven chat assistant.

Messages are classified by the first rule whose keyword appears in the
lower-cased text; rule order decides ties ("price" beats "group"). Each intent
has one canned response generator, some of which read aggregate counts from
the store.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from groupbuy.recommender.scoring import GroupRecommender
from groupbuy.recommender.utils import as_number, purchase_history
from groupbuy.store.database import Store
from groupbuy.store.documents import utcnow

# Configure module logger
logger = logging.getLogger(__name__)

RESPONSE_CONFIDENCE = 0.85
TOP_GROUPS_IN_REPLY = 3
SAMPLE_ORDER_QUANTITY = 10


class Intent(str, Enum):
    PRICE_INQUIRY = "price_inquiry"
    GROUP_INQUIRY = "group_inquiry"
    DELIVERY_INQUIRY = "delivery_inquiry"
    SUPPLIER_INQUIRY = "supplier_inquiry"
    RECOMMENDATION_REQUEST = "recommendation_request"
    GENERAL = "general"


# Checked in order; the first hit wins
INTENT_RULES: List[Tuple[Intent, Tuple[str, ...]]] = [
    (Intent.PRICE_INQUIRY, ("price", "cost", "save")),
    (Intent.GROUP_INQUIRY, ("group", "join")),
    (Intent.DELIVERY_INQUIRY, ("delivery", "when")),
    (Intent.SUPPLIER_INQUIRY, ("supplier", "vendor")),
    (Intent.RECOMMENDATION_REQUEST, ("recommend", "suggest")),
]

GENERAL_RESPONSE = (
    "I can help you with group buying opportunities, price predictions, "
    "delivery information, and supplier details. What would you like to know more about?"
)
DELIVERY_RESPONSE = (
    "Our AI optimizes delivery routes for maximum efficiency. Average delivery time "
    "is 24-48 hours for group orders. Orders above ₹500 get free delivery, and we "
    "provide real-time tracking once your group reaches the target quantity."
)


def classify_intent(message: str) -> Intent:
    """Return the intent of the first rule with a keyword in ``message``."""
    text = (message or "").lower()
    for intent, keywords in INTENT_RULES:
        if any(keyword in text for keyword in keywords):
            return intent
    return Intent.GENERAL


class ChatAssistant:
    """Builds AI replies for chat messages."""

    def __init__(self, store: Store, recommender: Optional[GroupRecommender] = None):
        self.store = store
        self.recommender = recommender or GroupRecommender()

    def respond(
        self,
        message: str,
        context: Optional[Dict[str, Any]],
        user: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Generate the reply to one user message.

        Args:
            message: User's message text.
            context: Conversation context stored on the session.
            user: User document of the sender.

        Returns:
            Dictionary with ``content``, ``metadata`` (intent, confidence,
            entities and the incoming context) and ``context``, the new
            session context that replaces the old one.
        """
        intent = classify_intent(message)
        generators = {
            Intent.PRICE_INQUIRY: self.price_response,
            Intent.GROUP_INQUIRY: self.group_response,
            Intent.DELIVERY_INQUIRY: self.delivery_response,
            Intent.SUPPLIER_INQUIRY: self.supplier_response,
            Intent.RECOMMENDATION_REQUEST: self.recommendation_response,
            Intent.GENERAL: self.general_response,
        }
        content = generators[intent](user)

        logger.info(
            "Chat reply generated",
            extra={"user_id": str(user.get("_id")), "intent": intent.value},
        )

        return {
            "content": content,
            "metadata": {
                "intent": intent.value,
                "confidence": RESPONSE_CONFIDENCE,
                "entities": [],
                "context": context or {},
            },
            "context": {
                "conversationState": intent.value,
                "lastIntent": intent.value,
                "updatedAt": utcnow(),
            },
        }

    def price_response(self, user: Dict[str, Any]) -> str:
        history = purchase_history(user)
        if history:
            product = history[-1].get("product")
            return (
                f"Based on your recent purchase of {product}, you can save 15-25% through "
                "group buying. Current market analysis shows bulk orders save ₹8-15 per kg on average."
            )
        return (
            "Group buying typically saves 15-30% compared to individual purchases. "
            "I can analyze specific products to give you exact savings estimates."
        )

    def group_response(self, user: Dict[str, Any]) -> str:
        active_count = self.store.groups.count_documents({"status": "active"})
        user_count = self.store.groups.count_documents({
            "$or": [{"creator": user.get("_id")}, {"members.user": user.get("_id")}]
        })

        reply = (
            f"I found {active_count} active groups available. "
            f"You're currently part of {user_count} groups."
        )

        top_groups = list(
            self.store.groups.find({"status": "active"})
            .sort("completionPercentage", -1)
            .limit(TOP_GROUPS_IN_REPLY)
        )
        if top_groups:
            listed = ", ".join(
                f"{g.get('productName')} ({as_number(g.get('completionPercentage')):g}% full, "
                f"save ₹{as_number(g.get('savings')):g}/{g.get('unit') or 'kg'})"
                for g in top_groups
            )
            reply += f" Top matches for you: {listed}. Would you like me to show details for any of these?"
        return reply

    def delivery_response(self, user: Dict[str, Any]) -> str:
        return DELIVERY_RESPONSE

    def supplier_response(self, user: Dict[str, Any]) -> str:
        verified = self.store.suppliers.count_documents({"isVerified": True, "isActive": True})
        return (
            f"I work with {verified}+ verified suppliers across your region. All suppliers "
            "are rated 4+ stars with quality guarantees. Current best rates: Rice ₹45/kg, "
            "Vegetables ₹25-35/kg, Oil ₹140/L. Would you like supplier details for any specific product?"
        )

    def recommendation_response(self, user: Dict[str, Any]) -> str:
        active_groups = list(self.store.groups.find({"status": "active"}))
        recommendations = self.recommender.recommend(user, active_groups)

        if recommendations:
            top = recommendations[0]
            sample_savings = top["savings"] * SAMPLE_ORDER_QUANTITY
            return (
                f"Based on your profile, I recommend joining the group for {top['productName']}. "
                f"You can save ₹{sample_savings:g} on a {SAMPLE_ORDER_QUANTITY}kg order. "
                f"This group is {top['completionPercentage']:g}% complete and matches your purchase history."
            )
        return (
            "I'm analyzing current opportunities based on your preferences. "
            "Check back in a few minutes for personalized recommendations!"
        )

    def general_response(self, user: Dict[str, Any]) -> str:
        return GENERAL_RESPONSE
