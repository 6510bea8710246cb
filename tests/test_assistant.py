"""Tests for the chat intent classifier and reply generation."""

import mongomock
import pytest
from bson import ObjectId

from groupbuy.recommender.assistant import ChatAssistant, Intent, classify_intent
from groupbuy.store.database import Store


@pytest.mark.parametrize(
    "message,intent",
    [
        ("Who is the best supplier?", Intent.SUPPLIER_INQUIRY),
        ("What is the price and delivery time?", Intent.PRICE_INQUIRY),
        ("How much can I SAVE?", Intent.PRICE_INQUIRY),
        ("Can I join a group and save money?", Intent.PRICE_INQUIRY),
        ("I want to join a group", Intent.GROUP_INQUIRY),
        ("When will it arrive?", Intent.DELIVERY_INQUIRY),
        ("Any vendor nearby?", Intent.SUPPLIER_INQUIRY),
        ("Suggest something", Intent.RECOMMENDATION_REQUEST),
        ("Hello there", Intent.GENERAL),
        ("", Intent.GENERAL),
    ],
)
def test_classify_intent(message, intent):
    assert classify_intent(message) == intent


def test_keywords_match_inside_words():
    """Matching is by substring, so 'pricey' is a price inquiry."""
    assert classify_intent("That looks pricey") == Intent.PRICE_INQUIRY


@pytest.fixture
def store():
    return Store(mongomock.MongoClient()["assistant_test"])


@pytest.fixture
def user():
    return {"_id": ObjectId(), "aiProfile": {"purchaseHistory": [], "preferences": {}}}


def test_reply_shape_and_context(store, user):
    """The reply carries metadata with the incoming context and a new context."""
    reply = ChatAssistant(store).respond("what does delivery cost", {"conversationState": "general"}, user)

    assert reply["metadata"]["intent"] == "price_inquiry"
    assert reply["metadata"]["confidence"] == 0.85
    assert reply["metadata"]["entities"] == []
    assert reply["metadata"]["context"] == {"conversationState": "general"}
    assert reply["context"]["conversationState"] == "price_inquiry"
    assert reply["context"]["lastIntent"] == "price_inquiry"
    assert "updatedAt" in reply["context"]


def test_price_reply_mentions_last_purchase(store, user):
    user["aiProfile"]["purchaseHistory"] = [{"product": "Toor Dal", "category": "Other"}]
    reply = ChatAssistant(store).respond("price?", None, user)
    assert "Toor Dal" in reply["content"]
    assert reply["metadata"]["context"] == {}


def test_group_reply_counts_groups(store, user):
    store.groups.insert_many([
        {"productName": "Onion", "status": "active", "completionPercentage": 80, "savings": 4, "unit": "kg"},
        {"productName": "Potato", "status": "active", "completionPercentage": 20, "savings": 3, "unit": "kg",
         "members": [{"user": user["_id"], "status": "active"}]},
        {"productName": "Wheat", "status": "completed", "creator": user["_id"]},
    ])

    content = ChatAssistant(store).respond("show me a group", None, user)["content"]

    assert "I found 2 active groups available" in content
    assert "You're currently part of 2 groups" in content
    assert content.index("Onion") < content.index("Potato")


def test_supplier_reply_counts_verified_suppliers(store, user):
    store.suppliers.insert_many([
        {"name": "A", "isVerified": True, "isActive": True},
        {"name": "B", "isVerified": True, "isActive": False},
        {"name": "C", "isVerified": False, "isActive": True},
    ])
    content = ChatAssistant(store).respond("supplier list", None, user)["content"]
    assert content.startswith("I work with 1+ verified suppliers")


def test_recommendation_reply(store, user):
    store.groups.insert_one({
        "productName": "Basmati Rice",
        "category": "Grains & Cereals",
        "status": "active",
        "savings": 5,
        "completionPercentage": 60,
    })
    content = ChatAssistant(store).respond("recommend something", None, user)["content"]

    assert "Basmati Rice" in content
    assert "save ₹50 on a 10kg order" in content
    assert "60% complete" in content


def test_recommendation_reply_without_groups(store, user):
    content = ChatAssistant(store).respond("recommend something", None, user)["content"]
    assert "Check back in a few minutes" in content
