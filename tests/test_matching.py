"""Tests for request-to-group matching."""

import mongomock
import pytest
from bson import ObjectId

from groupbuy.recommender.matching import find_smart_matches, match_score, rank_matches
from groupbuy.store.database import Store


@pytest.fixture
def basmati_request():
    return {
        "_id": ObjectId(),
        "productName": "Basmati Rice",
        "category": "Grains & Cereals",
        "quantity": 10,
        "maxPrice": 60,
    }


def make_group(**fields):
    group = {
        "_id": ObjectId(),
        "productName": "Basmati Rice",
        "category": "Grains & Cereals",
        "status": "active",
        "pricePerUnit": 55,
        "targetQuantity": 100,
        "currentQuantity": 50,
        "savings": 5,
    }
    group.update(fields)
    return group


def test_perfect_match_scores_100(basmati_request):
    score, reasons = match_score(basmati_request, make_group())

    assert score == 100
    assert reasons == [
        "Exact product match",
        "Sufficient capacity available",
        "Within budget",
        "Good location match",
    ]


def test_partial_product_name_counts_as_exact(basmati_request):
    """Either name containing the other is a product match."""
    score, reasons = match_score(basmati_request, make_group(productName="Premium Basmati Rice 1121"))
    assert "Exact product match" in reasons
    assert score == 100


def test_same_category_only(basmati_request):
    score, reasons = match_score(basmati_request, make_group(productName="Wheat"))
    assert score == 80
    assert reasons[0] == "Same category"


def test_near_capacity(basmati_request):
    """Up to 20% over the remaining capacity still earns partial credit."""
    score, reasons = match_score(basmati_request, make_group(currentQuantity=91.5))
    assert "Near capacity match" in reasons
    assert score == 85

    score, reasons = match_score(basmati_request, make_group(currentQuantity=95))
    assert "Near capacity match" not in reasons
    assert "Sufficient capacity available" not in reasons
    assert score == 70


def test_over_budget(basmati_request):
    score, reasons = match_score(basmati_request, make_group(pricePerUnit=61))
    assert "Within budget" not in reasons
    assert score == 80


def test_no_max_price_is_within_budget(basmati_request):
    basmati_request["maxPrice"] = None
    score, reasons = match_score(basmati_request, make_group(pricePerUnit=500))
    assert "Within budget" in reasons
    assert score == 100


def test_rank_matches_excludes_other_categories_and_inactive_groups(basmati_request):
    """Results never include a group outside the category or not active."""
    groups = [
        make_group(category="Vegetables"),
        make_group(status="completed"),
        make_group(status="cancelled"),
        make_group(),
    ]
    matches = rank_matches(basmati_request, groups)

    assert [m["group"] for m in matches] == [groups[3]["_id"]]


def test_rank_matches_threshold_and_order(basmati_request):
    """Scores below 50 are dropped; the rest are sorted best first."""
    weak = make_group(productName="Wheat", currentQuantity=100, pricePerUnit=99)
    good = make_group(productName="Wheat")
    best = make_group()
    matches = rank_matches(basmati_request, [weak, good, best])

    assert [m["group"] for m in matches] == [best["_id"], good["_id"]]
    assert [m["matchScore"] for m in matches] == [100, 80]


def test_rank_matches_estimated_savings(basmati_request):
    matches = rank_matches(basmati_request, [make_group(savings=7.5)])

    assert matches[0]["estimatedSavings"] == 75
    assert matches[0]["pricePerUnit"] == 55
    assert matches[0]["productName"] == "Basmati Rice"


def test_find_smart_matches_queries_store(basmati_request):
    store = Store(mongomock.MongoClient()["matching_test"])
    store.groups.insert_many([
        make_group(),
        make_group(category="Spices", productName="Basmati Rice"),
        make_group(status="processing"),
    ])

    matches = find_smart_matches(store, basmati_request)

    assert len(matches) == 1
    assert matches[0]["matchScore"] == 100
